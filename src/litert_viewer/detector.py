"""
Single-image detection on a LiteRT model.
"""

import cv2
import time
import logging
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional

from .config import InferenceConfig
from .errors import ImageReadError
from .inference import LiteRTInference
from .utils import (
    Detection, compute_scale, draw_boxes, letterbox_image, load_labels,
    needs_letterbox, rescale_detections,
)

logger = logging.getLogger(__name__)


@dataclass
class DetectionResult:
    """Output of one process cycle."""
    image_path: str
    resized: np.ndarray          # annotated model input (BGR)
    original: np.ndarray         # annotated original image (BGR)
    detections: List[Detection] = field(default_factory=list)  # in original image pixels
    inference_time: float = 0.0  # seconds

    def to_dict(self) -> dict:
        return {
            'image': self.image_path,
            'num_detections': len(self.detections),
            'inference_time_ms': round(self.inference_time * 1000, 2),
            'detections': [d.to_dict() for d in self.detections],
        }


class Detector:
    """Object detector backed by a LiteRT interpreter."""

    def __init__(self, model_path: str, config: InferenceConfig,
                 engine: Optional[LiteRTInference] = None):
        self.model_path = model_path
        self.config = config
        self.labels = load_labels(config.label_path)

        if engine is None:
            engine = LiteRTInference(
                model_path,
                num_threads=config.num_threads,
                delegate_path=config.delegate_path,
                max_detections=config.max_detections,
            )
        self.inference_engine = engine
        self.inference_engine.initialize()

    @property
    def input_size(self):
        return self.inference_engine.input_size

    def process(self, image_path: str) -> DetectionResult:
        """
        Detect objects in an image file.

        Raises:
            ImageReadError: if the image cannot be decoded
            InferenceError: if the interpreter fails
        """
        image = cv2.imread(image_path)
        if image is None:
            logger.error(f"Failed to load image: {image_path}")
            raise ImageReadError(f"Failed to load image: {image_path}")

        h, w = image.shape[:2]
        input_w, input_h = self.input_size
        ratio_preserved = self.config.preserve_ratio and needs_letterbox(
            w, h, input_w, input_h, self.config.ratio_tolerance
        )

        resized = letterbox_image(
            image, input_w, input_h,
            preserve_ratio=self.config.preserve_ratio,
            ratio_tolerance=self.config.ratio_tolerance,
            pad_color=self.config.pad_color,
        )

        tensor = self.inference_engine.preprocess(resized)
        start = time.time()
        raw = self.inference_engine.infer(tensor)
        inference_time = time.time() - start

        threshold = self.config.confidence_threshold

        resized_dets = rescale_detections(
            raw, self.labels, (input_w, input_h), (input_w, input_h),
            ratio_preserved, threshold
        )
        draw_boxes(resized, resized_dets, 1.0)

        original_dets = rescale_detections(
            raw, self.labels, (w, h), (input_w, input_h), ratio_preserved, threshold
        )
        _, scale_y = compute_scale(w, h, input_w, input_h, ratio_preserved)
        draw_boxes(image, original_dets, scale_y)

        logger.info(
            f"{image_path}: {len(original_dets)} detections in {inference_time * 1000:.1f}ms"
        )

        return DetectionResult(
            image_path=image_path,
            resized=resized,
            original=image,
            detections=original_dets,
            inference_time=inference_time,
        )

    def cleanup(self):
        """Release detector resources."""
        if self.inference_engine is not None:
            self.inference_engine.cleanup()
