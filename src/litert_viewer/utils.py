"""
Image pre- and post-processing helpers.
"""

import cv2
import logging
import numpy as np
from dataclasses import dataclass, asdict
from functools import lru_cache
from typing import List, Tuple

from .errors import LabelMapError
from .inference import RawDetections

logger = logging.getLogger(__name__)

# Colors for different classes (using OpenCV BGR format)
COLORS = [
    (255, 0, 0),      # Blue
    (0, 255, 0),      # Green
    (0, 0, 255),      # Red
    (255, 255, 0),    # Cyan
    (255, 0, 255),    # Magenta
    (0, 255, 255),    # Yellow
    (128, 0, 128),    # Purple
    (255, 165, 0),    # Orange
]


@dataclass
class Detection:
    """A detection in pixel coordinates of the image it is drawn on."""
    label: str
    class_id: int
    score: float
    left: int
    top: int
    right: int
    bottom: int

    def to_dict(self) -> dict:
        return asdict(self)


@lru_cache(maxsize=None)
def load_labels(path: str) -> Tuple[str, ...]:
    """
    Load a newline-delimited label file, one class name per line.

    The result is cached per path for the life of the process.

    Raises:
        LabelMapError: if the file cannot be read
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            labels = tuple(line.rstrip('\r\n') for line in f)
    except OSError as e:
        raise LabelMapError(f"Failed to load labels from {path}: {e}") from e

    logger.info(f"Loaded {len(labels)} labels from {path}")
    return labels


def needs_letterbox(image_width: int, image_height: int, input_width: int,
                    input_height: int, ratio_tolerance: float = 0.1) -> bool:
    """True when the aspect ratios differ by more than ratio_tolerance."""
    return abs(image_width / image_height - input_width / input_height) > ratio_tolerance


def letterbox_image(image: np.ndarray, input_width: int, input_height: int,
                    preserve_ratio: bool = True, ratio_tolerance: float = 0.1,
                    pad_color: int = 190) -> np.ndarray:
    """
    Resize image to the model input size.

    With preserve_ratio, and when the aspect ratios differ by more than
    ratio_tolerance, the image is scaled to fit along the constraining axis and
    placed at the top-left corner of a canvas filled with pad_color.
    Otherwise the image is stretched.

    Args:
        image: Input image (BGR format)
        input_width: Model input width
        input_height: Model input height
        preserve_ratio: Letterbox instead of stretching
        ratio_tolerance: Aspect ratio difference that still counts as equal
        pad_color: Gray level of the padding

    Returns:
        Image of shape (input_height, input_width, 3)
    """
    h, w = image.shape[:2]
    orig_ratio = w / h
    input_ratio = input_width / input_height

    if not preserve_ratio or not needs_letterbox(w, h, input_width, input_height, ratio_tolerance):
        return cv2.resize(image, (input_width, input_height))

    if input_ratio <= orig_ratio:
        new_w = input_width
        new_h = int(input_width / orig_ratio)
    else:
        new_h = input_height
        new_w = int(input_height * orig_ratio)

    resized = cv2.resize(image, (max(new_w, 1), max(new_h, 1)))

    letterboxed = np.full((input_height, input_width, 3), pad_color, dtype=np.uint8)
    letterboxed[:resized.shape[0], :resized.shape[1]] = resized

    return letterboxed


def compute_scale(image_width: int, image_height: int, input_width: int,
                  input_height: int, ratio_preserved: bool) -> Tuple[float, float]:
    """
    Scale factors from model input pixels to image pixels.

    When the ratio was preserved the letterbox was anchored top-left and scaled
    along the constraining axis, so a single factor from that axis undoes it.

    Returns:
        (scale_x, scale_y)
    """
    if ratio_preserved:
        orig_ratio = image_width / image_height
        input_ratio = input_width / input_height

        if input_ratio <= orig_ratio:
            scale = image_width / input_width
        else:
            scale = image_height / input_height
        return scale, scale

    return image_width / input_width, image_height / input_height


def _to_pixels(value: float, input_dim: int, scale: float) -> int:
    position = min(max(int(value * input_dim), 0), input_dim)
    return int(position * scale)


def rescale_detections(raw: RawDetections, labels: Tuple[str, ...],
                       image_size: Tuple[int, int], input_size: Tuple[int, int],
                       ratio_preserved: bool, threshold: float = 0.4) -> List[Detection]:
    """
    Convert normalized model detections to pixel rectangles on an image.

    Args:
        raw: Model outputs, boxes as (top, left, bottom, right) in [0, 1]
        labels: Class names indexed by class id
        image_size: (width, height) of the image the boxes are for
        input_size: (width, height) of the model input
        ratio_preserved: Whether the input was letterboxed
        threshold: Scores at or below this are dropped

    Returns:
        List of detections in image pixel coordinates
    """
    image_width, image_height = image_size
    input_width, input_height = input_size
    scale_x, scale_y = compute_scale(
        image_width, image_height, input_width, input_height, ratio_preserved
    )
    logger.debug(f"Box scale: x={scale_x:.4f} y={scale_y:.4f}")

    # Compare in the precision of the model output so 0.4f equals 0.4
    scores = np.asarray(raw.scores)
    if np.issubdtype(scores.dtype, np.floating):
        limit = scores.dtype.type(threshold)
    else:
        limit = threshold

    detections = []
    for i in range(raw.count):
        if not scores[i] > limit:
            continue
        score = float(scores[i])

        top, left, bottom, right = (float(v) for v in raw.boxes[i])
        class_id = int(raw.classes[i])
        if 0 <= class_id < len(labels):
            label = labels[class_id]
        else:
            label = f"class_{class_id}"

        detections.append(Detection(
            label=label,
            class_id=class_id,
            score=score,
            left=_to_pixels(left, input_width, scale_x),
            top=_to_pixels(top, input_height, scale_y),
            right=_to_pixels(right, input_width, scale_x),
            bottom=_to_pixels(bottom, input_height, scale_y),
        ))

    return detections


def draw_boxes(image: np.ndarray, detections: List[Detection], scale_y: float = 1.0) -> np.ndarray:
    """
    Draw bounding boxes and labels on image in place.

    Args:
        image: Image (BGR format) the detections were rescaled for
        detections: Detections in image pixel coordinates
        scale_y: Vertical scale of the image relative to the model input,
            used to size the caption font

    Returns:
        The same image, annotated
    """
    font = cv2.FONT_HERSHEY_DUPLEX
    font_scale = 0.4 * min(scale_y, 4.0)
    thickness = max(1, int(round(font_scale)))

    for det in detections:
        color = COLORS[det.class_id % len(COLORS)]

        cv2.rectangle(image, (det.left, det.top), (det.right, det.bottom), color, thickness)

        text = f"{det.label}: {int(det.score * 100)}%"
        (text_w, text_h), baseline = cv2.getTextSize(text, font, font_scale, thickness)

        # Label background
        cv2.rectangle(
            image,
            (det.left, det.top - text_h - baseline - 2),
            (det.left + text_w, det.top),
            color,
            -1
        )

        cv2.putText(
            image,
            text,
            (det.left, det.top - baseline),
            font,
            font_scale,
            (255, 255, 255),
            thickness,
            cv2.LINE_AA
        )

    return image


def encode_jpeg(image: np.ndarray, quality: int = 90) -> bytes:
    """Encode a BGR image as JPEG bytes."""
    ok, buffer = cv2.imencode('.jpg', image, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise ValueError("JPEG encoding failed")
    return buffer.tobytes()
