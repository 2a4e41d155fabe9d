"""
LiteRT inference wrapper module for LiteRT Viewer.
"""

import cv2
import logging
import numpy as np
from dataclasses import dataclass
from typing import Optional, List, Tuple

from .errors import InferenceError

logger = logging.getLogger(__name__)

# SSD post-processing output order
BOXES_OUTPUT = 0
CLASSES_OUTPUT = 1
SCORES_OUTPUT = 2
COUNT_OUTPUT = 3


@dataclass
class RawDetections:
    """Detection outputs as produced by the model, boxes normalized (top, left, bottom, right)."""
    boxes: np.ndarray
    classes: np.ndarray
    scores: np.ndarray
    count: int


class LiteRTInference:
    """LiteRT interpreter wrapper for SSD-style detection models."""

    def __init__(self, model_path: str, num_threads: int = 4,
                 delegate_path: Optional[str] = None, max_detections: int = 100):
        self.model_path = model_path
        self.num_threads = num_threads
        self.delegate_path = delegate_path
        self.max_detections = max_detections
        self.interpreter = None
        self.input_details = None
        self.output_details = None
        self.input_shape = None
        self.input_dtype = None
        self.is_initialized = False

        try:
            from ai_edge_litert.interpreter import Interpreter, load_delegate
            self.Interpreter = Interpreter
            self.load_delegate = load_delegate
        except ImportError as e:
            logger.error(f"Failed to import ai_edge_litert: {e}")
            raise

    def initialize(self) -> bool:
        """
        Load the model and allocate tensors.

        Raises:
            InferenceError: if the model cannot be loaded
        """
        try:
            logger.info(f"Loading model: {self.model_path}")
            self.interpreter = self._create_interpreter()
            self.interpreter.allocate_tensors()

            self.input_details = self.interpreter.get_input_details()
            self.output_details = self.interpreter.get_output_details()
            self.input_shape = tuple(self.input_details[0]['shape'])
            self.input_dtype = np.dtype(self.input_details[0]['dtype'])

            if len(self.output_details) < 4:
                raise InferenceError(
                    f"Expected 4 detection outputs, model has {len(self.output_details)}"
                )

            logger.info(
                f"Model loaded - Input: {self.input_shape} {self.input_dtype}, "
                f"Outputs: {len(self.output_details)}"
            )

            self.is_initialized = True
            return True

        except InferenceError:
            self.is_initialized = False
            raise
        except Exception as e:
            self.is_initialized = False
            raise InferenceError(f"Failed to load {self.model_path}: {e}") from e

    def _create_interpreter(self):
        """Create the interpreter, on the configured delegate when it loads."""
        if self.delegate_path:
            try:
                delegate = self.load_delegate(self.delegate_path)
                interpreter = self.Interpreter(
                    model_path=self.model_path,
                    experimental_delegates=[delegate],
                )
                logger.info(f"Using delegate: {self.delegate_path}")
                return interpreter
            except (ValueError, RuntimeError) as e:
                logger.warning(f"Delegate {self.delegate_path} unavailable ({e}), using CPU")

        return self.Interpreter(model_path=self.model_path, num_threads=self.num_threads)

    @property
    def input_size(self) -> Tuple[int, int]:
        """Model input (width, height)."""
        if self.input_shape is None:
            raise InferenceError("Model not initialized")
        _, height, width, _ = self.input_shape
        return int(width), int(height)

    def describe(self) -> List[str]:
        """Human-readable summary of the input and output tensors."""
        if not self.is_initialized:
            raise InferenceError("Model not initialized")

        lines = []
        for kind, details in (("input", self.input_details), ("output", self.output_details)):
            lines.append(f"{kind}s: {len(details)}")
            for i, detail in enumerate(details):
                shape = tuple(int(d) for d in detail['shape'])
                dtype = np.dtype(detail['dtype'])
                size = int(np.prod(shape)) * dtype.itemsize
                lines.append(
                    f"  {kind} {i} '{detail['name']}' shape={shape} dtype={dtype.name} bytes={size}"
                )
        return lines

    def preprocess(self, image: np.ndarray) -> np.ndarray:
        """Convert a BGR image at model input size into a batched input tensor."""
        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

        if self.input_dtype == np.float32:
            tensor = rgb.astype(np.float32) / 255.0
        elif self.input_dtype == np.int8:
            scale, zero_point = self.input_details[0]['quantization']
            if scale:
                quantized = np.round(rgb.astype(np.float32) / 255.0 / scale + zero_point)
            else:
                quantized = rgb.astype(np.int16) - 128
            tensor = np.clip(quantized, -128, 127).astype(np.int8)
        else:
            tensor = rgb.astype(np.uint8)

        return np.expand_dims(tensor, axis=0)

    def infer(self, tensor: np.ndarray) -> RawDetections:
        """
        Run inference on a preprocessed tensor.

        Raises:
            InferenceError: if the interpreter is not ready or invoke fails
        """
        if not self.is_initialized:
            raise InferenceError("Model not initialized")

        try:
            self.interpreter.set_tensor(self.input_details[0]['index'], tensor)
            self.interpreter.invoke()

            boxes = self._output(BOXES_OUTPUT).reshape(-1, 4)
            classes = self._output(CLASSES_OUTPUT).reshape(-1)
            scores = self._output(SCORES_OUTPUT).reshape(-1)
            count = int(self._output(COUNT_OUTPUT).reshape(-1)[0])
        except Exception as e:
            raise InferenceError(f"Inference failed: {e}") from e

        count = max(0, min(count, len(boxes), len(classes), len(scores), self.max_detections))
        logger.debug(f"Model reported {count} detections")

        return RawDetections(boxes=boxes, classes=classes, scores=scores, count=count)

    def _output(self, position: int) -> np.ndarray:
        return self.interpreter.get_tensor(self.output_details[position]['index'])

    def cleanup(self):
        """Release interpreter resources."""
        self.interpreter = None
        self.is_initialized = False

    def __del__(self):
        self.cleanup()
