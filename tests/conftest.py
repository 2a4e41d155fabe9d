"""
Pytest configuration for LiteRT Viewer.

This module provides shared fixtures and a stand-in for the LiteRT engine.
"""

import os
import sys
import pytest
import cv2
import numpy as np

# Add source directory to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src'))

from litert_viewer.config import Config, InferenceConfig
from litert_viewer.detector import Detector
from litert_viewer.inference import RawDetections


LABELS = ["person", "bicycle", "car", "dog"]


class FakeEngine:
    """Engine with the LiteRTInference interface returning fixed detections."""

    def __init__(self, raw: RawDetections, input_size=(320, 320)):
        self.raw = raw
        self._input_size = input_size
        self.is_initialized = False
        self.calls = 0
        self.last_input_shape = None

    def initialize(self):
        self.is_initialized = True
        return True

    @property
    def input_size(self):
        return self._input_size

    def preprocess(self, image):
        self.last_input_shape = image.shape
        return np.expand_dims(image.astype(np.float32) / 255.0, axis=0)

    def infer(self, tensor):
        self.calls += 1
        return self.raw

    def cleanup(self):
        self.is_initialized = False


def make_raw(boxes, classes, scores, count=None):
    boxes = np.array(boxes, dtype=np.float32).reshape(-1, 4)
    return RawDetections(
        boxes=boxes,
        classes=np.array(classes, dtype=np.float32),
        scores=np.array(scores, dtype=np.float32),
        count=len(boxes) if count is None else count,
    )


@pytest.fixture
def label_file(tmp_path):
    """Label map with a few COCO classes."""
    path = tmp_path / "labelmap.txt"
    path.write_text("\n".join(LABELS) + "\n")
    return str(path)


@pytest.fixture
def inference_config(label_file):
    return InferenceConfig(label_path=label_file)


@pytest.fixture
def sample_raw():
    """One full-width dog, one car below the threshold."""
    return make_raw(
        boxes=[[0.0, 0.0, 0.5, 1.0], [0.1, 0.1, 0.2, 0.2]],
        classes=[3, 2],
        scores=[0.9, 0.3],
    )


@pytest.fixture
def wide_image_path(tmp_path):
    """960x480 image, width is the constraining axis for a square model."""
    path = tmp_path / "wide.jpg"
    cv2.imwrite(str(path), np.full((480, 960, 3), 60, dtype=np.uint8))
    return str(path)


@pytest.fixture
def workspace(tmp_path, label_file):
    """Directory with two models and three images, plus a matching config."""
    (tmp_path / "ssd_a.tflite").write_bytes(b"")
    (tmp_path / "ssd_b.tflite").write_bytes(b"")
    images = tmp_path / "images"
    images.mkdir()
    for i in range(3):
        cv2.imwrite(str(images / f"{i}.jpg"), np.full((240, 320, 3), 40 * i, dtype=np.uint8))

    config = Config()
    config.inference.model_dir = str(tmp_path)
    config.inference.label_path = label_file
    config.images.directory = str(images)
    return tmp_path, config


@pytest.fixture
def detector_factory(sample_raw):
    """Factory building Detectors on FakeEngine, recording the models built."""
    built = []

    def factory(model_path, config):
        built.append(model_path)
        return Detector(model_path, config, engine=FakeEngine(sample_raw))

    factory.built = built
    return factory
