"""
Unit tests for the single-image detection cycle.
"""

import pytest
import cv2
import numpy as np

from litert_viewer.config import InferenceConfig
from litert_viewer.detector import Detector
from litert_viewer.errors import ImageReadError, LabelMapError

from conftest import FakeEngine, make_raw


def test_process_wide_image(inference_config, sample_raw, wide_image_path):
    engine = FakeEngine(sample_raw)
    detector = Detector("ssd.tflite", inference_config, engine=engine)

    result = detector.process(wide_image_path)

    assert engine.is_initialized
    assert engine.last_input_shape == (320, 320, 3)
    assert result.resized.shape == (320, 320, 3)
    assert result.original.shape == (480, 960, 3)
    assert len(result.detections) == 1

    dog = result.detections[0]
    assert dog.label == "dog"
    assert (dog.left, dog.top, dog.right, dog.bottom) == (0, 0, 960, 480)


def test_model_input_is_letterboxed(inference_config, wide_image_path):
    engine = FakeEngine(make_raw([], [], []))
    detector = Detector("ssd.tflite", inference_config, engine=engine)

    result = detector.process(wide_image_path)

    # Lower half of the model input is padding
    assert (result.resized[200:] == 190).all()


def test_process_draws_on_both_images(inference_config, sample_raw, wide_image_path):
    detector = Detector("ssd.tflite", inference_config, engine=FakeEngine(sample_raw))
    plain = cv2.imread(wide_image_path)

    result = detector.process(wide_image_path)

    assert not np.array_equal(result.original, plain)
    assert (result.resized[:160] != 60).any()


def test_stretched_input_uses_independent_scales(label_file, tmp_path):
    path = tmp_path / "near_square.jpg"
    cv2.imwrite(str(path), np.zeros((320, 340, 3), dtype=np.uint8))
    raw = make_raw([[0.5, 0.5, 1.0, 1.0]], [0], [0.8])
    detector = Detector("ssd.tflite", InferenceConfig(label_path=label_file),
                        engine=FakeEngine(raw))

    det = detector.process(str(path)).detections[0]

    # Not padded, so x and y scale separately
    assert (det.right, det.bottom) == (340, 320)
    assert det.left == 170


def test_unreadable_image(inference_config, sample_raw, tmp_path):
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"not a jpeg")
    engine = FakeEngine(sample_raw)
    detector = Detector("ssd.tflite", inference_config, engine=engine)

    with pytest.raises(ImageReadError):
        detector.process(str(path))
    assert engine.calls == 0


def test_missing_labels(tmp_path, sample_raw):
    config = InferenceConfig(label_path=str(tmp_path / "missing.txt"))

    with pytest.raises(LabelMapError):
        Detector("ssd.tflite", config, engine=FakeEngine(sample_raw))


def test_result_to_dict(inference_config, sample_raw, wide_image_path):
    detector = Detector("ssd.tflite", inference_config, engine=FakeEngine(sample_raw))

    data = detector.process(wide_image_path).to_dict()

    assert data['image'] == wide_image_path
    assert data['num_detections'] == 1
    assert data['detections'][0]['label'] == "dog"
    assert data['detections'][0]['right'] == 960


def test_cleanup(inference_config, sample_raw):
    engine = FakeEngine(sample_raw)
    detector = Detector("ssd.tflite", inference_config, engine=engine)

    detector.cleanup()

    assert not engine.is_initialized
