"""
Unit tests for configuration loading.
"""

import pytest
from pydantic import ValidationError

from litert_viewer.config import Config, ImagesConfig, LoggingConfig, load_config, save_example_config


def test_defaults():
    config = Config()

    assert config.inference.confidence_threshold == 0.4
    assert config.inference.preserve_ratio is True
    assert config.inference.pad_color == 190
    assert config.images.directory == "images"
    assert config.output.resized_path == "resized.jpg"
    assert config.output.original_path == "original.jpg"


def test_missing_file_uses_defaults(tmp_path):
    assert load_config(str(tmp_path / "absent.yaml")) == Config()


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert load_config(str(path)) == Config()


def test_overrides(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "inference:\n"
        "  confidence_threshold: 0.6\n"
        "  preserve_ratio: false\n"
        "viewer:\n"
        "  port: 9000\n"
        "logging:\n"
        "  level: debug\n"
    )

    config = load_config(str(path))

    assert config.inference.confidence_threshold == 0.6
    assert config.inference.preserve_ratio is False
    assert config.viewer.port == 9000
    assert config.logging.level == "DEBUG"
    assert config.inference.num_threads == 4


def test_invalid_values_raise(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("inference:\n  confidence_threshold: 1.5\n")

    with pytest.raises(RuntimeError):
        load_config(str(path))


def test_invalid_level():
    with pytest.raises(ValidationError):
        LoggingConfig(level="LOUD")


def test_extension_normalized():
    assert ImagesConfig(extension="JPG").extension == ".jpg"


def test_example_config_matches_defaults(tmp_path):
    path = tmp_path / "conf" / "example.yaml"
    save_example_config(str(path))

    assert load_config(str(path)) == Config()
