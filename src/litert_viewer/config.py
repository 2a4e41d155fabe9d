"""
Configuration management using Pydantic for validation and type checking.
"""

import os
import yaml
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, field_validator


DEFAULT_CONFIG_PATH = "litert-viewer.yaml"


class InferenceConfig(BaseModel):
    """Model and detection configuration."""
    model_dir: str = Field(default=".", description="Directory scanned for .tflite models")
    label_path: str = Field(default="labelmap.txt", description="Newline-delimited label file")
    confidence_threshold: float = Field(
        default=0.4, ge=0.0, le=1.0, description="Scores at or below are dropped"
    )
    preserve_ratio: bool = Field(default=True, description="Letterbox instead of stretching")
    ratio_tolerance: float = Field(
        default=0.1, ge=0.0, description="Aspect ratio difference below which no padding is added"
    )
    pad_color: int = Field(default=190, ge=0, le=255, description="Letterbox fill gray level")
    num_threads: int = Field(default=4, ge=1, le=64, description="CPU interpreter threads")
    delegate_path: Optional[str] = Field(
        default=None, description="Shared library of a hardware delegate"
    )
    max_detections: int = Field(default=100, ge=1, description="Rows read from detection outputs")


class ImagesConfig(BaseModel):
    """Image set configuration."""
    directory: str = Field(default="images", description="Directory scanned for images")
    extension: str = Field(default=".jpg", description="Image file suffix")

    @field_validator("extension")
    @classmethod
    def validate_extension(cls, v: str) -> str:
        """Normalize extension to a lower-case dotted suffix."""
        v = v.lower()
        if not v.startswith("."):
            v = "." + v
        return v


class OutputConfig(BaseModel):
    """CLI output files."""
    resized_path: str = Field(default="resized.jpg", description="Annotated model input")
    original_path: str = Field(default="original.jpg", description="Annotated original image")


class ViewerConfig(BaseModel):
    """Web viewer configuration."""
    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=8080, ge=1024, le=65535, description="Server port")
    jpeg_quality: int = Field(
        default=90, ge=1, le=100, description="JPEG compression quality"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Logging level")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Invalid logging level. Must be one of {valid_levels}")
        return v


class Config(BaseModel):
    """Main configuration class."""
    inference: InferenceConfig = Field(default_factory=InferenceConfig)
    images: ImagesConfig = Field(default_factory=ImagesConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    viewer: ViewerConfig = Field(default_factory=ViewerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file with sensible defaults.

    Args:
        config_path: Path to configuration file. If None, uses default location.

    Returns:
        Config object with loaded settings.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    # If config file doesn't exist, use defaults
    if not os.path.exists(config_path):
        return Config()

    try:
        with open(config_path, 'r') as f:
            config_dict = yaml.safe_load(f)

        # Handle empty file
        if config_dict is None:
            return Config()

        return Config(**config_dict)
    except Exception as e:
        raise RuntimeError(f"Failed to load configuration from {config_path}: {e}")


def save_example_config(output_path: str) -> None:
    """
    Save an example configuration file with comments.

    Args:
        output_path: Where to save the example config.
    """
    example_yaml = """# Model and detection settings
inference:
  model_dir: "."                # Directory scanned for *.tflite models
  label_path: "labelmap.txt"    # One class name per line
  confidence_threshold: 0.4     # Detections scoring at or below this are dropped
  preserve_ratio: true          # Letterbox instead of stretching
  ratio_tolerance: 0.1          # Skip padding when aspect ratios are this close
  pad_color: 190                # Gray level of the letterbox padding
  num_threads: 4                # CPU interpreter threads
  delegate_path: null           # e.g. "libtensorflowlite_gpu_delegate.so"
  max_detections: 100

# Image set used by the viewer
images:
  directory: "images"
  extension: ".jpg"

# Files written by the detect command
output:
  resized_path: "resized.jpg"
  original_path: "original.jpg"

# Web viewer
viewer:
  host: "127.0.0.1"
  port: 8080
  jpeg_quality: 90

# Logging
logging:
  level: "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
"""

    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        f.write(example_yaml)
