"""
Model and image discovery with a wrapping image cursor.
"""

import logging
from pathlib import Path
from typing import List

from .errors import CatalogError

logger = logging.getLogger(__name__)

MODEL_SUFFIX = ".tflite"


class Catalog:
    """
    Read-only view of the models and images available to the viewer.

    Both directories are scanned once, at construction.
    """

    def __init__(self, model_dir: str = ".", images_dir: str = "images",
                 extension: str = ".jpg"):
        self.model_dir = Path(model_dir)
        self.images_dir = Path(images_dir)
        self.extension = extension.lower()
        self._models: List[str] = []
        self._images: List[str] = []
        self._index = 0

        self._scan()

    def _scan(self):
        if self.model_dir.is_dir():
            self._models = sorted(
                entry.name for entry in self.model_dir.iterdir()
                if entry.is_file() and entry.suffix.lower() == MODEL_SUFFIX
            )
        else:
            logger.warning(f"Model directory not found: {self.model_dir}")

        if self.images_dir.is_dir():
            self._images = sorted(
                str(entry) for entry in self.images_dir.iterdir()
                if entry.is_file() and entry.suffix.lower() == self.extension
            )
        else:
            logger.warning(f"Image directory not found: {self.images_dir}")

        logger.info(f"Found {len(self._models)} models and {len(self._images)} images")

    def models(self) -> List[str]:
        return list(self._models)

    def images(self) -> List[str]:
        return list(self._images)

    @property
    def index(self) -> int:
        return self._index

    def image(self) -> str:
        """Return the current image path."""
        self._require_images()
        if self._index >= len(self._images):
            self._index = 0
        return self._images[self._index]

    def next_image(self) -> str:
        """Advance the cursor and return the new current image path."""
        self._require_images()
        self._index += 1
        if self._index >= len(self._images):
            self._index = 0
        return self._images[self._index]

    def model_path(self, name: str) -> str:
        """
        Resolve a model name to its path.

        Raises:
            CatalogError: if the name was not discovered by the scan
        """
        if name not in self._models:
            raise CatalogError(f"Unknown model: {name}")
        return str(self.model_dir / name)

    def _require_images(self):
        if not self._images:
            raise CatalogError(f"No '{self.extension}' images in {self.images_dir}")
