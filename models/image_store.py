"""Image storage for maintenance photos."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

MAINTENANCE_IMAGES_PATH = "maintenance-images"


def image_path_hint(record_id: str, filename: str) -> str:
    """Storage path for a record's photo."""
    name = secure_filename(filename) or "photo.jpg"
    return f"{MAINTENANCE_IMAGES_PATH}/{record_id}/{name}"


class ImageStore(ABC):
    @abstractmethod
    def upload(self, data: bytes, path_hint: str) -> str:
        """Store the image and return its URL."""

    @abstractmethod
    def delete(self, url: str) -> None:
        """Remove the image. Best effort: failures are logged, never raised."""


class LocalImageStore(ImageStore):
    """Stores images on the local filesystem and serves them under base_url."""

    def __init__(self, root: Union[str, Path], base_url: str = "/images"):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _resolve(self, path_hint: str) -> Path:
        target = (self.root / path_hint).resolve()
        if self.root.resolve() not in target.parents:
            raise ValueError(f"Image path escapes store root: {path_hint}")
        return target

    def upload(self, data: bytes, path_hint: str) -> str:
        target = self._resolve(path_hint)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info("Stored image %s (%d bytes)", path_hint, len(data))
        return f"{self.base_url}/{path_hint}"

    def delete(self, url: str) -> None:
        prefix = f"{self.base_url}/"
        try:
            if not url.startswith(prefix):
                raise ValueError(f"URL not served by this store: {url}")
            target = self._resolve(url[len(prefix):])
            target.unlink()
        except (OSError, ValueError) as e:
            logger.error("Error deleting image %s: %s", url, e)
            return
        # Drop the per-record directory once empty
        try:
            target.parent.rmdir()
        except OSError:
            pass
