import os
import logging
import tempfile

from ...application.ports.image_store import ImageStore
from ...exceptions import NotFoundError, StorageFailureError, ValidationError

logger = logging.getLogger(__name__)


class LocalImageStore(ImageStore):
    """Keeps each blob as one file directly under ``upload_dir``."""

    def __init__(self, upload_dir: str) -> None:
        self.upload_dir = os.path.abspath(upload_dir)
        os.makedirs(self.upload_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        if not key or key in (".", "..") or "/" in key or "\\" in key or "\x00" in key:
            raise ValidationError(f"Invalid storage key: {key!r}")
        return os.path.join(self.upload_dir, key)

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        # Write to a temp file and rename so readers never see a partial blob
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.upload_dir, prefix=".tmp-")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            raise StorageFailureError(f"Failed to save image file: {e}") from e
        logger.debug(f"Stored {len(data)} bytes at {path}")

    def get(self, key: str) -> bytes:
        path = self._path(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            raise NotFoundError("Image data not found")
        except OSError as e:
            raise StorageFailureError(f"Failed to read image file: {e}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.debug(f"Nothing to delete at {path}")
        except OSError as e:
            raise StorageFailureError(f"Failed to delete image file: {e}") from e
