import threading
from typing import Dict

from ...application.ports.image_store import ImageStore
from ...exceptions import NotFoundError


class InMemoryImageStore(ImageStore):
    """Process-local store for development and single-process deployments."""

    def __init__(self) -> None:
        self._blobs: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, key: str, data: bytes) -> None:
        with self._lock:
            self._blobs[key] = bytes(data)

    def get(self, key: str) -> bytes:
        with self._lock:
            data = self._blobs.get(key)
        if data is None:
            raise NotFoundError("Image data not found")
        return data

    def delete(self, key: str) -> None:
        with self._lock:
            self._blobs.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._blobs)
