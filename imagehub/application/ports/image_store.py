from typing import Protocol


class ImageStore(Protocol):
    """Durable key -> bytes storage. Keys are generated by the caller."""

    def put(self, key: str, data: bytes) -> None:
        ...

    def get(self, key: str) -> bytes:
        """Raises NotFoundError when nothing is stored under ``key``."""
        ...

    def delete(self, key: str) -> None:
        """Removing a missing key is not an error."""
        ...
