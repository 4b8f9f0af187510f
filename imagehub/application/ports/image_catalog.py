from typing import List, Optional, Protocol
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ImageRecord:
    id: str
    owner_id: str
    stored_name: str
    original_name: str
    size_bytes: int
    mime_type: str
    created_at: Optional[datetime] = None


class ImageCatalog(Protocol):
    def insert(self, record: ImageRecord) -> ImageRecord:
        """Persist ``record``; assigns ``created_at`` when it is unset."""
        ...

    def get_by_id(self, image_id: str) -> Optional[ImageRecord]:
        ...

    def list_by_owner(self, owner_id: str, limit: int, offset: int) -> List[ImageRecord]:
        """Newest first."""
        ...

    def delete(self, image_id: str, owner_id: str) -> bool:
        ...
