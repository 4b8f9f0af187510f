# Models package (re-export feature modules for stable imports)
from .users.user import User
from .media.image import ImageMetadata

__all__ = [
    "User",
    "ImageMetadata",
]
