# imagehub/schemas/images/image.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

__all__ = [
    "ResizeSpec",
    "CropSpec",
    "FilterSpec",
    "TransformationSpec",
    "ImageResponse",
    "ImageListResponse",
    "DeleteResponse",
]

# Upper bound on any requested output edge, in pixels
MAX_DIMENSION = 10000


class ResizeSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(..., gt=0, le=MAX_DIMENSION)
    height: int = Field(..., gt=0, le=MAX_DIMENSION)


class CropSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int = Field(0, ge=0)
    y: int = Field(0, ge=0)
    width: int = Field(..., gt=0, le=MAX_DIMENSION)
    height: int = Field(..., gt=0, le=MAX_DIMENSION)


class FilterSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    grayscale: bool = False
    blur: Optional[float] = Field(None, ge=0, le=100, description="Gaussian blur radius")


class TransformationSpec(BaseModel):
    """Operations applied in order: resize, crop, rotate, filters, encode."""

    model_config = ConfigDict(frozen=True)

    resize: Optional[ResizeSpec] = None
    crop: Optional[CropSpec] = None
    rotate: Optional[float] = Field(None, description="90, 180 or 270; other values are ignored")
    filters: Optional[FilterSpec] = None
    format: Optional[str] = Field(None, description="jpeg (default) or png")


class ImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    stored_name: str
    original_name: str
    size_bytes: int
    mime_type: str
    created_at: Optional[datetime] = None


class ImageListResponse(BaseModel):
    images: List[ImageResponse]
    total: int
    page: int
    limit: int


class DeleteResponse(BaseModel):
    deleted: bool
