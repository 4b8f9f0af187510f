from typing import Optional
from urllib.parse import quote
import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import Response

from ..application.services.image_service import ImageService
from ..config import settings
from ..dependencies import get_current_user, get_image_service
from ..schemas.images.image import (
    DeleteResponse,
    ImageListResponse,
    ImageResponse,
    TransformationSpec,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/images", tags=["Images"])


def _inline_disposition(filename: str) -> str:
    ascii_name = filename.encode("ascii", "ignore").decode() or "image"
    ascii_name = ascii_name.replace('"', "")
    return f"inline; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


@router.post("", response_model=ImageResponse, status_code=status.HTTP_201_CREATED)
async def upload_image(
    image: UploadFile = File(...),
    current_user: str = Depends(get_current_user),
    service: ImageService = Depends(get_image_service),
):
    """Store an uploaded image owned by the caller"""
    content_type = (image.content_type or "image/jpeg").lower()
    if content_type not in settings.ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=415, detail=f"File type {content_type} not allowed")

    data = await image.read()
    record = await service.upload(current_user, image.filename or "upload.jpg", data, content_type=content_type)
    return ImageResponse.model_validate(record)


@router.get("", response_model=ImageListResponse)
async def list_images(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    current_user: str = Depends(get_current_user),
    service: ImageService = Depends(get_image_service),
):
    limit = service.clamp_limit(limit or settings.DEFAULT_PAGE_SIZE)
    records = await service.list(current_user, page, limit)
    images = [ImageResponse.model_validate(r) for r in records]
    return ImageListResponse(images=images, total=len(images), page=page, limit=limit)


@router.get("/{image_id}")
async def get_image(
    image_id: str,
    current_user: str = Depends(get_current_user),
    service: ImageService = Depends(get_image_service),
):
    record, data = await service.fetch(current_user, image_id)
    return Response(
        content=data,
        media_type=record.mime_type,
        headers={"Content-Disposition": _inline_disposition(record.original_name)},
    )


@router.get("/{image_id}/metadata", response_model=ImageResponse)
async def get_image_metadata(
    image_id: str,
    current_user: str = Depends(get_current_user),
    service: ImageService = Depends(get_image_service),
):
    record = await service.authorize(current_user, image_id)
    return ImageResponse.model_validate(record)


@router.post("/{image_id}/transform")
async def transform_image(
    image_id: str,
    spec: TransformationSpec,
    current_user: str = Depends(get_current_user),
    service: ImageService = Depends(get_image_service),
):
    """Apply a transformation to the stored original and return the result"""
    data, mime_type = await service.transform(current_user, image_id, spec)
    return Response(content=data, media_type=mime_type, headers={"Cache-Control": "no-store"})


@router.delete("/{image_id}", response_model=DeleteResponse)
async def delete_image(
    image_id: str,
    current_user: str = Depends(get_current_user),
    service: ImageService = Depends(get_image_service),
):
    deleted = await service.delete(current_user, image_id)
    return DeleteResponse(deleted=deleted)
