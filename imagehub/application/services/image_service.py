import asyncio
import logging
import os
import re
import uuid
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, TypeVar

from starlette.concurrency import run_in_threadpool

from ..ports.audit_logger import AuditLogger
from ..ports.image_catalog import ImageCatalog, ImageRecord
from ..ports.image_store import ImageStore
from .transform_engine import TransformationEngine, TransformResult
from ...exceptions import (
    AccessDeniedError,
    NotFoundError,
    PayloadTooLargeError,
    ServiceError,
    StorageFailureError,
    ValidationError,
)
from ...schemas.images.image import TransformationSpec

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MIME_TYPE = "image/jpeg"
MAX_ORIGINAL_NAME_LENGTH = 255
_UNSAFE_NAME_CHARS = re.compile(r"[^\w.\-]+")


def display_name_for(filename: str) -> str:
    """Client basename, cut to the catalog column size with its extension kept."""
    name = os.path.basename((filename or "").replace("\\", "/")) or "image"
    if len(name) <= MAX_ORIGINAL_NAME_LENGTH:
        return name
    root, ext = os.path.splitext(name)
    if len(ext) >= MAX_ORIGINAL_NAME_LENGTH:
        return name[:MAX_ORIGINAL_NAME_LENGTH]
    return root[:MAX_ORIGINAL_NAME_LENGTH - len(ext)] + ext


def storage_name_for(image_id: str, original_name: str) -> str:
    """Collision-safe storage key: the image id plus a sanitized basename."""
    base = os.path.basename((original_name or "").replace("\\", "/"))
    base = _UNSAFE_NAME_CHARS.sub("_", base).strip("._")[:200]
    return f"{image_id}_{base or 'image'}"


@dataclass
class ImageService:
    """Owner-scoped access to stored images.

    Every operation takes the acting identity explicitly. Ownership is
    checked against the catalog before any byte-level I/O.
    """

    store: ImageStore
    catalog: ImageCatalog
    engine: TransformationEngine
    max_page_size: int = 100
    max_upload_bytes: Optional[int] = None
    executor: Optional[Executor] = None
    audit: Optional[AuditLogger] = None
    id_factory: Callable[[], str] = field(default=lambda: str(uuid.uuid4()))

    async def upload(self, caller_id: str, filename: str, data: bytes, content_type: Optional[str] = None) -> ImageRecord:
        if not data:
            raise ValidationError("Image payload is empty")
        if self.max_upload_bytes is not None and len(data) > self.max_upload_bytes:
            raise PayloadTooLargeError(f"Image payload too large (max {self.max_upload_bytes} bytes)")

        image_id = self.id_factory()
        original_name = display_name_for(filename)
        record = ImageRecord(
            id=image_id,
            owner_id=caller_id,
            stored_name=storage_name_for(image_id, original_name),
            original_name=original_name,
            size_bytes=len(data),
            mime_type=content_type or DEFAULT_MIME_TYPE,
        )

        await self._io("write image bytes", self.store.put, record.stored_name, data)
        try:
            created = await self._io("insert image metadata", self.catalog.insert, record)
        except ServiceError:
            # Compensate so the blob does not outlive the failed insert
            try:
                await self._io("remove orphaned image bytes", self.store.delete, record.stored_name)
            except ServiceError as cleanup_error:
                logger.error(f"Orphaned blob {record.stored_name} left behind: {cleanup_error.message}")
            raise

        logger.info(f"Image {created.id} uploaded by {caller_id} ({created.size_bytes} bytes)")
        self._audit("upload", caller_id, created.id, details={"size_bytes": created.size_bytes})
        return created

    async def fetch(self, caller_id: str, image_id: str) -> Tuple[ImageRecord, bytes]:
        record = await self.authorize(caller_id, image_id)
        data = await self._io("read image bytes", self.store.get, record.stored_name)
        return record, data

    async def list(self, caller_id: str, page: int = 1, limit: int = 10) -> List[ImageRecord]:
        if page < 1:
            raise ValidationError("page must be 1 or greater")
        if limit < 1:
            raise ValidationError("limit must be 1 or greater")
        limit = self.clamp_limit(limit)
        offset = (page - 1) * limit
        records = await self._io("list image metadata", self.catalog.list_by_owner, caller_id, limit, offset)
        # The catalog filters by owner; refuse to pass on anything it got wrong
        return [r for r in records if r.owner_id == caller_id]

    def clamp_limit(self, limit: int) -> int:
        return min(limit, self.max_page_size)

    async def transform(self, caller_id: str, image_id: str, spec: TransformationSpec) -> Tuple[bytes, str]:
        _record, original = await self.fetch(caller_id, image_id)
        loop = asyncio.get_running_loop()
        result: TransformResult = await loop.run_in_executor(self.executor, self.engine.apply, original, spec)
        logger.info(f"Image {image_id} transformed for {caller_id} -> {result.mime_type} {result.width}x{result.height}")
        return result.data, result.mime_type

    async def delete(self, caller_id: str, image_id: str) -> bool:
        record = await self.authorize(caller_id, image_id)

        removed = await self._io("delete image metadata", self.catalog.delete, record.id, caller_id)
        if not removed:
            # Lost a race with another delete of the same image
            return False

        try:
            await self._io("delete image bytes", self.store.delete, record.stored_name)
        except ServiceError:
            # Put the metadata back so the record and its bytes go together
            try:
                await self._io("restore image metadata", self.catalog.insert, record)
            except ServiceError as restore_error:
                logger.error(f"Could not restore metadata for {record.id}: {restore_error.message}")
            raise

        logger.info(f"Image {image_id} deleted by {caller_id}")
        self._audit("delete", caller_id, image_id)
        return True

    async def authorize(self, caller_id: str, image_id: str) -> ImageRecord:
        """Load the catalog record and require ``caller_id`` to own it."""
        record = await self._io("read image metadata", self.catalog.get_by_id, image_id)
        if record is None:
            raise NotFoundError(f"Image {image_id} not found")
        if record.owner_id != caller_id:
            logger.warning(f"Access denied: {caller_id} is not the owner of image {image_id}")
            self._audit("access_denied", caller_id, image_id, success=False)
            raise AccessDeniedError("Access denied")
        return record

    async def _io(self, action: str, fn: Callable[..., T], *args) -> T:
        try:
            return await run_in_threadpool(fn, *args)
        except ServiceError:
            raise
        except Exception as e:
            logger.exception(f"Failed to {action}")
            raise StorageFailureError(f"Failed to {action}: {e}") from e

    def _audit(self, action: str, user_id: str, image_id: str, success: bool = True, details: Optional[dict] = None) -> None:
        if self.audit is not None:
            self.audit.log(action, user_id, image_id=image_id, success=success, details=details)
