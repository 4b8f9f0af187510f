from typing import List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .....application.ports.image_catalog import ImageCatalog, ImageRecord
from .....db.models import ImageMetadata
from .....exceptions import StorageFailureError
from .....utils import as_utc, utc_now

logger = logging.getLogger(__name__)


class SqlImageCatalog(ImageCatalog):
    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _to_record(row: ImageMetadata) -> ImageRecord:
        return ImageRecord(
            id=row.id,
            owner_id=row.owner_id,
            stored_name=row.stored_name,
            original_name=row.original_name,
            size_bytes=row.size_bytes,
            mime_type=row.mime_type,
            created_at=as_utc(row.created_at),
        )

    def insert(self, record: ImageRecord) -> ImageRecord:
        row = ImageMetadata(
            id=record.id,
            owner_id=record.owner_id,
            stored_name=record.stored_name,
            original_name=record.original_name,
            size_bytes=record.size_bytes,
            mime_type=record.mime_type,
            created_at=as_utc(record.created_at) or utc_now(),
        )
        try:
            self.session.add(row)
            self.session.commit()
            self.session.refresh(row)
        except SQLAlchemyError as e:
            logger.error(f"Error inserting image metadata {record.id}: {e}")
            self.session.rollback()
            raise StorageFailureError(f"Failed to create image: {e}") from e
        return self._to_record(row)

    def get_by_id(self, image_id: str) -> Optional[ImageRecord]:
        try:
            row = self.session.get(ImageMetadata, image_id)
        except SQLAlchemyError as e:
            raise StorageFailureError(f"Failed to find image by id: {e}") from e
        return self._to_record(row) if row else None

    def list_by_owner(self, owner_id: str, limit: int, offset: int) -> List[ImageRecord]:
        statement = (
            select(ImageMetadata)
            .where(ImageMetadata.owner_id == owner_id)
            .order_by(ImageMetadata.created_at.desc(), ImageMetadata.id.desc())
            .offset(offset)
            .limit(limit)
        )
        try:
            rows = self.session.exec(statement).all()
        except SQLAlchemyError as e:
            raise StorageFailureError(f"Failed to list images: {e}") from e
        return [self._to_record(r) for r in rows]

    def delete(self, image_id: str, owner_id: str) -> bool:
        try:
            row = self.session.exec(
                select(ImageMetadata)
                .where(ImageMetadata.id == image_id)
                .where(ImageMetadata.owner_id == owner_id)
            ).first()
            if not row:
                return False
            self.session.delete(row)
            self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error deleting image metadata {image_id}: {e}")
            self.session.rollback()
            raise StorageFailureError(f"Failed to delete image: {e}") from e
        return True
