# imagehub/db/models/media/image.py
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime

from ....utils import utc_now


class ImageMetadata(SQLModel, table=True):
    __tablename__ = "images"
    id: str = Field(primary_key=True, max_length=36)
    owner_id: str = Field(foreign_key="users.id", index=True, max_length=36)
    stored_name: str = Field(max_length=300, unique=True)
    original_name: str = Field(max_length=255)
    size_bytes: int
    mime_type: str = Field(max_length=100)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), index=True)
