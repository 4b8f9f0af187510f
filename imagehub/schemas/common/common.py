# imagehub/schemas/common/common.py
from pydantic import BaseModel

__all__ = ["HealthResponse"]


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    database: bool
    timestamp: str
