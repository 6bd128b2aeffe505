import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.schemas.query import PaginatedQuery


class LogDto(BaseModel):
    id: uuid.UUID
    log_type: str = ""
    action: str = ""
    target: Optional[str] = None
    status: str = ""
    started_at: datetime
    ended_at: Optional[datetime] = None
    error_message: Optional[str] = None
    details: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: str = ""


class GetLogsQuery(PaginatedQuery):
    pass
