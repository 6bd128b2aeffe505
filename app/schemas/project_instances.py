import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from app.schemas.query import PaginatedQuery


class ProjectInstanceDto(BaseModel):
    id: uuid.UUID
    name: str = ""
    description: Optional[str] = None
    main_host: Optional[str] = None
    notes: Optional[str] = None
    parent_project_id: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: str = ""


class GetProjectInstancesQuery(PaginatedQuery):
    pass


class SaveProjectInstanceCommand(BaseModel):
    id: Optional[uuid.UUID] = None
    name: str
    description: Optional[str] = None
    main_host: Optional[str] = None
    notes: Optional[str] = None
    parent_project_id: Optional[uuid.UUID] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value
