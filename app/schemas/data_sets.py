from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.schemas.query import PaginatedQuery


class DataSetDto(BaseModel):
    id: uuid.UUID
    name: str = ""
    description: Optional[str] = None
    notes: Optional[str] = None
    allowed_identity_ids: List[str] = []
    available_cultures: List[str] = []
    secret_key: Optional[str] = None
    webhook_urls: List[str] = []
    included_data_set_ids: List[uuid.UUID] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: str = ""


class DataSetHierarchyDto(BaseModel):
    root_data_set_id: uuid.UUID
    data_sets: List[DataSetDto] = []


class GetDataSetsQuery(PaginatedQuery):
    pass


class SaveDataSetCommand(BaseModel):
    id: Optional[uuid.UUID] = None
    name: str
    description: Optional[str] = None
    notes: Optional[str] = None
    allowed_identity_ids: List[str] = []
    available_cultures: List[str] = []
    secret_key: Optional[str] = None
    webhook_urls: List[str] = []
    included_data_set_ids: List[uuid.UUID] = []
