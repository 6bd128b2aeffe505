from __future__ import annotations

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from app.schemas.query import PaginatedQuery


class TranslationDto(BaseModel):
    id: uuid.UUID
    internal_group_name1: Optional[str] = None
    internal_group_name2: Optional[str] = None
    resource_name: str = ""
    translation_name: str = ""
    translation_key: str = ""
    culture_name: Optional[str] = None
    content: str = ""
    content_template: Optional[str] = None
    content_updated_at: Optional[datetime] = None
    data_set_id: Optional[uuid.UUID] = None
    source_translation_id: Optional[uuid.UUID] = None
    source_translation_last_synced_at: Optional[datetime] = None
    layout_id: Optional[uuid.UUID] = None
    source_id: Optional[uuid.UUID] = None
    is_current_version: bool = True
    is_draft_version: bool = False
    is_old_version: bool = False
    original_translation_id: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: str = ""


class GetTranslationsQuery(PaginatedQuery):
    pass


class SaveTranslationCommand(BaseModel):
    """Partial update: only fields present in the payload are applied.

    Without ``id`` the translation is looked up by
    (data_set_id, resource_name, translation_name, culture_name) among current
    versions and created when missing.
    """

    id: Optional[uuid.UUID] = None
    internal_group_name1: Optional[str] = None
    internal_group_name2: Optional[str] = None
    resource_name: Optional[str] = None
    translation_name: Optional[str] = None
    culture_name: Optional[str] = None
    content: Optional[str] = None
    content_template: Optional[str] = None
    data_set_id: Optional[uuid.UUID] = None
    layout_id: Optional[uuid.UUID] = None
    source_id: Optional[uuid.UUID] = None
    is_draft_version: Optional[bool] = None
    # An update carrying an older timestamp than the stored one is ignored.
    content_updated_at: Optional[datetime] = None

    def is_set(self, field_name: str) -> bool:
        return field_name in self.model_fields_set


class MaterializeResult(BaseModel):
    data_set_id: uuid.UUID
    materialized: int


class AvailableCulturesDto(BaseModel):
    cultures: List[str] = []


class SaveTranslationsCommand(BaseModel):
    """One translation saved for several cultures at once.

    With ``id`` the resource name, translation name and data set come from that
    translation; otherwise they are required.
    """

    id: Optional[uuid.UUID] = None
    resource_name: Optional[str] = None
    translation_name: Optional[str] = None
    data_set_id: Optional[uuid.UUID] = None
    # Culture name -> content.
    translations: Dict[str, str]


class TranslationWithRelatedDto(BaseModel):
    main_translation: TranslationDto
    # Current versions sharing the translation key and data set, by culture.
    related_translations: List[TranslationDto] = []


class RemoveDuplicateTranslationsCommand(BaseModel):
    specific_data_set_id: uuid.UUID
    base_data_set_id: uuid.UUID


class RemoveDuplicateTranslationsResult(BaseModel):
    removed_count: int = 0
    processed_count: int = 0


class IndexTranslationsCommand(BaseModel):
    data_set_id: Optional[uuid.UUID] = None


class IndexTranslationsResult(BaseModel):
    updated_count: int = 0
    processed_count: int = 0
