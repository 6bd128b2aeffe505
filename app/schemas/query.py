from __future__ import annotations

import math
import uuid
from typing import Annotated, Generic, List, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

from app.core.config import settings

DEFAULT_PAGE_SIZE = settings.DEFAULT_PAGE_SIZE
ALL_ITEMS_PAGE_SIZE = 2**31 - 1

T = TypeVar("T")
Dir = Literal["asc", "desc"]


class QueryFilterBase(BaseModel):
    """A typed predicate fragment; inactive filters are skipped by the pipeline."""

    @property
    def name(self) -> str:
        return type(self).__name__.removesuffix("Filter")

    def is_active(self) -> bool:
        return True


def _has_text(value: Optional[str]) -> bool:
    return bool(str(value or "").strip())


class SearchFilter(QueryFilterBase):
    type: Literal["search"] = "search"
    search_term: Optional[str] = None

    def is_active(self) -> bool:
        return _has_text(self.search_term)


class DataSetIdFilter(QueryFilterBase):
    type: Literal["data_set_id"] = "data_set_id"
    value: Optional[uuid.UUID] = None

    def is_active(self) -> bool:
        return self.value is not None


class CultureNameFilter(QueryFilterBase):
    type: Literal["culture_name"] = "culture_name"
    value: Optional[str] = None

    def is_active(self) -> bool:
        return _has_text(self.value)


class InternalGroupName1Filter(QueryFilterBase):
    type: Literal["internal_group_name1"] = "internal_group_name1"
    value: Optional[str] = None

    def is_active(self) -> bool:
        return _has_text(self.value)


class BaseTranslationFilter(QueryFilterBase):
    """Translations not linked to a source, in the given culture or culture-neutral."""

    type: Literal["base_translation"] = "base_translation"
    culture_name: Optional[str] = None


class VersionStatusFilter(QueryFilterBase):
    type: Literal["version_status"] = "version_status"
    include_current_versions: Optional[bool] = None
    include_draft_versions: Optional[bool] = None
    include_old_versions: Optional[bool] = None

    def is_active(self) -> bool:
        return any(
            flag is not None
            for flag in (self.include_current_versions, self.include_draft_versions, self.include_old_versions)
        )


class NotFilledFilter(QueryFilterBase):
    """Auto-created translations whose content still equals their name."""

    type: Literal["not_filled"] = "not_filled"


QueryFilter = Annotated[
    Union[
        SearchFilter,
        DataSetIdFilter,
        CultureNameFilter,
        InternalGroupName1Filter,
        BaseTranslationFilter,
        VersionStatusFilter,
        NotFilledFilter,
    ],
    Field(discriminator="type"),
]


class FilteringParameters(BaseModel):
    query_filters: List[QueryFilter] = []

    def active_filters(self) -> list[QueryFilterBase]:
        return [f for f in self.query_filters if f.is_active()]


class OrderingParameters(BaseModel):
    order_by: Optional[str] = None
    order_direction: Dir = "asc"

    @field_validator("order_direction", mode="before")
    @classmethod
    def _normalize_direction(cls, value):
        if value is None:
            return "asc"
        return str(value).strip().lower()


class PaginationParameters(BaseModel):
    """Page-based or offset-based addressing; both resolve to the same skip."""

    page_number: int = Field(default=0, ge=0)
    skip: int = Field(default=0, ge=0)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)

    @model_validator(mode="after")
    def _resolve_addressing(self):
        if self.page_number >= 1:
            self.skip = (self.page_number - 1) * self.page_size
        else:
            self.page_number = self.skip // self.page_size + 1
        return self

    @classmethod
    def from_skip(cls, skip: int, take: int) -> PaginationParameters:
        return cls(skip=skip, page_size=take)

    @classmethod
    def all_items(cls) -> PaginationParameters:
        return cls(skip=0, page_size=ALL_ITEMS_PAGE_SIZE)


class PaginatedQuery(BaseModel):
    filtering: FilteringParameters = FilteringParameters()
    ordering: OrderingParameters = OrderingParameters()
    pagination: PaginationParameters = PaginationParameters()

    @classmethod
    def all_items(cls, order_by: str | None = None, order_direction: str | None = None):
        return cls(
            ordering=OrderingParameters(order_by=order_by, order_direction=order_direction or "asc"),
            pagination=PaginationParameters.all_items(),
        )


class PaginatedList(BaseModel, Generic[T]):
    items: List[T] = []
    total_items: int = 0
    page_size: int = DEFAULT_PAGE_SIZE
    page_number: int = 1

    @computed_field
    @property
    def total_pages(self) -> int:
        if self.total_items <= 0:
            return 0
        return math.ceil(self.total_items / self.page_size)
