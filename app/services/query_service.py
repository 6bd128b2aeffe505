"""Generic query composition: authorization, filters, ordering, paging, projection.

Every entity module subclasses :class:`QueryService`. Composition only builds
SQLAlchemy expressions; the terminal calls (count, fetch) are the only I/O.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Generic, Iterable, Optional, TypeVar

from sqlalchemy import asc, desc, inspect as sa_inspect
from sqlalchemy.orm import Query, Session

from app.core.errors import OperationCancelled
from app.schemas.query import (
    FilteringParameters,
    OrderingParameters,
    PaginatedList,
    PaginationParameters,
    QueryFilterBase,
)
from app.services.authorization import AuthorizationService
from app.services.filter_registry import FilterHandlerRegistry, filter_registry

ModelT = TypeVar("ModelT")
DtoT = TypeVar("DtoT")

NO_TRACKING_OPTION = "data_manager_no_tracking"

_LOG = logging.getLogger("app.query")


class CancellationToken:
    """Cooperative cancellation shared between a request and its terminal query."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled("Query was cancelled")


def check_cancelled(cancellation: CancellationToken | None) -> None:
    if cancellation is not None:
        cancellation.raise_if_cancelled()


@dataclass(frozen=True)
class QueryOptions:
    as_no_tracking: bool = False
    filtering: Optional[FilteringParameters] = None
    ordering: Optional[OrderingParameters] = None
    # SQLAlchemy loader options such as selectinload(DataSet.includes).
    load_options: tuple[Any, ...] = field(default_factory=tuple)

    def query_filters(self) -> list[QueryFilterBase]:
        if self.filtering is None:
            return []
        return list(self.filtering.query_filters)


def _normalize_field_name(field_name: str) -> str:
    raw = (field_name or "").strip().replace("-", "_")
    if not raw:
        return ""
    chars: list[str] = []
    for index, ch in enumerate(raw):
        if ch.isupper() and index > 0 and raw[index - 1].isalnum() and raw[index - 1] != "_":
            chars.append("_")
        chars.append(ch.lower())
    return "".join(chars)


class QueryService(Generic[ModelT]):
    """Base query service for one entity model.

    Subclasses set ``model`` and ``supported_filters`` and may override
    :meth:`apply_authorization` (access restriction) and
    :meth:`apply_pre_filters` (entity defaults). Both hooks always run, in that
    order, before any caller-supplied filter, ordering or paging.
    """

    model: ClassVar[type]
    supported_filters: ClassVar[tuple[type[QueryFilterBase], ...]] = ()
    default_load_options: ClassVar[tuple[Any, ...]] = ()

    def __init__(
        self,
        db: Session,
        registry: FilterHandlerRegistry | None = None,
        authorization: AuthorizationService | None = None,
    ):
        self.db = db
        self.registry = registry or filter_registry
        self.authorization = authorization

    @property
    def default_query(self) -> Query:
        return self.db.query(self.model)

    @property
    def key_column(self):
        return self.model.id

    def supports_filter(self, query_filter: QueryFilterBase) -> bool:
        return type(query_filter) in self.supported_filters

    # Composition hooks

    def apply_authorization(self, query: Query) -> Query:
        return query

    def apply_pre_filters(self, query: Query, options: QueryOptions) -> Query:
        return query

    def apply_filters(self, query: Query, filters: Iterable[QueryFilterBase]) -> Query:
        for query_filter in filters:
            if not query_filter.is_active():
                continue
            query = query.filter(self.registry.get_filter_expression(self.model, query_filter))
        return query

    def apply_ordering(self, query: Query, ordering: OrderingParameters | None) -> Query:
        if ordering is None or not ordering.order_by:
            return query
        column_name = _normalize_field_name(ordering.order_by)
        columns = sa_inspect(self.model).column_attrs
        if column_name not in columns:
            _LOG.warning("ignoring unknown order field %r for %s", ordering.order_by, self.model.__name__)
            return query
        col = getattr(self.model, column_name)
        primary = desc(col) if ordering.order_direction == "desc" else asc(col)
        if column_name == self.key_column.key:
            return query.order_by(primary)
        return query.order_by(primary, asc(self.key_column))

    def prepare_query(self, query: Query | None = None, options: QueryOptions | None = None) -> Query:
        options = options or QueryOptions()
        query = query if query is not None else self.default_query

        query = self.apply_authorization(query)
        query = self.apply_pre_filters(query, options)
        if options.as_no_tracking:
            query = query.execution_options(**{NO_TRACKING_OPTION: True})
        query = self.apply_filters(query, options.query_filters())
        load_options = tuple(self.default_load_options) + tuple(options.load_options)
        if load_options:
            query = query.options(*load_options)
        query = self.apply_ordering(query, options.ordering)

        _LOG.debug(
            "prepared %s query: filters=%s ordering=%s",
            self.model.__name__,
            [f.name for f in options.query_filters() if f.is_active()],
            options.ordering.model_dump() if options.ordering else None,
        )
        return query

    # Terminal operations

    def _materialize(self, query: Query, cancellation: CancellationToken | None) -> list[ModelT]:
        check_cancelled(cancellation)
        no_tracking = bool(query.get_execution_options().get(NO_TRACKING_OPTION))
        # Rows the session tracked before this query may carry pending edits; leave them attached.
        tracked_before = set(self.db.identity_map.keys()) if no_tracking else set()
        rows = query.all()
        check_cancelled(cancellation)
        if no_tracking:
            for row in rows:
                if row in self.db and sa_inspect(row).identity_key not in tracked_before:
                    self.db.expunge(row)
        return rows

    def execute_paginated_query(
        self,
        query: Query,
        pagination: PaginationParameters | None,
        projector: Callable[[ModelT], DtoT],
        cancellation: CancellationToken | None = None,
    ) -> PaginatedList[DtoT]:
        pagination = pagination or PaginationParameters()

        check_cancelled(cancellation)
        total_items = query.order_by(None).count()
        rows = self._materialize(query.offset(pagination.skip).limit(pagination.page_size), cancellation)
        items = [projector(row) for row in rows]
        return PaginatedList(
            items=items,
            total_items=total_items,
            page_size=pagination.page_size,
            page_number=pagination.page_number,
        )

    def get_by_id(
        self,
        entity_id: Any,
        options: QueryOptions | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ModelT | None:
        query = self.prepare_query(options=options).filter(self.key_column == entity_id)
        rows = self._materialize(query.limit(1), cancellation)
        return rows[0] if rows else None

    def list_all(
        self,
        options: QueryOptions | None = None,
        cancellation: CancellationToken | None = None,
    ) -> list[ModelT]:
        return self._materialize(self.prepare_query(options=options), cancellation)
