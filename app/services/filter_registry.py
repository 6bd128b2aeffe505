from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from sqlalchemy.sql.elements import ColumnElement

from app.core.errors import ConfigurationError, FilterHandlerNotRegistered
from app.schemas.query import QueryFilterBase

FilterHandler = Callable[[Any], ColumnElement[bool]]

_LOG = logging.getLogger("app.query.filters")


class FilterHandlerRegistry:
    """Maps an (entity model, filter type) pair to a predicate builder.

    Handlers are plain callables taking the filter instance and returning a
    SQLAlchemy boolean expression over the model's columns. Lookups are by the
    runtime filter type, so one registry serves every entity module.
    """

    def __init__(self) -> None:
        self._handlers: dict[tuple[type, type], FilterHandler] = {}

    def register(self, model: type, filter_type: type[QueryFilterBase], handler: FilterHandler) -> None:
        key = (model, filter_type)
        if key in self._handlers:
            raise ConfigurationError(
                f"Filter handler for {filter_type.__name__} on {model.__name__} is already registered"
            )
        self._handlers[key] = handler
        _LOG.debug("registered filter handler %s for %s", filter_type.__name__, model.__name__)

    def handler(self, model: type, filter_type: type[QueryFilterBase]):
        def _decorator(func: FilterHandler) -> FilterHandler:
            self.register(model, filter_type, func)
            return func

        return _decorator

    def has_handler(self, model: type, filter_type: type) -> bool:
        return (model, filter_type) in self._handlers

    def handlers_for(self, model: type) -> dict[type, FilterHandler]:
        return {ft: h for (m, ft), h in self._handlers.items() if m is model}

    def get_filter_expression(self, model: type, query_filter: QueryFilterBase) -> ColumnElement[bool]:
        handler = self._handlers.get((model, type(query_filter)))
        if handler is None:
            raise FilterHandlerNotRegistered(model, type(query_filter))
        return handler(query_filter)

    def ensure_registered(self, model: type, filter_types: Iterable[type]) -> None:
        missing = [ft for ft in filter_types if not self.has_handler(model, ft)]
        if missing:
            raise FilterHandlerNotRegistered(model, missing[0])


filter_registry = FilterHandlerRegistry()
