from __future__ import annotations

import uuid

from sqlalchemy import false
from sqlalchemy.orm import Query

from app.models.log import Log
from app.schemas.logs import GetLogsQuery, LogDto
from app.schemas.query import PaginatedList, SearchFilter
from app.services.query_service import CancellationToken, QueryOptions, QueryService


def to_log_dto(log: Log) -> LogDto:
    return LogDto(
        id=log.id,
        log_type=log.log_type,
        action=log.action,
        target=log.target,
        status=log.status,
        started_at=log.started_at,
        ended_at=log.ended_at,
        error_message=log.error_message,
        details=log.details,
        created_at=log.created_at,
        updated_at=log.updated_at,
        created_by=log.created_by or "",
    )


class LogsQueryService(QueryService[Log]):
    """Operation logs are visible to root callers only."""

    model = Log
    supported_filters = (SearchFilter,)

    def apply_authorization(self, query: Query) -> Query:
        if self.authorization is None or not self.authorization.has_root_access():
            return query.filter(false())
        return query


def get_logs(
    service: LogsQueryService,
    request: GetLogsQuery,
    cancellation: CancellationToken | None = None,
) -> PaginatedList[LogDto]:
    options = QueryOptions(as_no_tracking=True, filtering=request.filtering, ordering=request.ordering)
    query = service.prepare_query(options=options)
    return service.execute_paginated_query(query, request.pagination, to_log_dto, cancellation)


def get_log_by_id(
    service: LogsQueryService,
    log_id: uuid.UUID,
    cancellation: CancellationToken | None = None,
) -> LogDto | None:
    log = service.get_by_id(log_id, options=QueryOptions(as_no_tracking=True), cancellation=cancellation)
    return to_log_dto(log) if log is not None else None
