from __future__ import annotations

import logging
import re
import uuid
from collections import deque
from urllib.parse import urlparse

from sqlalchemy import false
from sqlalchemy.orm import Query, selectinload

from app.core.errors import EntityNotFound, ValidationFailed
from app.models.common import SYSTEM_ACTOR
from app.models.data_set import DataSet, DataSetInclude
from app.schemas.data_sets import DataSetDto, DataSetHierarchyDto, GetDataSetsQuery, SaveDataSetCommand
from app.schemas.query import PaginatedList, SearchFilter
from app.services.query_service import CancellationToken, QueryOptions, QueryService

_LOG = logging.getLogger("app.data_sets")

_NON_ALNUM_RE = re.compile(r"[^a-z0-9-]")
_HYPHENS_RE = re.compile(r"-+")


def canonicalize_data_set_name(name: str) -> str:
    """Lowercase, URL-safe form: letters, digits and single hyphens."""
    if not str(name or "").strip():
        raise ValidationFailed("Data set name cannot be empty")
    canonical = _NON_ALNUM_RE.sub("-", name.strip().lower())
    canonical = _HYPHENS_RE.sub("-", canonical).strip("-")
    if not canonical:
        raise ValidationFailed("Data set name must contain at least one letter or digit")
    return canonical


def _absolute_urls(urls: list[str]) -> list[str]:
    result = []
    for url in urls:
        parsed = urlparse(str(url or "").strip())
        if parsed.scheme and parsed.netloc:
            result.append(parsed.geturl())
    return result


def to_data_set_dto(data_set: DataSet) -> DataSetDto:
    return DataSetDto(
        id=data_set.id,
        name=data_set.name,
        description=data_set.description,
        notes=data_set.notes,
        allowed_identity_ids=list(data_set.allowed_identity_ids or []),
        available_cultures=list(data_set.available_cultures or []),
        secret_key=data_set.secret_key,
        webhook_urls=list(data_set.webhook_urls or []),
        included_data_set_ids=[inc.included_data_set_id for inc in data_set.includes],
        created_at=data_set.created_at,
        updated_at=data_set.updated_at,
        created_by=data_set.created_by or "",
    )


def breadth_first_hierarchy(root_id: uuid.UUID, lookup: dict[uuid.UUID, DataSet]) -> list[uuid.UUID]:
    """Root first, then included data sets level by level; cycles are visited once.

    Only data sets present in ``lookup`` are reachable, so an inaccessible
    include hides its whole subtree.
    """
    if root_id not in lookup:
        return []
    result: list[uuid.UUID] = []
    visited = {root_id}
    queue = deque([root_id])
    while queue:
        current_id = queue.popleft()
        result.append(current_id)
        for inc in lookup[current_id].includes:
            included_id = inc.included_data_set_id
            if included_id not in visited and included_id in lookup:
                visited.add(included_id)
                queue.append(included_id)
    return result


class DataSetsQueryService(QueryService[DataSet]):
    """Data sets restricted to the ones the caller may access."""

    model = DataSet
    supported_filters = (SearchFilter,)
    default_load_options = (selectinload(DataSet.includes),)

    def apply_authorization(self, query: Query) -> Query:
        if self.authorization is None:
            return query.filter(false())
        all_accessible, accessible_ids = self.authorization.get_accessible_data_set_ids()
        if all_accessible:
            return query
        if not accessible_ids:
            return query.filter(false())
        return query.filter(DataSet.id.in_(accessible_ids))

    def _hierarchy(self, root_id: uuid.UUID, cancellation: CancellationToken | None = None):
        data_sets = self.list_all(QueryOptions(as_no_tracking=True), cancellation)
        lookup = {ds.id: ds for ds in data_sets}
        return breadth_first_hierarchy(root_id, lookup), lookup

    def get_hierarchy_ids(self, root_id: uuid.UUID, cancellation: CancellationToken | None = None) -> list[uuid.UUID]:
        ids, _ = self._hierarchy(root_id, cancellation)
        return ids

    def get_hierarchy(self, root_id: uuid.UUID, cancellation: CancellationToken | None = None) -> list[DataSet]:
        ids, lookup = self._hierarchy(root_id, cancellation)
        return [lookup[i] for i in ids]


def get_data_sets(
    service: DataSetsQueryService,
    request: GetDataSetsQuery,
    cancellation: CancellationToken | None = None,
) -> PaginatedList[DataSetDto]:
    options = QueryOptions(as_no_tracking=True, filtering=request.filtering, ordering=request.ordering)
    query = service.prepare_query(options=options)
    return service.execute_paginated_query(query, request.pagination, to_data_set_dto, cancellation)


def get_data_set_by_id(
    service: DataSetsQueryService,
    data_set_id: uuid.UUID,
    cancellation: CancellationToken | None = None,
) -> DataSetDto | None:
    data_set = service.get_by_id(data_set_id, options=QueryOptions(as_no_tracking=True), cancellation=cancellation)
    return to_data_set_dto(data_set) if data_set is not None else None


def get_data_set_hierarchy(
    service: DataSetsQueryService,
    root_id: uuid.UUID,
    cancellation: CancellationToken | None = None,
) -> DataSetHierarchyDto:
    return DataSetHierarchyDto(
        root_data_set_id=root_id,
        data_sets=[to_data_set_dto(ds) for ds in service.get_hierarchy(root_id, cancellation)],
    )


def _ensure_name_is_free(db, name: str, data_set_id: uuid.UUID | None) -> None:
    query = db.query(DataSet.id).filter(DataSet.name == name)
    if data_set_id is not None:
        query = query.filter(DataSet.id != data_set_id)
    if query.first() is not None:
        raise ValidationFailed(f"Data set name '{name}' is already taken")


def _ensure_includable(service: DataSetsQueryService, included_ids: list[uuid.UUID]) -> None:
    """Every newly included data set must exist and be accessible to the caller."""
    if not included_ids:
        return
    existing = {row[0] for row in service.db.query(DataSet.id).filter(DataSet.id.in_(included_ids)).all()}
    authorization = service.authorization
    for included_id in included_ids:
        if included_id not in existing:
            raise EntityNotFound("DataSet", included_id)
        if authorization is None or not authorization.can_access_data_set(included_id):
            _LOG.warning("refused to include inaccessible data set %s", included_id)
            raise EntityNotFound("DataSet", included_id)


def save_data_set(service: DataSetsQueryService, command: SaveDataSetCommand, actor: str | None = None) -> uuid.UUID:
    db = service.db
    name = canonicalize_data_set_name(command.name)

    if command.id is not None:
        data_set = service.get_by_id(command.id)
        if data_set is None:
            raise EntityNotFound("DataSet", command.id)
        current_includes = {inc.included_data_set_id for inc in data_set.includes}
    else:
        data_set = None
        current_includes = set()

    data_set_id = command.id or uuid.uuid4()
    _ensure_name_is_free(db, name, command.id)
    wanted = [i for i in dict.fromkeys(command.included_data_set_ids) if i != data_set_id]
    _ensure_includable(service, [i for i in wanted if i not in current_includes])

    if data_set is None:
        data_set = DataSet(id=data_set_id, created_by=actor or SYSTEM_ACTOR)
        db.add(data_set)

    data_set.name = name
    data_set.description = command.description
    data_set.notes = command.notes
    data_set.allowed_identity_ids = [str(i) for i in command.allowed_identity_ids]
    data_set.available_cultures = list(command.available_cultures)
    data_set.secret_key = command.secret_key
    data_set.webhook_urls = _absolute_urls(command.webhook_urls)

    for inc in list(data_set.includes):
        if inc.included_data_set_id not in wanted:
            data_set.includes.remove(inc)
    for included_id in wanted:
        if included_id not in current_includes:
            data_set.includes.append(DataSetInclude(included_data_set_id=included_id))

    db.commit()
    _LOG.info("saved data set %s (%s)", data_set.id, name)
    return data_set.id


def delete_data_set(service: DataSetsQueryService, data_set_id: uuid.UUID) -> bool:
    data_set = service.get_by_id(data_set_id)
    if data_set is None:
        return False
    db = service.db
    db.query(DataSetInclude).filter(DataSetInclude.included_data_set_id == data_set_id).delete(
        synchronize_session=False
    )
    db.delete(data_set)
    db.commit()
    _LOG.info("deleted data set %s", data_set_id)
    return True
