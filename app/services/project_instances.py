from __future__ import annotations

import logging
import uuid

from app.core.errors import EntityNotFound
from app.models.common import SYSTEM_ACTOR
from app.models.project_instance import ProjectInstance
from app.schemas.project_instances import (
    GetProjectInstancesQuery,
    ProjectInstanceDto,
    SaveProjectInstanceCommand,
)
from app.schemas.query import PaginatedList, SearchFilter
from app.services.query_service import CancellationToken, QueryOptions, QueryService

_LOG = logging.getLogger("app.project_instances")


def to_project_instance_dto(instance: ProjectInstance) -> ProjectInstanceDto:
    return ProjectInstanceDto(
        id=instance.id,
        name=instance.name,
        description=instance.description,
        main_host=instance.main_host,
        notes=instance.notes,
        parent_project_id=instance.parent_project_id,
        created_at=instance.created_at,
        updated_at=instance.updated_at,
        created_by=instance.created_by or "",
    )


class ProjectInstancesQueryService(QueryService[ProjectInstance]):
    model = ProjectInstance
    supported_filters = (SearchFilter,)


def get_project_instances(
    service: ProjectInstancesQueryService,
    request: GetProjectInstancesQuery,
    cancellation: CancellationToken | None = None,
) -> PaginatedList[ProjectInstanceDto]:
    options = QueryOptions(as_no_tracking=True, filtering=request.filtering, ordering=request.ordering)
    query = service.prepare_query(options=options)
    return service.execute_paginated_query(query, request.pagination, to_project_instance_dto, cancellation)


def get_project_instance_by_id(
    service: ProjectInstancesQueryService,
    instance_id: uuid.UUID,
    cancellation: CancellationToken | None = None,
) -> ProjectInstanceDto | None:
    instance = service.get_by_id(instance_id, options=QueryOptions(as_no_tracking=True), cancellation=cancellation)
    return to_project_instance_dto(instance) if instance is not None else None


def save_project_instance(
    service: ProjectInstancesQueryService,
    command: SaveProjectInstanceCommand,
    actor: str | None = None,
) -> uuid.UUID:
    db = service.db
    if command.id is not None:
        instance = service.get_by_id(command.id)
        if instance is None:
            raise EntityNotFound("ProjectInstance", command.id)
    else:
        instance = ProjectInstance(id=uuid.uuid4(), created_by=actor or SYSTEM_ACTOR)
        db.add(instance)

    instance.name = command.name
    instance.description = command.description
    instance.main_host = command.main_host
    instance.notes = command.notes
    instance.parent_project_id = command.parent_project_id
    db.commit()
    _LOG.info("saved project instance %s", instance.id)
    return instance.id


def delete_project_instance(service: ProjectInstancesQueryService, instance_id: uuid.UUID) -> bool:
    instance = service.get_by_id(instance_id)
    if instance is None:
        return False
    service.db.delete(instance)
    service.db.commit()
    _LOG.info("deleted project instance %s", instance_id)
    return True
