from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.common import get_cancellation, not_found, validate_query
from app.core.deps import actor_of, get_current_admin, get_project_instances_service
from app.schemas.project_instances import GetProjectInstancesQuery, ProjectInstanceDto, SaveProjectInstanceCommand
from app.schemas.query import PaginatedList
from app.services.project_instances import (
    ProjectInstancesQueryService,
    delete_project_instance,
    get_project_instance_by_id,
    get_project_instances,
    save_project_instance,
)
from app.services.query_service import CancellationToken

router = APIRouter()

@router.post("/query", response_model=PaginatedList[ProjectInstanceDto])
def query_project_instances(
    request: GetProjectInstancesQuery,
    service: ProjectInstancesQueryService = Depends(get_project_instances_service),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    validate_query(service, request)
    return get_project_instances(service, request, cancellation)

@router.post("", status_code=201)
def save(
    payload: SaveProjectInstanceCommand,
    service: ProjectInstancesQueryService = Depends(get_project_instances_service),
    admin: dict = Depends(get_current_admin),
):
    return {"id": str(save_project_instance(service, payload, actor_of(admin)))}

@router.get("/{id}", response_model=ProjectInstanceDto)
def get_project_instance(
    id: UUID,
    service: ProjectInstancesQueryService = Depends(get_project_instances_service),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    instance = get_project_instance_by_id(service, id, cancellation)
    if instance is None:
        raise not_found("Project instance")
    return instance

@router.delete("/{id}")
def delete(id: UUID, service: ProjectInstancesQueryService = Depends(get_project_instances_service)):
    if not delete_project_instance(service, id):
        raise not_found("Project instance")
    return {"status": "deleted"}
