from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.common import get_cancellation, not_found, validate_query
from app.core.deps import actor_of, get_current_admin, get_data_sets_service
from app.schemas.data_sets import DataSetDto, DataSetHierarchyDto, GetDataSetsQuery, SaveDataSetCommand
from app.schemas.query import PaginatedList
from app.services.data_sets import (
    DataSetsQueryService,
    delete_data_set,
    get_data_set_by_id,
    get_data_set_hierarchy,
    get_data_sets,
    save_data_set,
)
from app.services.query_service import CancellationToken

router = APIRouter()

@router.post("/query", response_model=PaginatedList[DataSetDto])
def query_data_sets(
    request: GetDataSetsQuery,
    service: DataSetsQueryService = Depends(get_data_sets_service),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    validate_query(service, request)
    return get_data_sets(service, request, cancellation)

@router.post("", status_code=201)
def save(
    payload: SaveDataSetCommand,
    service: DataSetsQueryService = Depends(get_data_sets_service),
    admin: dict = Depends(get_current_admin),
):
    return {"id": str(save_data_set(service, payload, actor_of(admin)))}

@router.get("/{id}", response_model=DataSetDto)
def get_data_set(
    id: UUID,
    service: DataSetsQueryService = Depends(get_data_sets_service),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    data_set = get_data_set_by_id(service, id, cancellation)
    if data_set is None:
        raise not_found("Data set")
    return data_set

@router.get("/{id}/hierarchy", response_model=DataSetHierarchyDto)
def get_hierarchy(
    id: UUID,
    service: DataSetsQueryService = Depends(get_data_sets_service),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    hierarchy = get_data_set_hierarchy(service, id, cancellation)
    if not hierarchy.data_sets:
        raise not_found("Data set")
    return hierarchy

@router.delete("/{id}")
def delete(id: UUID, service: DataSetsQueryService = Depends(get_data_sets_service)):
    if not delete_data_set(service, id):
        raise not_found("Data set")
    return {"status": "deleted"}
