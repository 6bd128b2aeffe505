from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.common import get_cancellation, not_found, validate_query
from app.core.deps import get_logs_service
from app.schemas.logs import GetLogsQuery, LogDto
from app.schemas.query import PaginatedList
from app.services.logs import LogsQueryService, get_log_by_id, get_logs
from app.services.query_service import CancellationToken

router = APIRouter()

@router.post("/query", response_model=PaginatedList[LogDto])
def query_logs(
    request: GetLogsQuery,
    service: LogsQueryService = Depends(get_logs_service),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    validate_query(service, request)
    return get_logs(service, request, cancellation)

@router.get("/{id}", response_model=LogDto)
def get_log(id: UUID, service: LogsQueryService = Depends(get_logs_service), cancellation: CancellationToken = Depends(get_cancellation)):
    log = get_log_by_id(service, id, cancellation)
    if log is None:
        raise not_found("Log")
    return log
