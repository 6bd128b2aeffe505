from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.common import get_cancellation, not_found, validate_query
from app.core.deps import actor_of, get_current_admin, get_translations_service
from app.schemas.query import PaginatedList
from app.schemas.translations import (
    AvailableCulturesDto,
    GetTranslationsQuery,
    IndexTranslationsCommand,
    IndexTranslationsResult,
    MaterializeResult,
    RemoveDuplicateTranslationsCommand,
    RemoveDuplicateTranslationsResult,
    SaveTranslationCommand,
    SaveTranslationsCommand,
    TranslationDto,
    TranslationWithRelatedDto,
)
from app.services.query_service import CancellationToken
from app.services.translations import (
    TranslationsQueryService,
    delete_translation,
    get_available_cultures,
    get_translation_by_id,
    get_translations,
    save_translation,
    save_translations,
)

router = APIRouter()

@router.post("/query", response_model=PaginatedList[TranslationDto])
def query_translations(
    request: GetTranslationsQuery,
    service: TranslationsQueryService = Depends(get_translations_service),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    validate_query(service, request)
    return get_translations(service, request, cancellation)

@router.get("/cultures", response_model=AvailableCulturesDto)
def cultures(data_set_id: Optional[UUID] = None, service: TranslationsQueryService = Depends(get_translations_service)):
    return get_available_cultures(service, data_set_id)

@router.post("", status_code=201)
def save(
    payload: SaveTranslationCommand,
    service: TranslationsQueryService = Depends(get_translations_service),
    admin: dict = Depends(get_current_admin),
):
    return {"id": str(save_translation(service, payload, actor_of(admin)))}

@router.post("/bulk", status_code=201)
def save_many(
    payload: SaveTranslationsCommand,
    service: TranslationsQueryService = Depends(get_translations_service),
    admin: dict = Depends(get_current_admin),
):
    return {"id": str(save_translations(service, payload, actor_of(admin)))}

@router.post("/materialize/{data_set_id}", response_model=MaterializeResult)
def materialize(
    data_set_id: UUID,
    service: TranslationsQueryService = Depends(get_translations_service),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    service.ensure_accessible(data_set_id)
    count = service.materialize_translations_from_hierarchy(data_set_id, cancellation)
    return MaterializeResult(data_set_id=data_set_id, materialized=count)

@router.post("/remove-duplicates", response_model=RemoveDuplicateTranslationsResult)
def remove_duplicates(
    payload: RemoveDuplicateTranslationsCommand,
    service: TranslationsQueryService = Depends(get_translations_service),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    return service.remove_duplicate_translations(payload.specific_data_set_id, payload.base_data_set_id, cancellation)

@router.post("/index", response_model=IndexTranslationsResult)
def index(
    payload: IndexTranslationsCommand,
    service: TranslationsQueryService = Depends(get_translations_service),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    return service.index_translations(payload.data_set_id, cancellation)

@router.get("/{id}/related", response_model=TranslationWithRelatedDto)
def get_with_related(
    id: UUID,
    service: TranslationsQueryService = Depends(get_translations_service),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    return service.get_translation_with_related(id, cancellation)

@router.get("/{id}", response_model=TranslationDto)
def get_translation(
    id: UUID,
    service: TranslationsQueryService = Depends(get_translations_service),
    cancellation: CancellationToken = Depends(get_cancellation),
):
    translation = get_translation_by_id(service, id, cancellation)
    if translation is None:
        raise not_found("Translation")
    return translation

@router.delete("/{id}")
def delete(id: UUID, service: TranslationsQueryService = Depends(get_translations_service)):
    if not delete_translation(service, id):
        raise not_found("Translation")
    return {"status": "deleted"}
