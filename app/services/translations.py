from __future__ import annotations

import logging
import uuid
from typing import Iterable

from sqlalchemy import and_, false
from sqlalchemy.orm import Query

from app.core.config import settings
from app.core.errors import EntityNotFound, ValidationFailed
from app.models.common import SYSTEM_ACTOR, utcnow
from app.models.data_set import DataSet
from app.models.translation import Translation
from app.schemas.query import (
    BaseTranslationFilter,
    CultureNameFilter,
    DataSetIdFilter,
    FilteringParameters,
    InternalGroupName1Filter,
    NotFilledFilter,
    PaginatedList,
    SearchFilter,
    VersionStatusFilter,
)
from app.schemas.translations import (
    AvailableCulturesDto,
    GetTranslationsQuery,
    IndexTranslationsResult,
    RemoveDuplicateTranslationsResult,
    SaveTranslationCommand,
    SaveTranslationsCommand,
    TranslationDto,
    TranslationWithRelatedDto,
)
from app.services.data_sets import DataSetsQueryService
from app.services.query_service import CancellationToken, QueryOptions, QueryService, check_cancelled

_LOG = logging.getLogger("app.translations")

MATERIALIZATION_ACTOR = "System.Materialization"
MAINTENANCE_BATCH_SIZE = 250

# Lookups by id see every version, not only the current one.
_ALL_VERSIONS = FilteringParameters(
    query_filters=[
        VersionStatusFilter(
            include_current_versions=True,
            include_draft_versions=True,
            include_old_versions=True,
        )
    ]
)


def to_translation_dto(t: Translation) -> TranslationDto:
    return TranslationDto(
        id=t.id,
        internal_group_name1=t.internal_group_name1,
        internal_group_name2=t.internal_group_name2,
        resource_name=t.resource_name,
        translation_name=t.translation_name,
        translation_key=t.translation_key or "",
        culture_name=t.culture_name,
        content=t.content,
        content_template=t.content_template,
        content_updated_at=t.content_updated_at,
        data_set_id=t.data_set_id,
        source_translation_id=t.source_translation_id,
        source_translation_last_synced_at=t.source_translation_last_synced_at,
        layout_id=t.layout_id,
        source_id=t.source_id,
        is_current_version=bool(t.is_current_version),
        is_draft_version=bool(t.is_draft_version),
        is_old_version=bool(t.is_old_version),
        original_translation_id=t.original_translation_id,
        created_at=t.created_at,
        updated_at=t.updated_at,
        created_by=t.created_by or "",
    )


def _dedup_key(t: Translation) -> tuple[str, str | None, str]:
    return (t.resource_name, t.culture_name, t.translation_name)


def index_group_names(translation_name: str | None, group1: str | None, group2: str | None) -> tuple[str | None, str | None]:
    """E-mail translations go to the "Email" group; e-mail layouts also to "EmailLayout"."""
    name = (translation_name or "").lower()
    if name.startswith("email."):
        group1 = "Email"
        if "layout" in name:
            group2 = "EmailLayout"
    return group1, group2


class TranslationsQueryService(QueryService[Translation]):
    """Translations of accessible data sets; current versions unless asked otherwise."""

    model = Translation
    supported_filters = (
        SearchFilter,
        DataSetIdFilter,
        CultureNameFilter,
        InternalGroupName1Filter,
        BaseTranslationFilter,
        VersionStatusFilter,
        NotFilledFilter,
    )

    def apply_authorization(self, query: Query) -> Query:
        if self.authorization is None:
            return query.filter(false())
        all_accessible, accessible_ids = self.authorization.get_accessible_data_set_ids()
        if all_accessible:
            return query
        if not accessible_ids:
            return query.filter(false())
        return query.filter(and_(Translation.data_set_id.is_not(None), Translation.data_set_id.in_(accessible_ids)))

    def apply_pre_filters(self, query: Query, options: QueryOptions) -> Query:
        if any(isinstance(f, VersionStatusFilter) for f in options.query_filters()):
            return query
        return query.filter(Translation.is_current_version.is_(True))

    # The walk runs with the caller's access: an inaccessible include hides its whole subtree.
    def _hierarchy_ids(self, root_id: uuid.UUID, cancellation: CancellationToken | None) -> list[uuid.UUID]:
        data_sets = DataSetsQueryService(self.db, self.registry, self.authorization)
        return data_sets.get_hierarchy_ids(root_id, cancellation)

    def _current_in(self, data_set_id: uuid.UUID) -> Query:
        return self.db.query(Translation).filter(
            Translation.data_set_id == data_set_id,
            Translation.is_current_version.is_(True),
        )

    def get_translations_from_hierarchy(
        self,
        root_id: uuid.UUID,
        cancellation: CancellationToken | None = None,
    ) -> list[Translation]:
        """Current translations of the hierarchy, the earliest data set winning per key.

        The key is (resource_name, culture_name, translation_name); rows come back
        in hierarchy priority order.
        """
        data_set_ids = self._hierarchy_ids(root_id, cancellation)
        selected_ids: list[uuid.UUID] = []
        seen: set[tuple] = set()
        for data_set_id in data_set_ids:
            check_cancelled(cancellation)
            rows = (
                self._current_in(data_set_id)
                .with_entities(
                    Translation.id,
                    Translation.resource_name,
                    Translation.culture_name,
                    Translation.translation_name,
                )
                .order_by(Translation.created_at, Translation.id)
                .all()
            )
            for row_id, resource_name, culture_name, translation_name in rows:
                key = (resource_name, culture_name, translation_name)
                if key not in seen:
                    seen.add(key)
                    selected_ids.append(row_id)
        if not selected_ids:
            return []

        check_cancelled(cancellation)
        by_id = {t.id: t for t in self.db.query(Translation).filter(Translation.id.in_(selected_ids)).all()}
        check_cancelled(cancellation)
        return [by_id[i] for i in selected_ids if i in by_id]

    def materialize_translations_from_hierarchy(
        self,
        root_id: uuid.UUID,
        cancellation: CancellationToken | None = None,
    ) -> int:
        """Copy included translations into the root data set and return how many were added or refreshed."""
        data_set_ids = self._hierarchy_ids(root_id, cancellation)
        if len(data_set_ids) < 2:
            return 0

        synced_at = utcnow()
        root_rows = self._current_in(root_id).all()
        # Keys owned by the root itself are never overwritten.
        handled = {_dedup_key(t) for t in root_rows if t.source_translation_id is None}
        materialized = {_dedup_key(t): t for t in root_rows if t.source_translation_id is not None}

        count = 0
        for source_data_set_id in data_set_ids[1:]:
            check_cancelled(cancellation)
            sources = self._current_in(source_data_set_id).order_by(Translation.created_at, Translation.id).all()
            for source in sources:
                key = _dedup_key(source)
                if key in handled:
                    continue
                handled.add(key)

                copy = materialized.get(key)
                if copy is not None:
                    content_changed = copy.content != source.content or copy.content_template != source.content_template
                    copy.content = source.content
                    copy.content_template = source.content_template
                    copy.internal_group_name1 = source.internal_group_name1
                    copy.internal_group_name2 = source.internal_group_name2
                    copy.layout_id = source.layout_id
                    copy.source_translation_id = source.id
                    copy.source_translation_last_synced_at = synced_at
                    copy.updated_at = synced_at
                    if content_changed:
                        copy.content_updated_at = synced_at
                else:
                    self.db.add(
                        Translation(
                            id=uuid.uuid4(),
                            resource_name=source.resource_name,
                            translation_name=source.translation_name,
                            culture_name=source.culture_name,
                            content=source.content,
                            content_template=source.content_template,
                            content_updated_at=synced_at,
                            internal_group_name1=source.internal_group_name1,
                            internal_group_name2=source.internal_group_name2,
                            data_set_id=root_id,
                            source_translation_id=source.id,
                            source_translation_last_synced_at=synced_at,
                            layout_id=source.layout_id,
                            is_current_version=True,
                            is_draft_version=False,
                            is_old_version=False,
                            created_at=synced_at,
                            updated_at=synced_at,
                            created_by=MATERIALIZATION_ACTOR,
                        )
                    )
                count += 1

        check_cancelled(cancellation)
        if count:
            self.db.commit()
        _LOG.info("materialized %d translations into data set %s", count, root_id)
        return count

    def ensure_accessible(self, data_set_id: uuid.UUID) -> None:
        if self.authorization is None or not self.authorization.can_access_data_set(data_set_id):
            raise EntityNotFound("DataSet", data_set_id)

    def get_translation_with_related(
        self,
        translation_id: uuid.UUID,
        cancellation: CancellationToken | None = None,
    ) -> TranslationWithRelatedDto:
        """A translation together with its current siblings in other cultures."""
        main = self.get_by_id(
            translation_id,
            options=QueryOptions(as_no_tracking=True, filtering=_ALL_VERSIONS),
            cancellation=cancellation,
        )
        if main is None:
            raise EntityNotFound("Translation", translation_id)

        query = (
            self.prepare_query(options=QueryOptions(as_no_tracking=True))
            .filter(
                Translation.translation_key == main.translation_key,
                Translation.data_set_id == main.data_set_id,
            )
            .order_by(Translation.culture_name, Translation.id)
        )
        related = self._materialize(query, cancellation)
        return TranslationWithRelatedDto(
            main_translation=to_translation_dto(main),
            related_translations=[to_translation_dto(t) for t in related],
        )

    def remove_duplicate_translations(
        self,
        specific_data_set_id: uuid.UUID,
        base_data_set_id: uuid.UUID,
        cancellation: CancellationToken | None = None,
    ) -> RemoveDuplicateTranslationsResult:
        """Delete current translations of a data set that the base data set holds verbatim.

        Rows match on translation key, culture and content. The specific data set
        is scanned in batches ordered by id; deleted rows do not advance the offset.
        """
        if specific_data_set_id == base_data_set_id:
            raise ValidationFailed("A data set cannot be deduplicated against itself")
        self.ensure_accessible(specific_data_set_id)
        self.ensure_accessible(base_data_set_id)

        removed = processed = skip = 0
        while True:
            check_cancelled(cancellation)
            batch = (
                self.prepare_query()
                .with_entities(Translation.id, Translation.translation_key, Translation.culture_name, Translation.content)
                .filter(Translation.data_set_id == specific_data_set_id)
                .order_by(Translation.id)
                .offset(skip)
                .limit(MAINTENANCE_BATCH_SIZE)
                .all()
            )
            if not batch:
                break
            processed += len(batch)

            keys = sorted({row.translation_key for row in batch})
            base_rows = (
                self.prepare_query()
                .with_entities(Translation.translation_key, Translation.culture_name, Translation.content)
                .filter(Translation.data_set_id == base_data_set_id, Translation.translation_key.in_(keys))
                .all()
            )
            in_base = {tuple(row) for row in base_rows}
            duplicate_ids = [
                row.id for row in batch if (row.translation_key, row.culture_name, row.content) in in_base
            ]
            if duplicate_ids:
                check_cancelled(cancellation)
                self.db.query(Translation).filter(Translation.id.in_(duplicate_ids)).delete(synchronize_session=False)
                self.db.commit()
                removed += len(duplicate_ids)
                _LOG.info("removed %d duplicate translations from batch at offset %d", len(duplicate_ids), skip)

            skip += len(batch) - len(duplicate_ids)
            if len(batch) < MAINTENANCE_BATCH_SIZE:
                break

        _LOG.info(
            "finished removing duplicates from data set %s against %s: processed=%d removed=%d",
            specific_data_set_id,
            base_data_set_id,
            processed,
            removed,
        )
        return RemoveDuplicateTranslationsResult(removed_count=removed, processed_count=processed)

    def index_translations(
        self,
        data_set_id: uuid.UUID | None = None,
        cancellation: CancellationToken | None = None,
    ) -> IndexTranslationsResult:
        """Fill internal group names of current translations from their names, batch by batch."""
        if data_set_id is not None:
            self.ensure_accessible(data_set_id)

        updated = processed = skip = 0
        while True:
            check_cancelled(cancellation)
            query = self.prepare_query()
            if data_set_id is not None:
                query = query.filter(Translation.data_set_id == data_set_id)
            batch = query.order_by(Translation.id).offset(skip).limit(MAINTENANCE_BATCH_SIZE).all()
            if not batch:
                break
            processed += len(batch)

            for translation in batch:
                groups = index_group_names(
                    translation.translation_name,
                    translation.internal_group_name1,
                    translation.internal_group_name2,
                )
                if groups != (translation.internal_group_name1, translation.internal_group_name2):
                    translation.internal_group_name1, translation.internal_group_name2 = groups
                    updated += 1
            self.db.commit()

            skip += len(batch)
            if len(batch) < MAINTENANCE_BATCH_SIZE:
                break

        _LOG.info("indexed translations: processed=%d updated=%d", processed, updated)
        return IndexTranslationsResult(updated_count=updated, processed_count=processed)


def get_translations(
    service: TranslationsQueryService,
    request: GetTranslationsQuery,
    cancellation: CancellationToken | None = None,
) -> PaginatedList[TranslationDto]:
    options = QueryOptions(as_no_tracking=True, filtering=request.filtering, ordering=request.ordering)
    query = service.prepare_query(options=options)
    return service.execute_paginated_query(query, request.pagination, to_translation_dto, cancellation)


def get_translation_by_id(
    service: TranslationsQueryService,
    translation_id: uuid.UUID,
    cancellation: CancellationToken | None = None,
) -> TranslationDto | None:
    options = QueryOptions(as_no_tracking=True, filtering=_ALL_VERSIONS)
    translation = service.get_by_id(translation_id, options=options, cancellation=cancellation)
    return to_translation_dto(translation) if translation is not None else None


def get_available_cultures(
    service: TranslationsQueryService,
    data_set_id: uuid.UUID | None = None,
) -> AvailableCulturesDto:
    """Cultures of a data set, or the system-wide list when it declares none."""
    if data_set_id is not None and service.authorization is not None and service.authorization.can_access_data_set(data_set_id):
        data_set = service.db.get(DataSet, data_set_id)
        if data_set is not None and data_set.available_cultures:
            return AvailableCulturesDto(cultures=sorted(data_set.available_cultures))
    return AvailableCulturesDto(cultures=settings.available_cultures_list)


def _find_current(service: TranslationsQueryService, command: SaveTranslationCommand) -> Translation | None:
    required = ("resource_name", "translation_name", "culture_name", "data_set_id")
    if not all(command.is_set(name) for name in required):
        return None
    query = service.prepare_query().filter(
        Translation.resource_name == command.resource_name,
        Translation.translation_name == command.translation_name,
        Translation.culture_name == command.culture_name,
        Translation.data_set_id == command.data_set_id,
    )
    return query.first()


def _snapshot_old_version(translation: Translation) -> Translation:
    return Translation(
        id=uuid.uuid4(),
        internal_group_name1=translation.internal_group_name1,
        internal_group_name2=translation.internal_group_name2,
        resource_name=translation.resource_name,
        translation_name=translation.translation_name,
        culture_name=translation.culture_name,
        content=translation.content,
        content_template=translation.content_template,
        content_updated_at=translation.content_updated_at,
        data_set_id=translation.data_set_id,
        layout_id=translation.layout_id,
        source_id=translation.source_id,
        original_translation_id=translation.id,
        is_current_version=False,
        is_draft_version=False,
        is_old_version=True,
        created_by=translation.created_by,
    )


def _apply_fields(translation: Translation, command: SaveTranslationCommand, names: Iterable[str]) -> None:
    for name in names:
        if command.is_set(name):
            setattr(translation, name, getattr(command, name))


def _as_aware(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=utcnow().tzinfo)
    return value


def save_translation(
    service: TranslationsQueryService,
    command: SaveTranslationCommand,
    actor: str | None = None,
) -> uuid.UUID:
    """Create or partially update a translation, keeping published history.

    Changing content of a published translation into another published state
    first stores the previous content as an old version.
    """
    db = service.db
    requested_at = _as_aware(command.content_updated_at) if command.is_set("content_updated_at") else None

    if command.id is not None:
        translation = service.get_by_id(command.id, options=QueryOptions(filtering=_ALL_VERSIONS))
        if translation is None:
            raise EntityNotFound("Translation", command.id)
    else:
        translation = _find_current(service, command)

    if translation is None:
        for name in ("resource_name", "translation_name", "culture_name"):
            if not command.is_set(name) or not str(getattr(command, name) or "").strip():
                raise ValidationFailed(f"{name} is required when creating a new translation")
        if command.data_set_id is None:
            raise ValidationFailed("data_set_id is required when creating a new translation")
        service.ensure_accessible(command.data_set_id)

        is_draft = bool(command.is_draft_version)
        translation = Translation(
            id=uuid.uuid4(),
            internal_group_name1=command.internal_group_name1,
            internal_group_name2=command.internal_group_name2,
            resource_name=command.resource_name,
            translation_name=command.translation_name,
            culture_name=command.culture_name,
            content=command.content if command.content is not None else command.translation_name,
            content_template=command.content_template,
            content_updated_at=requested_at or utcnow(),
            data_set_id=command.data_set_id,
            layout_id=command.layout_id,
            source_id=command.source_id,
            is_current_version=not is_draft,
            is_draft_version=is_draft,
            is_old_version=False,
            created_by=actor or SYSTEM_ACTOR,
        )
        db.add(translation)
        db.commit()
        _LOG.info("created translation %s (%s)", translation.id, translation.translation_key)
        return translation.id

    stored_at = _as_aware(translation.content_updated_at)
    if requested_at is not None and stored_at is not None and requested_at < stored_at:
        _LOG.error(
            "rejected stale update of translation %s: requested content_updated_at %s is older than %s",
            translation.id,
            requested_at,
            stored_at,
        )
        return translation.id

    content_changed = (command.is_set("content") and command.content != translation.content) or (
        command.is_set("content_template") and command.content_template != translation.content_template
    )
    target_is_draft = command.is_draft_version if command.is_set("is_draft_version") else translation.is_draft_version
    if content_changed and not target_is_draft and not translation.is_draft_version:
        db.add(_snapshot_old_version(translation))

    _apply_fields(
        translation,
        command,
        (
            "internal_group_name1",
            "internal_group_name2",
            "resource_name",
            "translation_name",
            "culture_name",
            "content",
            "content_template",
            "data_set_id",
            "layout_id",
            "source_id",
        ),
    )
    if content_changed:
        translation.content_updated_at = requested_at or utcnow()
    elif requested_at is not None:
        translation.content_updated_at = requested_at

    if command.is_set("is_draft_version") and command.is_draft_version is not None:
        translation.is_current_version = not command.is_draft_version
        translation.is_draft_version = command.is_draft_version
        translation.is_old_version = False

    db.commit()
    _LOG.info("saved translation %s", translation.id)
    return translation.id


def save_translations(
    service: TranslationsQueryService,
    command: SaveTranslationsCommand,
    actor: str | None = None,
) -> uuid.UUID:
    """Publish one translation in several cultures, each through :func:`save_translation`."""
    if command.id is not None:
        existing = service.get_by_id(command.id, options=QueryOptions(as_no_tracking=True, filtering=_ALL_VERSIONS))
        if existing is None:
            raise EntityNotFound("Translation", command.id)
        resource_name, translation_name, data_set_id = existing.resource_name, existing.translation_name, existing.data_set_id
    else:
        if not str(command.resource_name or "").strip() or not str(command.translation_name or "").strip():
            raise ValidationFailed("resource_name and translation_name are required when creating translations")
        resource_name, translation_name, data_set_id = command.resource_name, command.translation_name, command.data_set_id

    if data_set_id is None:
        raise ValidationFailed("data_set_id is required")
    service.ensure_accessible(data_set_id)
    if not command.translations:
        raise ValidationFailed("At least one culture is required")

    saved_ids = [
        save_translation(
            service,
            SaveTranslationCommand(
                resource_name=resource_name,
                translation_name=translation_name,
                culture_name=culture_name,
                content=content,
                data_set_id=data_set_id,
                is_draft_version=False,
            ),
            actor,
        )
        for culture_name, content in command.translations.items()
    ]
    _LOG.info("saved %s.%s in %d cultures", resource_name, translation_name, len(saved_ids))
    return command.id or saved_ids[0]


def delete_translation(service: TranslationsQueryService, translation_id: uuid.UUID) -> bool:
    translation = service.get_by_id(translation_id, options=QueryOptions(filtering=_ALL_VERSIONS))
    if translation is None:
        return False
    service.db.delete(translation)
    service.db.commit()
    _LOG.info("deleted translation %s", translation_id)
    return True
