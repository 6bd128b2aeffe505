"""Predicate builders for every (entity, filter) pair the API accepts.

Importing this module populates ``filter_registry``; the application imports
it once at start-up and validates the wiring in its lifespan hook.
"""

from __future__ import annotations

from sqlalchemy import and_, false, or_

from app.models.data_set import DataSet
from app.models.log import Log
from app.models.project_instance import ProjectInstance
from app.models.translation import Translation
from app.schemas.query import (
    BaseTranslationFilter,
    CultureNameFilter,
    DataSetIdFilter,
    InternalGroupName1Filter,
    NotFilledFilter,
    SearchFilter,
    VersionStatusFilter,
)
from app.services.filter_registry import filter_registry
from app.services.specifications import (
    DataSetSearchSpecification,
    LogSearchSpecification,
    ProjectInstanceSearchSpecification,
    TranslationSearchSpecification,
)


@filter_registry.handler(Log, SearchFilter)
def log_search(flt: SearchFilter):
    return LogSearchSpecification(flt.search_term).to_expression()


@filter_registry.handler(ProjectInstance, SearchFilter)
def project_instance_search(flt: SearchFilter):
    return ProjectInstanceSearchSpecification(flt.search_term).to_expression()


@filter_registry.handler(DataSet, SearchFilter)
def data_set_search(flt: SearchFilter):
    return DataSetSearchSpecification(flt.search_term).to_expression()


@filter_registry.handler(Translation, SearchFilter)
def translation_search(flt: SearchFilter):
    return TranslationSearchSpecification(flt.search_term).to_expression()


@filter_registry.handler(Translation, DataSetIdFilter)
def translation_data_set_id(flt: DataSetIdFilter):
    return Translation.data_set_id == flt.value


@filter_registry.handler(Translation, CultureNameFilter)
def translation_culture_name(flt: CultureNameFilter):
    return Translation.culture_name == flt.value


@filter_registry.handler(Translation, InternalGroupName1Filter)
def translation_internal_group_name1(flt: InternalGroupName1Filter):
    return Translation.internal_group_name1 == flt.value


@filter_registry.handler(Translation, BaseTranslationFilter)
def translation_base(flt: BaseTranslationFilter):
    culture = Translation.culture_name.is_(None)
    if flt.culture_name is not None:
        culture = or_(culture, Translation.culture_name == flt.culture_name)
    return and_(Translation.source_id.is_(None), culture)


@filter_registry.handler(Translation, VersionStatusFilter)
def translation_version_status(flt: VersionStatusFilter):
    clauses = []
    if flt.include_current_versions:
        clauses.append(Translation.is_current_version.is_(True))
    if flt.include_draft_versions:
        clauses.append(Translation.is_draft_version.is_(True))
    if flt.include_old_versions:
        clauses.append(Translation.is_old_version.is_(True))
    if not clauses:
        return false()
    return or_(*clauses)


@filter_registry.handler(Translation, NotFilledFilter)
def translation_not_filled(flt: NotFilledFilter):
    return Translation.content == Translation.translation_name
