from __future__ import annotations

from typing import Any, ClassVar

from sqlalchemy import and_, func, literal, or_, true
from sqlalchemy.sql.elements import ColumnElement

from app.models.data_set import DataSet
from app.models.log import Log
from app.models.project_instance import ProjectInstance
from app.models.translation import Translation

LIKE_ESCAPE = "/"


def _escape_like(value: str) -> str:
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


class Specification:
    """Reusable predicate usable both as SQL and against loaded entities."""

    def to_expression(self) -> ColumnElement[bool]:
        raise NotImplementedError

    def is_satisfied_by(self, entity: Any) -> bool:
        raise NotImplementedError

    def __and__(self, other: Specification) -> Specification:
        return _AndSpecification(self, other)

    def __or__(self, other: Specification) -> Specification:
        return _OrSpecification(self, other)


class _AndSpecification(Specification):
    def __init__(self, left: Specification, right: Specification):
        self.left = left
        self.right = right

    def to_expression(self) -> ColumnElement[bool]:
        return and_(self.left.to_expression(), self.right.to_expression())

    def is_satisfied_by(self, entity: Any) -> bool:
        return self.left.is_satisfied_by(entity) and self.right.is_satisfied_by(entity)


class _OrSpecification(Specification):
    def __init__(self, left: Specification, right: Specification):
        self.left = left
        self.right = right

    def to_expression(self) -> ColumnElement[bool]:
        return or_(self.left.to_expression(), self.right.to_expression())

    def is_satisfied_by(self, entity: Any) -> bool:
        return self.left.is_satisfied_by(entity) or self.right.is_satisfied_by(entity)


class SearchSpecification(Specification):
    """Case-insensitive "contains" search OR-ed across a fixed set of text fields.

    Subclasses name the model and the fields. Both the stored value and the
    term go through the same ``lower()`` so the comparison is symmetric; a
    NULL field never matches. A blank term matches every row.
    """

    model: ClassVar[type]
    fields: ClassVar[tuple[str, ...]] = ()

    def __init__(self, search_term: str | None):
        self.search_term = search_term or ""

    @property
    def is_empty(self) -> bool:
        return not self.search_term.strip()

    def to_expression(self) -> ColumnElement[bool]:
        if self.is_empty:
            return true()
        pattern = func.lower(literal(f"%{_escape_like(self.search_term)}%"))
        return or_(
            *(func.lower(getattr(self.model, field)).like(pattern, escape=LIKE_ESCAPE) for field in self.fields)
        )

    def is_satisfied_by(self, entity: Any) -> bool:
        if self.is_empty:
            return True
        term = self.search_term.lower()
        for field in self.fields:
            value = getattr(entity, field, None)
            if value is not None and term in str(value).lower():
                return True
        return False


class LogSearchSpecification(SearchSpecification):
    model = Log
    fields = ("log_type", "action", "target", "status", "error_message", "details")


class ProjectInstanceSearchSpecification(SearchSpecification):
    model = ProjectInstance
    fields = ("name", "description", "main_host", "notes")


class DataSetSearchSpecification(SearchSpecification):
    model = DataSet
    fields = ("name", "description", "notes")


class TranslationSearchSpecification(SearchSpecification):
    model = Translation
    fields = ("internal_group_name1", "internal_group_name2", "resource_name", "translation_name", "content")
