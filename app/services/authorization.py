from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.data_set import DataSet

_LOG = logging.getLogger("app.authorization")

_omit_authorization: ContextVar[bool] = ContextVar("omit_authorization", default=False)


@contextmanager
def omit_authorization() -> Iterator[None]:
    """Treat the current context as root, e.g. inside an already-authorized command."""
    token = _omit_authorization.set(True)
    try:
        yield
    finally:
        _omit_authorization.reset(token)


def authorization_omitted() -> bool:
    return _omit_authorization.get()


class AuthorizationService:
    """Per-request access decisions derived from the caller's token claims."""

    def __init__(self, db: Session, principal: dict | None, *, disabled: bool | None = None, root_roles: set[str] | None = None):
        self.db = db
        self.principal = principal or {}
        self.disabled = settings.AUTHORIZATION_DISABLED if disabled is None else disabled
        self.root_roles = settings.root_roles_set if root_roles is None else root_roles

    @property
    def subject(self) -> str:
        return str(self.principal.get("sub") or "").strip()

    @property
    def role(self) -> str:
        return str(self.principal.get("role") or "").strip().upper()

    def has_root_access(self) -> bool:
        if self.disabled or authorization_omitted():
            return True
        return self.role in self.root_roles

    def get_accessible_data_set_ids(self) -> tuple[bool, list[uuid.UUID]]:
        """Return ``(all_accessible, ids)``; ``ids`` is empty when everything is accessible."""
        if self.has_root_access():
            return True, []
        subject = self.subject
        accessible: list[uuid.UUID] = []
        for data_set_id, allowed in self.db.query(DataSet.id, DataSet.allowed_identity_ids).order_by(DataSet.created_at).all():
            allowed_ids = [str(item) for item in (allowed or [])]
            if not allowed_ids or (subject and subject in allowed_ids):
                accessible.append(data_set_id)
        _LOG.debug("subject %r can access %d data sets", subject, len(accessible))
        return False, accessible

    def can_access_data_set(self, data_set_id: uuid.UUID) -> bool:
        all_accessible, ids = self.get_accessible_data_set_ids()
        return all_accessible or data_set_id in ids
