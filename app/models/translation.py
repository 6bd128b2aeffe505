import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, event
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import UUIDMixin, AuditMixin

def build_translation_key(resource_name: str | None, translation_name: str | None) -> str:
    return f"{resource_name or ''}.{translation_name or ''}"

class Translation(Base, UUIDMixin, AuditMixin):
    __tablename__ = "translations"
    __table_args__ = (
        Index("ix_translations_lookup", "data_set_id", "resource_name", "translation_name", "culture_name"),
    )
    internal_group_name1: Mapped[str | None] = mapped_column(String(200), nullable=True)
    internal_group_name2: Mapped[str | None] = mapped_column(String(200), nullable=True)
    resource_name: Mapped[str] = mapped_column(String(400), nullable=False)
    translation_name: Mapped[str] = mapped_column(String(400), nullable=False)
    translation_key: Mapped[str] = mapped_column(String(801), nullable=False, default="")
    culture_name: Mapped[str | None] = mapped_column(String(20), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # MJML source before rendering, for e-mail templates.
    content_template: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Moves only when content or content_template changes.
    content_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    data_set_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_sets.id", ondelete="CASCADE"), nullable=True
    )
    # Set on rows copied into a data set from one of its includes.
    source_translation_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    source_translation_last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    layout_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    source_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    is_current_version: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_draft_version: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_old_version: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    original_translation_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)

@event.listens_for(Translation, "before_insert")
@event.listens_for(Translation, "before_update")
def _fill_translation_key(mapper, connection, target: Translation) -> None:
    target.translation_key = build_translation_key(target.resource_name, target.translation_name)
