import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base
from app.models.common import UUIDMixin, AuditMixin, utcnow

class DataSet(Base, UUIDMixin, AuditMixin):
    __tablename__ = "data_sets"
    # Canonical URL-safe name (lowercase letters, digits and hyphens).
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Identity ids allowed to see this data set; empty means public.
    allowed_identity_ids: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    # Empty means every system culture.
    available_cultures: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    secret_key: Mapped[str | None] = mapped_column(String(400), nullable=True)
    webhook_urls: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    includes: Mapped[list["DataSetInclude"]] = relationship(
        "DataSetInclude",
        foreign_keys="DataSetInclude.parent_data_set_id",
        back_populates="parent_data_set",
        cascade="all, delete-orphan",
        order_by="DataSetInclude.created_at",
    )

class DataSetInclude(Base):
    __tablename__ = "data_set_includes"
    parent_data_set_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_sets.id", ondelete="CASCADE"), primary_key=True
    )
    included_data_set_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_sets.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    parent_data_set: Mapped["DataSet"] = relationship(
        "DataSet", foreign_keys=[parent_data_set_id], back_populates="includes"
    )
