"""AuditLog model — immutable audit trail for every system event.

Every quote and order action emits a SystemEvent which is persisted here.
This table is append-only — no updates or deletes.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class AuditLog(TimestampMixin, Base):
    """Immutable audit trail entry."""

    __tablename__ = "audit_log"

    # Event classification
    event_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Context (all nullable: not every event relates to a record or actor)
    entity: Mapped[str | None] = mapped_column(String(50), comment="quotes, orders, or None")
    entity_id: Mapped[int | None] = mapped_column(Integer, index=True)
    actor_id: Mapped[str | None] = mapped_column(String(100), comment="Staff username or 'system'")
    actor_role: Mapped[str | None] = mapped_column(String(50), comment="staff, system")

    # Event data: flexible JSONB payload
    data: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    def __repr__(self) -> str:
        return f"<AuditLog event={self.event_type} entity={self.entity}:{self.entity_id}>"
