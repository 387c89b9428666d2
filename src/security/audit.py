"""Audit log subscriber — persists every SystemEvent to the audit_log table.

Registered as a global subscriber. Never raises — failures are logged but
never propagate to the event bus.
"""

from __future__ import annotations

import logging

from src.db.engine import async_session_factory
from src.models.audit import AuditLog
from src.schemas.events import SystemEvent

logger = logging.getLogger(__name__)


async def audit_on_event(event: SystemEvent) -> None:
    """Write a SystemEvent to the audit_log table.

    Audit logging must never break the quote or order flow that emitted
    the event, so errors stop here.
    """
    try:
        async with async_session_factory() as db:
            db.add(AuditLog(
                event_type=event.event_type.value,
                entity=event.entity,
                entity_id=event.entity_id,
                actor_id=event.actor_id,
                actor_role=event.actor_role,
                data=event.data,
            ))
            await db.commit()
    except Exception:
        logger.exception(
            "Failed to persist audit event: %s (%s:%s)",
            event.event_type.value,
            event.entity,
            event.entity_id,
        )
