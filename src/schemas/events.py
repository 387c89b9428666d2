"""SystemEvent schema — the event type emitted by every workflow action.

Subscribers (currently the audit logger) consume these events
asynchronously, off the request path.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the system."""

    # Quotes
    QUOTE_CREATED = "quote.created"
    QUOTE_UPDATED = "quote.updated"
    QUOTE_CONVERTED = "quote.converted"

    # Orders
    ORDER_CREATED = "order.created"
    ORDER_UPDATED = "order.updated"

    # Staff
    ADMIN_ACCESS = "admin.access"

    # System
    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN = "system.shutdown"
    SYSTEM_ERROR = "system.error"


class SystemEvent(BaseModel):
    """Immutable record of something that happened.

    Consumed by:
    - audit_on_event → writes to audit_log table
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Context (optional: system events have no entity)
    entity: str | None = None
    entity_id: int | None = None
    actor_id: str | None = None
    actor_role: str | None = None

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    # Metadata
    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}
