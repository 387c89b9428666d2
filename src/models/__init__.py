"""SQLAlchemy ORM models for the quote desk.

Import all models here so Base.metadata.create_all() discovers them.
"""

from __future__ import annotations

from src.models.audit import AuditLog
from src.models.base import Base
from src.models.order import Order
from src.models.quote import Quote
from src.models.reference import OrderStatusRef, PrintTypeRef, QuoteStatusRef

__all__ = [
    # Base
    "Base",
    # Models
    "Quote",
    "Order",
    "QuoteStatusRef",
    "OrderStatusRef",
    "PrintTypeRef",
    "AuditLog",
]
