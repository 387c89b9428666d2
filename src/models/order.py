"""Order model — a production job spawned by a converted quote.

Pricing lives on the quote; the order only tracks production state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.quote import Quote


class Order(TimestampMixin, Base):
    """Production order for one quote."""

    __tablename__ = "orders"

    quote_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("quotes.id"), nullable=False, unique=True, index=True
    )
    status: Mapped[int] = mapped_column(Integer, ForeignKey("order_status_ref.id"), nullable=False, index=True)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    notes: Mapped[str | None] = mapped_column(String(500))

    # Relationships
    quote: Mapped[Quote] = relationship("Quote", back_populates="order")

    def __repr__(self) -> str:
        return f"<Order id={self.id} quote_id={self.quote_id} status={self.status}>"
