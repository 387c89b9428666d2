"""Quote model — a priced project proposal.

Derived cost columns (print_cost, labor_cost, total_cost, suggested_price)
are written together with the inputs they were computed from.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.order import Order


class Quote(TimestampMixin, Base):
    """Quote for a single fabrication project."""

    __tablename__ = "quotes"

    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    order_date: Mapped[date | None] = mapped_column(Date)
    project_summary: Mapped[str | None] = mapped_column(Text)

    print_type: Mapped[int | None] = mapped_column(Integer, ForeignKey("print_type_ref.id"))
    status: Mapped[int] = mapped_column(Integer, ForeignKey("quote_status_ref.id"), nullable=False, index=True)

    # Inputs
    material_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    print_time: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=Decimal("0"))
    labor_time: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=Decimal("0"))
    actual_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))

    # Derived
    print_cost: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    labor_cost: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    total_cost: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    suggested_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))

    # Relationships
    order: Mapped[Order | None] = relationship("Order", back_populates="quote", uselist=False)

    def __repr__(self) -> str:
        return f"<Quote id={self.id} customer={self.customer_name} status={self.status}>"
