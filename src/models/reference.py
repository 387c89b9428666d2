"""Reference tables — statuses and print types configured by the shop.

Rows are edited directly in the database; the application only reads them.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Identity, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base


class QuoteStatusRef(Base):
    """Quote status ("New", "Submitted", "Converted", ...)."""

    __tablename__ = "quote_status_ref"

    id: Mapped[int] = mapped_column(Integer, Identity(), primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(String(255))
    status_type: Mapped[str | None] = mapped_column(String(20))

    def __repr__(self) -> str:
        return f"<QuoteStatusRef id={self.id} name={self.name}>"


class OrderStatusRef(Base):
    """Order status ("Queue", "Printing", "Ready", "Complete", "Cancelled")."""

    __tablename__ = "order_status_ref"

    id: Mapped[int] = mapped_column(Integer, Identity(), primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(String(255))

    def __repr__(self) -> str:
        return f"<OrderStatusRef id={self.id} name={self.name}>"


class PrintTypeRef(Base):
    """Fabrication method with hourly running costs."""

    __tablename__ = "print_type_ref"

    id: Mapped[int] = mapped_column(Integer, Identity(), primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(String(255))
    power_cost: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False, default=Decimal("0"))
    maintenance_cost: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False, default=Decimal("0"))

    def __repr__(self) -> str:
        return f"<PrintTypeRef id={self.id} name={self.name}>"
