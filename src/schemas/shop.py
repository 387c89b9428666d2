"""Canonical shapes for quotes, orders, and reference rows.

Raw backend rows never reach the calculators; they are normalized into
these models by src.shop.adapters first.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


class StatusRef(BaseModel):
    """A quote or order status reference row."""

    id: int
    name: str
    description: str | None = None
    status_type: str | None = None


class PrintType(BaseModel):
    """A fabrication method and its hourly running costs."""

    id: int
    name: str
    description: str | None = None
    power_cost: float = 0.0
    maintenance_cost: float = 0.0

    @property
    def print_rate(self) -> float:
        """Per-hour print rate."""
        return self.power_cost + self.maintenance_cost


class ReferenceData(BaseModel):
    """All reference lists needed by the quote and order screens."""

    quote_statuses: list[StatusRef] = Field(default_factory=list)
    order_statuses: list[StatusRef] = Field(default_factory=list)
    print_types: list[PrintType] = Field(default_factory=list)

    def print_type(self, print_type_id: int | None) -> PrintType | None:
        if print_type_id is None:
            return None
        return next((pt for pt in self.print_types if pt.id == print_type_id), None)

    def quote_status_name(self, status_id: int | None) -> str | None:
        return _status_name(self.quote_statuses, status_id)

    def order_status_name(self, status_id: int | None) -> str | None:
        return _status_name(self.order_statuses, status_id)


def _status_name(statuses: list[StatusRef], status_id: int | None) -> str | None:
    for status in statuses:
        if status.id == status_id:
            return status.name
    return None


# ---------------------------------------------------------------------------
# Quotes and orders
# ---------------------------------------------------------------------------


class Quote(BaseModel):
    """A priced project proposal."""

    id: int
    customer_name: str = ""
    order_date: date | None = None
    project_summary: str = ""
    print_type: int | None = None
    material_cost: float | None = None
    print_time: float | None = None
    labor_time: float | None = None
    status: int | None = None
    actual_price: float | None = None

    # Derived and persisted
    print_cost: float | None = None
    labor_cost: float | None = None
    total_cost: float | None = None
    suggested_price: float | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None


class QuoteForm(BaseModel):
    """Staff-entered quote fields, before pricing is derived."""

    customer_name: str
    project_summary: str = ""
    order_date: date | None = None
    print_type: int | None = None
    material_cost: float | None = 0.0
    print_time: float | None = 0.0
    labor_time: float | None = 0.0
    status: int | None = None
    actual_price: float | None = None


class Order(BaseModel):
    """A production job created from a converted quote."""

    id: int
    quote_id: int | None = None
    status: int | None = None
    is_paid: bool = False
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderWithQuote(Order):
    """An order joined with its originating quote for display."""

    quote: Quote | None = None
