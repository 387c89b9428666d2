"""Pydantic schemas for the pricing, margin, and metrics calculators.

Pure data classes — no DB dependencies. Used as inputs/outputs for the
deterministic calculation pipeline.
"""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.config import settings


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class MarginBand(str, Enum):
    """Display classification of a profit margin percentage."""

    GOOD = "good"          # ≥ 30%
    CAUTION = "caution"    # 25–29.999%
    LOW = "low"            # < 25%


class DateRangeKey(str, Enum):
    """Preset date windows for the financial dashboard."""

    ALL = "all"
    MONTH_TO_DATE = "mtd"
    LAST_MONTH = "last-month"
    YEAR_TO_DATE = "ytd"
    LAST_YEAR = "last-year"

    @property
    def label(self) -> str:
        return _RANGE_LABELS[self]


_RANGE_LABELS: dict[DateRangeKey, str] = {
    DateRangeKey.ALL: "All",
    DateRangeKey.MONTH_TO_DATE: "This Month to Date",
    DateRangeKey.LAST_MONTH: "Last Month",
    DateRangeKey.YEAR_TO_DATE: "Year to Date",
    DateRangeKey.LAST_YEAR: "Last Calendar Year",
}


# ---------------------------------------------------------------------------
# Pricing calculator
# ---------------------------------------------------------------------------


class PricingConfig(BaseModel):
    """Rates applied by the pricing and margin calculators."""

    model_config = ConfigDict(frozen=True)

    labor_rate: float = 15.0
    target_cost_ratio: float = Field(default=0.7, gt=0, le=1)
    good_margin_threshold: float = 30.0
    caution_margin_threshold: float = 25.0

    @classmethod
    def from_settings(cls) -> PricingConfig:
        """Build the config from the application settings."""
        return cls(
            labor_rate=settings.pricing.labor_rate,
            target_cost_ratio=settings.pricing.target_cost_ratio,
            good_margin_threshold=settings.pricing.good_margin_threshold,
            caution_margin_threshold=settings.pricing.caution_margin_threshold,
        )


class PricingInput(BaseModel):
    """Raw quote inputs; anything unparseable is accepted as None."""

    material_cost: float | None = 0.0
    print_time: float | None = 0.0      # hours
    labor_time: float | None = 0.0      # hours
    print_rate: float | None = 0.0      # per hour: power_cost + maintenance_cost

    @field_validator("material_cost", "print_time", "labor_time", "print_rate", mode="before")
    @classmethod
    def unparseable_to_none(cls, v: object) -> float | None:
        """Blank, non-numeric, or non-finite values become None (priced as 0)."""
        from src.calculators.margin import parse_numeric

        return parse_numeric(v)


class PricingOutput(BaseModel):
    """Derived cost and price fields persisted on a quote."""

    model_config = ConfigDict(frozen=True)

    print_cost: float
    labor_cost: float
    total_cost: float
    suggested_price: float


# ---------------------------------------------------------------------------
# Financial metrics
# ---------------------------------------------------------------------------


class FinancialSummary(BaseModel):
    """Aggregate revenue, cost, and margin over a set of orders."""

    orders_received: int = 0
    orders_completed: int = 0
    revenue: float = 0.0
    material_cost: float = 0.0
    print_cost: float = 0.0
    labor_cost: float = 0.0
    profit: float = 0.0
    profit_margin_percent: float = 0.0
    margin_band: MarginBand = MarginBand.LOW

    @property
    def total_expenses(self) -> float:
        return self.material_cost + self.print_cost + self.labor_cost


class DisplayRange(BaseModel):
    """Dates shown next to the range selector."""

    start: date | None = None
    end: date | None = None
