"""Profit margin calculator and the shared display banding.

Margin is derived, never stored:
  margin % = (actual_price - total_cost) / actual_price * 100

Bands (thresholds configurable via PricingConfig):
  ≥ 30%  → GOOD
  25–30% → CAUTION
  < 25%  → LOW

An unknown margin (missing price or cost, or a zero price) renders as an
em-dash placeholder, never as 0%.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

from src.schemas.pricing import MarginBand, PricingConfig

MARGIN_PLACEHOLDER = "—"


def parse_numeric(value: object) -> float | None:
    """Parse a number or numeric string; None when missing or not finite.

    Backend numeric columns can arrive as str or Decimal depending on the
    driver, so both are accepted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def calculate_margin(actual_price: object, total_cost: object) -> float | None:
    """Margin percentage of the quoted price retained after total cost.

    Args:
        actual_price: Price quoted to the customer (number or numeric string).
        total_cost: Material + print + labor cost.

    Returns:
        Margin in percent, or None when it cannot be known.
    """
    actual = parse_numeric(actual_price)
    total = parse_numeric(total_cost)
    if actual is None or total is None or actual == 0:
        return None
    return (actual - total) / actual * 100


def classify_margin(percent: float, config: PricingConfig | None = None) -> MarginBand:
    """Classify a margin percentage into a display band.

    Thresholds come from the settings unless a config is passed.
    """
    config = config or PricingConfig.from_settings()
    if percent >= config.good_margin_threshold:
        return MarginBand.GOOD
    if percent >= config.caution_margin_threshold:
        return MarginBand.CAUTION
    return MarginBand.LOW


def format_margin(percent: float | None) -> str:
    """Round half up to a whole percent: 29.5 -> "30%"."""
    if percent is None:
        return MARGIN_PLACEHOLDER
    whole = Decimal(str(percent)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{int(whole)}%"
