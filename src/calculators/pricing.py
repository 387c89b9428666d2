"""Quote pricing calculator.

Pure Python. Turns a quote's raw inputs into derived cost fields:
- print_cost      = print_time * print_rate
- labor_cost      = labor_time * labor_rate
- total_cost      = material_cost + print_cost + labor_cost
- suggested_price = total_cost / target_cost_ratio

Any missing, non-numeric, or non-finite input counts as 0. Nothing here raises.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from src.calculators.margin import parse_numeric
from src.schemas.pricing import PricingConfig, PricingInput, PricingOutput


def coerce_number(value: object) -> float:
    """Parse a numeric input, defaulting to 0."""
    parsed = parse_numeric(value)
    return 0.0 if parsed is None else parsed


def to_cents(value: float | None) -> Decimal | None:
    """Round to 2 decimal places for storage."""
    if value is None:
        return None
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def calculate_pricing(data: PricingInput, config: PricingConfig | None = None) -> PricingOutput:
    """Derive print, labor, and total cost plus the suggested price.

    Args:
        data: Material cost, print/labor hours, and the hourly print rate.
        config: Labor rate and target cost ratio. Defaults to the settings.

    Returns:
        PricingOutput with unrounded values.
    """
    config = config or PricingConfig.from_settings()

    material_cost = coerce_number(data.material_cost)
    print_cost = coerce_number(data.print_time) * coerce_number(data.print_rate)
    labor_cost = coerce_number(data.labor_time) * config.labor_rate
    total_cost = material_cost + print_cost + labor_cost

    return PricingOutput(
        print_cost=print_cost,
        labor_cost=labor_cost,
        total_cost=total_cost,
        suggested_price=total_cost / config.target_cost_ratio,
    )


def normalize_price(value: object) -> float | None:
    """Normalize a quoted price to cents; None when missing or not finite."""
    parsed = parse_numeric(value)
    if parsed is None:
        return None
    return float(to_cents(parsed))
