"""Quote calculators — pricing, margin, and dashboard financials."""

from src.calculators.financials import filter_orders, resolve_date_range, summarize_orders
from src.calculators.margin import calculate_margin, classify_margin, format_margin, parse_numeric
from src.calculators.pricing import calculate_pricing, normalize_price

__all__ = [
    "calculate_pricing",
    "normalize_price",
    "calculate_margin",
    "classify_margin",
    "format_margin",
    "parse_numeric",
    "filter_orders",
    "resolve_date_range",
    "summarize_orders",
]
