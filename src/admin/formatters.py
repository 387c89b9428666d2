"""Jinja2 custom filters for the staff pages.

All filters are registered on the Jinja2 environment in web.py.
"""

from __future__ import annotations

from datetime import date, datetime

from src.calculators.margin import MARGIN_PLACEHOLDER, classify_margin, format_margin, parse_numeric
from src.schemas.pricing import MarginBand

_BAND_CLASSES: dict[MarginBand, str] = {
    MarginBand.GOOD: "bg-emerald-100 text-emerald-800",
    MarginBand.CAUTION: "bg-amber-100 text-amber-800",
    MarginBand.LOW: "bg-rose-100 text-rose-700",
}


def format_currency(value: object) -> str:
    """Format as US dollars: 1234.5 -> "$1,234.50"; unknown -> "—"."""
    number = parse_numeric(value)
    if number is None:
        return MARGIN_PLACEHOLDER
    sign = "-" if number < 0 else ""
    return f"{sign}${abs(number):,.2f}"


def format_date(value: date | datetime | None) -> str:
    """Format as MM/DD/YYYY."""
    if value is None:
        return MARGIN_PLACEHOLDER
    return value.strftime("%m/%d/%Y")


def format_percent(value: float | None) -> str:
    """Whole percent, or the placeholder."""
    return format_margin(value)


def margin_classes(value: float | None) -> str:
    """Badge colors for a margin percentage."""
    if value is None:
        return "bg-stone-100 text-stone-500"
    return _BAND_CLASSES[classify_margin(value)]
