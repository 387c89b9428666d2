"""Row normalization at the persistence boundary.

Rows come back from the database as plain mappings. Column names differ
between older and current schema revisions (quote_status_id vs status,
status_name vs name, created_on vs created_at, ...), and numeric columns
may arrive as str or Decimal. Everything is mapped to one canonical shape
here so the calculators never see a raw row.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from src.calculators.margin import parse_numeric
from src.schemas.shop import OrderWithQuote, PrintType, Quote, StatusRef

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


def _pick(row: Row, *keys: str) -> Any:
    """First non-None value among the aliases."""
    for key in keys:
        value = row.get(key)
        if value is not None:
            return value
    return None


def _to_int(value: Any) -> int | None:
    number = parse_numeric(value)
    return int(number) if number is not None else None


def _to_text(value: Any) -> str:
    return "" if value is None else str(value)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "t", "1", "yes"}
    return bool(value)


def _to_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        logger.warning("Unparseable timestamp in row: %r", value)
        return None


def _to_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    try:
        return date.fromisoformat(text)
    except ValueError:
        parsed = _to_datetime(text)
        return parsed.date() if parsed is not None else None


def normalize_status(row: Row) -> StatusRef:
    """Quote or order status reference row."""
    return StatusRef(
        id=_to_int(row.get("id")) or 0,
        name=_to_text(_pick(row, "name", "status_name")).strip(),
        description=row.get("description"),
        status_type=_pick(row, "status_type", "type"),
    )


def normalize_print_type(row: Row) -> PrintType:
    return PrintType(
        id=_to_int(row.get("id")) or 0,
        name=_to_text(_pick(row, "name", "type_name")).strip(),
        description=row.get("description"),
        power_cost=parse_numeric(row.get("power_cost")) or 0.0,
        maintenance_cost=parse_numeric(row.get("maintenance_cost")) or 0.0,
    )


def normalize_quote(row: Row) -> Quote:
    """Quote row in either the legacy or the current column naming."""
    return Quote(
        id=_to_int(row.get("id")) or 0,
        customer_name=_to_text(row.get("customer_name")),
        order_date=_to_date(_pick(row, "order_date", "created_on", "created_at")),
        project_summary=_to_text(row.get("project_summary")),
        print_type=_to_int(_pick(row, "print_type", "print_type_id")),
        material_cost=parse_numeric(row.get("material_cost")),
        print_time=parse_numeric(row.get("print_time")),
        labor_time=parse_numeric(row.get("labor_time")),
        status=_to_int(_pick(row, "status", "quote_status_id", "status_id")),
        actual_price=parse_numeric(_pick(row, "actual_price", "quoted_price", "price")),
        print_cost=parse_numeric(row.get("print_cost")),
        labor_cost=parse_numeric(row.get("labor_cost")),
        total_cost=parse_numeric(row.get("total_cost")),
        suggested_price=parse_numeric(row.get("suggested_price")),
        created_at=_to_datetime(_pick(row, "created_at", "created_on")),
        updated_at=_to_datetime(_pick(row, "updated_at", "updated_on")),
    )


def normalize_order(row: Row, quote: Quote | None = None) -> OrderWithQuote:
    """Order row, optionally joined with its already-normalized quote."""
    notes = row.get("notes")
    return OrderWithQuote(
        id=_to_int(row.get("id")) or 0,
        quote_id=_to_int(row.get("quote_id")),
        status=_to_int(_pick(row, "status", "order_status_id", "status_id")),
        is_paid=_to_bool(_pick(row, "is_paid", "paid")),
        notes=str(notes) if notes is not None else None,
        created_at=_to_datetime(_pick(row, "created_at", "created_on")),
        updated_at=_to_datetime(_pick(row, "updated_at", "updated_on")),
        quote=quote,
    )

