"""Database access for quotes, orders, and reference tables.

Reads select whole rows and hand the mappings to src.shop.adapters, so a
database still on the legacy column names keeps working. Writes use the
canonical columns declared on the ORM models.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from sqlalchemy import bindparam, insert, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.engine import async_session_factory
from src.models.order import Order as OrderTable
from src.models.quote import Quote as QuoteTable
from src.schemas.shop import OrderWithQuote, PrintType, Quote, ReferenceData, StatusRef
from src.shop.adapters import normalize_order, normalize_print_type, normalize_quote, normalize_status

logger = logging.getLogger(__name__)


# ── Reference data ───────────────────────────────────────────────────


async def fetch_quote_statuses(db: AsyncSession) -> list[StatusRef]:
    result = await db.execute(text("SELECT * FROM quote_status_ref ORDER BY id"))
    return [normalize_status(row) for row in result.mappings().all()]


async def fetch_order_statuses(db: AsyncSession) -> list[StatusRef]:
    result = await db.execute(text("SELECT * FROM order_status_ref ORDER BY id"))
    return [normalize_status(row) for row in result.mappings().all()]


async def fetch_print_types(db: AsyncSession) -> list[PrintType]:
    result = await db.execute(text("SELECT * FROM print_type_ref ORDER BY id"))
    return [normalize_print_type(row) for row in result.mappings().all()]


async def _fetch_in_own_session(fetch: Any) -> Any:
    async with async_session_factory() as db:
        return await fetch(db)


async def load_reference_data() -> ReferenceData:
    """Fetch all three reference lists concurrently.

    Each fetch gets its own session because one AsyncSession cannot run
    statements in parallel.
    """
    quote_statuses, order_statuses, print_types = await asyncio.gather(
        _fetch_in_own_session(fetch_quote_statuses),
        _fetch_in_own_session(fetch_order_statuses),
        _fetch_in_own_session(fetch_print_types),
    )
    return ReferenceData(
        quote_statuses=quote_statuses,
        order_statuses=order_statuses,
        print_types=print_types,
    )


# ── Quotes ───────────────────────────────────────────────────────────


async def fetch_quotes(db: AsyncSession) -> list[Quote]:
    """All quotes, newest first."""
    result = await db.execute(text("SELECT * FROM quotes ORDER BY id DESC"))
    return [normalize_quote(row) for row in result.mappings().all()]


async def fetch_quote(db: AsyncSession, quote_id: int) -> Quote | None:
    result = await db.execute(
        text("SELECT * FROM quotes WHERE id = :id"),
        {"id": quote_id},
    )
    row = result.mappings().first()
    return normalize_quote(row) if row is not None else None


async def insert_quote(db: AsyncSession, values: dict[str, Any]) -> Quote:
    result = await db.execute(
        insert(QuoteTable).values(**values).returning(*QuoteTable.__table__.c)
    )
    return normalize_quote(result.mappings().one())


async def update_quote(db: AsyncSession, quote_id: int, values: dict[str, Any]) -> Quote | None:
    result = await db.execute(
        update(QuoteTable)
        .where(QuoteTable.id == quote_id)
        .values(**values)
        .returning(*QuoteTable.__table__.c)
    )
    row = result.mappings().first()
    return normalize_quote(row) if row is not None else None


# ── Orders ───────────────────────────────────────────────────────────


async def _quotes_by_id(db: AsyncSession, quote_ids: set[int]) -> dict[int, Quote]:
    if not quote_ids:
        return {}
    stmt = text("SELECT * FROM quotes WHERE id IN :ids").bindparams(
        bindparam("ids", expanding=True)
    )
    result = await db.execute(stmt, {"ids": sorted(quote_ids)})
    quotes = [normalize_quote(row) for row in result.mappings().all()]
    return {q.id: q for q in quotes}


async def fetch_orders(db: AsyncSession) -> list[OrderWithQuote]:
    """All orders, newest first, each joined with its quote."""
    result = await db.execute(text("SELECT * FROM orders ORDER BY id DESC"))
    orders = [normalize_order(row) for row in result.mappings().all()]

    quotes = await _quotes_by_id(db, {o.quote_id for o in orders if o.quote_id is not None})
    for order in orders:
        order.quote = quotes.get(order.quote_id) if order.quote_id is not None else None
    return orders


async def fetch_order(db: AsyncSession, order_id: int) -> OrderWithQuote | None:
    result = await db.execute(
        text("SELECT * FROM orders WHERE id = :id"),
        {"id": order_id},
    )
    row = result.mappings().first()
    if row is None:
        return None

    order = normalize_order(row)
    if order.quote_id is not None:
        order.quote = await fetch_quote(db, order.quote_id)
    return order


async def insert_order(db: AsyncSession, quote_id: int, status_id: int) -> OrderWithQuote:
    result = await db.execute(
        insert(OrderTable)
        .values(quote_id=quote_id, status=status_id, is_paid=False)
        .returning(*OrderTable.__table__.c)
    )
    return normalize_order(result.mappings().one())


async def update_order(db: AsyncSession, order_id: int, values: dict[str, Any]) -> OrderWithQuote | None:
    result = await db.execute(
        update(OrderTable)
        .where(OrderTable.id == order_id)
        .values(**values)
        .returning(*OrderTable.__table__.c)
    )
    row = result.mappings().first()
    return normalize_order(row) if row is not None else None


# ── Health ───────────────────────────────────────────────────────────


async def check_database(db: AsyncSession) -> dict[str, Any]:
    """Ping the database and report latency."""
    try:
        start = time.monotonic()
        await db.execute(text("SELECT 1"))
        latency = round((time.monotonic() - start) * 1000)
        return {"status": "ok", "latency_ms": latency}
    except Exception as exc:
        logger.warning("Database health check failed: %s", exc)
        return {"status": "error", "error": str(exc)[:200]}
