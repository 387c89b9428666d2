"""Quote and order workflow.

Ties the calculators and the status resolver to the database:
- save_quote: price, resolve status, insert or update
- convert_quote: create the order and mark the quote converted, together
- update_order: status, paid flag, notes

Error policy:
- reference data missing → ReferenceDataUnavailableError, nothing written
- database failure → BackendError with the driver message, rolled back
- editing a converted quote → silent no-op, the stored quote is returned
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import date
from typing import Any

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.events import emit
from src.calculators.financials import display_range, filter_orders, summarize_orders
from src.calculators.pricing import (
    calculate_pricing,
    coerce_number,
    normalize_price,
    to_cents,
)
from src.config import settings
from src.schemas.events import EventType, SystemEvent
from src.schemas.pricing import (
    DateRangeKey,
    DisplayRange,
    FinancialSummary,
    PricingConfig,
    PricingInput,
    PricingOutput,
)
from src.schemas.shop import OrderWithQuote, Quote, QuoteForm, ReferenceData
from src.shop import queries
from src.shop.errors import (
    BackendError,
    InvalidStatusError,
    NotFoundError,
    ReferenceDataUnavailableError,
    UnknownPrintTypeError,
)
from src.shop.status import StatusResolver

logger = logging.getLogger(__name__)


def _error_message(exc: SQLAlchemyError) -> str:
    """The driver's own message when there is one."""
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig)
    return str(exc)


@asynccontextmanager
async def _backend(db: AsyncSession, operation: str) -> AsyncGenerator[None, None]:
    """Roll back and re-raise database failures as BackendError."""
    try:
        yield
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Database call failed during %s", operation)
        raise BackendError(_error_message(exc), operation=operation) from exc


def normalize_notes(notes: str | None, max_length: int | None = None) -> str | None:
    """Cap and trim order notes; blank notes become None."""
    if notes is None:
        return None
    limit = max_length if max_length is not None else settings.shop.order_notes_max_length
    trimmed = notes[:limit].strip()
    return trimmed or None


def quote_resolver(refs: ReferenceData) -> StatusResolver:
    return StatusResolver(refs.quote_statuses, status_type="quote")


def order_resolver(refs: ReferenceData) -> StatusResolver:
    return StatusResolver(refs.order_statuses, status_type="order")


class QuoteService:
    """Stateless workflow operations — AsyncSession passed per call."""

    def __init__(self, config: PricingConfig | None = None) -> None:
        self.config = config or PricingConfig.from_settings()

    # ── Pricing ──────────────────────────────────────────────────────

    def price_quote(self, form: QuoteForm, refs: ReferenceData) -> PricingOutput:
        """Derived pricing for the form's inputs and selected print type.

        An unknown or missing print type prices printing at 0, which is
        what the live preview shows while the form is incomplete.
        """
        print_type = refs.print_type(form.print_type)
        return calculate_pricing(
            PricingInput(
                material_cost=form.material_cost,
                print_time=form.print_time,
                labor_time=form.labor_time,
                print_rate=print_type.print_rate if print_type is not None else 0.0,
            ),
            self.config,
        )

    def _require_print_type(self, form: QuoteForm, refs: ReferenceData) -> None:
        """Refuse to persist pricing computed without the selected print type's rate."""
        if form.print_type is None or refs.print_type(form.print_type) is not None:
            return
        if not refs.print_types:
            raise ReferenceDataUnavailableError("Print types are still loading. Please try again in a moment.")
        raise UnknownPrintTypeError(f"Unknown print type: {form.print_type}")

    def _quote_values(self, form: QuoteForm, pricing: PricingOutput, status_id: int) -> dict[str, Any]:
        return {
            "customer_name": form.customer_name.strip(),
            "project_summary": form.project_summary.strip(),
            "order_date": form.order_date,
            "print_type": form.print_type,
            "material_cost": to_cents(coerce_number(form.material_cost)),
            "print_time": to_cents(coerce_number(form.print_time)),
            "labor_time": to_cents(coerce_number(form.labor_time)),
            "status": status_id,
            "actual_price": to_cents(normalize_price(form.actual_price)),
            "print_cost": to_cents(pricing.print_cost),
            "labor_cost": to_cents(pricing.labor_cost),
            "total_cost": to_cents(pricing.total_cost),
            "suggested_price": to_cents(pricing.suggested_price),
        }

    # ── Quotes ───────────────────────────────────────────────────────

    async def list_quotes(self, db: AsyncSession) -> list[Quote]:
        async with _backend(db, "list_quotes"):
            return await queries.fetch_quotes(db)

    async def get_quote(self, db: AsyncSession, quote_id: int) -> Quote:
        async with _backend(db, "get_quote"):
            quote = await queries.fetch_quote(db, quote_id)
        if quote is None:
            raise NotFoundError(f"Quote #{quote_id} not found")
        return quote

    async def save_quote(
        self,
        db: AsyncSession,
        form: QuoteForm,
        refs: ReferenceData,
        existing: Quote | None = None,
        actor: str | None = None,
    ) -> Quote:
        """Create a quote, or update `existing`.

        Args:
            db: Database session.
            form: Submitted quote fields.
            refs: Loaded reference data.
            existing: The stored quote when editing; None to create.
            actor: Staff username for the audit trail.

        Returns:
            The stored quote. For a converted quote this is `existing`
            unchanged, and nothing is written.

        Raises:
            ReferenceDataUnavailableError: Quote statuses (or, for a selected
                print type, print types) are not loaded.
            UnknownPrintTypeError: The selected print type no longer exists.
            BackendError: The insert or update failed.
        """
        resolver = quote_resolver(refs)

        if existing is not None:
            if resolver.converted_status_id() is None:
                # Without the converted id a locked quote cannot be told apart
                logger.warning("Blocked edit of quote #%s: quote statuses not loaded", existing.id)
                raise ReferenceDataUnavailableError()
            if resolver.is_read_only(existing):
                logger.info("Ignoring edit of converted quote #%s", existing.id)
                return existing

        if existing is None:
            if not resolver.is_loaded:
                logger.warning("Blocked new quote for %r: quote statuses not loaded", form.customer_name)
            status_id = resolver.require_default_status_id()
        elif form.status is not None and resolver.is_selectable(form.status):
            status_id = form.status
        else:
            # Converted or unknown ids are never taken from the form
            status_id = existing.status

        self._require_print_type(form, refs)
        pricing = self.price_quote(form, refs)
        values = self._quote_values(form, pricing, status_id)

        if existing is None:
            async with _backend(db, "insert_quote"):
                quote = await queries.insert_quote(db, values)
            event_type = EventType.QUOTE_CREATED
        else:
            async with _backend(db, "update_quote"):
                updated = await queries.update_quote(db, existing.id, values)
            if updated is None:
                raise NotFoundError(f"Quote #{existing.id} not found")
            quote = updated
            event_type = EventType.QUOTE_UPDATED

        await emit(SystemEvent(
            event_type=event_type,
            entity="quotes",
            entity_id=quote.id,
            actor_id=actor,
            actor_role="staff",
            data={
                "status": quote.status,
                "total_cost": quote.total_cost,
                "actual_price": quote.actual_price,
            },
            source_module="shop.service",
        ))
        logger.info(
            "Quote #%s %s: total_cost=%s suggested=%s",
            quote.id,
            "created" if event_type == EventType.QUOTE_CREATED else "updated",
            quote.total_cost,
            quote.suggested_price,
        )
        return quote

    async def convert_quote(
        self,
        db: AsyncSession,
        quote: Quote,
        refs: ReferenceData,
        actor: str | None = None,
    ) -> OrderWithQuote | None:
        """Turn an accepted quote into an order.

        The order insert and the quote status flip share one transaction.

        Returns:
            The new order, or None when the quote was already converted.

        Raises:
            ReferenceDataUnavailableError: No converted quote status or no order status.
            BackendError: Either write failed; neither is kept.
        """
        resolver = quote_resolver(refs)
        converted_id = resolver.converted_status_id()
        if converted_id is None:
            raise ReferenceDataUnavailableError(
                "Quote statuses are not loaded or have no 'Converted' entry. Please try again in a moment."
            )
        if resolver.is_read_only(quote):
            logger.info("Quote #%s already converted; nothing to do", quote.id)
            return None

        order_status_id = order_resolver(refs).default_status_id()
        if order_status_id is None:
            raise ReferenceDataUnavailableError(
                "Order statuses are still loading. Please try again in a moment."
            )

        async with _backend(db, "convert_quote"):
            order = await queries.insert_order(db, quote.id, order_status_id)
            converted = await queries.update_quote(db, quote.id, {"status": converted_id})
        if converted is None:
            await db.rollback()
            raise NotFoundError(f"Quote #{quote.id} not found")
        order.quote = converted

        await emit(SystemEvent(
            event_type=EventType.QUOTE_CONVERTED,
            entity="quotes",
            entity_id=quote.id,
            actor_id=actor,
            actor_role="staff",
            data={"order_id": order.id},
            source_module="shop.service",
        ))
        await emit(SystemEvent(
            event_type=EventType.ORDER_CREATED,
            entity="orders",
            entity_id=order.id,
            actor_id=actor,
            actor_role="staff",
            data={"quote_id": quote.id, "status": order_status_id},
            source_module="shop.service",
        ))
        logger.info("Quote #%s converted to order #%s", quote.id, order.id)
        return order

    # ── Orders ───────────────────────────────────────────────────────

    async def list_orders(self, db: AsyncSession) -> list[OrderWithQuote]:
        async with _backend(db, "list_orders"):
            return await queries.fetch_orders(db)

    async def get_order(self, db: AsyncSession, order_id: int) -> OrderWithQuote:
        async with _backend(db, "get_order"):
            order = await queries.fetch_order(db, order_id)
        if order is None:
            raise NotFoundError(f"Order #{order_id} not found")
        return order

    async def update_order(
        self,
        db: AsyncSession,
        order: OrderWithQuote,
        status_id: int,
        is_paid: bool,
        notes: str | None,
        refs: ReferenceData,
        actor: str | None = None,
    ) -> OrderWithQuote:
        """Update production status, payment flag, and notes of an order.

        Raises:
            InvalidStatusError: status_id is not a known order status.
            BackendError: The update failed.
        """
        known = {s.id for s in order_resolver(refs).statuses}
        if status_id not in known:
            raise InvalidStatusError(f"Unknown order status: {status_id}")

        values = {
            "status": status_id,
            "is_paid": is_paid,
            "notes": normalize_notes(notes),
        }
        async with _backend(db, "update_order"):
            updated = await queries.update_order(db, order.id, values)
        if updated is None:
            raise NotFoundError(f"Order #{order.id} not found")
        updated.quote = order.quote

        await emit(SystemEvent(
            event_type=EventType.ORDER_UPDATED,
            entity="orders",
            entity_id=order.id,
            actor_id=actor,
            actor_role="staff",
            data={"status": status_id, "is_paid": is_paid, "previous_status": order.status},
            source_module="shop.service",
        ))
        logger.info("Order #%s updated: status=%s paid=%s", order.id, status_id, is_paid)
        return updated

    # ── Dashboard ────────────────────────────────────────────────────

    async def financial_summary(
        self,
        db: AsyncSession,
        refs: ReferenceData,
        range_key: DateRangeKey,
        today: date | None = None,
    ) -> tuple[FinancialSummary, DisplayRange]:
        """Aggregate metrics for the orders inside the selected range."""
        today = today or date.today()
        orders = await self.list_orders(db)
        completed = order_resolver(refs).ids_named(settings.shop.completed_status_names)
        summary = summarize_orders(filter_orders(orders, range_key, today), completed, self.config)
        return summary, display_range(orders, range_key, today)


# Module-level singleton
quote_service = QuoteService()
