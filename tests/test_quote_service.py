"""Tests for QuoteService — save, convert, order updates, dashboard.

Database calls are patched at src.shop.queries; the session is an AsyncMock
so rollbacks can be asserted.
"""

from __future__ import annotations

from datetime import date, datetime
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import DBAPIError

from src.schemas.events import EventType
from src.schemas.pricing import DateRangeKey
from src.schemas.shop import OrderWithQuote, PrintType, Quote, QuoteForm, ReferenceData, StatusRef
from src.shop.errors import (
    BackendError,
    InvalidStatusError,
    NotFoundError,
    ReferenceDataUnavailableError,
    UnknownPrintTypeError,
)
from src.shop.service import QuoteService, normalize_notes

NEW, SUBMITTED, CONVERTED = 1, 2, 3
QUEUE, PRINTING, COMPLETE = 10, 11, 12


@pytest.fixture
def refs() -> ReferenceData:
    return ReferenceData(
        quote_statuses=[
            StatusRef(id=NEW, name="New"),
            StatusRef(id=SUBMITTED, name="Submitted"),
            StatusRef(id=CONVERTED, name="Converted"),
        ],
        order_statuses=[
            StatusRef(id=QUEUE, name="Queue"),
            StatusRef(id=PRINTING, name="Printing"),
            StatusRef(id=COMPLETE, name="Complete"),
        ],
        print_types=[PrintType(id=1, name="FDM", power_cost=0.10, maintenance_cost=0.04)],
    )


@pytest.fixture
def form() -> QuoteForm:
    return QuoteForm(
        customer_name="  Ada Lovelace ",
        project_summary="Bracket set",
        order_date=date(2026, 3, 1),
        print_type=1,
        material_cost=10,
        print_time=5,
        labor_time=2,
        actual_price=60,
    )


@pytest.fixture
def service() -> QuoteService:
    return QuoteService()


@pytest.fixture
def db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def mock_emit():
    with patch("src.shop.service.emit", new_callable=AsyncMock) as mock:
        yield mock


def _stored(**overrides) -> Quote:
    values = {"id": 7, "customer_name": "Ada Lovelace", "status": NEW, "total_cost": 40.7, "actual_price": 60.0}
    values.update(overrides)
    return Quote(**values)


def _db_error(message: str) -> DBAPIError:
    return DBAPIError("INSERT INTO quotes", {}, Exception(message))


class TestNormalizeNotes:
    def test_trims(self) -> None:
        assert normalize_notes("  rush job  ") == "rush job"

    def test_blank_is_none(self) -> None:
        assert normalize_notes("   ") is None
        assert normalize_notes(None) is None

    def test_capped(self) -> None:
        assert len(normalize_notes("x" * 600)) == 500

    def test_custom_cap(self) -> None:
        assert normalize_notes("abcdef", max_length=3) == "abc"


class TestPriceQuote:
    def test_uses_print_type_rate(self, service, form, refs) -> None:
        pricing = service.price_quote(form, refs)
        assert pricing.print_cost == pytest.approx(0.70)
        assert pricing.total_cost == pytest.approx(40.70)

    def test_unknown_print_type_previews_at_zero(self, service, form, refs) -> None:
        pricing = service.price_quote(form.model_copy(update={"print_type": 99}), refs)
        assert pricing.print_cost == 0.0

    def test_no_print_type_prices_printing_at_zero(self, service, form, refs) -> None:
        pricing = service.price_quote(form.model_copy(update={"print_type": None}), refs)
        assert pricing.print_cost == 0.0
        assert pricing.total_cost == pytest.approx(40.0)


class TestSaveQuoteCreate:
    @pytest.mark.asyncio()
    async def test_inserts_with_default_status(self, service, form, refs, db, mock_emit) -> None:
        with patch("src.shop.queries.insert_quote", new_callable=AsyncMock) as mock_insert:
            mock_insert.return_value = _stored()
            quote = await service.save_quote(db, form, refs, actor="alice")

        values = mock_insert.call_args.args[1]
        assert values["status"] == NEW
        assert values["customer_name"] == "Ada Lovelace"
        assert str(values["total_cost"]) == "40.70"
        assert str(values["suggested_price"]) == "58.14"
        assert str(values["actual_price"]) == "60.00"
        assert quote.id == 7

        event = mock_emit.call_args.args[0]
        assert event.event_type == EventType.QUOTE_CREATED
        assert event.actor_id == "alice"

    @pytest.mark.asyncio()
    async def test_form_status_ignored_on_create(self, service, form, refs, db, mock_emit) -> None:
        with patch("src.shop.queries.insert_quote", new_callable=AsyncMock) as mock_insert:
            mock_insert.return_value = _stored()
            await service.save_quote(db, form.model_copy(update={"status": CONVERTED}), refs)
        assert mock_insert.call_args.args[1]["status"] == NEW

    @pytest.mark.asyncio()
    async def test_blocked_while_statuses_loading(self, service, form, db, mock_emit) -> None:
        """No statuses → nothing written, retry message raised."""
        with patch("src.shop.queries.insert_quote", new_callable=AsyncMock) as mock_insert:
            with pytest.raises(ReferenceDataUnavailableError, match="try again"):
                await service.save_quote(db, form, ReferenceData())
        mock_insert.assert_not_called()
        mock_emit.assert_not_called()

    @pytest.mark.asyncio()
    async def test_backend_error_surfaces_message(self, service, form, refs, db, mock_emit) -> None:
        with patch("src.shop.queries.insert_quote", new_callable=AsyncMock) as mock_insert:
            mock_insert.side_effect = _db_error("duplicate key value violates unique constraint")
            with pytest.raises(BackendError, match="duplicate key") as exc_info:
                await service.save_quote(db, form, refs)

        assert exc_info.value.operation == "insert_quote"
        db.rollback.assert_awaited_once()
        mock_emit.assert_not_called()


class TestSaveQuoteEdit:
    @pytest.mark.asyncio()
    async def test_converted_quote_is_noop(self, service, form, refs, db, mock_emit) -> None:
        existing = _stored(status=CONVERTED)
        with patch("src.shop.queries.update_quote", new_callable=AsyncMock) as mock_update:
            result = await service.save_quote(db, form, refs, existing=existing)

        assert result is existing
        mock_update.assert_not_called()
        mock_emit.assert_not_called()
        db.execute.assert_not_called()

    @pytest.mark.asyncio()
    async def test_selected_status_applied(self, service, form, refs, db, mock_emit) -> None:
        with patch("src.shop.queries.update_quote", new_callable=AsyncMock) as mock_update:
            mock_update.return_value = _stored(status=SUBMITTED)
            await service.save_quote(db, form.model_copy(update={"status": SUBMITTED}), refs, existing=_stored())

        quote_id, values = mock_update.call_args.args[1:]
        assert quote_id == 7
        assert values["status"] == SUBMITTED
        assert mock_emit.call_args.args[0].event_type == EventType.QUOTE_UPDATED

    @pytest.mark.asyncio()
    async def test_converted_status_cannot_be_picked(self, service, form, refs, db, mock_emit) -> None:
        with patch("src.shop.queries.update_quote", new_callable=AsyncMock) as mock_update:
            mock_update.return_value = _stored()
            await service.save_quote(db, form.model_copy(update={"status": CONVERTED}), refs, existing=_stored())
        assert mock_update.call_args.args[2]["status"] == NEW

    @pytest.mark.asyncio()
    async def test_missing_row(self, service, form, refs, db, mock_emit) -> None:
        with patch("src.shop.queries.update_quote", new_callable=AsyncMock, return_value=None):
            with pytest.raises(NotFoundError):
                await service.save_quote(db, form, refs, existing=_stored())


class TestConvertQuote:
    @pytest.mark.asyncio()
    async def test_creates_order_and_locks_quote(self, service, refs, db, mock_emit) -> None:
        order = OrderWithQuote(id=40, quote_id=7, status=QUEUE)
        with (
            patch("src.shop.queries.insert_order", new_callable=AsyncMock, return_value=order) as mock_insert,
            patch("src.shop.queries.update_quote", new_callable=AsyncMock) as mock_update,
        ):
            mock_update.return_value = _stored(status=CONVERTED)
            result = await service.convert_quote(db, _stored(), refs, actor="alice")

        mock_insert.assert_awaited_once_with(db, 7, QUEUE)
        mock_update.assert_awaited_once_with(db, 7, {"status": CONVERTED})
        assert result.id == 40
        assert result.quote.status == CONVERTED

        emitted = [c.args[0].event_type for c in mock_emit.call_args_list]
        assert emitted == [EventType.QUOTE_CONVERTED, EventType.ORDER_CREATED]

    @pytest.mark.asyncio()
    async def test_already_converted(self, service, refs, db, mock_emit) -> None:
        with patch("src.shop.queries.insert_order", new_callable=AsyncMock) as mock_insert:
            result = await service.convert_quote(db, _stored(status=CONVERTED), refs)
        assert result is None
        mock_insert.assert_not_called()

    @pytest.mark.asyncio()
    async def test_no_converted_status(self, service, db, mock_emit) -> None:
        refs = ReferenceData(quote_statuses=[StatusRef(id=NEW, name="New")])
        with pytest.raises(ReferenceDataUnavailableError):
            await service.convert_quote(db, _stored(), refs)

    @pytest.mark.asyncio()
    async def test_no_order_statuses(self, service, refs, db, mock_emit) -> None:
        refs = refs.model_copy(update={"order_statuses": []})
        with patch("src.shop.queries.insert_order", new_callable=AsyncMock) as mock_insert:
            with pytest.raises(ReferenceDataUnavailableError, match="Order statuses"):
                await service.convert_quote(db, _stored(), refs)
        mock_insert.assert_not_called()

    @pytest.mark.asyncio()
    async def test_status_flip_failure_rolls_back(self, service, refs, db, mock_emit) -> None:
        """Order insert and status flip are kept or dropped together."""
        order = OrderWithQuote(id=40, quote_id=7, status=QUEUE)
        with (
            patch("src.shop.queries.insert_order", new_callable=AsyncMock, return_value=order),
            patch("src.shop.queries.update_quote", new_callable=AsyncMock) as mock_update,
        ):
            mock_update.side_effect = _db_error("connection reset")
            with pytest.raises(BackendError, match="connection reset"):
                await service.convert_quote(db, _stored(), refs)

        db.rollback.assert_awaited_once()
        mock_emit.assert_not_called()


class TestUpdateOrder:
    @pytest.mark.asyncio()
    async def test_updates_fields(self, service, refs, db, mock_emit) -> None:
        order = OrderWithQuote(id=40, quote_id=7, status=QUEUE, quote=_stored(status=CONVERTED))
        with patch("src.shop.queries.update_order", new_callable=AsyncMock) as mock_update:
            mock_update.return_value = OrderWithQuote(id=40, quote_id=7, status=PRINTING, is_paid=True)
            result = await service.update_order(
                db, order, status_id=PRINTING, is_paid=True, notes="  ship Friday ", refs=refs, actor="bob"
            )

        assert mock_update.call_args.args[2] == {"status": PRINTING, "is_paid": True, "notes": "ship Friday"}
        assert result.quote == order.quote
        event = mock_emit.call_args.args[0]
        assert event.event_type == EventType.ORDER_UPDATED
        assert event.data["previous_status"] == QUEUE

    @pytest.mark.asyncio()
    async def test_unknown_status_rejected(self, service, refs, db, mock_emit) -> None:
        order = OrderWithQuote(id=40, status=QUEUE)
        with patch("src.shop.queries.update_order", new_callable=AsyncMock) as mock_update:
            with pytest.raises(InvalidStatusError):
                await service.update_order(db, order, status_id=NEW, is_paid=False, notes=None, refs=refs)
        mock_update.assert_not_called()


class TestLookups:
    @pytest.mark.asyncio()
    async def test_get_quote_missing(self, service, db) -> None:
        with patch("src.shop.queries.fetch_quote", new_callable=AsyncMock, return_value=None):
            with pytest.raises(NotFoundError, match="#5"):
                await service.get_quote(db, 5)

    @pytest.mark.asyncio()
    async def test_get_order_missing(self, service, db) -> None:
        with patch("src.shop.queries.fetch_order", new_callable=AsyncMock, return_value=None):
            with pytest.raises(NotFoundError):
                await service.get_order(db, 5)


class TestFinancialSummary:
    @pytest.mark.asyncio()
    async def test_completed_by_name_and_range(self, service, refs, db) -> None:
        orders = [
            OrderWithQuote(id=1, status=COMPLETE, quote=Quote(id=1, order_date=date(2026, 3, 2), actual_price=100,
                                                              material_cost=20, print_cost=5, labor_cost=15)),
            OrderWithQuote(id=2, status=QUEUE, quote=Quote(id=2, order_date=date(2026, 3, 10), actual_price=50)),
            OrderWithQuote(id=3, status=COMPLETE, created_at=datetime(2025, 12, 1, 12, 0)),
        ]
        with patch("src.shop.queries.fetch_orders", new_callable=AsyncMock, return_value=orders):
            summary, shown = await service.financial_summary(
                db, refs, DateRangeKey.MONTH_TO_DATE, today=date(2026, 3, 15)
            )

        assert summary.orders_received == 2
        assert summary.orders_completed == 1
        assert summary.revenue == pytest.approx(150.0)
        assert shown.start == date(2026, 3, 1)


class TestSaveQuoteReferenceGuards:
    """Edits must not write while the data they depend on is missing."""

    @pytest.mark.asyncio()
    async def test_edit_of_converted_quote_blocked_without_statuses(self, service, form, db, mock_emit) -> None:
        """With no statuses loaded a converted quote cannot be recognized, so nothing is written."""
        with patch("src.shop.queries.update_quote", new_callable=AsyncMock) as mock_update:
            with pytest.raises(ReferenceDataUnavailableError, match="try again"):
                await service.save_quote(db, form, ReferenceData(), existing=_stored(status=CONVERTED))

        mock_update.assert_not_called()
        mock_emit.assert_not_called()

    @pytest.mark.asyncio()
    async def test_edit_blocked_without_converted_status(self, service, form, refs, db, mock_emit) -> None:
        refs = refs.model_copy(update={"quote_statuses": [StatusRef(id=NEW, name="New")]})
        with patch("src.shop.queries.update_quote", new_callable=AsyncMock) as mock_update:
            with pytest.raises(ReferenceDataUnavailableError):
                await service.save_quote(db, form, refs, existing=_stored(status=CONVERTED))
        mock_update.assert_not_called()

    @pytest.mark.asyncio()
    async def test_edit_blocked_while_print_types_loading(self, service, form, refs, db, mock_emit) -> None:
        """Stored pricing is not overwritten with a zero print rate."""
        refs = refs.model_copy(update={"print_types": []})
        with patch("src.shop.queries.update_quote", new_callable=AsyncMock) as mock_update:
            with pytest.raises(ReferenceDataUnavailableError, match="Print types"):
                await service.save_quote(db, form, refs, existing=_stored())
        mock_update.assert_not_called()

    @pytest.mark.asyncio()
    async def test_unknown_print_type_rejected(self, service, form, refs, db, mock_emit) -> None:
        with patch("src.shop.queries.insert_quote", new_callable=AsyncMock) as mock_insert:
            with pytest.raises(UnknownPrintTypeError, match="99"):
                await service.save_quote(db, form.model_copy(update={"print_type": 99}), refs)
        mock_insert.assert_not_called()

    @pytest.mark.asyncio()
    async def test_no_print_type_selected_is_allowed(self, service, form, refs, db, mock_emit) -> None:
        with patch("src.shop.queries.insert_quote", new_callable=AsyncMock) as mock_insert:
            mock_insert.return_value = _stored()
            await service.save_quote(db, form.model_copy(update={"print_type": None}), refs)
        assert str(mock_insert.call_args.args[1]["print_cost"]) == "0.00"
