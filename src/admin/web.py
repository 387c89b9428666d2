"""Staff web pages — FastAPI router with Jinja2 + HTMX.

Dashboard, quote list and form, order list and form, plus an HTMX partial
that re-prices a quote while it is being typed. All routes require HTTP
Basic Auth via the verify_staff dependency.
"""
# ruff: noqa: B008  Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import FormData

from src.admin.auth import verify_staff
from src.admin.events import emit
from src.admin.formatters import format_currency, format_date, format_percent, margin_classes
from src.calculators.margin import calculate_margin, parse_numeric
from src.config import settings
from src.db.engine import get_session
from src.schemas.events import EventType, SystemEvent
from src.schemas.pricing import DateRangeKey
from src.schemas.shop import OrderWithQuote, Quote, QuoteForm, ReferenceData
from src.shop.errors import NotFoundError, ReferenceDataUnavailableError, ShopError
from src.shop.queries import load_reference_data
from src.shop.service import order_resolver, quote_resolver, quote_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["shop"])

# Jinja2 templates
_template_dir = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(_template_dir))

# Register custom filters
templates.env.filters["currency"] = format_currency
templates.env.filters["date"] = format_date
templates.env.filters["percent"] = format_percent
templates.env.filters["margin_classes"] = margin_classes
templates.env.globals["margin_of"] = calculate_margin
templates.env.globals["shop_name"] = settings.shop.shop_name


async def _emit_access(staff: str, page: str) -> None:
    """Emit ADMIN_ACCESS audit event for each page view."""
    await emit(SystemEvent(
        event_type=EventType.ADMIN_ACCESS,
        actor_id=staff,
        actor_role="staff",
        data={"page": page},
        source_module="admin.web",
    ))


async def _reference_data() -> ReferenceData:
    """Reference lists, or empty lists when the fetch fails.

    Empty lists leave statuses unresolved, which blocks quote creates and
    edits with a retry message instead of writing without a status.
    """
    try:
        return await load_reference_data()
    except SQLAlchemyError:
        logger.exception("Failed to load reference data")
        return ReferenceData()


def _error_page(request: Request, exc: ShopError) -> HTMLResponse:
    status_code = 404 if isinstance(exc, NotFoundError) else 502
    return templates.TemplateResponse(request, "error.html", {"message": str(exc)}, status_code=status_code)


# ── Form parsing ─────────────────────────────────────────────────────


def _form_int(form: FormData, key: str) -> int | None:
    number = parse_numeric(form.get(key))
    return int(number) if number is not None else None


def _form_date(form: FormData, key: str) -> date | None:
    raw = str(form.get(key) or "").strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def parse_quote_form(form: FormData) -> QuoteForm:
    """Build a QuoteForm from submitted fields; bad numbers become None."""
    return QuoteForm(
        customer_name=str(form.get("customer_name") or ""),
        project_summary=str(form.get("project_summary") or ""),
        order_date=_form_date(form, "order_date"),
        print_type=_form_int(form, "print_type"),
        material_cost=parse_numeric(form.get("material_cost")),
        print_time=parse_numeric(form.get("print_time")),
        labor_time=parse_numeric(form.get("labor_time")),
        status=_form_int(form, "status"),
        actual_price=parse_numeric(form.get("actual_price")),
    )


def _form_from_quote(quote: Quote) -> QuoteForm:
    return QuoteForm(**quote.model_dump(include=set(QuoteForm.model_fields)))


def _quote_form_context(
    refs: ReferenceData,
    form: QuoteForm,
    quote: Quote | None = None,
    error: str | None = None,
) -> dict[str, Any]:
    resolver = quote_resolver(refs)
    pricing = quote_service.price_quote(form, refs)
    # Without a converted status an existing quote may be locked; show it disabled
    unavailable = not resolver.is_loaded or (quote is not None and resolver.converted_status_id() is None)
    if unavailable and error is None:
        error = str(ReferenceDataUnavailableError())
    return {
        "quote": quote,
        "form": form,
        "read_only": resolver.is_read_only(quote),
        "unavailable": unavailable,
        "statuses": resolver.selectable_statuses(),
        "status_name": refs.quote_status_name(quote.status) if quote else None,
        "print_types": refs.print_types,
        "pricing": pricing,
        "margin": calculate_margin(form.actual_price, pricing.total_cost),
        "labor_rate": quote_service.config.labor_rate,
        "error": error,
    }


# ── Dashboard ────────────────────────────────────────────────────────


@router.get("/", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    range_key: DateRangeKey = Query(DateRangeKey.ALL, alias="range"),
    db: AsyncSession = Depends(get_session),
    staff: str = Depends(verify_staff),
) -> HTMLResponse:
    """Revenue, expenses, profit, and margin for the selected range."""
    await _emit_access(staff, "dashboard")

    refs = await _reference_data()
    try:
        summary, shown = await quote_service.financial_summary(db, refs, range_key)
    except ShopError as exc:
        return templates.TemplateResponse(request, "dashboard.html", {
            "summary": None,
            "error": str(exc),
            "range_key": range_key,
            "ranges": list(DateRangeKey),
        }, status_code=502)

    return templates.TemplateResponse(request, "dashboard.html", {
        "summary": summary,
        "shown": shown,
        "error": None,
        "range_key": range_key,
        "ranges": list(DateRangeKey),
    })


# ── Quotes ───────────────────────────────────────────────────────────


@router.get("/quotes", response_class=HTMLResponse)
async def quotes_list(
    request: Request,
    db: AsyncSession = Depends(get_session),
    staff: str = Depends(verify_staff),
) -> HTMLResponse:
    """All quotes with total cost, price, margin, and status."""
    await _emit_access(staff, "quotes")

    refs = await _reference_data()
    error = None
    quotes: list[Quote] = []
    try:
        quotes = await quote_service.list_quotes(db)
    except ShopError as exc:
        error = str(exc)

    resolver = quote_resolver(refs)
    return templates.TemplateResponse(request, "quotes.html", {
        "quotes": quotes,
        "refs": refs,
        "converted_id": resolver.converted_status_id(),
        "error": error,
    })


@router.get("/quotes/new", response_class=HTMLResponse)
async def new_quote(
    request: Request,
    staff: str = Depends(verify_staff),
) -> HTMLResponse:
    await _emit_access(staff, "quote_new")
    refs = await _reference_data()
    form = QuoteForm(customer_name="", order_date=date.today())
    return templates.TemplateResponse(request, "quote_form.html", _quote_form_context(refs, form))


@router.post("/quotes/preview", response_class=HTMLResponse)
async def preview_quote(
    request: Request,
    staff: str = Depends(verify_staff),
) -> HTMLResponse:
    """HTMX partial — derived pricing for the fields typed so far."""
    refs = await _reference_data()
    form = parse_quote_form(await request.form())
    pricing = quote_service.price_quote(form, refs)
    margin = calculate_margin(form.actual_price, pricing.total_cost)
    return templates.TemplateResponse(request, "partials/pricing.html", {
        "pricing": pricing,
        "margin": margin,
        "labor_rate": quote_service.config.labor_rate,
    })


@router.post("/quotes", response_class=HTMLResponse)
async def create_quote(
    request: Request,
    db: AsyncSession = Depends(get_session),
    staff: str = Depends(verify_staff),
) -> Response:
    refs = await _reference_data()
    form = parse_quote_form(await request.form())
    try:
        await quote_service.save_quote(db, form, refs, actor=staff)
    except ShopError as exc:
        return templates.TemplateResponse(
            request, "quote_form.html", _quote_form_context(refs, form, error=str(exc)), status_code=400
        )
    return RedirectResponse("/quotes", status_code=303)


@router.get("/quotes/{quote_id}", response_class=HTMLResponse)
async def quote_detail(
    request: Request,
    quote_id: int,
    db: AsyncSession = Depends(get_session),
    staff: str = Depends(verify_staff),
) -> HTMLResponse:
    """Quote form; every field disabled once the quote is converted."""
    await _emit_access(staff, "quote_detail")

    refs = await _reference_data()
    try:
        quote = await quote_service.get_quote(db, quote_id)
    except ShopError as exc:
        return _error_page(request, exc)
    return templates.TemplateResponse(
        request, "quote_form.html", _quote_form_context(refs, _form_from_quote(quote), quote)
    )


@router.post("/quotes/{quote_id}", response_class=HTMLResponse)
async def update_quote(
    request: Request,
    quote_id: int,
    db: AsyncSession = Depends(get_session),
    staff: str = Depends(verify_staff),
) -> Response:
    refs = await _reference_data()
    try:
        existing = await quote_service.get_quote(db, quote_id)
    except ShopError as exc:
        return _error_page(request, exc)

    form = parse_quote_form(await request.form())
    try:
        await quote_service.save_quote(db, form, refs, existing=existing, actor=staff)
    except ShopError as exc:
        return templates.TemplateResponse(
            request, "quote_form.html", _quote_form_context(refs, form, existing, error=str(exc)), status_code=400
        )
    return RedirectResponse("/quotes", status_code=303)


@router.post("/quotes/{quote_id}/convert", response_class=HTMLResponse)
async def convert_quote(
    request: Request,
    quote_id: int,
    db: AsyncSession = Depends(get_session),
    staff: str = Depends(verify_staff),
) -> Response:
    """Create an order from the quote and lock the quote."""
    refs = await _reference_data()
    try:
        quote = await quote_service.get_quote(db, quote_id)
    except ShopError as exc:
        return _error_page(request, exc)

    try:
        await quote_service.convert_quote(db, quote, refs, actor=staff)
    except ShopError as exc:
        return templates.TemplateResponse(
            request, "quote_form.html", _quote_form_context(refs, _form_from_quote(quote), quote, error=str(exc)),
            status_code=400,
        )
    return RedirectResponse("/orders", status_code=303)


# ── Orders ───────────────────────────────────────────────────────────


@router.get("/orders", response_class=HTMLResponse)
async def orders_list(
    request: Request,
    db: AsyncSession = Depends(get_session),
    staff: str = Depends(verify_staff),
) -> HTMLResponse:
    await _emit_access(staff, "orders")

    refs = await _reference_data()
    error = None
    orders: list[OrderWithQuote] = []
    try:
        orders = await quote_service.list_orders(db)
    except ShopError as exc:
        error = str(exc)

    return templates.TemplateResponse(request, "orders.html", {
        "orders": orders,
        "refs": refs,
        "error": error,
    })


def _order_context(refs: ReferenceData, order: OrderWithQuote, error: str | None = None) -> dict[str, Any]:
    quote = order.quote
    return {
        "order": order,
        "quote": quote,
        "statuses": order_resolver(refs).statuses,
        "margin": calculate_margin(quote.actual_price, quote.total_cost) if quote else None,
        "notes_max_length": settings.shop.order_notes_max_length,
        "error": error,
    }


@router.get("/orders/{order_id}", response_class=HTMLResponse)
async def order_detail(
    request: Request,
    order_id: int,
    db: AsyncSession = Depends(get_session),
    staff: str = Depends(verify_staff),
) -> HTMLResponse:
    await _emit_access(staff, "order_detail")

    refs = await _reference_data()
    try:
        order = await quote_service.get_order(db, order_id)
    except ShopError as exc:
        return _error_page(request, exc)
    return templates.TemplateResponse(request, "order_form.html", _order_context(refs, order))


@router.post("/orders/{order_id}", response_class=HTMLResponse)
async def update_order(
    request: Request,
    order_id: int,
    db: AsyncSession = Depends(get_session),
    staff: str = Depends(verify_staff),
) -> Response:
    """Save status, paid flag, and notes."""
    refs = await _reference_data()
    try:
        order = await quote_service.get_order(db, order_id)
    except ShopError as exc:
        return _error_page(request, exc)

    form = await request.form()
    status_id = _form_int(form, "status")
    if status_id is None:
        return templates.TemplateResponse(
            request, "order_form.html", _order_context(refs, order, error="Select a status"), status_code=400
        )

    try:
        await quote_service.update_order(
            db,
            order,
            status_id=status_id,
            is_paid=form.get("is_paid") is not None,
            notes=str(form.get("notes") or ""),
            refs=refs,
            actor=staff,
        )
    except ShopError as exc:
        return templates.TemplateResponse(
            request, "order_form.html", _order_context(refs, order, error=str(exc)), status_code=400
        )
    return RedirectResponse("/orders", status_code=303)
