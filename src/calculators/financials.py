"""Revenue, cost, and margin rollups for the dashboard.

An order is dated by its quote's order_date, falling back to the order's
own created_at. Orders with no usable date only count in the ALL range.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

from src.calculators.margin import classify_margin, parse_numeric
from src.schemas.pricing import DateRangeKey, DisplayRange, FinancialSummary, PricingConfig
from src.schemas.shop import OrderWithQuote


def resolve_date_range(key: DateRangeKey, today: date) -> tuple[date, date] | None:
    """Inclusive (start, end) for a preset range; None for ALL."""
    if key == DateRangeKey.MONTH_TO_DATE:
        return today.replace(day=1), today
    if key == DateRangeKey.LAST_MONTH:
        end = today.replace(day=1) - timedelta(days=1)
        return end.replace(day=1), end
    if key == DateRangeKey.YEAR_TO_DATE:
        return date(today.year, 1, 1), today
    if key == DateRangeKey.LAST_YEAR:
        return date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)
    return None


def order_date_of(order: OrderWithQuote) -> date | None:
    """The date an order is reported under."""
    if order.quote is not None and order.quote.order_date is not None:
        return order.quote.order_date
    if order.created_at is not None:
        return order.created_at.date()
    return None


def filter_orders(
    orders: Iterable[OrderWithQuote],
    key: DateRangeKey,
    today: date,
) -> list[OrderWithQuote]:
    """Keep the orders that fall inside the selected range."""
    bounds = resolve_date_range(key, today)
    if bounds is None:
        return list(orders)

    start, end = bounds
    kept = []
    for order in orders:
        when = order_date_of(order)
        if when is not None and start <= when <= end:
            kept.append(order)
    return kept


def display_range(orders: Iterable[OrderWithQuote], key: DateRangeKey, today: date) -> DisplayRange:
    """Dates to show for the selection; ALL spans the earliest to latest order."""
    bounds = resolve_date_range(key, today)
    if bounds is not None:
        return DisplayRange(start=bounds[0], end=bounds[1])

    dates = [d for d in (order_date_of(o) for o in orders) if d is not None]
    if not dates:
        return DisplayRange()
    return DisplayRange(start=min(dates), end=max(dates))


def summarize_orders(
    orders: Iterable[OrderWithQuote],
    completed_status_ids: set[int] | frozenset[int] = frozenset(),
    config: PricingConfig | None = None,
) -> FinancialSummary:
    """Aggregate revenue, expenses, and profit across orders.

    Args:
        orders: Orders joined with their quotes.
        completed_status_ids: Order status ids counted as completed.
        config: Margin thresholds used for the band.

    Returns:
        FinancialSummary. Margin is 0% when there is no revenue.
    """
    summary = FinancialSummary()

    for order in orders:
        summary.orders_received += 1
        if order.status in completed_status_ids:
            summary.orders_completed += 1

        quote = order.quote
        if quote is None:
            continue

        actual = parse_numeric(quote.actual_price)
        material = parse_numeric(quote.material_cost)
        printing = parse_numeric(quote.print_cost)
        labor = parse_numeric(quote.labor_cost)

        if actual is not None:
            summary.revenue += actual
        if material is not None:
            summary.material_cost += material
        if printing is not None:
            summary.print_cost += printing
        if labor is not None:
            summary.labor_cost += labor

        summary.profit += (actual or 0.0) - (material or 0.0) - (printing or 0.0) - (labor or 0.0)

    if summary.revenue > 0:
        summary.profit_margin_percent = summary.profit / summary.revenue * 100
    summary.margin_band = classify_margin(summary.profit_margin_percent, config)
    return summary
