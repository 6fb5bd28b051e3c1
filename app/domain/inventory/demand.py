"""Demand forecasting from monthly sales history.

NO DATA ACCESS - pure functions only. Data access happens in services layer.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime

from app.domain.inventory.models import ForecastMethod, SalesRecord

DAYS_PER_MONTH = 30.4
FORECAST_WINDOW_MONTHS = 6


def month_key(d: date | datetime) -> str:
    """Format a date as its ``YYYY-MM`` month key."""
    return f"{d.year:04d}-{d.month:02d}"


def last_n_months(now: date | datetime, n: int = FORECAST_WINDOW_MONTHS) -> list[str]:
    """Month keys for the ``n`` calendar months ending with ``now``'s month.

    Oldest first, current month last.

    Examples:
        >>> last_n_months(date(2024, 2, 15), 3)
        ['2023-12', '2024-01', '2024-02']

    """
    months = []
    year, month = now.year, now.month
    for _ in range(n):
        months.append(month_key(date(year, month, 1)))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    months.reverse()
    return months


def simple_average(sales: Sequence[SalesRecord]) -> float:
    """Average units per month over every record supplied.

    Divides by the number of records found, not by a fixed six months, so a
    product with two months of history averages over two.
    """
    if not sales:
        return 0.0
    return sum(s.quantity_sold for s in sales) / len(sales)


def weighted_average(sales: Sequence[SalesRecord], months: Sequence[str], weights: Sequence[float]) -> float:
    """Weighted monthly average: sum(qty_i * w_i) / sum(w_i).

    Args:
        sales: Product sales records (any months)
        months: Month keys, oldest first, matched positionally to ``weights``
        weights: Positional weights; missing positions weigh 0

    Returns:
        Weighted average units per month, 0.0 if weights sum to 0

    """
    by_month = {s.month: s.quantity_sold for s in sales}
    weighted_sum = 0.0
    weight_sum = 0.0
    for idx, month in enumerate(months):
        weight = weights[idx] if idx < len(weights) else 0.0
        weighted_sum += by_month.get(month, 0) * weight
        weight_sum += weight
    return weighted_sum / weight_sum if weight_sum > 0 else 0.0


def avg_monthly_demand(
    sales: Sequence[SalesRecord],
    method: ForecastMethod,
    weights: Sequence[float],
    now: date | datetime,
) -> float:
    """Forecast average monthly demand with the configured method."""
    if method == ForecastMethod.WEIGHTED_AVERAGE:
        return weighted_average(sales, last_n_months(now), weights)
    return simple_average(sales)


def daily_demand(monthly_demand: float) -> float:
    """Convert monthly demand to units per day."""
    return monthly_demand / DAYS_PER_MONTH
