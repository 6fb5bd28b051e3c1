"""Per-product planning: stock, demand, reorder point and order suggestion.

NO DATA ACCESS - pure functions only. Data access happens in services layer.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import date, datetime, time

from app.domain.inventory.demand import avg_monthly_demand, daily_demand
from app.domain.inventory.models import (
    DEFAULT_SHELF_LIFE_DAYS,
    NO_DEMAND_COVER_DAYS,
    Lot,
    LotStatus,
    LowStockRule,
    PlanningSettings,
    PlanningView,
    Product,
    SalesRecord,
)

logger = logging.getLogger(__name__)

FRESHNESS_FRACTION = 0.8
SECONDS_PER_DAY = 86400


def expiry_moment(expiry: date, now: datetime) -> datetime:
    """Expiry date as a timestamp at midnight, in ``now``'s timezone."""
    return datetime.combine(expiry, time.min, tzinfo=now.tzinfo)


def days_until(expiry: date, now: datetime) -> float:
    """Fractional days from ``now`` to the start of the expiry date."""
    return (expiry_moment(expiry, now) - now).total_seconds() / SECONDS_PER_DAY


def is_non_expired(lot: Lot, now: datetime) -> bool:
    """Lot has no expiry date or expires strictly after ``now``."""
    return lot.expiry_date is None or expiry_moment(lot.expiry_date, now) > now


def is_expiring_soon(lot: Lot, now: datetime, warning_days: float) -> bool:
    """Lot expires within (0, warning_days] days of ``now``."""
    if lot.expiry_date is None:
        return False
    diff = days_until(lot.expiry_date, now)
    return 0 < diff <= warning_days


def stock_cover_days(stock: float, daily: float) -> float:
    """Days of cover at current daily demand.

    Returns 999.0 if there is no measurable demand.

    Examples:
        >>> stock_cover_days(100, 10.0)
        10.0
        >>> stock_cover_days(100, 0.0)
        999.0

    """
    if daily <= 0:
        return NO_DEMAND_COVER_DAYS
    return stock / daily


def ceil_to_multiplicity(qty: float, mult: int) -> float:
    """Round quantity up to nearest multiple of ``mult``."""
    if mult <= 0:
        return qty
    return math.ceil(qty / mult) * mult


def apply_freshness_cap(
    suggested: float, daily: float, shelf_life_days: float, available_stock: float
) -> tuple[float, bool, float]:
    """Cap an order so stock on hand stays sellable within 80% of shelf life.

    Returns:
        Tuple (capped_qty, cap_applied, cap_qty)

    """
    max_fresh_stock = daily * shelf_life_days * FRESHNESS_FRACTION
    cap_qty = max(0.0, max_fresh_stock - available_stock)
    capped = min(suggested, cap_qty)
    return capped, capped < suggested, cap_qty


def apply_order_constraints(qty: float, moq: int, pack_size: int) -> float:
    """Raise a positive quantity to the MOQ, then round up to the pack size."""
    if 0 < qty < moq:
        qty = moq
    if qty > 0 and pack_size > 0:
        qty = ceil_to_multiplicity(qty, pack_size)
    return qty


def compute_planning(
    product: Product,
    lots: Sequence[Lot],
    sales_history: Sequence[SalesRecord],
    settings: PlanningSettings,
    now: datetime,
) -> PlanningView:
    """Compute the planning view of one product.

    Algorithm:
    1. Keep the product's available lots; split non-expired / expiring soon
    2. Available stock = sum over non-expired lots
    3. Forecast monthly demand, convert to daily
    4. Safety stock and reorder point from lead time
    5. Raw suggestion = reorder point + review period demand - stock
    6. Freshness cap (80% of shelf life)
    7. MOQ and pack rounding, after the cap (may exceed it)
    8. Days cover before and after the order
    9. Low stock flag by the configured rule

    Args:
        product: Product master data
        lots: Lots (any product; filtered here)
        sales_history: Sales records (any product; filtered here)
        settings: Global planning settings
        now: Reference time

    Returns:
        PlanningView with all computed figures

    """
    active_lots = [
        lot for lot in lots if lot.product_id == product.id and lot.status == LotStatus.AVAILABLE
    ]
    non_expired = [lot for lot in active_lots if is_non_expired(lot, now)]
    expiring_soon = [
        lot for lot in active_lots if is_expiring_soon(lot, now, settings.expiry_warning_days)
    ]

    available_stock = float(sum(lot.quantity_remaining for lot in non_expired))

    product_sales = [s for s in sales_history if s.product_id == product.id]
    monthly = avg_monthly_demand(product_sales, settings.forecast_method, settings.weights, now)
    daily = daily_demand(monthly)

    safety_stock = daily * settings.safety_stock_days
    lead_time = product.lead_time_days or settings.default_lead_time_days
    reorder_point = daily * lead_time + safety_stock

    raw = max(0.0, reorder_point + daily * settings.review_period_days - available_stock)

    shelf_life = (
        product.shelf_life_days if product.shelf_life_days is not None else DEFAULT_SHELF_LIFE_DAYS
    )
    capped, cap_applied, cap_qty = apply_freshness_cap(raw, daily, shelf_life, available_stock)

    suggested = apply_order_constraints(capped, product.moq, product.pack_size)

    days_cover = stock_cover_days(available_stock, daily)
    projected_cover = stock_cover_days(available_stock + suggested, daily)

    if settings.low_stock_rule == LowStockRule.BELOW_DAYS_COVER:
        # 999 is "no demand", never low, even with a threshold above 999
        low_stock = daily > 0 and days_cover < settings.low_stock_days_cover_threshold
    else:
        low_stock = available_stock < reorder_point

    logger.debug(
        f"Planned {product.sku_code}: stock={available_stock:g} daily={daily:.3f} "
        f"rop={reorder_point:.1f} suggested={suggested:g} cap_applied={cap_applied}"
    )

    return PlanningView(
        product=product,
        lots=active_lots,
        sales=product_sales,
        available_stock=available_stock,
        avg_monthly_demand=monthly,
        daily_demand=daily,
        safety_stock=safety_stock,
        reorder_point=reorder_point,
        suggested_order_qty=suggested,
        freshness_cap_applied=cap_applied,
        freshness_cap_qty=cap_qty,
        days_cover=days_cover,
        projected_days_cover_after_order=projected_cover,
        low_stock_flag=low_stock,
        expiring_soon_lots=expiring_soon,
    )


def compute_planning_views(
    products: Sequence[Product],
    lots: Sequence[Lot],
    sales_history: Sequence[SalesRecord],
    settings: PlanningSettings,
    now: datetime,
) -> list[PlanningView]:
    """Planning view for every product in catalog order."""
    return [compute_planning(p, lots, sales_history, settings, now) for p in products]
