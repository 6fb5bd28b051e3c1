"""Explainability for order suggestions."""

from __future__ import annotations

import hashlib

from app.domain.inventory.alerts import format_qty, round_half_up
from app.domain.inventory.models import PlanningView


def estimated_order_cost(view: PlanningView) -> float:
    """Cost of the suggested order at the product's unit cost."""
    return round(view.suggested_order_qty * view.product.cost_per_unit, 2)


def generate_explanation(view: PlanningView, currency_symbol: str = "R") -> str:
    """Generate human-readable explanation for an order suggestion.

    Args:
        view: Planning view with recommendation
        currency_symbol: Prefix for the cost figure

    Returns:
        Explanation string

    """
    demand_display = f"demand={view.daily_demand:.2f}/day"
    stock_display = f"stock={format_qty(view.available_stock)}"
    rop_display = f"reorder point={view.reorder_point:.1f}"
    cover_display = f"cover={round_half_up(view.days_cover)}d"
    rec_display = f"suggest {format_qty(view.suggested_order_qty)}"

    explain = (
        f"{view.product.sku_code} {view.product.name}: {demand_display}, {stock_display}, "
        f"{rop_display}, {cover_display} → {rec_display}"
    )

    if view.suggested_order_qty > 0:
        cost = estimated_order_cost(view)
        explain += (
            f" ({currency_symbol}{cost:.2f}, "
            f"cover after order={round_half_up(view.projected_days_cover_after_order)}d)"
        )

    if view.freshness_cap_applied:
        explain += f"; freshness cap {format_qty(round(view.freshness_cap_qty, 2))}"

    return explain


def generate_hash(view: PlanningView) -> str:
    """Generate deterministic hash for the planning rationale.

    Hash based on: product, stock, daily demand, reorder point, suggested qty,
    cap flag

    Returns:
        SHA256 hex digest

    """
    rationale_str = (
        f"{view.product.id}|{view.available_stock:.2f}|{view.daily_demand:.4f}|"
        f"{view.reorder_point:.2f}|{view.suggested_order_qty:.2f}|{int(view.freshness_cap_applied)}"
    )

    return hashlib.sha256(rationale_str.encode()).hexdigest()
