"""Perishable inventory planning and alerting engine."""

from app.domain.inventory.alerts import detect_alerts, is_suppressed
from app.domain.inventory.explain import estimated_order_cost, generate_explanation, generate_hash
from app.domain.inventory.models import (
    Alert,
    AlertStatus,
    AlertType,
    Lot,
    LotStatus,
    PlanningSettings,
    PlanningView,
    Product,
    SalesRecord,
)
from app.domain.inventory.planning import compute_planning, compute_planning_views

__all__ = [
    "Alert",
    "AlertStatus",
    "AlertType",
    "Lot",
    "LotStatus",
    "PlanningSettings",
    "PlanningView",
    "Product",
    "SalesRecord",
    "compute_planning",
    "compute_planning_views",
    "detect_alerts",
    "estimated_order_cost",
    "generate_explanation",
    "generate_hash",
    "is_suppressed",
]
