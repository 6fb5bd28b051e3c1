"""Inventory service: in-memory snapshot around the planning engine.

Holds the current products, lots, sales, settings and alerts, runs the
planning calculator and alert detector on every recompute, and applies the
explicit user actions (alert sent/dismissed, sales entry, stock count).

Persistence and notification delivery belong to the caller. The service is
not thread-safe; callers serialize access so that two detection passes never
insert duplicate alerts for the same cooldown window.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from app.core.config import get_settings
from app.core.logging import set_pass_id
from app.core.metrics import (
    errors_total,
    inventory_alert_transitions_total,
    inventory_alerts_emitted_total,
    inventory_alerts_suppressed_total,
    planning_low_stock_products,
    planning_order_suggestions,
    planning_products_total,
    planning_recompute_duration_seconds,
)
from app.domain.inventory.alerts import detect_alerts
from app.domain.inventory.explain import estimated_order_cost, generate_explanation, generate_hash
from app.domain.inventory.models import (
    Alert,
    AlertStatus,
    AlertType,
    CountReason,
    Lot,
    LotStatus,
    PlanningSettings,
    PlanningView,
    Product,
    SalesRecord,
    StockCountEntry,
)
from app.domain.inventory.planning import compute_planning_views

logger = logging.getLogger(__name__)


class InventoryError(Exception):
    """Base error for inventory service operations."""


class NotFoundError(InventoryError):
    """Referenced product, lot or alert does not exist."""


class InvalidAlertTransition(InventoryError):
    """Alert status change other than pending -> sent | dismissed."""


class LotNotCountable(InventoryError):
    """Stock count on a lot that is expired or damaged."""


@dataclass
class InventorySnapshot:
    """Current in-memory state consumed by the engine."""

    settings: PlanningSettings
    products: list[Product] = field(default_factory=list)
    lots: list[Lot] = field(default_factory=list)
    sales: list[SalesRecord] = field(default_factory=list)
    alerts: list[Alert] = field(default_factory=list)
    stock_counts: list[StockCountEntry] = field(default_factory=list)


@dataclass
class RecomputeResult:
    """Output of one planning + detection pass."""

    views: list[PlanningView]
    new_alerts: list[Alert]
    pass_id: str


class InventoryService:
    """Service for planning recompute and alert lifecycle."""

    def __init__(self, snapshot: InventorySnapshot | None = None, metrics_enabled: bool | None = None):
        """Initialize with a snapshot (default: empty, settings from config).

        Configuration is read only for values not passed in.
        """
        if snapshot is None:
            snapshot = InventorySnapshot(settings=get_settings().default_planning_settings())
        if metrics_enabled is None:
            metrics_enabled = get_settings().metrics_enabled
        self.snapshot = snapshot
        self.metrics_enabled = metrics_enabled

    # === Lookups ===

    def _product(self, product_id: str) -> Product:
        for p in self.snapshot.products:
            if p.id == product_id:
                return p
        raise NotFoundError(f"Product {product_id} not found")

    def _index_of(self, items: list[Any], item_id: str, kind: str) -> int:
        for idx, item in enumerate(items):
            if item.id == item_id:
                return idx
        raise NotFoundError(f"{kind} {item_id} not found")

    # === Planning ===

    def planning_views(self, now: datetime) -> list[PlanningView]:
        """Planning view for every product in the snapshot."""
        s = self.snapshot
        return compute_planning_views(s.products, s.lots, s.sales, s.settings, now)

    def recompute(self, now: datetime) -> RecomputeResult:
        """Run planning for all products, then detect and store new alerts.

        Idempotent: with an unchanged snapshot the second call returns no
        new alerts, since the first call's alerts are pending.

        Args:
            now: Reference time for planning and cooldowns

        Returns:
            RecomputeResult with views and newly created alerts

        """
        pass_id = set_pass_id()
        started = time.perf_counter()

        views = self.planning_views(now)
        new_alerts = detect_alerts(views, self.snapshot.alerts, self.snapshot.settings, now)
        self.snapshot.alerts = [*self.snapshot.alerts, *new_alerts]

        low_stock_count = sum(1 for v in views if v.low_stock_flag)
        order_count = sum(1 for v in views if v.suggested_order_qty > 0)

        if self.metrics_enabled:
            self._record_metrics(views, new_alerts, low_stock_count, order_count)
            planning_recompute_duration_seconds.observe(time.perf_counter() - started)

        logger.info(
            f"Recompute {pass_id}: {len(views)} products, {low_stock_count} low stock, "
            f"{order_count} to order, {len(new_alerts)} new alerts"
        )

        return RecomputeResult(views=views, new_alerts=new_alerts, pass_id=pass_id)

    def _record_metrics(
        self,
        views: list[PlanningView],
        new_alerts: list[Alert],
        low_stock_count: int,
        order_count: int,
    ) -> None:
        planning_products_total.set(len(views))
        planning_low_stock_products.set(low_stock_count)
        planning_order_suggestions.set(order_count)

        flagged = {
            AlertType.LOW_STOCK: low_stock_count,
            AlertType.EXPIRY: sum(1 for v in views if v.expiring_soon_lots),
        }
        for alert_type, flagged_count in flagged.items():
            emitted = sum(1 for a in new_alerts if a.type == alert_type)
            if emitted:
                inventory_alerts_emitted_total.labels(type=alert_type.value).inc(emitted)
            if flagged_count > emitted:
                inventory_alerts_suppressed_total.labels(type=alert_type.value).inc(
                    flagged_count - emitted
                )

    def order_plan(self, views: list[PlanningView]) -> list[dict[str, Any]]:
        """Order plan rows for products with a positive suggestion.

        Returns:
            List of dicts: sku, name, available_stock, suggested_qty,
            estimated_cost, explanation, rationale_hash

        """
        currency = self.snapshot.settings.currency_symbol
        return [
            {
                "sku": v.product.sku_code,
                "name": v.product.name,
                "available_stock": v.available_stock,
                "suggested_qty": v.suggested_order_qty,
                "estimated_cost": estimated_order_cost(v),
                "freshness_cap_applied": v.freshness_cap_applied,
                "explanation": generate_explanation(v, currency),
                "rationale_hash": generate_hash(v),
            }
            for v in views
            if v.suggested_order_qty > 0
        ]

    # === Alerts ===

    def _transition(self, alert_id: str, status: AlertStatus, now: datetime | None) -> Alert:
        idx = self._index_of(self.snapshot.alerts, alert_id, "Alert")
        alert = self.snapshot.alerts[idx]

        if alert.status != AlertStatus.PENDING:
            if self.metrics_enabled:
                errors_total.labels(error_type="invalid_transition", component="alerts").inc()
            raise InvalidAlertTransition(
                f"Alert {alert_id} is {alert.status.value}, cannot mark {status.value}"
            )

        update: dict[str, Any] = {"status": status}
        if status == AlertStatus.SENT:
            update["last_sent_at"] = now
            update["recipients_snapshot"] = list(self.snapshot.settings.notification_recipients)

        updated = alert.model_copy(update=update)
        self.snapshot.alerts[idx] = updated

        if self.metrics_enabled:
            inventory_alert_transitions_total.labels(status=status.value).inc()
        logger.info(f"Alert {alert_id} marked {status.value}")
        return updated

    def mark_alert_sent(self, alert_id: str, now: datetime) -> Alert:
        """Mark a pending alert as sent, starting its cooldown."""
        return self._transition(alert_id, AlertStatus.SENT, now)

    def dismiss_alert(self, alert_id: str) -> Alert:
        """Dismiss a pending alert."""
        return self._transition(alert_id, AlertStatus.DISMISSED, None)

    def pending_alerts(self) -> list[Alert]:
        """Pending alerts, newest first."""
        return [a for a in self.alert_history() if a.status == AlertStatus.PENDING]

    def alert_history(self) -> list[Alert]:
        """All alerts, newest first."""
        return sorted(self.snapshot.alerts, key=lambda a: a.created_at, reverse=True)

    # === Snapshot edits ===

    def upsert_sales(self, product_id: str, month: str, quantity_sold: float) -> SalesRecord:
        """Insert or replace the sales record for (product, month)."""
        self._product(product_id)

        for idx, record in enumerate(self.snapshot.sales):
            if record.product_id == product_id and record.month == month:
                updated = SalesRecord(
                    id=record.id, product_id=product_id, month=month, quantity_sold=quantity_sold
                )
                self.snapshot.sales[idx] = updated
                logger.debug(f"Sales {product_id} {month} updated to {quantity_sold}")
                return updated

        record = SalesRecord(
            id=uuid.uuid4().hex,
            product_id=product_id,
            month=month,
            quantity_sold=quantity_sold,
        )
        self.snapshot.sales.append(record)
        logger.debug(f"Sales {product_id} {month} recorded: {quantity_sold}")
        return record

    def record_stock_count(
        self,
        lot_id: str,
        counted_qty: float,
        now: datetime,
        reason: CountReason = CountReason.ROUTINE,
        notes: str | None = None,
    ) -> StockCountEntry:
        """Record a stock count and replace the lot's remaining quantity.

        Only available lots are counted; expired and damaged stock is out of
        the stock take.
        """
        idx = self._index_of(self.snapshot.lots, lot_id, "Lot")
        status = self.snapshot.lots[idx].status
        if status != LotStatus.AVAILABLE:
            raise LotNotCountable(
                f"Lot {lot_id} is {status.value}, only available lots are counted"
            )

        entry = StockCountEntry(
            id=uuid.uuid4().hex,
            counted_at=now,
            lot_id=lot_id,
            counted_qty=counted_qty,
            reason=reason,
            notes=notes,
        )
        self.snapshot.stock_counts.append(entry)
        self.snapshot.lots[idx] = self.snapshot.lots[idx].model_copy(
            update={"quantity_remaining": entry.counted_qty}
        )

        logger.info(f"Stock count on lot {lot_id}: {counted_qty:g} ({reason.value})")
        return entry

    def update_settings(self, **changes: Any) -> PlanningSettings:
        """Replace the global settings with a validated, edited copy."""
        merged = {**self.snapshot.settings.model_dump(), **changes}
        self.snapshot.settings = PlanningSettings.model_validate(merged)
        logger.info(f"Settings updated: {sorted(changes)}")
        return self.snapshot.settings
