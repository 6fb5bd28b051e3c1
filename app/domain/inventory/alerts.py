"""Low-stock and expiry alert detection with pending/cooldown suppression.

The detector only decides whether to create a new pending alert. Sending,
dismissing and storing alerts belong to the caller.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, timezone

from app.domain.inventory.models import (
    Alert,
    AlertStatus,
    AlertType,
    PlanningSettings,
    PlanningView,
)

logger = logging.getLogger(__name__)


def round_half_up(x: float) -> int:
    """Round to nearest integer, halves away from zero for positives."""
    return math.floor(x + 0.5)


def format_qty(x: float) -> str:
    """Render a quantity without a trailing ``.0`` for whole numbers.

    Fractions keep at most two decimals. Non-zero amounts too small for two
    decimals fall back to two significant digits so they never print as 0.
    """
    if float(x).is_integer():
        return str(int(x))
    text = f"{x:.2f}".rstrip("0").rstrip(".")
    if text in ("0", "-0"):
        return f"{x:.2g}"
    return text


def _as_utc(moment: datetime) -> datetime:
    """Absolute UTC instant; naive values are taken to be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def is_suppressed(
    existing_alerts: Iterable[Alert],
    product_id: str,
    alert_type: AlertType,
    now: datetime,
    cooldown_hours: float,
) -> bool:
    """Check whether an existing alert blocks a new one.

    An alert of the same product and type suppresses when it is still
    pending, or when it was last sent (or, if never sent, created) less than
    ``cooldown_hours`` ago. Naive and aware datetimes may be mixed; naive
    values are read as UTC.

    Args:
        existing_alerts: Previously stored alerts
        product_id: Product to check
        alert_type: Alert type to check
        now: Reference time
        cooldown_hours: Cooldown window in hours

    Returns:
        True if a new alert must not be emitted

    """
    cooldown = timedelta(hours=cooldown_hours)
    for alert in existing_alerts:
        if alert.product_id != product_id or alert.type != alert_type:
            continue
        if alert.status == AlertStatus.PENDING:
            return True
        reference = alert.last_sent_at or alert.created_at
        if _as_utc(now) - _as_utc(reference) < cooldown:
            return True
    return False


def make_alert_id(alert_type: AlertType, product_id: str, now: datetime) -> str:
    """Alert id from type, product and timestamp, unique per emission."""
    millis = int(now.timestamp() * 1000)
    return f"{alert_type.value}_{product_id}_{millis}_{uuid.uuid4().hex[:8]}"


def low_stock_message(view: PlanningView) -> str:
    """Summary line for a low stock alert."""
    return (
        f"Low Stock: {view.product.name} | Current: {format_qty(view.available_stock)} "
        f"| Days Cover: {round_half_up(view.days_cover)}"
    )


def expiry_message(view: PlanningView) -> str:
    """Summary line listing every lot expiring soon."""
    lots = ", ".join(
        f"{lot.lot_number} (exp. {lot.expiry_date.isoformat()})" for lot in view.expiring_soon_lots
    )
    return f"Expiry Warning: {view.product.name} | Lots: {lots}"


def _new_alert(alert_type: AlertType, view: PlanningView, message: str, now: datetime) -> Alert:
    return Alert(
        id=make_alert_id(alert_type, view.product.id, now),
        created_at=now,
        product_id=view.product.id,
        type=alert_type,
        message=message,
        status=AlertStatus.PENDING,
    )


def detect_alerts(
    planning_views: Sequence[PlanningView],
    existing_alerts: Sequence[Alert],
    settings: PlanningSettings,
    now: datetime,
) -> list[Alert]:
    """Scan planning views for new low stock and expiry alerts.

    At most one alert of each type per product is emitted per call. Inputs
    are never modified.

    Args:
        planning_views: Planning views for all products
        existing_alerts: Alerts already stored (any status)
        settings: Global planning settings (cooldown)
        now: Reference time

    Returns:
        Newly qualifying pending alerts

    """
    cooldown_hours = settings.notification_cooldown_hours
    new_alerts: list[Alert] = []

    for view in planning_views:
        product_id = view.product.id

        if view.low_stock_flag:
            if is_suppressed(existing_alerts, product_id, AlertType.LOW_STOCK, now, cooldown_hours):
                logger.debug(f"Low stock alert for {product_id} suppressed")
            else:
                new_alerts.append(
                    _new_alert(AlertType.LOW_STOCK, view, low_stock_message(view), now)
                )

        if view.expiring_soon_lots:
            if is_suppressed(existing_alerts, product_id, AlertType.EXPIRY, now, cooldown_hours):
                logger.debug(f"Expiry alert for {product_id} suppressed")
            else:
                new_alerts.append(_new_alert(AlertType.EXPIRY, view, expiry_message(view), now))

    return new_alerts
