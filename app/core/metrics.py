"""Prometheus metrics for monitoring."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# Planning metrics
planning_recompute_duration_seconds = Histogram(
    "planning_recompute_duration_seconds",
    "Duration of one planning + alert detection pass",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)

planning_products_total = Gauge(
    "planning_products_total",
    "Number of products in the last planning pass",
)

planning_low_stock_products = Gauge(
    "planning_low_stock_products",
    "Number of products flagged low on stock in the last planning pass",
)

planning_order_suggestions = Gauge(
    "planning_order_suggestions",
    "Number of products with a positive suggested order in the last pass",
)

# Alert metrics
inventory_alerts_emitted_total = Counter(
    "inventory_alerts_emitted_total",
    "Total inventory alerts created",
    ["type"],  # type: lowStock, expiry
)

inventory_alerts_suppressed_total = Counter(
    "inventory_alerts_suppressed_total",
    "Alert conditions held back by a pending or cooling-down alert",
    ["type"],
)

inventory_alert_transitions_total = Counter(
    "inventory_alert_transitions_total",
    "Total alert status transitions",
    ["status"],  # status: sent, dismissed
)

# Error metrics
errors_total = Counter(
    "errors_total",
    "Total errors by type",
    ["error_type", "component"],
)
