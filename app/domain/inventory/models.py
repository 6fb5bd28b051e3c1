"""Domain records for perishable inventory planning.

All records are immutable snapshots. Changes produce new instances via
``model_copy(update=...)``; the planning engine never mutates its inputs.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SHELF_LIFE_DAYS = 365
NO_DEMAND_COVER_DAYS = 999.0


class Category(str, Enum):
    """Product categories."""

    CLEX = "Clex"
    BROWSER = "Browser"
    SEGAWEAN = "Segawean"
    OTHER = "Other"


class LotStatus(str, Enum):
    """Physical state of a lot."""

    AVAILABLE = "available"
    EXPIRED = "expired"
    DAMAGED = "damaged"


class ForecastMethod(str, Enum):
    """Monthly demand forecasting method."""

    SIMPLE_AVERAGE_6_MONTHS = "simpleAverage6Months"
    WEIGHTED_AVERAGE = "weightedAverage"


class LowStockRule(str, Enum):
    """Rule deciding when a product is flagged as low on stock."""

    BELOW_DAYS_COVER = "belowDaysCover"
    BELOW_REORDER_POINT = "belowReorderPoint"


class AlertType(str, Enum):
    """Alert kinds raised by the detector."""

    LOW_STOCK = "lowStock"
    EXPIRY = "expiry"


class AlertStatus(str, Enum):
    """Alert lifecycle: pending -> sent | dismissed."""

    PENDING = "pending"
    SENT = "sent"
    DISMISSED = "dismissed"


class CountReason(str, Enum):
    """Reason recorded with a stock count."""

    ADJUSTMENT = "adjustment"
    DAMAGE = "damage"
    CORRECTION = "correction"
    ROUTINE = "routine"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class Product(_Record):
    """Product master data (what we stock, not how much)."""

    id: str
    sku_code: str
    name: str
    category: Category = Category.OTHER
    pack_size: int = Field(1, ge=0, description="Units per order multiple")
    lead_time_days: int | None = Field(None, ge=0, description="None/0 = use settings default")
    moq: int = Field(0, ge=0, description="Minimum order quantity")
    cost_per_unit: float = Field(0.0, ge=0)
    shelf_life_days: int | None = Field(None, ge=0, description="None = 365 days")
    notes: str | None = None


class Lot(_Record):
    """Physical batch of a product with its own expiry and quantity."""

    id: str
    product_id: str
    lot_number: str
    status: LotStatus = LotStatus.AVAILABLE
    quantity_remaining: float = Field(0, ge=0)
    expiry_date: date | None = None
    received_date: date | None = None
    quantity_received: float | None = Field(None, ge=0)
    notes: str | None = None


class SalesRecord(_Record):
    """Units sold for one product in one calendar month."""

    id: str
    product_id: str
    month: str = Field(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$", description="YYYY-MM")
    quantity_sold: float = Field(0, ge=0)


class PlanningSettings(_Record):
    """Global policy settings (exactly one instance per snapshot)."""

    # Edits with a misspelled field must fail rather than be dropped
    model_config = ConfigDict(frozen=True, extra="forbid")

    default_lead_time_days: int = Field(14, ge=0)
    safety_stock_days: float = Field(7, ge=0)
    review_period_days: float = Field(7, ge=0)
    low_stock_days_cover_threshold: float = Field(21, ge=0)
    expiry_warning_days: float = Field(60, ge=0)
    notification_cooldown_hours: float = Field(24, ge=0)
    forecast_method: ForecastMethod = ForecastMethod.SIMPLE_AVERAGE_6_MONTHS
    weights: list[float] = Field(
        default_factory=lambda: [1, 1, 1, 1, 1, 5],
        min_length=6,
        max_length=6,
        description="Oldest month first",
    )
    low_stock_rule: LowStockRule = LowStockRule.BELOW_DAYS_COVER
    currency_symbol: str = "R"
    notification_recipients: list[str] = Field(default_factory=list)

    @field_validator("weights")
    @classmethod
    def _non_negative_weights(cls, v: list[float]) -> list[float]:
        if any(w < 0 for w in v):
            raise ValueError("weights must be non-negative")
        return v


class PlanningView(_Record):
    """Product joined with its lots, sales and computed planning figures.

    Derived on every snapshot change and never stored.
    """

    product: Product
    lots: list[Lot]
    sales: list[SalesRecord]
    available_stock: float
    avg_monthly_demand: float
    daily_demand: float
    safety_stock: float
    reorder_point: float
    suggested_order_qty: float
    freshness_cap_applied: bool
    freshness_cap_qty: float
    days_cover: float
    projected_days_cover_after_order: float
    low_stock_flag: bool
    expiring_soon_lots: list[Lot]


class Alert(_Record):
    """Detected inventory issue awaiting manual action."""

    id: str
    created_at: datetime
    product_id: str
    type: AlertType
    message: str
    status: AlertStatus = AlertStatus.PENDING
    last_sent_at: datetime | None = None
    recipients_snapshot: list[str] | None = None


class StockCountEntry(_Record):
    """Audit entry written by a stock take."""

    id: str
    counted_at: datetime
    lot_id: str
    counted_qty: float = Field(..., ge=0)
    reason: CountReason = CountReason.ROUTINE
    notes: str | None = None


__all__ = [
    "DEFAULT_SHELF_LIFE_DAYS",
    "NO_DEMAND_COVER_DAYS",
    "Alert",
    "AlertStatus",
    "AlertType",
    "Category",
    "CountReason",
    "ForecastMethod",
    "Lot",
    "LotStatus",
    "LowStockRule",
    "PlanningSettings",
    "PlanningView",
    "Product",
    "SalesRecord",
    "StockCountEntry",
]
