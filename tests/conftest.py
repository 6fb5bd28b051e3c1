"""Shared pytest fixtures and configuration."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from app.core.config import Settings, get_settings
from app.domain.inventory.models import Lot, LotStatus, PlanningSettings, Product, SalesRecord

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch, tmp_path):
    """Isolate tests from the developer's .env, environment and cached settings."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name.upper(), raising=False)
    # No .env in the working directory
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def now() -> datetime:
    """Fixed reference time: 2024-06-15 12:00 UTC."""
    return NOW


@pytest.fixture
def settings() -> PlanningSettings:
    """Settings where 2 units/day gives a reorder point of 20."""
    return PlanningSettings(
        default_lead_time_days=7,
        safety_stock_days=3,
        review_period_days=7,
        low_stock_days_cover_threshold=21,
        expiry_warning_days=60,
        notification_cooldown_hours=24,
    )


@pytest.fixture
def make_product():
    """Factory for products (defaults: pack 1, no MOQ, 365-day shelf life)."""

    def _make(product_id: str = "p1", **overrides) -> Product:
        data = {
            "id": product_id,
            "sku_code": f"SKU-{product_id.upper()}",
            "name": f"Product {product_id}",
            "pack_size": 1,
            "moq": 0,
            "cost_per_unit": 10.0,
        }
        data.update(overrides)
        return Product(**data)

    return _make


@pytest.fixture
def make_lot():
    """Factory for available lots."""
    counter = {"n": 0}

    def _make(
        product_id: str = "p1",
        qty: float = 10,
        expiry: date | None = None,
        status: LotStatus = LotStatus.AVAILABLE,
        **overrides,
    ) -> Lot:
        counter["n"] += 1
        data = {
            "id": f"lot-{counter['n']}",
            "product_id": product_id,
            "lot_number": f"L{counter['n']:03d}",
            "status": status,
            "quantity_remaining": qty,
            "expiry_date": expiry,
        }
        data.update(overrides)
        return Lot(**data)

    return _make


@pytest.fixture
def make_sale():
    """Factory for monthly sales records."""

    def _make(month: str, qty: float, product_id: str = "p1") -> SalesRecord:
        return SalesRecord(
            id=f"{product_id}-{month}", product_id=product_id, month=month, quantity_sold=qty
        )

    return _make


@pytest.fixture
def two_per_day(make_sale) -> list[SalesRecord]:
    """One month of history averaging exactly 2 units/day (60.8 / 30.4)."""
    return [make_sale("2024-06", 60.8)]
