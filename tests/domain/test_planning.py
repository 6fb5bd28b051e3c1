"""Tests for the per-product planning calculator."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from app.domain.inventory.models import ForecastMethod, LotStatus, LowStockRule
from app.domain.inventory.planning import (
    apply_order_constraints,
    ceil_to_multiplicity,
    compute_planning,
    compute_planning_views,
    stock_cover_days,
)


def test_ceil_to_multiplicity():
    """Test rounding to nearest multiple."""
    assert ceil_to_multiplicity(23, 10) == 30
    assert ceil_to_multiplicity(20, 10) == 20
    assert ceil_to_multiplicity(21, 10) == 30
    assert ceil_to_multiplicity(7, 5) == 10
    assert ceil_to_multiplicity(23, 1) == 23
    assert ceil_to_multiplicity(23.5, 0) == 23.5  # No rounding without a pack size


def test_apply_order_constraints():
    assert apply_order_constraints(0, moq=25, pack_size=10) == 0
    assert apply_order_constraints(3, moq=25, pack_size=10) == 30  # MOQ first, then pack
    assert apply_order_constraints(26, moq=25, pack_size=1) == 27
    assert apply_order_constraints(24.2, moq=0, pack_size=0) == 24.2


def test_stock_cover_days_no_demand_sentinel():
    assert stock_cover_days(100, 0.0) == 999.0
    assert stock_cover_days(0, 0.0) == 999.0
    assert stock_cover_days(100, 10.0) == 10.0


def test_moq_raises_suggestion(make_product, make_lot, two_per_day, settings, now):
    """daily=2, stock=10, rop=20, review=7 -> raw 24, MOQ 25 -> 25."""
    product = make_product(moq=25, pack_size=1)
    lots = [make_lot(qty=10)]

    view = compute_planning(product, lots, two_per_day, settings, now)

    assert view.daily_demand == pytest.approx(2.0)
    assert view.available_stock == 10
    assert view.safety_stock == pytest.approx(6.0)
    assert view.reorder_point == pytest.approx(20.0)
    assert view.freshness_cap_applied is False
    assert view.freshness_cap_qty == pytest.approx(2 * 365 * 0.8 - 10)
    assert view.suggested_order_qty == 25
    assert view.days_cover == pytest.approx(5.0)
    assert view.projected_days_cover_after_order == pytest.approx(17.5)


def test_no_moq_keeps_raw_suggestion(make_product, make_lot, two_per_day, settings, now):
    view = compute_planning(make_product(), [make_lot(qty=10)], two_per_day, settings, now)
    assert view.suggested_order_qty == pytest.approx(24.0)


def test_pack_rounding(make_product, make_lot, two_per_day, settings, now):
    """Raw 24 rounds up to a pack of 10 -> 30."""
    view = compute_planning(
        make_product(pack_size=10), [make_lot(qty=10)], two_per_day, settings, now
    )
    assert view.suggested_order_qty == 30
    assert view.suggested_order_qty % 10 == 0


def test_no_sales_means_no_demand(make_product, make_lot, settings, now):
    """No sales: zero demand, 999 cover, never low stock by days cover."""
    settings = settings.model_copy(update={"low_stock_days_cover_threshold": 5000})

    view = compute_planning(make_product(), [make_lot(qty=3)], [], settings, now)

    assert view.avg_monthly_demand == 0
    assert view.daily_demand == 0
    assert view.days_cover == 999
    assert view.projected_days_cover_after_order == 999
    assert view.low_stock_flag is False
    assert view.suggested_order_qty == 0


def test_no_lots_and_no_sales(make_product, settings, now):
    view = compute_planning(make_product(), [], [], settings, now)

    assert view.available_stock == 0
    assert view.suggested_order_qty == 0
    assert view.lots == []
    assert view.expiring_soon_lots == []


def test_expiry_window(make_product, make_lot, settings, now):
    """Lot 10 days out is expiring soon; past lot counts nowhere."""
    soon = make_lot(qty=5, expiry=(now + timedelta(days=10)).date())
    past = make_lot(qty=7, expiry=date(2024, 6, 1))
    later = make_lot(qty=11, expiry=(now + timedelta(days=120)).date())
    no_expiry = make_lot(qty=2)

    view = compute_planning(make_product(), [soon, past, later, no_expiry], [], settings, now)

    assert view.expiring_soon_lots == [soon]
    assert view.available_stock == 5 + 11 + 2
    assert past in view.lots  # still an active (available) lot


def test_lot_expiring_today_is_excluded(make_product, make_lot, settings, now):
    """Expiry date is taken as midnight, so today's date is already past at noon."""
    today = make_lot(qty=5, expiry=now.date())
    tomorrow = make_lot(qty=4, expiry=now.date() + timedelta(days=1))

    view = compute_planning(make_product(), [today, tomorrow], [], settings, now)

    assert view.available_stock == 4
    assert view.expiring_soon_lots == [tomorrow]


def test_only_available_lots_of_product_count(make_product, make_lot, settings, now):
    lots = [
        make_lot(qty=10),
        make_lot(qty=50, status=LotStatus.DAMAGED),
        make_lot(qty=60, status=LotStatus.EXPIRED),
        make_lot(product_id="p2", qty=70),
    ]

    view = compute_planning(make_product(), lots, [], settings, now)

    assert view.available_stock == 10
    assert [lot.id for lot in view.lots] == [lots[0].id]


def test_sales_filtered_by_product(make_product, make_sale, settings, now):
    sales = [make_sale("2024-06", 60.8), make_sale("2024-06", 999, product_id="p2")]

    view = compute_planning(make_product(), [], sales, settings, now)

    assert view.sales == [sales[0]]
    assert view.daily_demand == pytest.approx(2.0)


def test_product_lead_time_overrides_default(make_product, two_per_day, settings, now):
    """Lead time 14 -> rop = 2*14 + 2*3 = 34."""
    view = compute_planning(make_product(lead_time_days=14), [], two_per_day, settings, now)
    assert view.reorder_point == pytest.approx(34.0)


def test_zero_lead_time_falls_back_to_default(make_product, two_per_day, settings, now):
    view = compute_planning(make_product(lead_time_days=0), [], two_per_day, settings, now)
    assert view.reorder_point == pytest.approx(20.0)


def test_weighted_forecast(make_product, make_sale, settings, now):
    settings = settings.model_copy(
        update={"forecast_method": ForecastMethod.WEIGHTED_AVERAGE, "weights": [1, 1, 1, 1, 1, 5]}
    )
    sales = [make_sale("2024-06", 100), make_sale("2024-05", 50), make_sale("2023-12", 1000)]

    view = compute_planning(make_product(), [], sales, settings, now)

    assert view.avg_monthly_demand == pytest.approx(55.0)
    assert view.daily_demand == pytest.approx(55.0 / 30.4)


def test_freshness_cap_applied(make_product, make_lot, two_per_day, settings, now):
    """Shelf life 10: fresh stock 16, cap 6 < raw 24."""
    view = compute_planning(
        make_product(shelf_life_days=10), [make_lot(qty=10)], two_per_day, settings, now
    )

    assert view.freshness_cap_applied is True
    assert view.freshness_cap_qty == pytest.approx(6.0)
    assert view.suggested_order_qty == pytest.approx(6.0)
    assert view.projected_days_cover_after_order == pytest.approx(8.0)


def test_freshness_cap_when_stock_exceeds_fresh_limit(make_product, make_lot, two_per_day, settings, now):
    """Stock above fresh limit: cap is 0 and nothing is ordered."""
    view = compute_planning(
        make_product(shelf_life_days=5, moq=25), [make_lot(qty=10)], two_per_day, settings, now
    )

    assert view.freshness_cap_qty == 0
    assert view.freshness_cap_applied is True
    assert view.suggested_order_qty == 0


def test_moq_may_exceed_freshness_cap(make_product, make_lot, two_per_day, settings, now):
    """MOQ is applied after the cap and may push past it."""
    view = compute_planning(
        make_product(shelf_life_days=10, moq=25), [make_lot(qty=10)], two_per_day, settings, now
    )

    assert view.freshness_cap_qty == pytest.approx(6.0)
    assert view.freshness_cap_applied is True
    assert view.suggested_order_qty == 25


def test_longer_shelf_life_never_decreases_suggestion(make_product, make_lot, two_per_day, settings, now):
    """Suggestion is non-decreasing in shelf life, MOQ rounding included."""
    lots = [make_lot(qty=10)]
    shelf_lives = [0, 5, 10, 15, 20, 100, 365]

    results = [
        compute_planning(
            make_product(shelf_life_days=days, moq=25), lots, two_per_day, settings, now
        )
        for days in shelf_lives
    ]
    quantities = [v.suggested_order_qty for v in results]

    assert quantities == sorted(quantities)
    assert quantities == [0, 0, 25, 25, 25, 25, 25]

    # Boundary: capped 6 lifted to MOQ 25 equals the uncapped 24 lifted to 25
    short, long_ = results[2], results[-1]
    assert short.freshness_cap_applied and not long_.freshness_cap_applied
    assert short.suggested_order_qty > short.freshness_cap_qty
    assert short.suggested_order_qty == long_.suggested_order_qty


def test_default_shelf_life_is_365(make_product, make_lot, two_per_day, settings, now):
    view = compute_planning(make_product(), [make_lot(qty=0)], two_per_day, settings, now)
    assert view.freshness_cap_qty == pytest.approx(2 * 365 * 0.8)


def test_low_stock_below_days_cover(make_product, make_lot, two_per_day, settings, now):
    """Cover 5 days < threshold 21."""
    view = compute_planning(make_product(), [make_lot(qty=10)], two_per_day, settings, now)
    assert view.low_stock_flag is True

    view = compute_planning(make_product(), [make_lot(qty=100)], two_per_day, settings, now)
    assert view.days_cover == pytest.approx(50.0)
    assert view.low_stock_flag is False


def test_low_stock_below_reorder_point(make_product, make_lot, two_per_day, settings, now):
    settings = settings.model_copy(update={"low_stock_rule": LowStockRule.BELOW_REORDER_POINT})

    low = compute_planning(make_product(), [make_lot(qty=19)], two_per_day, settings, now)
    ok = compute_planning(make_product(), [make_lot(qty=20)], two_per_day, settings, now)

    assert low.low_stock_flag is True
    assert ok.low_stock_flag is False


@pytest.mark.parametrize("stock", [0, 3, 10, 37, 200])
@pytest.mark.parametrize("moq,pack", [(0, 1), (25, 1), (0, 12), (7, 5), (30, 0)])
def test_suggestion_respects_moq_and_pack(make_product, make_lot, two_per_day, settings, now, stock, moq, pack):
    view = compute_planning(
        make_product(moq=moq, pack_size=pack), [make_lot(qty=stock)], two_per_day, settings, now
    )

    assert view.suggested_order_qty >= 0
    if view.suggested_order_qty > 0:
        assert view.suggested_order_qty >= moq
        if pack > 0:
            assert view.suggested_order_qty % pack == 0


def test_inputs_not_mutated(make_product, make_lot, two_per_day, settings, now):
    lots = [make_lot(qty=10), make_lot(product_id="p2")]
    lots_before = list(lots)

    compute_planning(make_product(), lots, two_per_day, settings, now)

    assert lots == lots_before


def test_compute_planning_views_one_per_product(make_product, make_lot, settings, now):
    products = [make_product("p1"), make_product("p2")]
    lots = [make_lot("p1", qty=4), make_lot("p2", qty=9)]

    views = compute_planning_views(products, lots, [], settings, now)

    assert [v.product.id for v in views] == ["p1", "p2"]
    assert [v.available_stock for v in views] == [4, 9]
