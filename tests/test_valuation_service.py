from datetime import datetime, timezone

import pytest

from liquidity.core.config import settings
from liquidity.services.valuation_service import (
    ValuationRecalculator,
    ValuationScheduler,
    is_market_open,
    lookup_price,
)


def test_lookup_price_prefers_instrument_id_and_skips_bad_values():
    assert lookup_price({"alert-1": 12.0, "ABC": 11.0}, "alert-1", "ABC") == 12.0
    assert lookup_price({"ABC": 11.0}, "alert-1", "abc") == 11.0
    assert lookup_price({"alert-1": float("nan"), "ABC": 11.0}, "alert-1", "ABC") == 11.0
    assert lookup_price({"alert-1": 0.0}, "alert-1", "ABC") is None
    assert lookup_price({"alert-1": "n/a"}, "alert-1", "ABC") is None


@pytest.mark.asyncio
async def test_refresh_marks_positions_and_is_idempotent(accountant):
    await accountant.initialize_pool("TraderCall", 1000.0)
    await accountant.allocate("TraderCall", "alert-1", "ABC", 10.0, percentage=30)
    recalculator = ValuationRecalculator(accountant)

    first = await recalculator.refresh("TraderCall", {"ABC": 12.0})
    second = await recalculator.refresh("TraderCall", {"ABC": 12.0})

    assert first["updated"] == ["ABC"]
    assert first["total_capital"] == pytest.approx(1060.0)
    assert first["unrealized_pl"] == pytest.approx(60.0)
    assert first["available_capital"] == pytest.approx(700.0)
    for field in ("total_capital", "available_capital", "distributed_capital", "total_profit_loss"):
        assert second[field] == pytest.approx(first[field])
    assert second["positions"][0]["unrealized_pl_percent"] == pytest.approx(20.0)
    assert second["version"] == first["version"]


@pytest.mark.asyncio
async def test_missing_price_keeps_last_valuation(accountant):
    await accountant.initialize_pool("TraderCall", 1000.0)
    await accountant.allocate("TraderCall", "alert-1", "ABC", 10.0, percentage=30)
    await accountant.allocate("TraderCall", "alert-2", "XYZ", 20.0, percentage=20)
    recalculator = ValuationRecalculator(accountant)
    await recalculator.refresh("TraderCall", {"ABC": 11.0, "XYZ": 22.0})

    result = await recalculator.refresh("TraderCall", {"ABC": 12.0, "XYZ": float("inf")})

    assert result["stale"] == ["XYZ"]
    prices = {p["symbol"]: p["current_price"] for p in result["positions"]}
    assert prices == {"ABC": 12.0, "XYZ": 22.0}
    assert result["total_capital"] == pytest.approx(1000.0 + 60.0 + 20.0)


@pytest.mark.asyncio
async def test_refresh_all_uses_price_source(accountant):
    await accountant.initialize_pool("TraderCall", 1000.0)
    await accountant.initialize_pool("SmartMoney", 1000.0)
    await accountant.allocate("TraderCall", "alert-1", "ABC", 10.0, percentage=30)
    requested = []

    async def price_source(symbols):
        requested.append(symbols)
        return {"ABC": 9.0}

    results = await ValuationRecalculator(accountant).refresh_all(price_source)

    assert list(results) == ["TraderCall"]
    assert requested == [["ABC"]]
    assert results["TraderCall"]["total_capital"] == pytest.approx(970.0)


def test_market_hours_in_market_timezone(monkeypatch):
    monkeypatch.setattr(settings, "MARKET_TIMEZONE", "America/New_York")
    monkeypatch.setattr(settings, "MARKET_OPEN", "09:30")
    monkeypatch.setattr(settings, "MARKET_CLOSE", "16:00")

    # Monday 2026-01-05, 15:00 UTC is 10:00 in New York
    assert is_market_open(datetime(2026, 1, 5, 15, 0, tzinfo=timezone.utc))
    assert not is_market_open(datetime(2026, 1, 5, 13, 0, tzinfo=timezone.utc))
    # Saturday
    assert not is_market_open(datetime(2026, 1, 10, 15, 0, tzinfo=timezone.utc))


@pytest.mark.asyncio
async def test_scheduler_skips_refresh_when_market_closed(accountant, monkeypatch):
    monkeypatch.setattr(settings, "REFRESH_OUTSIDE_MARKET_HOURS", False)
    calls = []

    async def price_source(symbols):
        calls.append(symbols)
        return {}

    scheduler = ValuationScheduler(ValuationRecalculator(accountant), price_source, interval=60)

    ran = await scheduler.run_once(datetime(2026, 1, 10, 15, 0, tzinfo=timezone.utc))

    assert not ran
    assert scheduler.last_run is None
