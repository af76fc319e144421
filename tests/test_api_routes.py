import pytest
from fastapi import HTTPException, Response
from pydantic import ValidationError as SchemaValidationError

from liquidity.api import routes
from liquidity.api.schemas import AllocationRequest, PoolCreateRequest, PriceRefreshRequest, SaleRequest
from liquidity.api.security import require_api_key
from liquidity.core.config import settings
from liquidity.services.alert_events import AlertEventHandler
from liquidity.services.audit_service import AuditService
from liquidity.services.snapshot_service import SnapshotService
from liquidity.services.valuation_service import ValuationRecalculator


class StubMarketDataService:
    def __init__(self, prices):
        self.prices = prices
        self.requested = []

    async def get_latest_prices(self, symbols):
        self.requested.append(symbols)
        return {s: self.prices[s] for s in symbols if s in self.prices}


@pytest.fixture
def wired(accountant, monkeypatch):
    market = StubMarketDataService({"ABC": 12.0})
    monkeypatch.setattr(routes, "accountant", accountant)
    monkeypatch.setattr(routes, "recalculator", ValuationRecalculator(accountant))
    monkeypatch.setattr(routes, "market_data_service", market)
    monkeypatch.setattr(routes, "audit_service", AuditService(accountant))
    monkeypatch.setattr(routes, "snapshot_service", SnapshotService(accountant))
    monkeypatch.setattr(routes, "alert_handler", AlertEventHandler(accountant))
    monkeypatch.setattr(routes, "notification_service", None)
    monkeypatch.setattr(routes, "public_cache", {})
    monkeypatch.setattr(routes, "public_cache_expiry", {})
    return market


@pytest.mark.asyncio
async def test_pool_lifecycle_through_routes(wired):
    await routes.create_pool(PoolCreateRequest(name="TraderCall", initial_capital=1000.0))
    allocation = await routes.allocate(
        "TraderCall",
        AllocationRequest(instrument_id="alert-1", symbol="abc", entry_price=10.0, percentage=30),
    )
    assert allocation["symbol"] == "ABC"
    assert allocation["shares"] == 30

    refreshed = await routes.refresh_prices("TraderCall", PriceRefreshRequest())
    assert wired.requested == [["ABC"]]
    assert refreshed["total_capital"] == pytest.approx(1060.0)

    sale = await routes.sell_position("TraderCall", "alert-1", SaleRequest(sell_price=12.0, complete=True))
    assert sale["is_complete_sale"]

    pool = await routes.get_pool("TraderCall")
    assert pool["available_capital"] == pytest.approx(1060.0)

    ledger = await routes.get_ledger("TraderCall")
    assert ledger["count"] == 2

    verify = await routes.verify_pool("TraderCall")
    assert verify["matches"]


@pytest.mark.asyncio
async def test_domain_errors_map_to_status_codes(wired):
    await routes.create_pool(PoolCreateRequest(name="TraderCall", initial_capital=1000.0))

    with pytest.raises(HTTPException) as exists:
        await routes.create_pool(PoolCreateRequest(name="TraderCall", initial_capital=1000.0))
    assert exists.value.status_code == 409
    assert exists.value.detail["error_code"] == "liquidity.already_exists"

    with pytest.raises(HTTPException) as capital:
        await routes.allocate(
            "TraderCall",
            AllocationRequest(instrument_id="alert-1", symbol="ABC", entry_price=10.0, amount=5000.0),
        )
    assert capital.value.status_code == 400
    assert capital.value.detail["error_code"] == "liquidity.insufficient_capital"

    with pytest.raises(HTTPException) as missing:
        await routes.sell_position("TraderCall", "alert-9", SaleRequest(sell_price=12.0, shares=1))
    assert missing.value.status_code == 404

    with pytest.raises(HTTPException) as unknown:
        await routes.get_pool("Nope")
    assert unknown.value.status_code == 404


def test_request_schemas_reject_ambiguous_sizes():
    with pytest.raises(SchemaValidationError):
        AllocationRequest(instrument_id="a", symbol="ABC", entry_price=10.0)
    with pytest.raises(SchemaValidationError):
        AllocationRequest(instrument_id="a", symbol="ABC", entry_price=10.0, percentage=10, amount=100)
    with pytest.raises(SchemaValidationError):
        SaleRequest(sell_price=10.0, shares=1, complete=True)
    with pytest.raises(SchemaValidationError):
        SaleRequest(sell_price=10.0, percentage=150)
    with pytest.raises(SchemaValidationError):
        AllocationRequest(instrument_id="a", symbol="ABC", entry_price=10.0, percentage=10, execution_method="bot")


@pytest.mark.asyncio
async def test_routes_unavailable_without_services(monkeypatch):
    monkeypatch.setattr(routes, "accountant", None)
    with pytest.raises(HTTPException) as exc:
        await routes.list_pools()
    assert exc.value.status_code == 503


@pytest.mark.asyncio
async def test_public_pool_view_hides_operator_fields(wired, monkeypatch):
    monkeypatch.setattr(settings, "API_AUTH_ENABLED", True)
    await routes.create_pool(PoolCreateRequest(name="TraderCall", initial_capital=1000.0))
    await routes.allocate(
        "TraderCall",
        AllocationRequest(instrument_id="alert-1", symbol="ABC", entry_price=10.0, percentage=30),
    )
    response = Response()

    view = await routes.get_public_pool("TraderCall", response)

    assert not any(dep.dependency is require_api_key for dep in routes.public_router.dependencies)
    assert response.headers["Cache-Control"] == f"public, max-age={settings.PUBLIC_CACHE_SECONDS}"
    assert set(view) == {"pool", "total_capital", "positions", "updated_at"}
    assert view["total_capital"] == pytest.approx(1000.0)
    position = view["positions"][0]
    assert position["symbol"] == "ABC"
    assert position["allocated_amount"] == pytest.approx(300.0)
    assert "sale_history" not in position
    assert "status" not in position


@pytest.mark.asyncio
async def test_public_pool_view_is_cached(wired, monkeypatch):
    monkeypatch.setattr(settings, "PUBLIC_CACHE_SECONDS", 60)
    await routes.create_pool(PoolCreateRequest(name="TraderCall", initial_capital=1000.0))
    first = await routes.get_public_pool("TraderCall", Response())
    await routes.allocate(
        "TraderCall",
        AllocationRequest(instrument_id="alert-1", symbol="ABC", entry_price=10.0, percentage=30),
    )

    cached = await routes.get_public_pool("TraderCall", Response())
    assert cached == first
    assert cached["positions"] == []

    routes.public_cache_expiry.clear()
    fresh = await routes.get_public_pool("TraderCall", Response())
    assert [p["symbol"] for p in fresh["positions"]] == ["ABC"]


@pytest.mark.asyncio
async def test_public_pool_view_unknown_pool(wired):
    with pytest.raises(HTTPException) as exc:
        await routes.get_public_pool("Nope", Response())
    assert exc.value.status_code == 404
    assert exc.value.detail == {
        "error_code": "liquidity.pool_not_found",
        "message": exc.value.detail["message"],
        "context": {"pool": "Nope"},
    }
