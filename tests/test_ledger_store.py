import pytest

from liquidity.core.exceptions import PoolNotFoundError


@pytest.mark.asyncio
async def test_summary_by_symbol(accountant):
    await accountant.initialize_pool("TraderCall", 1000.0)
    await accountant.allocate("TraderCall", "alert-1", "ABC", 10.0, percentage=30)
    await accountant.sell("TraderCall", "alert-1", 10, 12.0)
    await accountant.allocate("TraderCall", "alert-2", "XYZ", 5.0, percentage=10)

    summary = {row["symbol"]: row for row in accountant.ledger.summary_by_symbol("TraderCall")}

    assert summary["ABC"]["total_operations"] == 2
    assert summary["ABC"]["total_quantity"] == pytest.approx(20.0)
    assert summary["ABC"]["total_amount"] == pytest.approx(300.0 - 120.0)
    assert summary["ABC"]["realized_profit"] == pytest.approx(20.0)
    assert summary["XYZ"]["realized_profit"] == 0.0


@pytest.mark.asyncio
async def test_list_entries_filters(accountant):
    await accountant.initialize_pool("TraderCall", 1000.0)
    await accountant.allocate("TraderCall", "alert-1", "ABC", 10.0, percentage=30)
    await accountant.sell("TraderCall", "alert-1", 10, 12.0)

    sells = accountant.ledger.list_entries("TraderCall", operation_type="sell")
    abc = accountant.ledger.list_entries("TraderCall", symbol="abc", limit=1)

    assert len(sells) == 1
    assert sells[0]["amount"] == pytest.approx(-120.0)
    assert sells[0]["realized_profit"] == pytest.approx(20.0)
    assert len(abc) == 1


def test_ledger_for_unknown_pool(accountant):
    with pytest.raises(PoolNotFoundError):
        accountant.ledger.list_entries("Nope")
    with pytest.raises(PoolNotFoundError):
        accountant.ledger.summary_by_symbol("Nope")


@pytest.mark.asyncio
async def test_empty_ledger_frame(accountant):
    await accountant.initialize_pool("TraderCall", 1000.0)
    assert accountant.ledger.to_frame("TraderCall").empty
    assert accountant.ledger.summary_by_symbol("TraderCall") == []
