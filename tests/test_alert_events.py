import pytest

from liquidity.services.alert_events import AlertClosed, AlertEventHandler, AlertOpened


class StubNotificationService:
    def __init__(self):
        self.allocations = []
        self.sales = []

    async def send_allocation_notification(self, allocation):
        self.allocations.append(allocation)
        return True

    async def send_sale_notification(self, sale):
        self.sales.append(sale)
        return True


@pytest.mark.asyncio
async def test_alert_opened_uses_top_of_entry_range(accountant):
    await accountant.initialize_pool("TraderCall", 1000.0)
    notifications = StubNotificationService()
    handler = AlertEventHandler(accountant, notifications)

    result = await handler.on_alert_opened(
        AlertOpened(pool="TraderCall", instrument_id="alert-1", symbol="ABC",
                    entry_price=9.5, entry_range_top=10.0, percentage=30)
    )

    assert result.price == 10.0
    assert result.shares == 30
    assert notifications.allocations[0]["symbol"] == "ABC"
    entries = accountant.ledger.list_entries("TraderCall")
    assert entries[0]["execution_method"] == "AUTOMATIC"


@pytest.mark.asyncio
async def test_alert_opened_defaults_percentage(accountant):
    await accountant.initialize_pool("TraderCall", 1000.0)
    handler = AlertEventHandler(accountant)

    result = await handler.on_alert_opened(
        AlertOpened(pool="TraderCall", instrument_id="alert-1", symbol="ABC", entry_price=10.0)
    )

    assert result.percentage == 5.0
    assert result.shares == 5


@pytest.mark.asyncio
async def test_alert_closed_sells_out_and_archives(accountant):
    await accountant.initialize_pool("TraderCall", 1000.0)
    notifications = StubNotificationService()
    handler = AlertEventHandler(accountant, notifications)
    await handler.on_alert_opened(
        AlertOpened(pool="TraderCall", instrument_id="alert-1", symbol="ABC", entry_price=10.0, percentage=30)
    )

    result = await handler.on_alert_closed(AlertClosed(pool="TraderCall", instrument_id="alert-1", exit_price=12.0))

    assert result["position"]["status"] == "ARCHIVED"
    assert result["sale"]["realized_profit"] == pytest.approx(60.0)
    assert result["pool_totals"]["available_capital"] == pytest.approx(1060.0)
    assert notifications.sales[0]["capital_released"] == pytest.approx(360.0)


@pytest.mark.asyncio
async def test_alert_closed_without_position_is_ignored(accountant):
    await accountant.initialize_pool("TraderCall", 1000.0)
    handler = AlertEventHandler(accountant)

    assert await handler.on_alert_closed(AlertClosed(pool="TraderCall", instrument_id="alert-9")) is None
