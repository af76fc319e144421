import pytest

from liquidity.core.config import Settings


def test_pool_names_accept_csv_and_json():
    assert Settings(POOL_NAMES="TraderCall, SmartMoney").get_pool_names() == ["TraderCall", "SmartMoney"]
    assert Settings(POOL_NAMES='["A", "B"]').get_pool_names() == ["A", "B"]


def test_entry_price_mode_is_normalized():
    assert Settings(ENTRY_PRICE_MODE=" Fixed ").ENTRY_PRICE_MODE == "fixed"


@pytest.mark.parametrize(
    "overrides",
    [
        {"ENTRY_PRICE_MODE": "average"},
        {"DEFAULT_INITIAL_CAPITAL": 0},
        {"DEFAULT_ALERT_ALLOCATION_PERCENT": 150},
        {"MARKET_OPEN": "16:00", "MARKET_CLOSE": "09:30"},
        {"MARKET_OPEN": "nine"},
        {"SNAPSHOT_UTC_OFFSET_HOURS": 20},
        {"PUBLIC_CACHE_SECONDS": -1},
    ],
)
def test_invalid_settings_are_rejected(overrides):
    with pytest.raises(ValueError):
        Settings(**overrides)
