from datetime import datetime, timezone

import pytest

from liquidity.core.accounting import check_invariants, compute_pool_totals
from liquidity.core.exceptions import InsufficientSharesError, ValidationError
from liquidity.core.positions import (
    ENTRY_PRICE_FIXED,
    SaleFigures,
    apply_allocation,
    apply_sale,
    mark_to_market,
    rebuild_from_sales,
    shares_for_amount,
    unrealized_pl_percent,
)

NOW = datetime(2026, 1, 5, 15, 0, tzinfo=timezone.utc)


def test_shares_for_amount_truncates_to_whole_shares():
    assert shares_for_amount(300.0, 10.0) == 30.0
    assert shares_for_amount(299.99, 10.0) == 29.0
    assert shares_for_amount(9.99, 10.0) == 0.0
    assert shares_for_amount(0.3 * 1000, 10.0) == 30.0
    assert shares_for_amount(105.0, 10.0, whole_shares=False) == pytest.approx(10.5)


def test_shares_for_amount_rejects_non_positive_price():
    with pytest.raises(ValidationError):
        shares_for_amount(100.0, 0.0)


def test_unrealized_percent_is_zero_without_entry_price():
    assert unrealized_pl_percent(0.0, 12.0) == 0.0
    assert unrealized_pl_percent(10.0, 12.0) == pytest.approx(20.0)


def test_staged_entries_average_entry_price():
    state = apply_allocation(None, "ins-1", "abc", 10, 10.0, 10.0)
    state = apply_allocation(state, "ins-1", "abc", 10, 20.0, 15.0)

    assert state.symbol == "ABC"
    assert state.shares == 20
    assert state.acquired_shares == 20
    assert state.percentage == pytest.approx(25.0)
    assert state.entry_price == pytest.approx(15.0)
    assert state.allocated_amount == pytest.approx(300.0)
    assert state.current_price == 20.0
    assert state.unrealized_pl == pytest.approx(100.0)


def test_fixed_mode_keeps_first_entry_price():
    state = apply_allocation(None, "ins-1", "ABC", 10, 10.0, 10.0, ENTRY_PRICE_FIXED)
    state = apply_allocation(state, "ins-1", "ABC", 10, 20.0, 10.0, ENTRY_PRICE_FIXED)

    assert state.entry_price == 10.0
    assert state.allocated_amount == pytest.approx(200.0)


def test_partial_then_complete_sale():
    state = apply_allocation(None, "ins-1", "ABC", 30, 10.0, 30.0)

    state, partial = apply_sale(state, 15, 12.0, NOW)
    assert not partial.is_complete_sale
    assert partial.realized_profit == pytest.approx(30.0)
    assert partial.capital_released == pytest.approx(180.0)
    assert partial.percentage_of_original == pytest.approx(50.0)
    assert state.shares == 15
    assert state.allocated_amount == pytest.approx(150.0)
    assert state.unrealized_pl == pytest.approx(30.0)

    state, final = apply_sale(state, 15, 12.0, NOW)
    assert final.is_complete_sale
    assert not state.is_active
    assert state.shares == 0.0
    assert state.allocated_amount == 0.0
    assert state.unrealized_pl == 0.0
    assert state.realized_pl == pytest.approx(60.0)


def test_sale_within_epsilon_is_complete():
    state = apply_allocation(None, "ins-1", "ABC", 10, 10.0, 10.0)
    state, outcome = apply_sale(state, 10.00001, 11.0, NOW)
    assert outcome.is_complete_sale
    assert outcome.shares_sold == 10
    assert state.shares == 0.0


def test_oversell_is_rejected():
    state = apply_allocation(None, "ins-1", "ABC", 10, 10.0, 10.0)
    with pytest.raises(InsufficientSharesError):
        apply_sale(state, 11, 10.0, NOW)


def test_mark_to_market_ignores_closed_positions():
    state = apply_allocation(None, "ins-1", "ABC", 10, 10.0, 10.0)
    closed, _ = apply_sale(state, 10, 12.0, NOW)
    assert mark_to_market(closed, 50.0) == closed


def test_rebuild_skips_discarded_sales_and_reopens():
    state = apply_allocation(None, "ins-1", "ABC", 30, 10.0, 30.0)
    closed, outcome = apply_sale(state, 30, 12.0, NOW)

    rebuilt = rebuild_from_sales(closed, [SaleFigures(outcome.shares_sold, outcome.realized_profit, discarded=True)])

    assert rebuilt.is_active
    assert rebuilt.shares == 30
    assert rebuilt.realized_pl == 0.0
    assert rebuilt.allocated_amount == pytest.approx(300.0)
    assert rebuilt.unrealized_pl == pytest.approx(60.0)


def test_pool_totals_and_invariants():
    held = apply_allocation(None, "ins-1", "ABC", 30, 10.0, 30.0)
    held = mark_to_market(held, 11.0)
    sold = apply_allocation(None, "ins-2", "XYZ", 10, 20.0, 20.0)
    sold, _ = apply_sale(sold, 10, 25.0, NOW)

    totals = compute_pool_totals(1000.0, [held, sold])

    assert totals.distributed_capital == pytest.approx(300.0)
    assert totals.realized_pl == pytest.approx(50.0)
    assert totals.unrealized_pl == pytest.approx(30.0)
    assert totals.total_capital == pytest.approx(1080.0)
    assert totals.available_capital == pytest.approx(750.0)
    assert totals.total_profit_loss_percent == pytest.approx(8.0)
    assert check_invariants(totals, [held, sold]) == []


def test_invariant_check_reports_stale_totals():
    held = apply_allocation(None, "ins-1", "ABC", 30, 10.0, 30.0)
    stale = compute_pool_totals(1000.0, [])

    violations = check_invariants(stale, [held])

    assert any("distributed_capital" in v for v in violations)
