"""
Per-instrument position math.

Everything here is pure: functions take a frozen PositionState and return a new
one. Pool-level totals are never touched here; the pool accountant is the only
writer of those.
"""
import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional

from liquidity.core.exceptions import InsufficientSharesError, ValidationError

ENTRY_PRICE_WEIGHTED = "weighted"
ENTRY_PRICE_FIXED = "fixed"

# Guards floor() against values like 29.999999999999996 shares.
_FLOOR_TOLERANCE = 1e-9


@dataclass(frozen=True)
class PositionState:
    """Snapshot of one position's numbers."""
    instrument_id: str
    symbol: str
    shares: float = 0.0
    acquired_shares: float = 0.0
    entry_price: float = 0.0
    current_price: float = 0.0
    percentage: float = 0.0
    allocated_amount: float = 0.0
    unrealized_pl: float = 0.0
    unrealized_pl_percent: float = 0.0
    realized_pl: float = 0.0
    sold_shares: float = 0.0
    is_active: bool = True


@dataclass(frozen=True)
class SaleOutcome:
    """Figures of one executed sale, before it is persisted as a SaleRecord."""
    shares_sold: float
    sell_price: float
    entry_price: float
    capital_released: float
    realized_profit: float
    percentage_of_original: float
    is_complete_sale: bool
    remaining_shares: float
    executed_at: datetime
    executed_by: Optional[str] = None


@dataclass(frozen=True)
class SaleFigures:
    """Minimal view of a recorded sale used to re-derive a position."""
    shares_sold: float
    realized_profit: float
    discarded: bool = False


def unrealized_pl(state: PositionState, current_price: float) -> float:
    return (current_price - state.entry_price) * state.shares


def unrealized_pl_percent(entry_price: float, current_price: float) -> float:
    if entry_price == 0:
        return 0.0
    return (current_price - entry_price) / entry_price * 100


def shares_for_amount(amount: float, price: float, whole_shares: bool = True) -> float:
    """Shares an amount buys at price; whole units are truncated, never rounded up."""
    if price <= 0:
        raise ValidationError("Price must be positive", price=price)
    if amount <= 0:
        return 0.0
    raw = amount / price
    if whole_shares:
        return float(math.floor(raw + _FLOOR_TOLERANCE))
    return raw


def mark_to_market(state: PositionState, current_price: float) -> PositionState:
    """Refresh the unrealized figures of an open position."""
    if not state.is_active:
        return state
    return replace(
        state,
        current_price=current_price,
        unrealized_pl=unrealized_pl(state, current_price),
        unrealized_pl_percent=unrealized_pl_percent(state.entry_price, current_price),
    )


def apply_allocation(
    state: Optional[PositionState],
    instrument_id: str,
    symbol: str,
    added_shares: float,
    price: float,
    percentage: float,
    entry_price_mode: str = ENTRY_PRICE_WEIGHTED,
) -> PositionState:
    """
    Add a staged entry to a position (or open one).

    Shares, acquired shares and percentage grow additively. In weighted mode
    the entry price becomes the volume-weighted average of all entries; in
    fixed mode the first entry price is kept.
    """
    if added_shares <= 0:
        raise ValidationError("Allocation must add shares", shares=added_shares)
    if price <= 0:
        raise ValidationError("Entry price must be positive", price=price)

    if state is None or not state.is_active:
        base = PositionState(instrument_id=instrument_id, symbol=symbol.upper())
        old_shares = 0.0
        old_entry = price
        old_percentage = 0.0
    else:
        base = state
        old_shares = state.shares
        old_entry = state.entry_price
        old_percentage = state.percentage

    new_shares = old_shares + added_shares
    if entry_price_mode == ENTRY_PRICE_FIXED and old_shares > 0:
        new_entry = old_entry
    else:
        new_entry = (old_shares * old_entry + added_shares * price) / new_shares

    updated = replace(
        base,
        symbol=symbol.upper(),
        shares=new_shares,
        acquired_shares=base.acquired_shares + added_shares,
        entry_price=new_entry,
        percentage=old_percentage + percentage,
        allocated_amount=new_shares * new_entry,
        is_active=True,
    )
    return mark_to_market(updated, price)


def apply_sale(
    state: PositionState,
    shares: float,
    price: float,
    executed_at: datetime,
    executed_by: Optional[str] = None,
    share_epsilon: float = 1e-4,
):
    """
    Sell shares out of a position.

    Returns the new state and a SaleOutcome. A request within share_epsilon of
    the held quantity is a complete sale of exactly the held shares.
    """
    if shares <= 0:
        raise ValidationError("Shares to sell must be positive", shares=shares)
    if price <= 0:
        raise ValidationError("Sell price must be positive", price=price)
    if not state.is_active:
        raise ValidationError("Position is not active", instrument_id=state.instrument_id)
    if shares > state.shares + share_epsilon:
        raise InsufficientSharesError("", state.instrument_id, shares, state.shares)

    remaining = state.shares - shares
    is_complete = remaining < share_epsilon
    if is_complete:
        shares = state.shares
        remaining = 0.0

    capital_released = shares * price
    realized_profit = (price - state.entry_price) * shares
    percentage_of_original = (
        shares / state.acquired_shares * 100 if state.acquired_shares > 0 else 0.0
    )

    if is_complete:
        new_state = replace(
            state,
            shares=0.0,
            sold_shares=state.sold_shares + shares,
            realized_pl=state.realized_pl + realized_profit,
            current_price=price,
            allocated_amount=0.0,
            unrealized_pl=0.0,
            unrealized_pl_percent=0.0,
            is_active=False,
        )
    else:
        new_state = mark_to_market(
            replace(
                state,
                shares=remaining,
                sold_shares=state.sold_shares + shares,
                realized_pl=state.realized_pl + realized_profit,
                allocated_amount=remaining * state.entry_price,
            ),
            price,
        )

    outcome = SaleOutcome(
        shares_sold=shares,
        sell_price=price,
        entry_price=state.entry_price,
        capital_released=capital_released,
        realized_profit=realized_profit,
        percentage_of_original=percentage_of_original,
        is_complete_sale=is_complete,
        remaining_shares=remaining,
        executed_at=executed_at,
        executed_by=executed_by,
    )
    return new_state, outcome


def rebuild_from_sales(
    state: PositionState,
    sales: Iterable[SaleFigures],
    share_epsilon: float = 1e-4,
) -> PositionState:
    """
    Re-derive held shares, sold shares and realized P&L from a sale history.

    Discarded sales are skipped, so voiding a sale returns its shares to the
    position and removes its profit from the realized figures.
    """
    kept = [sale for sale in sales if not sale.discarded]
    sold = sum(sale.shares_sold for sale in kept)
    realized = sum(sale.realized_profit for sale in kept)
    held = state.acquired_shares - sold
    if held < -share_epsilon:
        raise ValidationError(
            "Sale history sells more shares than were acquired",
            instrument_id=state.instrument_id,
            acquired=state.acquired_shares,
            sold=sold,
        )

    if held < share_epsilon:
        return replace(
            state,
            shares=0.0,
            sold_shares=sold,
            realized_pl=realized,
            allocated_amount=0.0,
            unrealized_pl=0.0,
            unrealized_pl_percent=0.0,
            is_active=False,
        )

    rebuilt = replace(
        state,
        shares=held,
        sold_shares=sold,
        realized_pl=realized,
        allocated_amount=held * state.entry_price,
        is_active=True,
    )
    return mark_to_market(rebuilt, state.current_price or state.entry_price)
