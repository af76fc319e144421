"""
Pool-level accounting identities.

Aggregates are always derived wholesale from the position set; nothing here
patches a previous total. Functions accept anything shaped like a position
(PositionState or the ORM Position).
"""
from collections import Counter
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List

import numpy as np


@dataclass(frozen=True)
class PoolTotals:
    initial_capital: float
    distributed_capital: float
    realized_pl: float
    unrealized_pl: float
    total_capital: float
    available_capital: float
    total_profit_loss: float
    total_profit_loss_percent: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def is_open(position: Any, share_epsilon: float = 1e-4) -> bool:
    return bool(position.is_active) and position.shares > share_epsilon


def compute_pool_totals(initial_capital: float, positions: Iterable[Any], share_epsilon: float = 1e-4) -> PoolTotals:
    """
    Derive every pool aggregate from the positions.

    Realized P&L counts every position ever held (closed ones included);
    distributed capital and unrealized P&L only count open positions.
    """
    positions = list(positions)
    open_positions = [p for p in positions if is_open(p, share_epsilon)]

    distributed = sum(p.allocated_amount for p in open_positions)
    realized = sum(p.realized_pl or 0.0 for p in positions)
    unrealized = sum(p.unrealized_pl or 0.0 for p in open_positions)

    total_profit_loss = realized + unrealized
    total_profit_loss_percent = (total_profit_loss / initial_capital * 100) if initial_capital > 0 else 0.0

    return PoolTotals(
        initial_capital=initial_capital,
        distributed_capital=distributed,
        realized_pl=realized,
        unrealized_pl=unrealized,
        total_capital=initial_capital + realized + unrealized,
        available_capital=initial_capital - distributed + realized,
        total_profit_loss=total_profit_loss,
        total_profit_loss_percent=total_profit_loss_percent,
    )


def check_invariants(pool: Any, positions: Iterable[Any], tolerance: float = 0.01, share_epsilon: float = 1e-4) -> List[str]:
    """
    Return a description of every broken identity (empty when consistent).

    `pool` needs initial_capital, total_capital, available_capital and
    distributed_capital attributes holding the stored values.
    """
    positions = list(positions)
    violations: List[str] = []

    def _close(a: float, b: float) -> bool:
        return bool(np.isclose(a, b, rtol=0.0, atol=tolerance))

    open_positions = [p for p in positions if is_open(p, share_epsilon)]
    realized = sum(p.realized_pl or 0.0 for p in positions)
    unrealized = sum(p.unrealized_pl or 0.0 for p in open_positions)
    distributed = sum(p.allocated_amount for p in open_positions)

    expected_total = pool.initial_capital + realized + unrealized
    if not _close(pool.total_capital, expected_total):
        violations.append(f"total_capital={pool.total_capital:.4f} expected={expected_total:.4f}")

    expected_available = pool.initial_capital - pool.distributed_capital + realized
    if not _close(pool.available_capital, expected_available):
        violations.append(f"available_capital={pool.available_capital:.4f} expected={expected_available:.4f}")

    if not _close(pool.distributed_capital, distributed):
        violations.append(f"distributed_capital={pool.distributed_capital:.4f} expected={distributed:.4f}")

    for p in positions:
        label = f"position {p.instrument_id}"
        if p.shares < 0:
            violations.append(f"{label} has negative shares {p.shares}")
        if p.is_active and p.shares <= share_epsilon:
            violations.append(f"{label} is active with no shares")
        if not p.is_active and p.allocated_amount != 0:
            violations.append(f"{label} is inactive with allocated_amount={p.allocated_amount:.4f}")
        if p.is_active and not _close(p.allocated_amount, p.shares * p.entry_price):
            violations.append(
                f"{label} allocated_amount={p.allocated_amount:.4f} expected={p.shares * p.entry_price:.4f}"
            )

    duplicates = [key for key, count in Counter(p.instrument_id for p in positions if p.is_active).items() if count > 1]
    for instrument_id in duplicates:
        violations.append(f"instrument {instrument_id} has more than one active position")

    return violations
