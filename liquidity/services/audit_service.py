"""
Consistency audits and repairs for capital pools
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd

from liquidity.core.accounting import check_invariants, compute_pool_totals
from liquidity.core.config import settings
from liquidity.services.pool_accountant import PoolAccountant

logger = logging.getLogger(__name__)

AUDITED_FIELDS = [
    "total_capital",
    "available_capital",
    "distributed_capital",
    "total_profit_loss",
    "total_profit_loss_percent",
]


class AuditService:
    """Read-only checks plus the explicit repair entry points"""

    def __init__(self, accountant: PoolAccountant):
        self.accountant = accountant

    def _positions_frame(self, pool) -> pd.DataFrame:
        rows = [
            {
                "position_id": p.id,
                "instrument_id": p.instrument_id,
                "symbol": p.symbol,
                "status": p.status,
                "shares": p.shares,
                "allocated_amount": p.allocated_amount,
                "opened_at": p.opened_at,
            }
            for p in pool.positions
        ]
        return pd.DataFrame(
            rows,
            columns=["position_id", "instrument_id", "symbol", "status", "shares", "allocated_amount", "opened_at"],
        )

    def verify_pool(self, pool_name: str) -> Dict[str, Any]:
        """
        Recompute a pool's totals from scratch without persisting them.

        Returns the stored and expected figures, the per-field differences,
        any invariant violations and an overall `matches` flag.
        """
        db = self.accountant.session_factory()
        try:
            pool = self.accountant.require_pool(db, pool_name)
            expected = compute_pool_totals(pool.initial_capital, pool.positions, settings.SHARE_EPSILON).to_dict()
            stored = {field: getattr(pool, field) for field in AUDITED_FIELDS}
            violations = check_invariants(
                pool, pool.positions, settings.INVARIANT_TOLERANCE, settings.SHARE_EPSILON,
            )
        finally:
            db.close()

        differences = {
            field: stored[field] - expected[field]
            for field in AUDITED_FIELDS
            if not np.isclose(stored[field], expected[field], rtol=0.0, atol=settings.INVARIANT_TOLERANCE)
        }
        matches = not differences and not violations
        if not matches:
            logger.warning(f"Pool {pool_name} failed verification: {differences} {violations}")

        return {
            "pool": pool_name,
            "matches": matches,
            "stored": stored,
            "expected": {field: expected[field] for field in AUDITED_FIELDS},
            "differences": differences,
            "violations": violations,
        }

    def find_duplicate_positions(self, pool_name: str) -> List[Dict[str, Any]]:
        """Instruments with more than one active position"""
        db = self.accountant.session_factory()
        try:
            pool = self.accountant.require_pool(db, pool_name)
            df = self._positions_frame(pool)
        finally:
            db.close()

        active = df[df["status"] == "ACTIVE"]
        if active.empty:
            return []
        counts = active.groupby("instrument_id")["position_id"].agg(list)
        duplicates = counts[counts.map(len) > 1]
        return [
            {"instrument_id": instrument_id, "position_ids": [int(i) for i in ids]}
            for instrument_id, ids in duplicates.items()
        ]

    def find_orphan_positions(self, pool_name: str, open_instrument_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Active positions whose alert is no longer open"""
        open_ids = set(open_instrument_ids)
        db = self.accountant.session_factory()
        try:
            pool = self.accountant.require_pool(db, pool_name)
            return [
                {
                    "position_id": p.id,
                    "instrument_id": p.instrument_id,
                    "symbol": p.symbol,
                    "shares": p.shares,
                    "current_price": p.current_price,
                }
                for p in pool.active_positions()
                if p.instrument_id not in open_ids
            ]
        finally:
            db.close()

    async def cleanup_orphans(
        self,
        pool_name: str,
        open_instrument_ids: Iterable[str],
        dry_run: bool = True,
        exit_prices: Optional[Mapping[str, float]] = None,
        executed_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Sell out and archive orphaned positions; only reports them when dry_run is set"""
        orphans = self.find_orphan_positions(pool_name, open_instrument_ids)
        if dry_run:
            logger.info(f"Dry run: {len(orphans)} orphan positions in {pool_name}")
            return {"pool": pool_name, "dry_run": True, "orphans": orphans, "archived": []}

        archived = []
        for orphan in orphans:
            exit_price = (exit_prices or {}).get(orphan["instrument_id"])
            result = await self.accountant.archive_position(
                pool_name, orphan["instrument_id"], exit_price=exit_price, executed_by=executed_by,
            )
            archived.append(result)

        logger.info(f"Archived {len(archived)} orphan positions in {pool_name}")
        return {"pool": pool_name, "dry_run": False, "orphans": orphans, "archived": archived}

    async def repair_pool(self, pool_name: str) -> Dict[str, Any]:
        """
        Rewrite the pool's stored totals from its positions.

        Position-level violations (duplicate active rows, mismatched
        allocations) do not block the rewrite; they stay in `after` for the
        operator to resolve.
        """
        before = self.verify_pool(pool_name)
        summary = await self.accountant.recompute(pool_name, verify=False)
        after = self.verify_pool(pool_name)
        logger.info(f"Repaired pool {pool_name}: differences before={before['differences']}")
        if after["violations"]:
            logger.warning(f"Pool {pool_name} still has position violations: {after['violations']}")
        return {"pool": pool_name, "before": before, "after": after, "summary": summary}
