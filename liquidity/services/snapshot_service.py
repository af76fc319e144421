"""
Daily pool snapshots and period returns
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import pandas as pd

from liquidity.core.config import settings
from liquidity.models.snapshot import PoolSnapshot
from liquidity.services.pool_accountant import PoolAccountant

logger = logging.getLogger(__name__)

RETURN_PERIODS = {
    "1d": pd.DateOffset(days=1),
    "7d": pd.DateOffset(days=7),
    "15d": pd.DateOffset(days=15),
    "30d": pd.DateOffset(days=30),
    "6m": pd.DateOffset(months=6),
    "1y": pd.DateOffset(years=1),
}


def _utc_naive(moment: Optional[datetime]) -> datetime:
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def local_day_start(moment: Optional[datetime] = None, offset_hours: Optional[int] = None) -> datetime:
    """Naive UTC instant at which the local day containing `moment` begins"""
    offset = timedelta(hours=settings.SNAPSHOT_UTC_OFFSET_HOURS if offset_hours is None else offset_hours)
    local = _utc_naive(moment) + offset
    return datetime(local.year, local.month, local.day) - offset


def _snapshot_dict(snapshot: PoolSnapshot) -> Dict[str, Any]:
    return {
        "id": snapshot.id,
        "date": snapshot.date.isoformat(),
        "total_capital": snapshot.total_capital,
        "available_capital": snapshot.available_capital,
        "distributed_capital": snapshot.distributed_capital,
        "total_profit_loss": snapshot.total_profit_loss,
        "total_profit_loss_percent": snapshot.total_profit_loss_percent,
    }


class SnapshotService:
    def __init__(self, accountant: PoolAccountant):
        self.accountant = accountant

    def save_daily_snapshot(self, pool_name: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Store today's snapshot once; later calls on the same local day return the stored one"""
        day = local_day_start(now)
        with self.accountant.session_scope(pool_name) as db:
            pool = self.accountant.require_pool(db, pool_name)
            existing = (
                db.query(PoolSnapshot)
                .filter(PoolSnapshot.pool_id == pool.id, PoolSnapshot.date == day)
                .first()
            )
            if existing is not None:
                logger.debug(f"Snapshot for {pool_name} on {day.date()} already exists")
                return {**_snapshot_dict(existing), "created": False}

            snapshot = PoolSnapshot(
                pool_id=pool.id,
                date=day,
                total_capital=pool.total_capital,
                available_capital=pool.available_capital,
                distributed_capital=pool.distributed_capital,
                total_profit_loss=pool.total_profit_loss,
                total_profit_loss_percent=pool.total_profit_loss_percent,
            )
            db.add(snapshot)
            db.flush()
            result = {**_snapshot_dict(snapshot), "created": True}

        logger.info(f"Saved daily snapshot for {pool_name} ({day.date()})")
        return result

    def calculate_returns(self, pool_name: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Percentage change of total capital against the latest snapshot taken
        at or before each look-back point. Periods without a usable snapshot
        report None.
        """
        reference = pd.Timestamp(_utc_naive(now))
        db = self.accountant.session_factory()
        try:
            pool = self.accountant.require_pool(db, pool_name)
            current = pool.total_capital
            returns: Dict[str, Optional[float]] = {}
            for label, offset in RETURN_PERIODS.items():
                target = (reference - offset).to_pydatetime()
                snapshot = (
                    db.query(PoolSnapshot)
                    .filter(PoolSnapshot.pool_id == pool.id, PoolSnapshot.date <= target)
                    .order_by(PoolSnapshot.date.desc())
                    .first()
                )
                if snapshot is None or not snapshot.total_capital:
                    returns[label] = None
                    continue
                change = (current - snapshot.total_capital) / snapshot.total_capital * 100
                returns[label] = round(change, 2)
        finally:
            db.close()

        return {"pool": pool_name, "total_capital": current, "returns": returns}
