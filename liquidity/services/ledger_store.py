"""
Append-only ledger of buy/sell operations per pool
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pandas as pd
from sqlalchemy.orm import Session

from liquidity.core.database import SessionLocal
from liquidity.core.exceptions import PoolNotFoundError, ValidationError
from liquidity.models.ledger import (
    LedgerEntry,
    OPERATION_BUY,
    OPERATION_SELL,
    EXECUTION_MANUAL,
)
from liquidity.models.pool import CapitalPool

logger = logging.getLogger(__name__)

LEDGER_COLUMNS = [
    "id", "timestamp", "instrument_id", "instrument_symbol", "operation_type",
    "quantity", "price", "amount", "running_balance", "realized_profit",
    "executed_by", "execution_method",
]


class LedgerStore:
    """Writes and reads ledger entries; never used to derive live balances"""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or SessionLocal

    def append(
        self,
        session: Session,
        pool: CapitalPool,
        instrument_id: str,
        symbol: str,
        operation_type: str,
        quantity: float,
        price: float,
        running_balance: float,
        portfolio_percentage: Optional[float] = None,
        is_partial_sale: bool = False,
        partial_sale_percentage: Optional[float] = None,
        realized_profit: Optional[float] = None,
        executed_by: Optional[str] = None,
        execution_method: str = EXECUTION_MANUAL,
        notes: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> LedgerEntry:
        """
        Add one entry inside the caller's transaction.

        Sell quantities are stored negative, so amount = quantity * price is
        negative for sells as well.
        """
        if operation_type not in (OPERATION_BUY, OPERATION_SELL):
            raise ValidationError(f"Unknown operation type {operation_type}")

        signed_quantity = abs(quantity) if operation_type == OPERATION_BUY else -abs(quantity)
        entry = LedgerEntry(
            pool=pool,
            instrument_id=instrument_id,
            instrument_symbol=symbol.upper(),
            operation_type=operation_type,
            quantity=signed_quantity,
            price=price,
            amount=signed_quantity * price,
            timestamp=timestamp or datetime.now(timezone.utc),
            running_balance=running_balance,
            portfolio_percentage=portfolio_percentage,
            is_partial_sale=is_partial_sale,
            partial_sale_percentage=partial_sale_percentage,
            realized_profit=realized_profit,
            executed_by=executed_by,
            execution_method=execution_method,
            notes=notes,
        )
        session.add(entry)
        return entry

    def _pool_or_raise(self, db: Session, pool_name: str) -> CapitalPool:
        pool = db.query(CapitalPool).filter(CapitalPool.name == pool_name).first()
        if pool is None:
            raise PoolNotFoundError(pool_name)
        return pool

    def list_entries(
        self,
        pool_name: str,
        limit: int = 100,
        symbol: Optional[str] = None,
        operation_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Newest entries first"""
        db = self.session_factory()
        try:
            pool = self._pool_or_raise(db, pool_name)
            query = db.query(LedgerEntry).filter(LedgerEntry.pool_id == pool.id)
            if symbol:
                query = query.filter(LedgerEntry.instrument_symbol == symbol.upper())
            if operation_type:
                query = query.filter(LedgerEntry.operation_type == operation_type.upper())
            entries = query.order_by(LedgerEntry.timestamp.desc(), LedgerEntry.id.desc()).limit(limit).all()
            return [entry.to_dict() for entry in entries]
        finally:
            db.close()

    def to_frame(self, pool_name: str) -> pd.DataFrame:
        """Export the whole ledger of a pool, oldest first"""
        db = self.session_factory()
        try:
            pool = self._pool_or_raise(db, pool_name)
            entries = (
                db.query(LedgerEntry)
                .filter(LedgerEntry.pool_id == pool.id)
                .order_by(LedgerEntry.timestamp.asc(), LedgerEntry.id.asc())
                .all()
            )
            rows = [{column: getattr(entry, column) for column in LEDGER_COLUMNS} for entry in entries]
        finally:
            db.close()
        return pd.DataFrame(rows, columns=LEDGER_COLUMNS)

    def summary_by_symbol(self, pool_name: str) -> List[Dict[str, Any]]:
        """Per-symbol aggregate of the ledger, most recently traded first"""
        df = self.to_frame(pool_name)
        if df.empty:
            return []

        df["realized_profit"] = pd.to_numeric(df["realized_profit"]).fillna(0.0)
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
        grouped = df.groupby("instrument_symbol").agg(
            total_operations=("id", "count"),
            total_quantity=("quantity", "sum"),
            total_amount=("amount", "sum"),
            avg_price=("price", "mean"),
            realized_profit=("realized_profit", "sum"),
            first_operation=("timestamp", "min"),
            last_operation=("timestamp", "max"),
        )
        grouped = grouped.sort_values("last_operation", ascending=False).reset_index()

        summary = []
        for row in grouped.itertuples(index=False):
            summary.append({
                "symbol": row.instrument_symbol,
                "total_operations": int(row.total_operations),
                "total_quantity": float(row.total_quantity),
                "total_amount": float(row.total_amount),
                "avg_price": float(row.avg_price),
                "realized_profit": float(row.realized_profit),
                "first_operation": pd.Timestamp(row.first_operation).isoformat(),
                "last_operation": pd.Timestamp(row.last_operation).isoformat(),
            })
        return summary
