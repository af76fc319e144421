"""
Pool accountant: allocations, sales and the authoritative totals recompute
"""
import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from liquidity.core.accounting import PoolTotals, check_invariants, compute_pool_totals
from liquidity.core.config import settings
from liquidity.core.database import SessionLocal
from liquidity.core.exceptions import (
    AlreadyExistsError,
    ConflictError,
    InsufficientCapitalError,
    InsufficientSharesError,
    InvariantViolationError,
    NoPositionError,
    PoolNotFoundError,
    SaleNotFoundError,
    ValidationError,
)
from liquidity.core.locks import PoolLockRegistry
from liquidity.core.positions import (
    SaleFigures,
    apply_allocation,
    apply_sale,
    rebuild_from_sales,
    shares_for_amount,
)
from liquidity.models.ledger import OPERATION_BUY, OPERATION_SELL, EXECUTION_MANUAL
from liquidity.models.pool import CapitalPool
from liquidity.models.position import Position, SaleRecord, POSITION_ARCHIVED, POSITION_CLOSED
from liquidity.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


@dataclass
class AllocationResult:
    pool: str
    instrument_id: str
    symbol: str
    shares: float
    price: float
    amount: float
    requested_amount: float
    percentage: float
    created_position: bool
    ledger_entry_id: Optional[int]
    position: Dict[str, Any] = field(default_factory=dict)
    pool_totals: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SaleResult:
    pool: str
    instrument_id: str
    symbol: str
    sale_id: Optional[int]
    shares_sold: float
    sell_price: float
    capital_released: float
    realized_profit: float
    remaining_shares: float
    percentage_of_original: float
    is_complete_sale: bool
    ledger_entry_id: Optional[int]
    position: Dict[str, Any] = field(default_factory=dict)
    pool_totals: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PoolAccountant:
    """Single writer of pool-level capital figures"""

    def __init__(self, session_factory=None, lock_registry: Optional[PoolLockRegistry] = None,
                 ledger_store: Optional[LedgerStore] = None):
        self.session_factory = session_factory or SessionLocal
        self.locks = lock_registry or PoolLockRegistry()
        self.ledger = ledger_store or LedgerStore(self.session_factory)

        logger.info("Pool accountant initialized")

    # ------------------------------------------------------------------
    # Session and lookup helpers
    # ------------------------------------------------------------------

    @contextmanager
    def session_scope(self, pool_name: str):
        """One transaction per operation; rolled back on any error"""
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except StaleDataError:
            db.rollback()
            logger.warning(f"Concurrent write detected on pool {pool_name}")
            raise ConflictError(pool_name, "pool was modified by another writer")
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Integrity error on pool {pool_name}: {e}")
            raise ConflictError(pool_name, "instrument already has an active position")
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def get_pool(self, db: Session, pool_name: str) -> Optional[CapitalPool]:
        return db.query(CapitalPool).filter(CapitalPool.name == pool_name).first()

    def require_pool(self, db: Session, pool_name: str) -> CapitalPool:
        pool = self.get_pool(db, pool_name)
        if pool is None:
            raise PoolNotFoundError(pool_name)
        return pool

    def _create_pool(self, db: Session, pool_name: str, initial_capital: float,
                     created_by: Optional[str] = None) -> CapitalPool:
        pool = CapitalPool(
            name=pool_name,
            initial_capital=initial_capital,
            total_capital=initial_capital,
            available_capital=initial_capital,
            distributed_capital=0.0,
            total_profit_loss=0.0,
            total_profit_loss_percent=0.0,
            created_by=created_by,
        )
        db.add(pool)
        self.recompute_totals(pool)
        return pool

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def recompute_totals(self, pool: CapitalPool, touch: bool = True, verify: bool = True) -> PoolTotals:
        """
        Re-derive every aggregate of the pool from its positions.

        This is the only place that writes pool totals. When invariant
        verification is enabled the freshly written figures are checked and
        an InvariantViolationError aborts the surrounding transaction. With
        touch=False the row is only written when an aggregate actually changed.
        verify=False skips the check, for repairs of pools whose positions are
        themselves inconsistent.
        """
        totals = compute_pool_totals(pool.initial_capital or 0.0, pool.positions, settings.SHARE_EPSILON)

        pool.distributed_capital = totals.distributed_capital
        pool.total_capital = totals.total_capital
        pool.available_capital = totals.available_capital
        pool.total_profit_loss = totals.total_profit_loss
        pool.total_profit_loss_percent = totals.total_profit_loss_percent
        if touch:
            pool.updated_at = datetime.now(timezone.utc)

        if verify and settings.VERIFY_INVARIANTS:
            self.verify_invariants(pool)
        return totals

    def verify_invariants(self, pool: CapitalPool):
        violations = check_invariants(
            pool,
            pool.positions,
            tolerance=settings.INVARIANT_TOLERANCE,
            share_epsilon=settings.SHARE_EPSILON,
        )
        if violations:
            state = {
                "pool": self._pool_fields(pool),
                "positions": [self._position_fields(p) for p in pool.positions],
            }
            logger.error(
                f"Invariant violation in pool {pool.name}: {violations}. "
                f"State: {json.dumps(state, default=str)}"
            )
            raise InvariantViolationError(pool.name, violations)

    @staticmethod
    def _pool_fields(pool: CapitalPool) -> Dict[str, Any]:
        return {
            "name": pool.name,
            "initial_capital": pool.initial_capital,
            "total_capital": pool.total_capital,
            "available_capital": pool.available_capital,
            "distributed_capital": pool.distributed_capital,
            "total_profit_loss": pool.total_profit_loss,
            "total_profit_loss_percent": pool.total_profit_loss_percent,
            "version": pool.version,
        }

    @staticmethod
    def _position_fields(position: Position) -> Dict[str, Any]:
        return {
            "instrument_id": position.instrument_id,
            "symbol": position.symbol,
            "status": position.status,
            "shares": position.shares,
            "entry_price": position.entry_price,
            "current_price": position.current_price,
            "allocated_amount": position.allocated_amount,
            "unrealized_pl": position.unrealized_pl,
            "realized_pl": position.realized_pl,
            "sold_shares": position.sold_shares,
        }

    def summarize(self, pool: CapitalPool, include_inactive: bool = False) -> Dict[str, Any]:
        """Pool totals plus per-position breakdown, built inside an open session"""
        totals = compute_pool_totals(pool.initial_capital or 0.0, pool.positions, settings.SHARE_EPSILON)
        positions = pool.positions if include_inactive else pool.active_positions()
        return {
            "pool": pool.name,
            "initial_capital": pool.initial_capital,
            "total_capital": pool.total_capital,
            "available_capital": pool.available_capital,
            "distributed_capital": pool.distributed_capital,
            "total_profit_loss": pool.total_profit_loss,
            "total_profit_loss_percent": pool.total_profit_loss_percent,
            "realized_pl": totals.realized_pl,
            "unrealized_pl": totals.unrealized_pl,
            "version": pool.version,
            "active_positions": len(pool.active_positions()),
            "positions": [p.to_dict() for p in positions],
            "updated_at": pool.updated_at.isoformat() if pool.updated_at else None,
        }

    def _totals_dict(self, pool: CapitalPool) -> Dict[str, float]:
        return {
            "initial_capital": pool.initial_capital,
            "total_capital": pool.total_capital,
            "available_capital": pool.available_capital,
            "distributed_capital": pool.distributed_capital,
            "total_profit_loss": pool.total_profit_loss,
            "total_profit_loss_percent": pool.total_profit_loss_percent,
        }

    # ------------------------------------------------------------------
    # Pool lifecycle
    # ------------------------------------------------------------------

    async def initialize_pool(self, pool_name: str, initial_capital: float,
                              created_by: Optional[str] = None) -> Dict[str, Any]:
        """Create a pool with its baseline capital"""
        if initial_capital is None or initial_capital <= 0:
            raise ValidationError("Initial capital must be positive", initial_capital=initial_capital)

        async with self.locks.acquire(pool_name):
            with self.session_scope(pool_name) as db:
                if self.get_pool(db, pool_name) is not None:
                    raise AlreadyExistsError(pool_name)
                pool = self._create_pool(db, pool_name, float(initial_capital), created_by)
                db.flush()
                summary = self.summarize(pool)

        logger.info(f"Pool {pool_name} initialized with capital {initial_capital:.2f}")
        return summary

    async def reset_initial_capital(self, pool_name: str, initial_capital: float) -> Dict[str, Any]:
        """Replace the pool's baseline capital and recompute every total"""
        if initial_capital is None or initial_capital <= 0:
            raise ValidationError("Initial capital must be positive", initial_capital=initial_capital)

        async with self.locks.acquire(pool_name):
            with self.session_scope(pool_name) as db:
                pool = self.require_pool(db, pool_name)
                previous = pool.initial_capital
                pool.initial_capital = float(initial_capital)
                self.recompute_totals(pool)
                db.flush()
                summary = self.summarize(pool)

        logger.info(f"Pool {pool_name} initial capital reset from {previous:.2f} to {initial_capital:.2f}")
        return summary

    async def recompute(self, pool_name: str, verify: bool = True) -> Dict[str, Any]:
        """Externally triggered recompute of a pool's totals"""
        async with self.locks.acquire(pool_name):
            with self.session_scope(pool_name) as db:
                pool = self.require_pool(db, pool_name)
                self.recompute_totals(pool, verify=verify)
                db.flush()
                summary = self.summarize(pool)
        return summary

    def get_pool_summary(self, pool_name: str, include_inactive: bool = False) -> Dict[str, Any]:
        db = self.session_factory()
        try:
            pool = self.require_pool(db, pool_name)
            return self.summarize(pool, include_inactive=include_inactive)
        finally:
            db.close()

    def list_pools(self) -> List[str]:
        db = self.session_factory()
        try:
            return [name for (name,) in db.query(CapitalPool.name).order_by(CapitalPool.name).all()]
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    async def allocate(
        self,
        pool_name: str,
        instrument_id: str,
        symbol: str,
        entry_price: float,
        percentage: Optional[float] = None,
        amount: Optional[float] = None,
        executed_by: Optional[str] = None,
        execution_method: str = EXECUTION_MANUAL,
        notes: Optional[str] = None,
    ) -> AllocationResult:
        """
        Commit part of the pool to an instrument.

        Percentages are of total capital. Shares are truncated to whole units
        and only their cost leaves available capital. An existing active
        position for the instrument is increased rather than duplicated.
        """
        if (percentage is None) == (amount is None):
            raise ValidationError("Provide exactly one of percentage or amount")
        if entry_price is None or entry_price <= 0:
            raise ValidationError("Entry price must be positive", entry_price=entry_price)
        if percentage is not None and percentage <= 0:
            raise ValidationError("Percentage must be positive", percentage=percentage)
        if amount is not None and amount <= 0:
            raise ValidationError("Amount must be positive", amount=amount)
        if not instrument_id or not symbol:
            raise ValidationError("Instrument id and symbol are required")

        async with self.locks.acquire(pool_name):
            with self.session_scope(pool_name) as db:
                pool = self.get_pool(db, pool_name)
                if pool is None:
                    if not settings.AUTO_CREATE_POOLS:
                        raise PoolNotFoundError(pool_name)
                    pool = self._create_pool(db, pool_name, settings.DEFAULT_INITIAL_CAPITAL, executed_by)
                    logger.info(
                        f"Pool {pool_name} created on first allocation with capital "
                        f"{settings.DEFAULT_INITIAL_CAPITAL:.2f}"
                    )

                current = compute_pool_totals(pool.initial_capital, pool.positions, settings.SHARE_EPSILON)
                total_capital = current.total_capital
                requested = total_capital * percentage / 100 if percentage is not None else float(amount)

                shares = shares_for_amount(requested, entry_price, settings.WHOLE_SHARES)
                if shares <= 0:
                    logger.warning(
                        f"Rejected allocation of {requested:.2f} to {symbol} in {pool_name}: "
                        f"no whole share at {entry_price}"
                    )
                    raise InsufficientCapitalError(
                        pool_name,
                        requested,
                        current.available_capital,
                        reason=f"Allocation of {requested:.2f} buys no whole share of {symbol} at {entry_price}",
                    )

                actual_amount = shares * entry_price
                remaining = total_capital - current.distributed_capital
                if current.distributed_capital + actual_amount > total_capital + settings.CAPITAL_EPSILON:
                    logger.warning(
                        f"Rejected allocation of {actual_amount:.2f} to {symbol} in {pool_name}: "
                        f"only {remaining:.2f} unallocated"
                    )
                    raise InsufficientCapitalError(pool_name, actual_amount, remaining)

                allocated_percentage = (
                    percentage if percentage is not None
                    else (actual_amount / total_capital * 100 if total_capital > 0 else 0.0)
                )

                position = pool.active_position_for(instrument_id)
                created = position is None
                new_state = apply_allocation(
                    position.to_state() if position is not None else None,
                    instrument_id,
                    symbol,
                    shares,
                    entry_price,
                    allocated_percentage,
                    settings.ENTRY_PRICE_MODE,
                )
                if position is None:
                    position = Position(instrument_id=instrument_id, symbol=new_state.symbol)
                    pool.positions.append(position)
                position.apply_state(new_state)

                self.recompute_totals(pool)
                entry = self.ledger.append(
                    db,
                    pool,
                    instrument_id,
                    symbol,
                    OPERATION_BUY,
                    shares,
                    entry_price,
                    running_balance=pool.available_capital,
                    portfolio_percentage=allocated_percentage,
                    executed_by=executed_by,
                    execution_method=execution_method,
                    notes=notes,
                )
                db.flush()

                result = AllocationResult(
                    pool=pool_name,
                    instrument_id=instrument_id,
                    symbol=position.symbol,
                    shares=shares,
                    price=entry_price,
                    amount=actual_amount,
                    requested_amount=requested,
                    percentage=allocated_percentage,
                    created_position=created,
                    ledger_entry_id=entry.id,
                    position=position.to_dict(),
                    pool_totals=self._totals_dict(pool),
                )

        logger.info(
            f"Allocated {result.amount:.2f} ({result.percentage:.2f}%) to {result.symbol} in {pool_name}: "
            f"{shares} shares @ {entry_price}"
        )
        return result

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    async def sell(
        self,
        pool_name: str,
        instrument_id: str,
        shares: float,
        sell_price: float,
        executed_by: Optional[str] = None,
        execution_method: str = EXECUTION_MANUAL,
        notes: Optional[str] = None,
    ) -> SaleResult:
        """Sell a number of shares out of an active position"""
        if shares is None or shares <= 0:
            raise ValidationError("Shares to sell must be positive", shares=shares)
        return await self._sell(
            pool_name, instrument_id, lambda position: float(shares), sell_price,
            executed_by, execution_method, notes,
        )

    async def sell_percentage(
        self,
        pool_name: str,
        instrument_id: str,
        percentage: float,
        sell_price: float,
        executed_by: Optional[str] = None,
        execution_method: str = EXECUTION_MANUAL,
        notes: Optional[str] = None,
    ) -> SaleResult:
        """Sell a percentage of the shares currently held"""
        if percentage is None or percentage <= 0 or percentage > 100:
            raise ValidationError("Percentage must be between 0 and 100", percentage=percentage)

        def resolve(position: Position) -> float:
            if percentage >= 100:
                return position.shares
            shares = shares_for_amount(position.shares * percentage / 100, 1.0, settings.WHOLE_SHARES)
            if shares <= 0:
                raise ValidationError(
                    f"Selling {percentage}% of {position.shares} shares sells no whole share",
                    percentage=percentage,
                    shares=position.shares,
                )
            return shares

        return await self._sell(
            pool_name, instrument_id, resolve, sell_price, executed_by, execution_method, notes,
        )

    async def sell_all(
        self,
        pool_name: str,
        instrument_id: str,
        sell_price: float,
        executed_by: Optional[str] = None,
        execution_method: str = EXECUTION_MANUAL,
        notes: Optional[str] = None,
    ) -> SaleResult:
        """Close a position completely"""
        return await self._sell(
            pool_name, instrument_id, lambda position: position.shares, sell_price,
            executed_by, execution_method, notes,
        )

    async def _sell(
        self,
        pool_name: str,
        instrument_id: str,
        resolve_shares: Callable[[Position], float],
        sell_price: float,
        executed_by: Optional[str],
        execution_method: str,
        notes: Optional[str],
    ) -> SaleResult:
        if sell_price is None or sell_price <= 0:
            raise ValidationError("Sell price must be positive", sell_price=sell_price)

        async with self.locks.acquire(pool_name):
            with self.session_scope(pool_name) as db:
                pool = self.require_pool(db, pool_name)
                position = pool.active_position_for(instrument_id)
                if position is None:
                    logger.warning(f"Rejected sale of {instrument_id} in {pool_name}: no active position")
                    raise NoPositionError(pool_name, instrument_id)
                shares = resolve_shares(position)
                result = self._sell_locked(
                    db, pool, position, shares, sell_price, executed_by, execution_method, notes,
                )

        logger.info(
            f"Sold {result.shares_sold} {result.symbol} @ {result.sell_price} in {pool_name}: "
            f"realized {result.realized_profit:.2f}, released {result.capital_released:.2f}, "
            f"remaining {result.remaining_shares}"
        )
        return result

    def _sell_locked(
        self,
        db: Session,
        pool: CapitalPool,
        position: Position,
        shares: float,
        sell_price: float,
        executed_by: Optional[str],
        execution_method: str,
        notes: Optional[str],
    ) -> SaleResult:
        """Sale body; the caller holds the pool lock and owns the transaction"""
        if shares > position.shares + settings.SHARE_EPSILON:
            logger.warning(
                f"Rejected sale of {shares} {position.symbol} in {pool.name}: only {position.shares} held"
            )
            raise InsufficientSharesError(pool.name, position.instrument_id, shares, position.shares)

        now = datetime.now(timezone.utc)
        new_state, outcome = apply_sale(
            position.to_state(), shares, sell_price, now, executed_by, settings.SHARE_EPSILON,
        )
        position.apply_state(new_state)
        if outcome.is_complete_sale:
            position.closed_at = now

        sale = SaleRecord(
            percentage_of_original=outcome.percentage_of_original,
            shares_sold=outcome.shares_sold,
            sell_price=outcome.sell_price,
            capital_released=outcome.capital_released,
            realized_profit=outcome.realized_profit,
            executed_at=now,
            executed_by=executed_by,
            is_complete_sale=outcome.is_complete_sale,
            discarded=False,
        )
        position.sale_history.append(sale)

        self.recompute_totals(pool)
        entry = self.ledger.append(
            db,
            pool,
            position.instrument_id,
            position.symbol,
            OPERATION_SELL,
            outcome.shares_sold,
            sell_price,
            running_balance=pool.available_capital,
            is_partial_sale=not outcome.is_complete_sale,
            partial_sale_percentage=outcome.percentage_of_original,
            realized_profit=outcome.realized_profit,
            executed_by=executed_by,
            execution_method=execution_method,
            notes=notes,
            timestamp=now,
        )
        db.flush()

        return SaleResult(
            pool=pool.name,
            instrument_id=position.instrument_id,
            symbol=position.symbol,
            sale_id=sale.id,
            shares_sold=outcome.shares_sold,
            sell_price=sell_price,
            capital_released=outcome.capital_released,
            realized_profit=outcome.realized_profit,
            remaining_shares=outcome.remaining_shares,
            percentage_of_original=outcome.percentage_of_original,
            is_complete_sale=outcome.is_complete_sale,
            ledger_entry_id=entry.id,
            position=position.to_dict(),
            pool_totals=self._totals_dict(pool),
        )

    async def discard_sale(self, pool_name: str, sale_id: int, reason: Optional[str] = None) -> Dict[str, Any]:
        """
        Void a recorded sale.

        The sale stays in the history flagged as discarded; the position is
        re-derived from its remaining sales (shares come back, realized profit
        goes away) and the pool is recomputed.
        """
        async with self.locks.acquire(pool_name):
            with self.session_scope(pool_name) as db:
                pool = self.require_pool(db, pool_name)
                sale = (
                    db.query(SaleRecord)
                    .join(Position, SaleRecord.position_id == Position.id)
                    .filter(SaleRecord.id == sale_id, Position.pool_id == pool.id)
                    .first()
                )
                if sale is None:
                    raise SaleNotFoundError(pool_name, sale_id)

                position = sale.position
                if sale.discarded:
                    logger.info(f"Sale {sale_id} in {pool_name} already discarded")
                    return {
                        "sale": sale.to_dict(),
                        "position": position.to_dict(),
                        "pool_totals": self._totals_dict(pool),
                    }

                sale.discarded = True
                sale.discarded_at = datetime.now(timezone.utc)
                sale.discard_reason = reason

                rebuilt = rebuild_from_sales(
                    position.to_state(),
                    [SaleFigures(s.shares_sold, s.realized_profit, s.discarded) for s in position.sale_history],
                    settings.SHARE_EPSILON,
                )
                if rebuilt.is_active and not position.is_active:
                    other = pool.active_position_for(position.instrument_id)
                    if other is not None:
                        raise ConflictError(
                            pool_name,
                            f"cannot reopen {position.symbol}: another active position exists",
                        )
                if rebuilt.is_active:
                    after = compute_pool_totals(
                        pool.initial_capital,
                        [rebuilt if p is position else p.to_state() for p in pool.positions],
                        settings.SHARE_EPSILON,
                    )
                    if after.distributed_capital > after.total_capital + settings.CAPITAL_EPSILON:
                        committed_elsewhere = after.distributed_capital - rebuilt.allocated_amount
                        logger.warning(
                            f"Rejected discard of sale {sale_id} in {pool_name}: restoring "
                            f"{rebuilt.allocated_amount:.2f} of {position.symbol} exceeds total capital"
                        )
                        raise InsufficientCapitalError(
                            pool_name,
                            rebuilt.allocated_amount,
                            after.total_capital - committed_elsewhere,
                            reason=(
                                f"Cannot discard sale {sale_id}: restoring {position.symbol} would commit "
                                f"{after.distributed_capital:.2f} of {after.total_capital:.2f} total capital"
                            ),
                        )
                position.apply_state(rebuilt)

                self.recompute_totals(pool)
                db.flush()
                result = {
                    "sale": sale.to_dict(),
                    "position": position.to_dict(),
                    "pool_totals": self._totals_dict(pool),
                }

        logger.info(f"Discarded sale {sale_id} in {pool_name}" + (f": {reason}" if reason else ""))
        return result

    async def archive_position(
        self,
        pool_name: str,
        instrument_id: str,
        exit_price: Optional[float] = None,
        executed_by: Optional[str] = None,
        execution_method: str = EXECUTION_MANUAL,
    ) -> Dict[str, Any]:
        """
        Retire a position: sell out any remaining shares, then mark it archived.

        The sale uses the exit price when given, otherwise the last known
        price. Archived positions keep their realized history.
        """
        if exit_price is not None and exit_price <= 0:
            raise ValidationError("Exit price must be positive", exit_price=exit_price)

        async with self.locks.acquire(pool_name):
            with self.session_scope(pool_name) as db:
                pool = self.require_pool(db, pool_name)
                position = pool.active_position_for(instrument_id)
                if position is None:
                    closed = [
                        p for p in pool.positions
                        if p.instrument_id == instrument_id and p.status == POSITION_CLOSED
                    ]
                    if not closed:
                        raise NoPositionError(pool_name, instrument_id)
                    position = closed[-1]

                sale_result = None
                if position.is_active:
                    price = exit_price or position.current_price or position.entry_price
                    sale_result = self._sell_locked(
                        db, pool, position, position.shares, price, executed_by, execution_method,
                        "Position archived",
                    )

                position.status = POSITION_ARCHIVED
                self.recompute_totals(pool)
                db.flush()
                result = {
                    "position": position.to_dict(),
                    "sale": sale_result.to_dict() if sale_result else None,
                    "pool_totals": self._totals_dict(pool),
                }

        logger.info(f"Archived position {instrument_id} in {pool_name}")
        return result
