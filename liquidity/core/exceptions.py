"""
Exception hierarchy for the liquidity engine.

Every capital-affecting operation either succeeds completely or raises one of
these; nothing is clamped or retried inside the engine.
"""
from typing import Any, Dict, Optional


class LiquidityError(Exception):
    """Base exception for all liquidity engine errors."""

    error_code = "liquidity.error"

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context: Dict[str, Any] = context
        super().__init__(message)

    def to_detail(self) -> Dict[str, Any]:
        detail: Dict[str, Any] = {"error_code": self.error_code, "message": self.message}
        if self.context:
            detail["context"] = self.context
        return detail


class ValidationError(LiquidityError, ValueError):
    """Raised when an operation receives invalid arguments."""

    error_code = "liquidity.invalid_request"


class InsufficientCapitalError(LiquidityError):
    """Raised when an allocation would exceed the pool's total capital."""

    error_code = "liquidity.insufficient_capital"

    def __init__(self, pool: str, required: float, available: float, reason: Optional[str] = None):
        self.pool = pool
        self.required = required
        self.available = available
        message = reason or (
            f"Insufficient capital in pool {pool}: required={required:.2f}, available={available:.2f}"
        )
        super().__init__(message, pool=pool, required=required, available=available)


class InsufficientSharesError(LiquidityError):
    """Raised when a sale asks for more shares than the position holds."""

    error_code = "liquidity.insufficient_shares"

    def __init__(self, pool: str, instrument_id: str, requested: float, held: float):
        self.pool = pool
        self.instrument_id = instrument_id
        self.requested = requested
        self.held = held
        super().__init__(
            f"Insufficient shares for {instrument_id} in pool {pool}: requested={requested}, held={held}",
            pool=pool,
            instrument_id=instrument_id,
            requested=requested,
            held=held,
        )


class NoPositionError(LiquidityError):
    """Raised when no active position exists for an instrument."""

    error_code = "liquidity.no_position"

    def __init__(self, pool: str, instrument_id: str):
        self.pool = pool
        self.instrument_id = instrument_id
        super().__init__(
            f"No active position for {instrument_id} in pool {pool}",
            pool=pool,
            instrument_id=instrument_id,
        )


class PoolNotFoundError(LiquidityError):
    """Raised when a pool has not been initialized."""

    error_code = "liquidity.pool_not_found"

    def __init__(self, pool: str):
        self.pool = pool
        super().__init__(f"Pool {pool} is not initialized", pool=pool)


class SaleNotFoundError(LiquidityError):
    """Raised when a sale record does not exist in the pool."""

    error_code = "liquidity.sale_not_found"

    def __init__(self, pool: str, sale_id: int):
        self.pool = pool
        self.sale_id = sale_id
        super().__init__(f"Sale {sale_id} not found in pool {pool}", pool=pool, sale_id=sale_id)


class AlreadyExistsError(LiquidityError):
    """Raised when creating a pool that already exists."""

    error_code = "liquidity.already_exists"

    def __init__(self, pool: str):
        self.pool = pool
        super().__init__(f"Pool {pool} already exists", pool=pool)


class InvariantViolationError(LiquidityError):
    """Raised when recomputed pool totals break an accounting identity."""

    error_code = "liquidity.invariant_violation"

    def __init__(self, pool: str, violations: list):
        self.pool = pool
        self.violations = violations
        super().__init__(
            f"Invariant violation in pool {pool}: {'; '.join(violations)}",
            pool=pool,
            violations=violations,
        )


class ConflictError(LiquidityError):
    """Raised when the pool is busy or a concurrent write was detected."""

    error_code = "liquidity.conflict"

    def __init__(self, pool: str, reason: str):
        self.pool = pool
        self.reason = reason
        super().__init__(f"Conflict on pool {pool}: {reason}. Retry the operation.", pool=pool)
