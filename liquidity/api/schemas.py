"""
Pydantic schemas for API request/response contracts.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from liquidity.models.ledger import EXECUTION_MANUAL, EXECUTION_AUTOMATIC, EXECUTION_ADMIN

VALID_EXECUTION_METHODS = {EXECUTION_MANUAL, EXECUTION_AUTOMATIC, EXECUTION_ADMIN}


class ErrorDetail(BaseModel):
    error_code: str
    message: str
    context: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    detail: ErrorDetail


class PublicPosition(BaseModel):
    instrument_id: str
    symbol: str
    percentage: float
    allocated_amount: float
    shares: float
    entry_price: float
    current_price: float
    unrealized_pl: float
    unrealized_pl_percent: float
    realized_pl: float


class PublicPoolView(BaseModel):
    pool: str
    total_capital: float
    positions: List[PublicPosition]
    updated_at: Optional[str] = None


class PoolCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    initial_capital: float = Field(gt=0)
    created_by: Optional[str] = Field(default=None, max_length=100)


class PoolResetRequest(BaseModel):
    initial_capital: float = Field(gt=0)


class AllocationRequest(BaseModel):
    instrument_id: str = Field(min_length=1, max_length=64)
    symbol: str = Field(min_length=1, max_length=20)
    entry_price: float = Field(gt=0)
    percentage: Optional[float] = Field(default=None, gt=0)
    amount: Optional[float] = Field(default=None, gt=0)
    executed_by: Optional[str] = Field(default=None, max_length=100)
    execution_method: str = Field(default=EXECUTION_MANUAL)
    notes: Optional[str] = None

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("execution_method")
    @classmethod
    def validate_execution_method(cls, value: str) -> str:
        normalized = str(value or EXECUTION_MANUAL).strip().upper()
        if normalized not in VALID_EXECUTION_METHODS:
            raise ValueError(f"execution_method must be one of: {', '.join(sorted(VALID_EXECUTION_METHODS))}")
        return normalized

    @model_validator(mode="after")
    def validate_size(self):
        if (self.percentage is None) == (self.amount is None):
            raise ValueError("Provide exactly one of percentage or amount")
        return self


class SaleRequest(BaseModel):
    """Exactly one of shares, percentage or complete selects the sale size."""
    sell_price: float = Field(gt=0)
    shares: Optional[float] = Field(default=None, gt=0)
    percentage: Optional[float] = Field(default=None, gt=0, le=100)
    complete: bool = False
    executed_by: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_size(self):
        chosen = [self.shares is not None, self.percentage is not None, self.complete]
        if sum(chosen) != 1:
            raise ValueError("Provide exactly one of shares, percentage or complete")
        return self


class DiscardSaleRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class ArchiveRequest(BaseModel):
    exit_price: Optional[float] = Field(default=None, gt=0)
    executed_by: Optional[str] = Field(default=None, max_length=100)


class PriceRefreshRequest(BaseModel):
    """Prices keyed by instrument id or symbol; omit to fetch from market data."""
    prices: Optional[Dict[str, float]] = None


class AlertOpenedRequest(BaseModel):
    instrument_id: str = Field(min_length=1, max_length=64)
    symbol: str = Field(min_length=1, max_length=20)
    entry_price: float = Field(gt=0)
    entry_range_top: Optional[float] = Field(default=None, gt=0)
    percentage: Optional[float] = Field(default=None, gt=0)
    executed_by: Optional[str] = Field(default=None, max_length=100)


class AlertClosedRequest(BaseModel):
    instrument_id: str = Field(min_length=1, max_length=64)
    exit_price: Optional[float] = Field(default=None, gt=0)
    executed_by: Optional[str] = Field(default=None, max_length=100)


class OrphanCleanupRequest(BaseModel):
    open_instrument_ids: List[str] = Field(default_factory=list)
    dry_run: bool = True
    exit_prices: Optional[Dict[str, float]] = None
