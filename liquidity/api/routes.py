"""
API routes for the liquidity engine
"""
from fastapi import APIRouter, HTTPException, Depends, Response
from typing import Any, Dict, Optional
from datetime import datetime, timedelta, timezone
import logging

from liquidity.api.schemas import (
    AlertClosedRequest,
    AlertOpenedRequest,
    AllocationRequest,
    ArchiveRequest,
    DiscardSaleRequest,
    ErrorDetail,
    ErrorResponse,
    OrphanCleanupRequest,
    PoolCreateRequest,
    PoolResetRequest,
    PriceRefreshRequest,
    PublicPoolView,
    PublicPosition,
    SaleRequest,
)
from liquidity.api.security import require_api_key
from liquidity.core.config import settings
from liquidity.core.exceptions import (
    AlreadyExistsError,
    ConflictError,
    InsufficientCapitalError,
    InsufficientSharesError,
    InvariantViolationError,
    LiquidityError,
    NoPositionError,
    PoolNotFoundError,
    SaleNotFoundError,
    ValidationError,
)
from liquidity.services.alert_events import AlertClosed, AlertEventHandler, AlertOpened
from liquidity.services.audit_service import AuditService
from liquidity.services.market_data_service import MarketDataService
from liquidity.services.notification_service import NotificationService
from liquidity.services.pool_accountant import PoolAccountant
from liquidity.services.snapshot_service import SnapshotService
from liquidity.services.valuation_service import ValuationRecalculator

logger = logging.getLogger(__name__)

ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (400, 404, 409, 422, 500)}

# Create routers; every operator endpoint requires the API key
api_router = APIRouter(dependencies=[Depends(require_api_key)], responses=ERROR_RESPONSES)
public_router = APIRouter(prefix="/public", responses=ERROR_RESPONSES)

# Global services (will be injected)
accountant: Optional[PoolAccountant] = None
recalculator: Optional[ValuationRecalculator] = None
market_data_service: Optional[MarketDataService] = None
audit_service: Optional[AuditService] = None
snapshot_service: Optional[SnapshotService] = None
alert_handler: Optional[AlertEventHandler] = None
notification_service: Optional[NotificationService] = None

# Public pool views, cached per pool
public_cache: Dict[str, Dict[str, Any]] = {}
public_cache_expiry: Dict[str, datetime] = {}

ERROR_STATUS = [
    (ValidationError, 422),
    (InsufficientCapitalError, 400),
    (InsufficientSharesError, 400),
    (PoolNotFoundError, 404),
    (NoPositionError, 404),
    (SaleNotFoundError, 404),
    (AlreadyExistsError, 409),
    (ConflictError, 409),
    (InvariantViolationError, 500),
]


def set_services(pa: PoolAccountant, vr: ValuationRecalculator, md: Optional[MarketDataService],
                 aus: AuditService, ss: SnapshotService, ah: AlertEventHandler,
                 ns: Optional[NotificationService] = None):
    """Set global services"""
    global accountant, recalculator, market_data_service, audit_service, snapshot_service
    global alert_handler, notification_service
    accountant = pa
    recalculator = vr
    market_data_service = md
    audit_service = aus
    snapshot_service = ss
    alert_handler = ah
    notification_service = ns
    public_cache.clear()
    public_cache_expiry.clear()


def _require_accountant() -> PoolAccountant:
    if not accountant:
        raise HTTPException(status_code=503, detail="Pool accountant not available")
    return accountant


def _error_detail(error: LiquidityError) -> Dict[str, Any]:
    return ErrorDetail(**error.to_detail()).model_dump(exclude_none=True)


def _to_http(error: LiquidityError) -> HTTPException:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=_error_detail(error))
    return HTTPException(status_code=500, detail=_error_detail(error))


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# Pool Routes
@api_router.get("/pools")
async def list_pools():
    """List pool names"""
    pools = _require_accountant().list_pools()
    return {"pools": pools, "count": len(pools), "timestamp": _timestamp()}


@api_router.post("/pools", status_code=201)
async def create_pool(request: PoolCreateRequest):
    """Initialize a pool with its starting capital"""
    try:
        return await _require_accountant().initialize_pool(
            request.name, request.initial_capital, created_by=request.created_by,
        )
    except LiquidityError as e:
        raise _to_http(e)


@api_router.get("/pools/{pool}")
async def get_pool(pool: str, include_inactive: bool = False):
    """Pool totals and positions"""
    try:
        return _require_accountant().get_pool_summary(pool, include_inactive=include_inactive)
    except LiquidityError as e:
        raise _to_http(e)


@api_router.put("/pools/{pool}/initial-capital")
async def reset_initial_capital(pool: str, request: PoolResetRequest):
    """Reset a pool's baseline capital"""
    try:
        return await _require_accountant().reset_initial_capital(pool, request.initial_capital)
    except LiquidityError as e:
        raise _to_http(e)


@api_router.post("/pools/{pool}/recompute")
async def recompute_pool(pool: str):
    """Recompute stored totals from positions"""
    try:
        return await _require_accountant().recompute(pool)
    except LiquidityError as e:
        raise _to_http(e)


# Position Routes
@api_router.post("/pools/{pool}/allocations", status_code=201)
async def allocate(pool: str, request: AllocationRequest):
    """Allocate capital to an instrument"""
    try:
        result = await _require_accountant().allocate(
            pool,
            request.instrument_id,
            request.symbol,
            request.entry_price,
            percentage=request.percentage,
            amount=request.amount,
            executed_by=request.executed_by,
            execution_method=request.execution_method,
            notes=request.notes,
        )
    except LiquidityError as e:
        raise _to_http(e)

    if notification_service:
        await notification_service.send_allocation_notification(result.to_dict())
    return result.to_dict()


@api_router.post("/pools/{pool}/positions/{instrument_id}/sell")
async def sell_position(pool: str, instrument_id: str, request: SaleRequest):
    """Sell shares, a percentage, or the whole position"""
    pa = _require_accountant()
    try:
        if request.complete:
            result = await pa.sell_all(
                pool, instrument_id, request.sell_price,
                executed_by=request.executed_by, notes=request.notes,
            )
        elif request.percentage is not None:
            result = await pa.sell_percentage(
                pool, instrument_id, request.percentage, request.sell_price,
                executed_by=request.executed_by, notes=request.notes,
            )
        else:
            result = await pa.sell(
                pool, instrument_id, request.shares, request.sell_price,
                executed_by=request.executed_by, notes=request.notes,
            )
    except LiquidityError as e:
        raise _to_http(e)

    if notification_service:
        await notification_service.send_sale_notification(result.to_dict())
    return result.to_dict()


@api_router.post("/pools/{pool}/positions/{instrument_id}/archive")
async def archive_position(pool: str, instrument_id: str, request: ArchiveRequest):
    """Sell out and archive a position"""
    try:
        return await _require_accountant().archive_position(
            pool, instrument_id, exit_price=request.exit_price, executed_by=request.executed_by,
        )
    except LiquidityError as e:
        raise _to_http(e)


@api_router.post("/pools/{pool}/sales/{sale_id}/discard")
async def discard_sale(pool: str, sale_id: int, request: DiscardSaleRequest):
    """Void a recorded sale"""
    try:
        return await _require_accountant().discard_sale(pool, sale_id, reason=request.reason)
    except LiquidityError as e:
        raise _to_http(e)


# Valuation Routes
@api_router.post("/pools/{pool}/prices")
async def refresh_prices(pool: str, request: PriceRefreshRequest):
    """Mark open positions to market"""
    if not recalculator:
        raise HTTPException(status_code=503, detail="Valuation service not available")

    try:
        prices = request.prices
        if prices is None:
            if not market_data_service:
                raise HTTPException(status_code=503, detail="Market data service not available")
            summary = _require_accountant().get_pool_summary(pool)
            symbols = sorted({p["symbol"] for p in summary["positions"]})
            prices = await market_data_service.get_latest_prices(symbols)
        return await recalculator.refresh(pool, prices)
    except LiquidityError as e:
        raise _to_http(e)


# Ledger Routes
@api_router.get("/pools/{pool}/ledger")
async def get_ledger(pool: str, limit: int = 100, symbol: Optional[str] = None,
                     operation_type: Optional[str] = None):
    """Ledger entries, newest first"""
    try:
        entries = _require_accountant().ledger.list_entries(
            pool, limit=limit, symbol=symbol, operation_type=operation_type,
        )
    except LiquidityError as e:
        raise _to_http(e)
    return {"entries": entries, "count": len(entries), "timestamp": _timestamp()}


@api_router.get("/pools/{pool}/ledger/summary")
async def get_ledger_summary(pool: str):
    """Per-symbol ledger aggregates"""
    try:
        summary = _require_accountant().ledger.summary_by_symbol(pool)
    except LiquidityError as e:
        raise _to_http(e)
    return {"symbols": summary, "count": len(summary), "timestamp": _timestamp()}


# Audit Routes
@api_router.get("/pools/{pool}/verify")
async def verify_pool(pool: str):
    """Compare stored totals with totals derived from positions"""
    if not audit_service:
        raise HTTPException(status_code=503, detail="Audit service not available")
    try:
        return audit_service.verify_pool(pool)
    except LiquidityError as e:
        raise _to_http(e)


@api_router.get("/pools/{pool}/duplicates")
async def find_duplicates(pool: str):
    if not audit_service:
        raise HTTPException(status_code=503, detail="Audit service not available")
    try:
        return {"duplicates": audit_service.find_duplicate_positions(pool)}
    except LiquidityError as e:
        raise _to_http(e)


@api_router.post("/pools/{pool}/orphans/cleanup")
async def cleanup_orphans(pool: str, request: OrphanCleanupRequest):
    """Archive active positions whose alert is no longer open"""
    if not audit_service:
        raise HTTPException(status_code=503, detail="Audit service not available")
    try:
        return await audit_service.cleanup_orphans(
            pool, request.open_instrument_ids, dry_run=request.dry_run, exit_prices=request.exit_prices,
        )
    except LiquidityError as e:
        raise _to_http(e)


# Snapshot Routes
@api_router.post("/pools/{pool}/snapshots", status_code=201)
async def save_snapshot(pool: str):
    if not snapshot_service:
        raise HTTPException(status_code=503, detail="Snapshot service not available")
    try:
        return snapshot_service.save_daily_snapshot(pool)
    except LiquidityError as e:
        raise _to_http(e)


@api_router.get("/pools/{pool}/returns")
async def get_returns(pool: str):
    """Period returns from daily snapshots"""
    if not snapshot_service:
        raise HTTPException(status_code=503, detail="Snapshot service not available")
    try:
        return snapshot_service.calculate_returns(pool)
    except LiquidityError as e:
        raise _to_http(e)


# Alert Routes
@api_router.post("/pools/{pool}/alerts/opened", status_code=201)
async def alert_opened(pool: str, request: AlertOpenedRequest):
    """Allocate for a newly opened alert"""
    if not alert_handler:
        raise HTTPException(status_code=503, detail="Alert handler not available")
    try:
        result = await alert_handler.on_alert_opened(AlertOpened(pool=pool, **request.model_dump()))
    except LiquidityError as e:
        raise _to_http(e)
    return result.to_dict()


@api_router.post("/pools/{pool}/alerts/closed")
async def alert_closed(pool: str, request: AlertClosedRequest):
    """Sell out and archive the position of a closed alert"""
    if not alert_handler:
        raise HTTPException(status_code=503, detail="Alert handler not available")
    try:
        result = await alert_handler.on_alert_closed(AlertClosed(pool=pool, **request.model_dump()))
    except LiquidityError as e:
        raise _to_http(e)
    return {"closed": result is not None, "result": result}


# Public Routes
def _public_view(summary: Dict[str, Any]) -> Dict[str, Any]:
    positions = [
        PublicPosition(
            instrument_id=p["instrument_id"],
            symbol=p["symbol"],
            percentage=p["percentage"] or 0.0,
            allocated_amount=p["allocated_amount"] or 0.0,
            shares=p["shares"] or 0.0,
            entry_price=p["entry_price"] or 0.0,
            current_price=p["current_price"] or 0.0,
            unrealized_pl=p["unrealized_pl"] or 0.0,
            unrealized_pl_percent=p["unrealized_pl_percent"] or 0.0,
            realized_pl=p["realized_pl"] or 0.0,
        )
        for p in summary["positions"]
    ]
    view = PublicPoolView(
        pool=summary["pool"],
        total_capital=summary["total_capital"] or 0.0,
        positions=positions,
        updated_at=summary["updated_at"],
    )
    return view.model_dump()


@public_router.get("/pools/{pool}", response_model=PublicPoolView)
async def get_public_pool(pool: str, response: Response):
    """Total capital and active positions of a pool, without operator fields"""
    ttl = settings.PUBLIC_CACHE_SECONDS
    response.headers["Cache-Control"] = f"public, max-age={ttl}"

    expiry_time = public_cache_expiry.get(pool)
    if pool in public_cache and expiry_time is not None and datetime.utcnow() < expiry_time:
        return public_cache[pool]

    try:
        view = _public_view(_require_accountant().get_pool_summary(pool))
    except LiquidityError as e:
        raise _to_http(e)

    public_cache[pool] = view
    public_cache_expiry[pool] = datetime.utcnow() + timedelta(seconds=ttl)
    return view
