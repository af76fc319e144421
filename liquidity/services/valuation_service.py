"""
Mark-to-market of open positions and the periodic refresh loop
"""
import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional
from zoneinfo import ZoneInfo

from liquidity.core.config import settings
from liquidity.core.positions import mark_to_market
from liquidity.services.pool_accountant import PoolAccountant

logger = logging.getLogger(__name__)

PriceSource = Callable[[List[str]], Awaitable[Mapping[str, float]]]


def _usable_price(value: Any) -> Optional[float]:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price <= 0:
        return None
    return price


def lookup_price(price_map: Mapping[str, Any], instrument_id: str, symbol: str) -> Optional[float]:
    """Price by instrument id first, then by symbol; unusable prices count as missing"""
    for key in (instrument_id, symbol, (symbol or "").upper()):
        if key and key in price_map:
            price = _usable_price(price_map[key])
            if price is not None:
                return price
    return None


class ValuationRecalculator:
    """Applies fresh prices to a pool's open positions"""

    def __init__(self, accountant: PoolAccountant):
        self.accountant = accountant

    async def refresh(self, pool_name: str, price_map: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Mark every active position of the pool to the given prices.

        Positions without a usable price keep their last known valuation.
        Applying the same prices twice leaves the figures unchanged.
        """
        async with self.accountant.locks.acquire(pool_name):
            with self.accountant.session_scope(pool_name) as db:
                pool = self.accountant.require_pool(db, pool_name)
                updated, stale = [], []
                changed = False
                for position in pool.active_positions():
                    price = lookup_price(price_map, position.instrument_id, position.symbol)
                    if price is None:
                        stale.append(position.symbol)
                        continue
                    current = position.to_state()
                    marked = mark_to_market(current, price)
                    if marked != current:
                        position.apply_state(marked)
                        changed = True
                    updated.append(position.symbol)

                self.accountant.recompute_totals(pool, touch=changed)
                db.flush()
                summary = self.accountant.summarize(pool)

        if stale:
            logger.warning(f"No usable price for {stale} in {pool_name}; kept last valuation")
        logger.info(f"Refreshed {len(updated)} positions in {pool_name}")
        summary["updated"] = updated
        summary["stale"] = stale
        return summary

    async def refresh_all(self, price_source: PriceSource,
                          pool_names: Optional[Iterable[str]] = None) -> Dict[str, Dict[str, Any]]:
        """Fetch prices for every open instrument and refresh each pool"""
        names = list(pool_names) if pool_names is not None else self.accountant.list_pools()
        results: Dict[str, Dict[str, Any]] = {}
        for name in names:
            summary = self.accountant.get_pool_summary(name)
            symbols = sorted({p["symbol"] for p in summary["positions"]})
            if not symbols:
                continue
            try:
                prices = await price_source(symbols)
                results[name] = await self.refresh(name, prices)
            except Exception as e:
                logger.error(f"Error refreshing pool {name}: {e}")
        return results


def is_market_open(now: Optional[datetime] = None) -> bool:
    """Weekday session between MARKET_OPEN and MARKET_CLOSE in the market timezone"""
    now = now or datetime.now(timezone.utc)
    local = now.astimezone(ZoneInfo(settings.MARKET_TIMEZONE))
    if local.weekday() >= 5:
        return False
    return settings.get_market_open() <= local.time() < settings.get_market_close()


class ValuationScheduler:
    """Background loop that refreshes valuations during market hours"""

    def __init__(self, recalculator: ValuationRecalculator, price_source: PriceSource,
                 interval: Optional[int] = None):
        self.recalculator = recalculator
        self.price_source = price_source
        self.interval = interval or settings.PRICE_REFRESH_INTERVAL
        self.is_running_flag = False
        self.task = None
        self.last_run: Optional[datetime] = None

    async def start(self):
        self.is_running_flag = True
        self.task = asyncio.create_task(self._loop())
        logger.info(f"Valuation scheduler started (every {self.interval}s)")

    async def stop(self):
        self.is_running_flag = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
        logger.info("Valuation scheduler stopped")

    def is_running(self) -> bool:
        return self.is_running_flag

    async def run_once(self, now: Optional[datetime] = None) -> bool:
        """Refresh all pools unless the market is closed; returns whether a refresh ran"""
        if not settings.REFRESH_OUTSIDE_MARKET_HOURS and not is_market_open(now):
            logger.debug("Market closed, skipping valuation refresh")
            return False
        await self.recalculator.refresh_all(self.price_source)
        self.last_run = datetime.now(timezone.utc)
        return True

    async def _loop(self):
        while self.is_running_flag:
            try:
                await self.run_once()
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error in valuation loop: {e}")
                await asyncio.sleep(60)
