"""
Market data service: latest prices from Yahoo Finance
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import yfinance as yf

logger = logging.getLogger(__name__)


class MarketDataService:
    """Fetches last close prices with a short in-memory cache"""

    def __init__(self, cache_minutes: int = 1):
        self.cache: Dict[str, float] = {}
        self.cache_expiry: Dict[str, datetime] = {}
        self.cache_minutes = cache_minutes

        logger.info("Market data service initialized")

    def _is_cache_valid(self, symbol: str) -> bool:
        expiry_time = self.cache_expiry.get(symbol)
        return symbol in self.cache and expiry_time is not None and datetime.utcnow() < expiry_time

    def _cache_price(self, symbol: str, price: float):
        self.cache[symbol] = price
        self.cache_expiry[symbol] = datetime.utcnow() + timedelta(minutes=self.cache_minutes)

    def _fetch_yahoo_price(self, symbol: str) -> Optional[float]:
        try:
            hist = yf.Ticker(symbol).history(period="5d", interval="1d")
            if hist.empty:
                return None
            return float(hist.iloc[-1]["Close"])
        except Exception as e:
            logger.error(f"Error fetching Yahoo price for {symbol}: {e}")
            return None

    async def get_latest_price(self, symbol: str) -> Optional[float]:
        if self._is_cache_valid(symbol):
            return self.cache[symbol]

        price = await asyncio.to_thread(self._fetch_yahoo_price, symbol)
        if price is not None:
            self._cache_price(symbol, price)
        return price

    async def get_latest_prices(self, symbols: List[str]) -> Dict[str, float]:
        """Prices keyed by symbol; symbols with no data are left out"""
        prices = {}
        for symbol in symbols:
            price = await self.get_latest_price(symbol)
            if price is not None:
                prices[symbol] = price
            else:
                logger.warning(f"No price available for {symbol}")
        return prices
