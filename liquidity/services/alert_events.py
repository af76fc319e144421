"""
Translates trade alert lifecycle events into pool operations
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from liquidity.core.config import settings
from liquidity.core.exceptions import NoPositionError
from liquidity.models.ledger import EXECUTION_AUTOMATIC
from liquidity.services.pool_accountant import AllocationResult, PoolAccountant

logger = logging.getLogger(__name__)


@dataclass
class AlertOpened:
    pool: str
    instrument_id: str
    symbol: str
    entry_price: float
    entry_range_top: Optional[float] = None
    percentage: Optional[float] = None
    executed_by: Optional[str] = None


@dataclass
class AlertClosed:
    pool: str
    instrument_id: str
    exit_price: Optional[float] = None
    executed_by: Optional[str] = None


class AlertEventHandler:
    """Opens positions for new alerts and retires them when alerts close"""

    def __init__(self, accountant: PoolAccountant, notification_service=None):
        self.accountant = accountant
        self.notification_service = notification_service

    async def on_alert_opened(self, event: AlertOpened) -> AllocationResult:
        # The top of the proposed entry range is the conservative fill price.
        price = event.entry_range_top if event.entry_range_top else event.entry_price
        percentage = event.percentage if event.percentage else settings.DEFAULT_ALERT_ALLOCATION_PERCENT

        result = await self.accountant.allocate(
            event.pool,
            event.instrument_id,
            event.symbol,
            price,
            percentage=percentage,
            executed_by=event.executed_by,
            execution_method=EXECUTION_AUTOMATIC,
            notes="Alert opened",
        )
        if self.notification_service:
            await self.notification_service.send_allocation_notification(result.to_dict())
        return result

    async def on_alert_closed(self, event: AlertClosed) -> Optional[Dict[str, Any]]:
        """Sell out and archive; returns None when the pool holds nothing for the alert"""
        try:
            result = await self.accountant.archive_position(
                event.pool,
                event.instrument_id,
                exit_price=event.exit_price,
                executed_by=event.executed_by,
                execution_method=EXECUTION_AUTOMATIC,
            )
        except NoPositionError:
            logger.warning(f"Alert closed for {event.instrument_id} in {event.pool} with no position to close")
            return None

        if self.notification_service and result.get("sale"):
            await self.notification_service.send_sale_notification(result["sale"])
        return result
