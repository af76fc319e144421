"""
Notification service for allocation and sale notices
"""
import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Dict, Any
from datetime import datetime, timezone

from liquidity.core.config import settings

logger = logging.getLogger(__name__)


class NotificationService:
    """Logs notices and optionally emails them to subscribers"""

    def __init__(self):
        self.email_enabled = settings.EMAIL_ENABLED
        self.email_config = {
            "host": settings.EMAIL_HOST,
            "port": settings.EMAIL_PORT,
            "user": settings.EMAIL_USER,
            "password": settings.EMAIL_PASSWORD,
        }
        self.recipients = settings.get_email_recipients()

        logger.info("Notification service initialized")

    async def send_alert(self, title: str, message: str, priority: str = "MEDIUM") -> bool:
        """
        Send a notice

        Args:
            title: Notice title
            message: Notice body
            priority: LOW, MEDIUM, HIGH or CRITICAL

        Returns:
            True if handled, False if delivery failed
        """
        try:
            logger.info(f"NOTICE [{priority}]: {title} - {message}")

            if self.email_enabled:
                return await self._send_email(title, message, priority)
            return True

        except Exception as e:
            logger.error(f"Error sending notice: {e}")
            return False

    async def send_allocation_notification(self, allocation: Dict[str, Any]) -> bool:
        symbol = allocation.get("symbol", "")
        pool = allocation.get("pool", "")
        title = f"Allocation: {symbol} in {pool}"
        message = f"""
Allocation Details:
- Pool: {pool}
- Symbol: {symbol}
- Shares: {allocation.get('shares', 0)}
- Price: ${allocation.get('price', 0):.2f}
- Amount: ${allocation.get('amount', 0):,.2f} ({allocation.get('percentage', 0):.2f}%)
- Available Capital: ${allocation.get('pool_totals', {}).get('available_capital', 0):,.2f}
- Timestamp: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}
"""
        return await self.send_alert(title, message, "MEDIUM")

    async def send_sale_notification(self, sale: Dict[str, Any]) -> bool:
        symbol = sale.get("symbol", "")
        pool = sale.get("pool", "")
        kind = "Complete sale" if sale.get("is_complete_sale") else "Partial sale"
        title = f"{kind}: {symbol} in {pool}"
        message = f"""
Sale Details:
- Pool: {pool}
- Symbol: {symbol}
- Shares Sold: {sale.get('shares_sold', 0)}
- Sell Price: ${sale.get('sell_price', 0):.2f}
- Realized Profit: ${sale.get('realized_profit', 0):,.2f}
- Capital Released: ${sale.get('capital_released', 0):,.2f}
- Remaining Shares: {sale.get('remaining_shares', 0)}
- Timestamp: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}
"""
        return await self.send_alert(title, message, "HIGH")

    async def _send_email(self, subject: str, body: str, priority: str = "MEDIUM") -> bool:
        try:
            if not self.is_email_enabled():
                logger.warning("Email notifications not configured")
                return False

            recipients = self.recipients or [self.email_config["user"]]
            msg = MIMEMultipart()
            msg['From'] = self.email_config["user"]
            msg['To'] = ", ".join(recipients)
            msg['Subject'] = f"[{priority}] {subject}"
            msg.attach(MIMEText(body, 'plain'))

            with smtplib.SMTP(self.email_config["host"], self.email_config["port"], timeout=30) as server:
                server.starttls()
                server.login(self.email_config["user"], self.email_config["password"])
                server.sendmail(self.email_config["user"], recipients, msg.as_string())

            logger.info(f"Email sent successfully: {subject}")
            return True

        except Exception as e:
            logger.error(f"Error sending email: {e}")
            return False

    def is_email_enabled(self) -> bool:
        return self.email_enabled and all([
            self.email_config["user"],
            self.email_config["password"],
            self.email_config["host"],
        ])
