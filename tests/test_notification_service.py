import pytest

from liquidity.core.config import settings
from liquidity.services.notification_service import NotificationService


class DummySMTP:
    def __init__(self):
        self.logged_in = False
        self.sent = False
        self.last_from = None
        self.last_to = None
        self.last_text = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def starttls(self):
        return None

    def login(self, user, password):
        self.logged_in = bool(user and password)

    def sendmail(self, from_addr, to_addrs, msg):
        self.sent = True
        self.last_from = from_addr
        self.last_to = to_addrs
        self.last_text = msg


def _configure_email(monkeypatch, smtp, recipients):
    monkeypatch.setattr(settings, "EMAIL_ENABLED", True)
    monkeypatch.setattr(settings, "EMAIL_HOST", "smtp.example.com")
    monkeypatch.setattr(settings, "EMAIL_PORT", 587)
    monkeypatch.setattr(settings, "EMAIL_USER", "engine@example.com")
    monkeypatch.setattr(settings, "EMAIL_PASSWORD", "secret")
    monkeypatch.setattr(settings, "EMAIL_TO", recipients)
    monkeypatch.setattr(
        "liquidity.services.notification_service.smtplib.SMTP",
        lambda host, port, timeout=None: smtp,
    )


@pytest.mark.asyncio
async def test_send_email_uses_configured_recipient_list(monkeypatch):
    smtp = DummySMTP()
    _configure_email(monkeypatch, smtp, ["ops@example.com", "subscribers@example.com"])

    service = NotificationService()
    sent = await service.send_alert("Test", "Body", "LOW")

    assert sent
    assert smtp.logged_in
    assert smtp.sent
    assert smtp.last_to == ["ops@example.com", "subscribers@example.com"]


@pytest.mark.asyncio
async def test_send_email_falls_back_to_sender(monkeypatch):
    smtp = DummySMTP()
    _configure_email(monkeypatch, smtp, "")

    sent = await NotificationService().send_alert("Test", "Body")

    assert sent
    assert smtp.last_to == ["engine@example.com"]


@pytest.mark.asyncio
async def test_email_not_configured_reports_failure(monkeypatch):
    monkeypatch.setattr(settings, "EMAIL_ENABLED", True)
    monkeypatch.setattr(settings, "EMAIL_USER", None)

    assert not await NotificationService().send_alert("Test", "Body")


@pytest.mark.asyncio
async def test_sale_notification_reports_profit_and_released_capital(monkeypatch):
    captured = {}

    async def fake_send_alert(title, message, priority="MEDIUM"):
        captured["title"] = title
        captured["message"] = message
        captured["priority"] = priority
        return True

    service = NotificationService()
    monkeypatch.setattr(service, "send_alert", fake_send_alert)

    sent = await service.send_sale_notification(
        {
            "pool": "TraderCall",
            "symbol": "ABC",
            "shares_sold": 30,
            "sell_price": 12.0,
            "realized_profit": 60.0,
            "capital_released": 360.0,
            "remaining_shares": 0.0,
            "is_complete_sale": True,
        }
    )

    assert sent
    assert captured["title"] == "Complete sale: ABC in TraderCall"
    assert captured["priority"] == "HIGH"
    assert "Realized Profit: $60.00" in captured["message"]
    assert "Capital Released: $360.00" in captured["message"]


@pytest.mark.asyncio
async def test_allocation_notification_formats_amount(monkeypatch):
    captured = {}

    async def fake_send_alert(title, message, priority="MEDIUM"):
        captured["message"] = message
        return True

    service = NotificationService()
    monkeypatch.setattr(service, "send_alert", fake_send_alert)

    await service.send_allocation_notification(
        {"pool": "TraderCall", "symbol": "ABC", "shares": 30, "price": 10.0, "amount": 300.0,
         "percentage": 30.0, "pool_totals": {"available_capital": 700.0}}
    )

    assert "Amount: $300.00 (30.00%)" in captured["message"]
    assert "Available Capital: $700.00" in captured["message"]
