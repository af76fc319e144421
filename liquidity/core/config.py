"""
Application configuration management
"""
import json
from datetime import time
from typing import Any, List, Optional
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Ensure repository .env values win over stale exported shell variables.
load_dotenv(override=True)

VALID_ENTRY_PRICE_MODES = {"weighted", "fixed"}


class Settings(BaseSettings):
    """Application settings"""
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Database
    DATABASE_URL: str = "sqlite:///./liquidity.db"

    # Pools
    POOL_NAMES: Any = ["TraderCall", "SmartMoney"]
    DEFAULT_INITIAL_CAPITAL: float = 10000.0
    AUTO_CREATE_POOLS: bool = True

    # Allocation and sale accounting
    WHOLE_SHARES: bool = True
    ENTRY_PRICE_MODE: str = "weighted"  # weighted | fixed
    SHARE_EPSILON: float = 1e-4
    CAPITAL_EPSILON: float = 1e-6
    INVARIANT_TOLERANCE: float = 0.01
    VERIFY_INVARIANTS: bool = True
    DEFAULT_ALERT_ALLOCATION_PERCENT: float = 5.0

    # Concurrency
    POOL_LOCK_TIMEOUT_SECONDS: float = 5.0

    # Valuation refresh
    PRICE_REFRESH_INTERVAL: int = 300  # seconds
    MARKET_TIMEZONE: str = "America/New_York"
    MARKET_OPEN: str = "09:30"
    MARKET_CLOSE: str = "16:00"
    REFRESH_OUTSIDE_MARKET_HOURS: bool = False

    # Daily snapshots (day boundary expressed as a UTC offset)
    SNAPSHOT_UTC_OFFSET_HOURS: int = -3

    # Notification Settings
    EMAIL_ENABLED: bool = False
    EMAIL_HOST: str = "smtp.gmail.com"
    EMAIL_PORT: int = 587
    EMAIL_USER: Optional[str] = None
    EMAIL_PASSWORD: Optional[str] = None
    EMAIL_TO: Any = ""

    # Security
    API_AUTH_ENABLED: bool = True
    API_AUTH_TOKEN: str = "change-me-api-token"
    CORS_ORIGINS: str = "http://localhost:8000,http://127.0.0.1:8000"
    PUBLIC_CACHE_SECONDS: int = 60  # TTL of the unauthenticated pool view

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/liquidity_engine.log"

    @field_validator('DEFAULT_INITIAL_CAPITAL', 'SHARE_EPSILON', 'INVARIANT_TOLERANCE', 'POOL_LOCK_TIMEOUT_SECONDS')
    @classmethod
    def validate_positive_numbers(cls, v):
        if v <= 0:
            raise ValueError('Must be positive')
        return v

    @field_validator('CAPITAL_EPSILON')
    @classmethod
    def validate_capital_epsilon(cls, v):
        if v < 0:
            raise ValueError('CAPITAL_EPSILON cannot be negative')
        return v

    @field_validator('PUBLIC_CACHE_SECONDS')
    @classmethod
    def validate_public_cache_seconds(cls, v):
        if v < 0:
            raise ValueError('PUBLIC_CACHE_SECONDS cannot be negative')
        return v

    @field_validator('DEFAULT_ALERT_ALLOCATION_PERCENT')
    @classmethod
    def validate_alert_allocation(cls, v):
        if v <= 0 or v > 100:
            raise ValueError('DEFAULT_ALERT_ALLOCATION_PERCENT must be between 0 and 100')
        return v

    @field_validator('ENTRY_PRICE_MODE')
    @classmethod
    def validate_entry_price_mode(cls, v):
        mode = str(v or "").strip().lower()
        if mode not in VALID_ENTRY_PRICE_MODES:
            raise ValueError('ENTRY_PRICE_MODE must be "weighted" or "fixed"')
        return mode

    @field_validator('PRICE_REFRESH_INTERVAL')
    @classmethod
    def validate_refresh_interval(cls, v):
        if int(v) <= 0:
            raise ValueError('PRICE_REFRESH_INTERVAL must be positive')
        return int(v)

    @field_validator('MARKET_OPEN', 'MARKET_CLOSE')
    @classmethod
    def validate_market_time(cls, v):
        try:
            time.fromisoformat(str(v).strip())
        except ValueError:
            raise ValueError('Market hours must use HH:MM format')
        return str(v).strip()

    @field_validator('SNAPSHOT_UTC_OFFSET_HOURS')
    @classmethod
    def validate_snapshot_offset(cls, v):
        if v < -12 or v > 14:
            raise ValueError('SNAPSHOT_UTC_OFFSET_HOURS must be between -12 and 14')
        return v

    @model_validator(mode='after')
    def validate_market_hours(self):
        if time.fromisoformat(self.MARKET_OPEN) >= time.fromisoformat(self.MARKET_CLOSE):
            raise ValueError('MARKET_OPEN must be earlier than MARKET_CLOSE')
        return self

    @staticmethod
    def _parse_str_list(value: Any) -> List[str]:
        if isinstance(value, list):
            return [str(item).strip() for item in value if str(item).strip()]
        if value is None:
            return []
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return []
            if stripped.startswith('[') and stripped.endswith(']'):
                try:
                    parsed = json.loads(stripped)
                    if isinstance(parsed, list):
                        return [str(item).strip() for item in parsed if str(item).strip()]
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in stripped.split(',') if item.strip()]
        return [str(value).strip()] if str(value).strip() else []

    def get_pool_names(self) -> List[str]:
        return self._parse_str_list(self.POOL_NAMES)

    def get_cors_origins(self) -> List[str]:
        origins = self._parse_str_list(self.CORS_ORIGINS)
        return origins or ["http://localhost:8000", "http://127.0.0.1:8000"]

    def get_email_recipients(self) -> List[str]:
        return self._parse_str_list(self.EMAIL_TO)

    def get_market_open(self) -> time:
        return time.fromisoformat(self.MARKET_OPEN)

    def get_market_close(self) -> time:
        return time.fromisoformat(self.MARKET_CLOSE)


# Global settings instance
settings = Settings()
