import pytest
from sqlalchemy.orm import sessionmaker

import liquidity.models  # noqa: F401
from liquidity.core.config import settings
from liquidity.core.database import Base, build_engine
from liquidity.core.locks import PoolLockRegistry
from liquidity.services.pool_accountant import PoolAccountant


@pytest.fixture(autouse=True)
def engine_settings(monkeypatch):
    monkeypatch.setattr(settings, "AUTO_CREATE_POOLS", True)
    monkeypatch.setattr(settings, "DEFAULT_INITIAL_CAPITAL", 10000.0)
    monkeypatch.setattr(settings, "WHOLE_SHARES", True)
    monkeypatch.setattr(settings, "ENTRY_PRICE_MODE", "weighted")
    monkeypatch.setattr(settings, "VERIFY_INVARIANTS", True)
    monkeypatch.setattr(settings, "SHARE_EPSILON", 1e-4)
    monkeypatch.setattr(settings, "CAPITAL_EPSILON", 1e-6)
    monkeypatch.setattr(settings, "INVARIANT_TOLERANCE", 0.01)
    monkeypatch.setattr(settings, "DEFAULT_ALERT_ALLOCATION_PERCENT", 5.0)
    monkeypatch.setattr(settings, "EMAIL_ENABLED", False)


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def accountant(session_factory):
    return PoolAccountant(session_factory=session_factory, lock_registry=PoolLockRegistry(timeout=1.0))
