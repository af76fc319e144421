import asyncio

import pytest

from liquidity.core.exceptions import ConflictError, InsufficientCapitalError
from liquidity.core.locks import PoolLockRegistry
from liquidity.services.pool_accountant import PoolAccountant


@pytest.mark.asyncio
async def test_busy_pool_times_out_with_conflict():
    locks = PoolLockRegistry(timeout=0.05)

    async with locks.acquire("TraderCall"):
        assert locks.is_locked("TraderCall")
        with pytest.raises(ConflictError):
            async with locks.acquire("TraderCall"):
                pass

    assert not locks.is_locked("TraderCall")


@pytest.mark.asyncio
async def test_pools_lock_independently():
    locks = PoolLockRegistry(timeout=0.05)

    async with locks.acquire("TraderCall"):
        async with locks.acquire("SmartMoney"):
            assert locks.is_locked("SmartMoney")


@pytest.mark.asyncio
async def test_concurrent_allocations_never_overdraw_pool(session_factory):
    accountant = PoolAccountant(session_factory=session_factory, lock_registry=PoolLockRegistry(timeout=5.0))
    await accountant.initialize_pool("TraderCall", 1000.0)

    results = await asyncio.gather(
        *[
            accountant.allocate("TraderCall", f"alert-{i}", f"S{i}", 10.0, percentage=30)
            for i in range(5)
        ],
        return_exceptions=True,
    )

    succeeded = [r for r in results if not isinstance(r, Exception)]
    assert len(succeeded) == 3
    assert all(isinstance(r, InsufficientCapitalError) for r in results if isinstance(r, Exception))
    summary = accountant.get_pool_summary("TraderCall")
    assert summary["distributed_capital"] == pytest.approx(900.0)
    assert summary["available_capital"] == pytest.approx(100.0)
