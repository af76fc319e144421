"""
Daily pool snapshot model for return tracking
"""
from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from liquidity.core.database import Base


class PoolSnapshot(Base):
    """Pool totals captured once per day"""
    __tablename__ = "pool_snapshots"

    id = Column(Integer, primary_key=True, index=True)
    pool_id = Column(Integer, ForeignKey("capital_pools.id"), nullable=False, index=True)
    date = Column(DateTime, nullable=False, index=True)  # naive UTC start of the local day
    total_capital = Column(Float, nullable=False)
    available_capital = Column(Float, nullable=False)
    distributed_capital = Column(Float, nullable=False, default=0.0)
    total_profit_loss = Column(Float, default=0.0)
    total_profit_loss_percent = Column(Float, default=0.0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("pool_id", "date", name="uq_pool_snapshots_pool_date"),
    )
