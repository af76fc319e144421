"""
Capital pool model
"""
from sqlalchemy import Column, Integer, String, Float, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from liquidity.core.database import Base


class CapitalPool(Base):
    """One pool of investable capital per trading strategy"""
    __tablename__ = "capital_pools"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True, index=True)
    initial_capital = Column(Float, nullable=False, default=0.0)

    # Cached aggregates, rewritten wholesale by recompute_totals
    total_capital = Column(Float, nullable=False, default=0.0)
    available_capital = Column(Float, nullable=False, default=0.0)
    distributed_capital = Column(Float, nullable=False, default=0.0)
    total_profit_loss = Column(Float, nullable=False, default=0.0)
    total_profit_loss_percent = Column(Float, nullable=False, default=0.0)

    version = Column(Integer, nullable=False, default=1)
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    positions = relationship(
        "Position",
        back_populates="pool",
        order_by="Position.id",
        cascade="all, delete-orphan",
    )
    ledger_entries = relationship("LedgerEntry", back_populates="pool")

    __mapper_args__ = {"version_id_col": version}

    def active_positions(self):
        return [p for p in self.positions if p.is_active]

    def active_position_for(self, instrument_id: str):
        for position in self.positions:
            if position.is_active and position.instrument_id == instrument_id:
                return position
        return None
