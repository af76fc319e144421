"""
Position and sale record models
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Text, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from liquidity.core.database import Base
from liquidity.core.positions import PositionState

POSITION_ACTIVE = "ACTIVE"
POSITION_CLOSED = "CLOSED"
POSITION_ARCHIVED = "ARCHIVED"


class Position(Base):
    """Holding in one instrument within one pool"""
    __tablename__ = "positions"

    id = Column(Integer, primary_key=True, index=True)
    pool_id = Column(Integer, ForeignKey("capital_pools.id"), nullable=False, index=True)
    instrument_id = Column(String(64), nullable=False, index=True)
    symbol = Column(String(20), nullable=False, index=True)
    percentage = Column(Float, nullable=False, default=0.0)
    allocated_amount = Column(Float, nullable=False, default=0.0)
    shares = Column(Float, nullable=False, default=0.0)
    acquired_shares = Column(Float, nullable=False, default=0.0)
    entry_price = Column(Float, nullable=False, default=0.0)
    current_price = Column(Float, nullable=False, default=0.0)
    unrealized_pl = Column(Float, default=0.0)
    unrealized_pl_percent = Column(Float, default=0.0)
    realized_pl = Column(Float, default=0.0)
    sold_shares = Column(Float, default=0.0)
    status = Column(String(10), nullable=False, default=POSITION_ACTIVE)  # ACTIVE, CLOSED, ARCHIVED
    opened_at = Column(DateTime(timezone=True), server_default=func.now())
    closed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    pool = relationship("CapitalPool", back_populates="positions")
    sale_history = relationship(
        "SaleRecord",
        back_populates="position",
        order_by="SaleRecord.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        # At most one open position per instrument and pool.
        Index(
            "uq_positions_active_instrument",
            "pool_id",
            "instrument_id",
            unique=True,
            sqlite_where=text("status = 'ACTIVE'"),
            postgresql_where=text("status = 'ACTIVE'"),
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status == POSITION_ACTIVE

    def to_state(self) -> PositionState:
        return PositionState(
            instrument_id=self.instrument_id,
            symbol=self.symbol,
            shares=self.shares or 0.0,
            acquired_shares=self.acquired_shares or 0.0,
            entry_price=self.entry_price or 0.0,
            current_price=self.current_price or 0.0,
            percentage=self.percentage or 0.0,
            allocated_amount=self.allocated_amount or 0.0,
            unrealized_pl=self.unrealized_pl or 0.0,
            unrealized_pl_percent=self.unrealized_pl_percent or 0.0,
            realized_pl=self.realized_pl or 0.0,
            sold_shares=self.sold_shares or 0.0,
            is_active=self.is_active,
        )

    def apply_state(self, state: PositionState):
        """Copy the numbers of a PositionState onto the row."""
        self.symbol = state.symbol
        self.shares = state.shares
        self.acquired_shares = state.acquired_shares
        self.entry_price = state.entry_price
        self.current_price = state.current_price
        self.percentage = state.percentage
        self.allocated_amount = state.allocated_amount
        self.unrealized_pl = state.unrealized_pl
        self.unrealized_pl_percent = state.unrealized_pl_percent
        self.realized_pl = state.realized_pl
        self.sold_shares = state.sold_shares
        if state.is_active:
            self.status = POSITION_ACTIVE
            self.closed_at = None
        elif self.status == POSITION_ACTIVE:
            self.status = POSITION_CLOSED

    def to_dict(self):
        return {
            "id": self.id,
            "instrument_id": self.instrument_id,
            "symbol": self.symbol,
            "percentage": self.percentage,
            "allocated_amount": self.allocated_amount,
            "shares": self.shares,
            "acquired_shares": self.acquired_shares,
            "entry_price": self.entry_price,
            "current_price": self.current_price,
            "unrealized_pl": self.unrealized_pl,
            "unrealized_pl_percent": self.unrealized_pl_percent,
            "realized_pl": self.realized_pl,
            "sold_shares": self.sold_shares,
            "status": self.status,
            "is_active": self.is_active,
            "opened_at": self.opened_at.isoformat() if self.opened_at else None,
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
            "sale_history": [sale.to_dict() for sale in self.sale_history],
        }


class SaleRecord(Base):
    """Partial or complete sale out of a position"""
    __tablename__ = "sale_records"

    id = Column(Integer, primary_key=True, index=True)
    position_id = Column(Integer, ForeignKey("positions.id"), nullable=False, index=True)
    percentage_of_original = Column(Float, nullable=False, default=0.0)
    shares_sold = Column(Float, nullable=False)
    sell_price = Column(Float, nullable=False)
    capital_released = Column(Float, nullable=False)
    realized_profit = Column(Float, nullable=False)
    executed_at = Column(DateTime(timezone=True), server_default=func.now())
    executed_by = Column(String(100), nullable=True)
    is_complete_sale = Column(Boolean, nullable=False, default=False)
    discarded = Column(Boolean, nullable=False, default=False)
    discarded_at = Column(DateTime(timezone=True), nullable=True)
    discard_reason = Column(Text, nullable=True)

    # Relationships
    position = relationship("Position", back_populates="sale_history")

    def to_dict(self):
        return {
            "id": self.id,
            "percentage_of_original": self.percentage_of_original,
            "shares_sold": self.shares_sold,
            "sell_price": self.sell_price,
            "capital_released": self.capital_released,
            "realized_profit": self.realized_profit,
            "executed_at": self.executed_at.isoformat() if self.executed_at else None,
            "executed_by": self.executed_by,
            "is_complete_sale": self.is_complete_sale,
            "discarded": self.discarded,
            "discarded_at": self.discarded_at.isoformat() if self.discarded_at else None,
            "discard_reason": self.discard_reason,
        }
