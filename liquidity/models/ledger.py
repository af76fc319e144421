"""
Ledger entry model for buy/sell audit records
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from liquidity.core.database import Base

OPERATION_BUY = "BUY"
OPERATION_SELL = "SELL"

EXECUTION_MANUAL = "MANUAL"
EXECUTION_AUTOMATIC = "AUTOMATIC"
EXECUTION_ADMIN = "ADMIN"


class LedgerEntry(Base):
    """Immutable record of one buy or sell"""
    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, index=True)
    pool_id = Column(Integer, ForeignKey("capital_pools.id"), nullable=False, index=True)
    instrument_id = Column(String(64), nullable=False, index=True)
    instrument_symbol = Column(String(20), nullable=False, index=True)
    operation_type = Column(String(4), nullable=False)  # BUY or SELL
    quantity = Column(Float, nullable=False)  # negative for sells
    price = Column(Float, nullable=False)
    amount = Column(Float, nullable=False)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    running_balance = Column(Float, nullable=False, default=0.0)

    portfolio_percentage = Column(Float, nullable=True)
    is_partial_sale = Column(Boolean, default=False)
    partial_sale_percentage = Column(Float, nullable=True)
    realized_profit = Column(Float, nullable=True)
    executed_by = Column(String(100), nullable=True)
    execution_method = Column(String(10), default=EXECUTION_MANUAL)  # MANUAL, AUTOMATIC, ADMIN
    notes = Column(Text, nullable=True)

    # Relationships
    pool = relationship("CapitalPool", back_populates="ledger_entries")

    def to_dict(self):
        return {
            "id": self.id,
            "pool": self.pool.name if self.pool else None,
            "instrument_id": self.instrument_id,
            "instrument_symbol": self.instrument_symbol,
            "operation_type": self.operation_type,
            "quantity": self.quantity,
            "price": self.price,
            "amount": self.amount,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "running_balance": self.running_balance,
            "portfolio_percentage": self.portfolio_percentage,
            "is_partial_sale": self.is_partial_sale,
            "partial_sale_percentage": self.partial_sale_percentage,
            "realized_profit": self.realized_profit,
            "executed_by": self.executed_by,
            "execution_method": self.execution_method,
            "notes": self.notes,
        }
