from liquidity.models.pool import CapitalPool
from liquidity.models.position import Position, SaleRecord
from liquidity.models.ledger import LedgerEntry
from liquidity.models.snapshot import PoolSnapshot

__all__ = ["CapitalPool", "Position", "SaleRecord", "LedgerEntry", "PoolSnapshot"]
