"""Gas admission data models."""

from dataclasses import dataclass
from enum import Enum


class TradeType(str, Enum):
    """Side of a resting order."""
    BUY = "buy"
    SELL = "sell"


class CeilingSource(str, Enum):
    """Where a gas ceiling came from."""
    SUPPLIED = "supplied"
    BLOCK = "block"


@dataclass(frozen=True)
class GasBudget:
    """Candidate gas cost against a per-block ceiling."""
    cost: int
    ceiling: int
    source: CeilingSource

    @property
    def admitted(self) -> bool:
        return self.cost <= self.ceiling

    @property
    def headroom(self) -> int:
        return self.ceiling - self.cost
