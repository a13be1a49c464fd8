"""
Commit-reveal trade protocol module.

Manages the trade lifecycle state machine:
GAS_CHECK -> HASHING -> COMMITTING -> ADVANCING -> EXECUTING -> SETTLED,
with FAILED reachable from every phase that talks to the ledger.
"""
from .commitment import TradeCommitmentProtocol
from .hashing import make_trade_hash, verify_trade_hash
from .models import (
    ProtocolOutcome,
    ProtocolPhase,
    SettlementResult,
    ShortSellRequest,
    TradeCallbacks,
    TradeHash,
    TradeIntent,
    TradeKind,
    TradeRequest,
)
from .settlement import SettlementParser, TradeExecutor

__all__ = [
    "ProtocolOutcome",
    "ProtocolPhase",
    "SettlementParser",
    "SettlementResult",
    "ShortSellRequest",
    "TradeCallbacks",
    "TradeCommitmentProtocol",
    "TradeExecutor",
    "TradeHash",
    "TradeIntent",
    "TradeKind",
    "TradeRequest",
    "make_trade_hash",
    "verify_trade_hash",
]
