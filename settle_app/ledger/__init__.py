"""
Ledger boundary module.

The collaborator interface the protocol talks to, the tagged transaction
lifecycle events, fixed-point amount encoding, and a scripted in-memory
ledger.
"""
from .fixed_point import FixedPointCodec
from .interface import LedgerConnection
from .models import (
    Block,
    ErrorClassification,
    LogEntry,
    Receipt,
    TradeRecord,
    Transaction,
    TransactionConfirmed,
    TransactionEvent,
    TransactionFailed,
    TransactionSent,
    TransactionSucceeded,
    parse_quantity,
)
from .simulated import SimulatedLedger, TransactionScript

__all__ = [
    "Block",
    "ErrorClassification",
    "FixedPointCodec",
    "LedgerConnection",
    "LogEntry",
    "Receipt",
    "SimulatedLedger",
    "TradeRecord",
    "Transaction",
    "TransactionConfirmed",
    "TransactionEvent",
    "TransactionFailed",
    "TransactionScript",
    "TransactionSent",
    "TransactionSucceeded",
    "parse_quantity",
]
