"""
Data models exchanged with the ledger collaborator.

Raw RPC shapes are normalized into these immutable structures at the
boundary so the protocol never inspects ad hoc dictionaries or arrays.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union


def parse_quantity(value: Union[int, str]) -> int:
    """
    Normalize an RPC quantity to an int.

    Strings with a ``0x`` prefix are hex; other strings are decimal.
    """
    if isinstance(value, bool):
        raise TypeError(f"Not a quantity: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        negative = text.startswith("-")
        if negative:
            text = text[1:]
        number = int(text[2:], 16) if text.startswith("0x") else int(text, 10)
        return -number if negative else number
    raise TypeError(f"Not a quantity: {value!r}")


@dataclass(frozen=True)
class Block:
    """Block header fields the client uses."""
    number: int
    gas_limit: int


@dataclass(frozen=True)
class TradeRecord:
    """An order resting on the ledger, as returned by trade lookup."""
    trade_id: str
    trade_type: str     # "buy" or "sell"


@dataclass(frozen=True)
class LogEntry:
    """Single log entry from a transaction receipt."""
    topics: tuple[str, ...]
    data: Union[str, bytes]


@dataclass(frozen=True)
class Receipt:
    """Ledger record of a mined transaction."""
    tx_hash: str
    logs: tuple[LogEntry, ...] = ()
    error: Optional[Any] = None
    block_number: Optional[int] = None


@dataclass(frozen=True)
class ErrorClassification:
    """Contract-level error code resolved from a raw call return."""
    code: Any
    message: str


@dataclass(frozen=True)
class Transaction:
    """A contract call ready for submission."""
    contract: str
    method: str
    signature: tuple[str, ...]
    params: tuple[Any, ...]
    returns: str = "null"
    send: bool = True

    def describe(self) -> dict[str, Any]:
        """Plain-dict view for logs and failure payloads."""
        return {
            "contract": self.contract,
            "method": self.method,
            "signature": list(self.signature),
            "params": list(self.params),
            "returns": self.returns,
        }


# Transaction lifecycle events, in the order a ledger reports them.

@dataclass(frozen=True)
class TransactionSent:
    """Transaction accepted into the pending pool."""
    tx_hash: str
    call_return: Optional[Any] = None


@dataclass(frozen=True)
class TransactionSucceeded:
    """Transaction mined; provisional success."""
    tx_hash: str
    call_return: Optional[Any] = None
    block_number: Optional[int] = None


@dataclass(frozen=True)
class TransactionFailed:
    """Transaction rejected or reverted."""
    error: Any
    message: str = ""
    tx_hash: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TransactionConfirmed:
    """Transaction buried under enough blocks to be considered final."""
    tx_hash: str
    call_return: Optional[Any] = None
    block_number: Optional[int] = None


TransactionEvent = Union[
    TransactionSent,
    TransactionSucceeded,
    TransactionFailed,
    TransactionConfirmed,
]
