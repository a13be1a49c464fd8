"""
Protocol data models for the commit-reveal trade lifecycle.

Intents, commitments and settlement results are immutable; callbacks are
bundled in one explicit TradeCallbacks object whose fields default to
no-ops.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from ..errors import SettlementProtocolError
from ..ledger.fixed_point import Amount, format_amount, to_decimal


class TradeKind(str, Enum):
    """Which reveal transaction an intent ends in."""
    TRADE = "trade"
    SHORT_SELL = "short_sell"


class ProtocolPhase(str, Enum):
    """Phases of one protocol invocation."""
    GAS_CHECK = "gas_check"
    HASHING = "hashing"
    COMMITTING = "committing"
    ADVANCING = "advancing"
    EXECUTING = "executing"
    SETTLED = "settled"
    FAILED = "failed"


@dataclass(frozen=True)
class TradeIntent:
    """Parameters committed to, then revealed, by one protocol run."""
    max_value: Decimal
    max_amount: Decimal
    trade_ids: tuple[str, ...]
    kind: TradeKind = TradeKind.TRADE

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_value", to_decimal(self.max_value))
        object.__setattr__(self, "max_amount", to_decimal(self.max_amount))
        object.__setattr__(self, "trade_ids", tuple(str(t) for t in self.trade_ids))

        if not self.trade_ids:
            raise ValueError("A trade intent needs at least one trade id")
        if self.kind is TradeKind.SHORT_SELL and len(self.trade_ids) != 1:
            raise ValueError("A short-sell intent takes exactly one counter-order id")

    @property
    def intent_id(self) -> str:
        return ",".join(self.trade_ids)


@dataclass(frozen=True)
class TradeHash:
    """On-chain commitment key and the triple it commits to."""
    digest: str
    max_value: Decimal
    max_amount: Decimal
    trade_ids: tuple[str, ...]

    def matches(self, intent: TradeIntent) -> bool:
        """True when ``intent`` carries the committed triple."""
        return (
            self.max_value == intent.max_value
            and self.max_amount == intent.max_amount
            and self.trade_ids == intent.trade_ids
        )

    def __str__(self) -> str:
        return self.digest


@dataclass(frozen=True)
class SettlementResult:
    """Typed settlement totals of one reveal transaction."""
    kind: TradeKind
    tx_hash: str
    unmatched_shares: Decimal
    cash_from_trade: Decimal
    unmatched_cash: Optional[Decimal] = None      # trade only
    shares_bought: Optional[Decimal] = None       # trade only
    matched_shares: Optional[Decimal] = None      # short-sell only
    price: Optional[Decimal] = None               # short-sell only

    def to_dict(self) -> dict[str, Any]:
        """String-valued view, dropping fields that do not apply to ``kind``."""
        data = {
            "txHash": self.tx_hash,
            "unmatchedCash": self.unmatched_cash,
            "unmatchedShares": self.unmatched_shares,
            "sharesBought": self.shares_bought,
            "matchedShares": self.matched_shares,
            "cashFromTrade": self.cash_from_trade,
            "price": self.price,
        }
        return {
            key: value if key == "txHash" else format_amount(value)
            for key, value in data.items() if value is not None
        }


def _noop(*args: Any, **kwargs: Any) -> None:
    return None


@dataclass(frozen=True)
class TradeCallbacks:
    """Lifecycle callbacks for one protocol invocation."""
    on_trade_hash: Callable[..., Any] = _noop
    on_commit_sent: Callable[..., Any] = _noop
    on_commit_success: Callable[..., Any] = _noop
    on_commit_failed: Callable[..., Any] = _noop
    on_commit_confirmed: Callable[..., Any] = _noop
    on_next_block: Callable[..., Any] = _noop
    on_trade_sent: Callable[..., Any] = _noop
    on_trade_success: Callable[..., Any] = _noop
    on_trade_failed: Callable[..., Any] = _noop
    on_trade_confirmed: Callable[..., Any] = _noop


@dataclass(frozen=True)
class TradeRequest:
    """
    Buy/sell against resting orders.

    Attributes:
        max_value: Most cash to spend on buys
        max_amount: Most shares to sell
        trade_ids: Resting orders to match, in order
        callbacks: Lifecycle callbacks
    """
    max_value: Amount
    max_amount: Amount
    trade_ids: Sequence[str]
    callbacks: TradeCallbacks = field(default_factory=TradeCallbacks)

    def to_intent(self) -> TradeIntent:
        return TradeIntent(
            max_value=self.max_value,
            max_amount=self.max_amount,
            trade_ids=tuple(self.trade_ids),
            kind=TradeKind.TRADE,
        )


@dataclass(frozen=True)
class ShortSellRequest:
    """
    Short sell into a single resting buy order.

    Attributes:
        buyer_trade_id: The counter-order to sell into
        max_amount: Most shares to sell
        callbacks: Lifecycle callbacks
    """
    buyer_trade_id: str
    max_amount: Amount
    callbacks: TradeCallbacks = field(default_factory=TradeCallbacks)

    def to_intent(self) -> TradeIntent:
        return TradeIntent(
            max_value=Decimal(0),
            max_amount=self.max_amount,
            trade_ids=(self.buyer_trade_id,),
            kind=TradeKind.SHORT_SELL,
        )


@dataclass(frozen=True)
class ExecutionReport:
    """What the reveal phase produced."""
    tx_hash: Optional[str] = None
    result: Optional[SettlementResult] = None
    error: Optional[SettlementProtocolError] = None


@dataclass(frozen=True)
class ProtocolOutcome:
    """Final state of one protocol invocation."""
    kind: TradeKind
    phase: ProtocolPhase
    trade_hash: Optional[TradeHash] = None
    commit_tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    trade_tx_hash: Optional[str] = None
    result: Optional[SettlementResult] = None
    error: Optional[SettlementProtocolError] = None

    @property
    def succeeded(self) -> bool:
        return self.phase is ProtocolPhase.SETTLED and self.error is None
