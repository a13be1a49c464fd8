"""
Scripted in-memory ledger.

Each submitted transaction consumes the next TransactionScript queued for
its method, so a test or demo decides exactly which lifecycle events,
call returns and receipts the protocol will observe.
"""

from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import structlog

from .interface import LedgerConnection
from .models import (
    Block,
    ErrorClassification,
    Receipt,
    TradeRecord,
    Transaction,
    TransactionConfirmed,
    TransactionEvent,
    TransactionFailed,
    TransactionSent,
    TransactionSucceeded,
)

logger = structlog.get_logger(__name__)

DEFAULT_GAS_LIMIT = 4_712_388


@dataclass(frozen=True)
class TransactionScript:
    """Scripted outcome for one submitted transaction."""
    call_return: Optional[Any] = None
    succeed: bool = True
    confirm: bool = True
    error: Optional[Any] = None
    message: str = ""
    receipt: Optional[Receipt] = None
    tx_hash: Optional[str] = None


class SimulatedLedger(LedgerConnection):
    """In-memory LedgerConnection driven by per-method scripts."""

    def __init__(
        self,
        block_number: int = 1,
        gas_limit: int = DEFAULT_GAS_LIMIT,
        error_messages: Optional[dict[str, dict[Any, str]]] = None,
    ) -> None:
        self.block_number = block_number
        self.gas_limit = gas_limit
        self.error_messages = error_messages or {}

        self.trades: dict[str, TradeRecord] = {}
        self.receipts: dict[str, Receipt] = {}
        self.submitted: list[Transaction] = []
        self.history: list[tuple[str, Any]] = []

        self._scripts: dict[str, deque] = defaultdict(deque)
        self._tx_counter = 0

    def add_trade(self, trade_id: str, trade_type: str) -> None:
        """Register a resting order for trade lookup."""
        self.trades[trade_id] = TradeRecord(trade_id=trade_id, trade_type=trade_type)

    def script(self, method: str, script: TransactionScript) -> None:
        """Queue the outcome of the next ``method`` transaction."""
        self._scripts[method].append(script)

    def _next_tx_hash(self) -> str:
        self._tx_counter += 1
        return f"0x{self._tx_counter:064x}"

    async def current_block_number(self) -> int:
        self.history.append(("block_number", self.block_number))
        return self.block_number

    async def get_block(self, number: int) -> Block:
        self.history.append(("get_block", number))
        return Block(number=number, gas_limit=self.gas_limit)

    async def submit_transaction(self, tx: Transaction) -> AsyncIterator[TransactionEvent]:
        scripts = self._scripts[tx.method]
        script = scripts.popleft() if scripts else TransactionScript()
        tx_hash = script.tx_hash or self._next_tx_hash()

        self.submitted.append(tx)
        self.history.append(("submit", tx.method))
        logger.debug("Simulated transaction submitted", method=tx.method, tx_hash=tx_hash)

        yield TransactionSent(tx_hash=tx_hash)

        if not script.succeed:
            self.history.append(("failed", tx.method))
            yield TransactionFailed(
                error=script.error,
                message=script.message,
                tx_hash=tx_hash,
            )
            return

        self.block_number += 1
        mined_in = self.block_number
        if script.receipt is not None:
            self.receipts[tx_hash] = script.receipt

        self.history.append(("success", tx.method))
        yield TransactionSucceeded(
            tx_hash=tx_hash,
            call_return=script.call_return,
            block_number=mined_in,
        )

        if script.confirm:
            self.history.append(("confirmed", tx.method))
            yield TransactionConfirmed(
                tx_hash=tx_hash,
                call_return=script.call_return,
                block_number=mined_in,
            )

    async def fast_forward(self, blocks: int) -> int:
        self.block_number += blocks
        self.history.append(("fast_forward", blocks))
        return self.block_number

    async def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        self.history.append(("receipt", tx_hash))
        return self.receipts.get(tx_hash)

    async def get_trade(self, trade_id: str) -> Optional[TradeRecord]:
        self.history.append(("get_trade", trade_id))
        return self.trades.get(trade_id)

    def classify_error(self, operation: str, expected_type: str,
                       raw: Any) -> Optional[ErrorClassification]:
        messages = self.error_messages.get(operation, {})
        if isinstance(raw, (int, str)) and raw in messages:
            return ErrorClassification(code=raw, message=messages[raw])
        return None
