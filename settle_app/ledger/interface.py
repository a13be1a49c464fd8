"""Abstract ledger connection used by the gas estimator and protocol."""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Optional, Union

from eth_utils import decode_hex

from .models import (
    Block,
    ErrorClassification,
    Receipt,
    TradeRecord,
    Transaction,
    TransactionEvent,
)

WORD_SIZE = 32


class LedgerConnection(ABC):
    """
    Narrow contract between the settlement core and a ledger node.

    Implementations own transport, signing and timeouts. Every network
    call is a coroutine; a stalled call simply never resumes the caller.
    """

    @abstractmethod
    async def current_block_number(self) -> int:
        """Number of the latest block."""

    @abstractmethod
    async def get_block(self, number: int) -> Block:
        """Header of block ``number``."""

    @abstractmethod
    def submit_transaction(self, tx: Transaction) -> AsyncIterator[TransactionEvent]:
        """
        Submit ``tx`` and yield its lifecycle events.

        Yields a TransactionSent, then either TransactionSucceeded
        (optionally followed by TransactionConfirmed) or TransactionFailed.
        """

    @abstractmethod
    async def fast_forward(self, blocks: int) -> int:
        """Advance the chain by ``blocks``; returns the new block number."""

    @abstractmethod
    async def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        """Receipt for ``tx_hash``, or None if the node has none."""

    @abstractmethod
    async def get_trade(self, trade_id: str) -> Optional[TradeRecord]:
        """Resting order ``trade_id``, or None if it does not exist."""

    @abstractmethod
    def classify_error(self, operation: str, expected_type: str,
                       raw: Any) -> Optional[ErrorClassification]:
        """Map a raw call return of ``operation`` to a contract error code."""

    def decode_log_payload(self, data: Union[str, bytes]) -> tuple[int, ...]:
        """
        Split a log data blob into signed 256-bit words.

        Raises:
            ValueError: If the payload is not a whole number of words.
        """
        payload = decode_hex(data) if isinstance(data, str) else bytes(data)
        if len(payload) % WORD_SIZE:
            raise ValueError(
                f"Log payload of {len(payload)} bytes is not a multiple of {WORD_SIZE}"
            )
        return tuple(
            int.from_bytes(payload[i:i + WORD_SIZE], "big", signed=True)
            for i in range(0, len(payload), WORD_SIZE)
        )
