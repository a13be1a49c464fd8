"""
Reveal transaction execution and receipt-log settlement.

The reveal's call return is validated at the boundary, then the receipt
is fetched and every log entry is scanned for the settlement event. Fill
totals are summed in exact decimal arithmetic.
"""

from contextlib import aclosing
from decimal import Decimal, localcontext
from typing import Any, Optional, Sequence

from ..abi.models import AbiMap
from ..config.defaults import ProtocolParams
from ..errors import ErrorCode, ExecutionError, ReceiptError, SettlementProtocolError
from ..ledger.fixed_point import EXACT_CONTEXT, FixedPointCodec
from ..ledger.interface import LedgerConnection
from ..ledger.models import (
    LogEntry,
    Transaction,
    TransactionConfirmed,
    TransactionFailed,
    TransactionSent,
    TransactionSucceeded,
    parse_quantity,
)
from ..logging.config import get_protocol_logger
from .hashing import verify_trade_hash
from .models import (
    ExecutionReport,
    ProtocolPhase,
    SettlementResult,
    TradeCallbacks,
    TradeHash,
    TradeIntent,
    TradeKind,
)
from .state import ProtocolRun

logger = get_protocol_logger(__name__)

# Call return arity, status word included.
RETURN_ARITY = {
    TradeKind.TRADE: 3,
    TradeKind.SHORT_SELL: 4,
}

# Settlement log payload positions.
SIDE, PRICE, QUANTITY = 0, 1, 2
BOUGHT_SIDE = 1


class SettlementParser:
    """Turns a successful reveal into a SettlementResult."""

    def __init__(self, ledger: LedgerConnection, abi_map: AbiMap,
                 codec: FixedPointCodec, params: ProtocolParams) -> None:
        self.ledger = ledger
        self.codec = codec
        self.params = params
        self.topic = abi_map.event(params.settlement_event).signature.lower()

    def validate_call_return(self, kind: TradeKind, operation: str,
                             call_return: Any, tx: Transaction) -> tuple[int, ...]:
        """
        Check the reveal's raw return tuple and normalize it to ints.

        Raises:
            ExecutionError: With the ledger's classification when the return
                is an error code, else with the raw return.
        """
        if not isinstance(call_return, (list, tuple)):
            classification = self.ledger.classify_error(operation, "number", call_return)
            if classification is None:
                raise ExecutionError(
                    f"{operation} returned an unexpected result",
                    code=ErrorCode.UNEXPECTED_CALL_RETURN,
                    tx=tx.describe(),
                    call_return=call_return,
                )
            raise ExecutionError(
                classification.message,
                code=classification.code,
                tx=tx.describe(),
                call_return=call_return,
            )

        expected = RETURN_ARITY[kind]
        try:
            values = tuple(parse_quantity(value) for value in call_return)
        except (TypeError, ValueError) as exc:
            raise ExecutionError(
                f"{operation} returned a malformed value: {exc}",
                code=ErrorCode.UNEXPECTED_CALL_RETURN,
                tx=tx.describe(),
                call_return=list(call_return),
            ) from exc

        status = values[0] if values else None
        if status != self.params.success_code or len(values) != expected:
            raise ExecutionError(
                f"{operation} returned status {status} with {len(values)} values "
                f"(expected {self.params.success_code} with {expected})",
                code=ErrorCode.UNEXPECTED_CALL_RETURN,
                tx=tx.describe(),
                call_return=list(call_return),
            )
        return values

    def matching_logs(self, logs: Sequence[LogEntry]) -> list[tuple[int, ...]]:
        """
        Decoded payloads of every log whose first topic is the settlement topic.

        Raises:
            ValueError: If a settlement payload is undecodable or too short.
        """
        payloads = []
        for position, log in enumerate(logs):
            if not log.topics or log.topics[0].lower() != self.topic:
                continue
            words = self.ledger.decode_log_payload(log.data)
            if len(words) <= QUANTITY:
                raise ValueError(
                    f"log {position} carries {len(words)} words, expected at least {QUANTITY + 1}"
                )
            payloads.append(words)
        return payloads

    def accumulate(self, kind: TradeKind,
                   payloads: Sequence[Sequence[int]]) -> tuple[Decimal, Decimal]:
        """
        Sum fills into (shares bought, cash from trade).

        For a trade, side 1 fills add their quantity to shares bought and
        all other fills add price * quantity to cash. A short-sell counts
        every fill as cash received.
        """
        with localcontext(EXACT_CONTEXT):
            shares_bought = Decimal(0)
            cash_from_trade = Decimal(0)
            for words in payloads:
                quantity = self.codec.unfix(words[QUANTITY])
                if kind is TradeKind.TRADE and parse_quantity(words[SIDE]) == BOUGHT_SIDE:
                    shares_bought += quantity
                else:
                    cash_from_trade += self.codec.unfix(words[PRICE]) * quantity
        return shares_bought, cash_from_trade

    async def parse(self, kind: TradeKind, operation: str, tx_hash: str,
                    call_return: Any, tx: Transaction) -> SettlementResult:
        """
        Validate the return tuple, fetch the receipt and build the result.

        Raises:
            ExecutionError: Bad call return.
            ReceiptError: Receipt missing, carrying an error, or undecodable.
        """
        values = self.validate_call_return(kind, operation, call_return, tx)

        receipt = await self.ledger.get_receipt(tx_hash)
        if receipt is None:
            raise ReceiptError(
                "Transaction receipt not found",
                code=ErrorCode.TRANSACTION_RECEIPT_NOT_FOUND,
                tx_hash=tx_hash,
            )
        if receipt.error:
            raise ReceiptError(
                "Transaction receipt reports an error",
                code=ErrorCode.RECEIPT_ERROR,
                tx_hash=tx_hash,
                receipt=receipt,
                context={"receipt_error": receipt.error},
            )

        try:
            payloads = self.matching_logs(receipt.logs)
        except ValueError as exc:
            raise ReceiptError(
                f"Malformed settlement log: {exc}",
                code=ErrorCode.RECEIPT_ERROR,
                tx_hash=tx_hash,
                receipt=receipt,
            ) from exc

        shares_bought, cash_from_trade = self.accumulate(kind, payloads)
        unfix = self.codec.unfix

        logger.debug(
            "Settlement logs scanned",
            tx_hash=tx_hash,
            logs=len(receipt.logs),
            fills=len(payloads),
        )

        if kind is TradeKind.TRADE:
            return SettlementResult(
                kind=kind,
                tx_hash=tx_hash,
                unmatched_cash=unfix(values[1]),
                unmatched_shares=unfix(values[2]),
                shares_bought=shares_bought,
                cash_from_trade=cash_from_trade,
            )
        return SettlementResult(
            kind=kind,
            tx_hash=tx_hash,
            unmatched_shares=unfix(values[1]),
            matched_shares=unfix(values[2]),
            cash_from_trade=cash_from_trade,
            price=unfix(values[3]),
        )


class TradeExecutor:
    """Submits the reveal transaction and settles its lifecycle events."""

    def __init__(self, ledger: LedgerConnection, abi_map: AbiMap,
                 codec: FixedPointCodec, params: ProtocolParams) -> None:
        self.ledger = ledger
        self.abi_map = abi_map
        self.codec = codec
        self.params = params
        self.parser = SettlementParser(ledger, abi_map, codec, params)

    def operation(self, kind: TradeKind) -> str:
        return self.params.trade_method if kind is TradeKind.TRADE else self.params.short_sell_method

    def reveal_transaction(self, intent: TradeIntent) -> Transaction:
        """Reveal transaction carrying exactly the committed parameters."""
        descriptor = self.abi_map.function(self.params.trade_contract, self.operation(intent.kind))
        if intent.kind is TradeKind.TRADE:
            params = [intent.max_value, intent.max_amount, list(intent.trade_ids)]
        else:
            params = [intent.trade_ids[0], intent.max_amount]
        return descriptor.to_transaction(params, self.codec)

    def revealed_intent(self, tx: Transaction, kind: TradeKind) -> TradeIntent:
        """Intent carried by the reveal transaction's encoded params."""
        unfix = self.codec.unfix
        if kind is TradeKind.TRADE:
            max_value, max_amount, trade_ids = tx.params
            return TradeIntent(unfix(max_value), unfix(max_amount), tuple(trade_ids), kind)
        buyer_trade_id, max_amount = tx.params
        return TradeIntent(0, unfix(max_amount), (buyer_trade_id,), kind)

    def failed_error(self, operation: str, event: TransactionFailed,
                     tx: Transaction) -> ExecutionError:
        classification = self.ledger.classify_error(operation, "number", event.error)
        if classification is not None:
            return ExecutionError(
                classification.message,
                code=classification.code,
                tx=tx.describe(),
                context={"tx_hash": event.tx_hash},
            )
        return ExecutionError(
            event.message or f"{operation} transaction failed",
            code=event.error if event.error is not None else ErrorCode.TRANSACTION_FAILED,
            tx=tx.describe(),
            context={"tx_hash": event.tx_hash, **event.details},
        )

    def _fail(self, run: ProtocolRun, callbacks: TradeCallbacks,
              error: SettlementProtocolError, tx_hash: Optional[str]) -> ExecutionReport:
        run.advance(ProtocolPhase.FAILED, type(error).__name__, error=error.to_payload())
        callbacks.on_trade_failed(error)
        return ExecutionReport(tx_hash=tx_hash, error=error)

    async def execute(self, run: ProtocolRun, intent: TradeIntent,
                      trade_hash: TradeHash, callbacks: TradeCallbacks) -> ExecutionReport:
        """
        Reveal ``intent`` and deliver settlement results to ``callbacks``.

        Provisional success and deep confirmation are parsed the same way
        and delivered to on_trade_success and on_trade_confirmed. The first
        failure halts the phase. The encoded reveal params are decoded back
        and checked against the commitment before anything is submitted.
        """
        operation = self.operation(intent.kind)
        tx = self.reveal_transaction(intent)

        try:
            revealed = self.revealed_intent(tx, intent.kind)
        except (TypeError, ValueError):
            revealed = None
        if revealed is None or not verify_trade_hash(trade_hash, revealed, self.codec):
            error = ExecutionError(
                "Reveal parameters do not match the commitment",
                code=ErrorCode.COMMITMENT_MISMATCH,
                tx=tx.describe(),
                context={"trade_hash": trade_hash.digest},
            )
            return self._fail(run, callbacks, error, None)

        tx_hash: Optional[str] = None
        result: Optional[SettlementResult] = None

        async with aclosing(self.ledger.submit_transaction(tx)) as events:
            async for event in events:
                if isinstance(event, TransactionSent):
                    tx_hash = event.tx_hash
                    callbacks.on_trade_sent(event)

                elif isinstance(event, TransactionFailed):
                    return self._fail(
                        run, callbacks, self.failed_error(operation, event, tx),
                        event.tx_hash or tx_hash,
                    )

                elif isinstance(event, (TransactionSucceeded, TransactionConfirmed)):
                    tx_hash = event.tx_hash
                    try:
                        result = await self.parser.parse(
                            intent.kind, operation, event.tx_hash, event.call_return, tx
                        )
                    except (ExecutionError, ReceiptError) as exc:
                        return self._fail(run, callbacks, exc, tx_hash)

                    succeeded = isinstance(event, TransactionSucceeded)
                    if run.phase is ProtocolPhase.EXECUTING:
                        run.advance(
                            ProtocolPhase.SETTLED,
                            "trade_success" if succeeded else "trade_confirmed",
                            tx_hash=tx_hash,
                        )
                    if succeeded:
                        callbacks.on_trade_success(result)
                    else:
                        logger.info("Trade confirmed", intent_id=run.intent_id, tx_hash=tx_hash)
                        callbacks.on_trade_confirmed(result)

        return ExecutionReport(tx_hash=tx_hash, result=result)
