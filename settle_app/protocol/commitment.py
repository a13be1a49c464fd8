"""
Commit-reveal trade protocol.

A trade is committed as a hash first and revealed only after the
commitment transaction has succeeded and one more block has been mined.
Each invocation keeps its state in a ProtocolRun local to the call, so
concurrent intents share nothing but the read-only ABI map, the config
and the ledger handle.
"""

import asyncio
from contextlib import aclosing
from typing import Optional

from ..abi.models import AbiMap
from ..config.defaults import SettleConfig, get_default_config
from ..errors import AdmissionError, CommitmentError, ErrorCode, SettlementProtocolError
from ..gas.estimator import GasBudgetEstimator
from ..ledger.fixed_point import FixedPointCodec
from ..ledger.interface import LedgerConnection
from ..ledger.models import (
    TransactionConfirmed,
    TransactionFailed,
    TransactionSent,
    TransactionSucceeded,
)
from ..logging.config import get_protocol_logger
from .hashing import make_trade_hash
from .models import (
    ExecutionReport,
    ProtocolOutcome,
    ProtocolPhase,
    ShortSellRequest,
    TradeCallbacks,
    TradeHash,
    TradeIntent,
    TradeRequest,
)
from .settlement import TradeExecutor
from .state import ProtocolRun

logger = get_protocol_logger(__name__)

# The reveal must land at least this many blocks after the commitment.
BLOCKS_BETWEEN_COMMIT_AND_REVEAL = 1


class TradeCommitmentProtocol:
    """Runs trade and short-sell intents through commit, advance and reveal."""

    def __init__(
        self,
        ledger: LedgerConnection,
        abi_map: AbiMap,
        config: Optional[SettleConfig] = None,
        estimator: Optional[GasBudgetEstimator] = None,
    ) -> None:
        self.ledger = ledger
        self.abi_map = abi_map
        self.config = config or get_default_config()
        self.codec = FixedPointCodec(self.config.fixed_point.decimals)
        self.estimator = estimator or GasBudgetEstimator(ledger, self.config.gas)
        self.executor = TradeExecutor(ledger, abi_map, self.codec, self.config.protocol)

    async def trade(self, request: TradeRequest) -> ProtocolOutcome:
        """
        Commit and reveal a trade against resting orders.

        Gas admission runs first; an unresolved trade id or an exceeded
        block gas limit is reported through on_commit_failed.
        """
        intent = request.to_intent()
        callbacks = request.callbacks
        run = ProtocolRun(intent.kind, intent.intent_id)

        try:
            budget = await self.estimator.check_admission(intent.trade_ids)
        except AdmissionError as exc:
            run.advance(ProtocolPhase.FAILED, "admission_rejected", error=exc.to_payload())
            callbacks.on_commit_failed(exc)
            return ProtocolOutcome(kind=intent.kind, phase=run.phase, error=exc)

        run.advance(ProtocolPhase.HASHING, "admitted", gas_cost=budget.cost,
                    gas_ceiling=budget.ceiling)
        return await self._commit_and_reveal(run, intent, callbacks)

    async def short_sell(self, request: ShortSellRequest) -> ProtocolOutcome:
        """
        Commit and reveal a short sell into one resting buy order.

        Short sells skip gas admission and start at the hashing phase.
        """
        intent = request.to_intent()
        run = ProtocolRun(intent.kind, intent.intent_id, phase=ProtocolPhase.HASHING)
        logger.info("Gas admission skipped for short sell", intent_id=run.intent_id)
        return await self._commit_and_reveal(run, intent, request.callbacks)

    async def _commit_and_reveal(self, run: ProtocolRun, intent: TradeIntent,
                                 callbacks: TradeCallbacks) -> ProtocolOutcome:
        trade_hash = make_trade_hash(intent, self.codec)
        callbacks.on_trade_hash(trade_hash)
        run.intent_id = trade_hash.digest[:10]
        run.advance(ProtocolPhase.COMMITTING, "trade_hash", trade_ids=list(intent.trade_ids))

        params = self.config.protocol
        commit_tx = self.abi_map.function(params.trade_contract, params.commit_method) \
            .to_transaction([trade_hash.digest])

        commit_tx_hash: Optional[str] = None
        error: Optional[SettlementProtocolError] = None
        reveal: Optional[asyncio.Task] = None

        try:
            async with aclosing(self.ledger.submit_transaction(commit_tx)) as events:
                async for event in events:
                    if isinstance(event, TransactionSent):
                        commit_tx_hash = event.tx_hash
                        callbacks.on_commit_sent(event)

                    elif isinstance(event, TransactionSucceeded):
                        commit_tx_hash = event.tx_hash
                        callbacks.on_commit_success(event)
                        if reveal is None:
                            run.advance(ProtocolPhase.ADVANCING, "commit_success",
                                        tx_hash=event.tx_hash)
                            reveal = asyncio.create_task(
                                self._advance_and_execute(run, intent, trade_hash, callbacks)
                            )

                    elif isinstance(event, TransactionFailed):
                        if reveal is not None:
                            logger.error(
                                "Commitment reported failure after success; ignored",
                                intent_id=run.intent_id,
                                error=event.error,
                            )
                            continue
                        error = CommitmentError(
                            event.message or "Commitment transaction failed",
                            code=event.error if event.error is not None
                            else ErrorCode.TRANSACTION_FAILED,
                            trade_hash=trade_hash.digest,
                            ledger_error=event.error,
                            context={"tx_hash": event.tx_hash or commit_tx_hash,
                                     "tx": commit_tx.describe()},
                        )
                        run.advance(ProtocolPhase.FAILED, "commit_failed",
                                    error=error.to_payload())
                        callbacks.on_commit_failed(error)
                        break

                    elif isinstance(event, TransactionConfirmed):
                        callbacks.on_commit_confirmed(event)
        except BaseException:
            if reveal is not None:
                reveal.cancel()
            raise

        if reveal is None:
            return ProtocolOutcome(
                kind=intent.kind,
                phase=run.phase,
                trade_hash=trade_hash,
                commit_tx_hash=commit_tx_hash,
                error=error,
            )

        block_number, report = await reveal
        return ProtocolOutcome(
            kind=intent.kind,
            phase=run.phase,
            trade_hash=trade_hash,
            commit_tx_hash=commit_tx_hash,
            block_number=block_number,
            trade_tx_hash=report.tx_hash,
            result=report.result,
            error=report.error,
        )

    async def _advance_and_execute(self, run: ProtocolRun, intent: TradeIntent,
                                   trade_hash: TradeHash,
                                   callbacks: TradeCallbacks) -> tuple[int, ExecutionReport]:
        block_number = await self.ledger.fast_forward(BLOCKS_BETWEEN_COMMIT_AND_REVEAL)
        callbacks.on_next_block(block_number)
        run.advance(ProtocolPhase.EXECUTING, "next_block", block_number=block_number)

        report = await self.executor.execute(run, intent, trade_hash, callbacks)
        return block_number, report
