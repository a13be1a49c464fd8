"""Tests for the commit-reveal state machine."""

import copy
from decimal import Decimal

import pytest

from settle_app.abi import build_abi_map
from settle_app.errors import (
    AdmissionError,
    CommitmentError,
    ErrorCode,
    ExecutionError,
    ReceiptError,
    StateTransitionError,
)
from settle_app.ledger import LogEntry, TransactionScript
from settle_app.protocol import (
    ProtocolPhase,
    ShortSellRequest,
    TradeCommitmentProtocol,
    TradeHash,
    TradeIntent,
    TradeRequest,
    make_trade_hash,
)
from settle_app.protocol.models import TradeKind
from settle_app.protocol.state import ProtocolRun


def script_trade(ledger, codec, receipt, call_return=None, **kwargs):
    ledger.script("trade", TransactionScript(
        tx_hash="0xtrade",
        call_return=call_return if call_return is not None else [1, codec.fix(0), codec.fix(0)],
        receipt=receipt,
        **kwargs,
    ))


class TestHappyPath:
    """Test the full callback sequence of a successful trade."""

    @pytest.mark.asyncio
    async def test_callback_order(self, protocol, ledger, codec, recorder, make_receipt):
        script_trade(ledger, codec, make_receipt())

        outcome = await protocol.trade(TradeRequest(
            max_value=10, max_amount=5, trade_ids=["t1", "t2"], callbacks=recorder.callbacks(),
        ))

        assert recorder.names == [
            "on_trade_hash",
            "on_commit_sent",
            "on_commit_success",
            "on_commit_confirmed",
            "on_next_block",
            "on_trade_sent",
            "on_trade_success",
            "on_trade_confirmed",
        ]
        assert outcome.phase is ProtocolPhase.SETTLED
        assert outcome.succeeded is True

    @pytest.mark.asyncio
    async def test_commit_then_advance_then_reveal(self, protocol, ledger, codec, make_receipt):
        script_trade(ledger, codec, make_receipt())

        await protocol.trade(TradeRequest(max_value=10, max_amount=5, trade_ids=["t1"]))

        steps = [name if name != "submit" else f"submit:{arg}" for name, arg in ledger.history
                 if name in ("submit", "success", "fast_forward")]
        assert steps == [
            "submit:commit_trade", "success", "fast_forward", "submit:trade", "success",
        ]
        assert ("fast_forward", 1) in ledger.history

    @pytest.mark.asyncio
    async def test_commitment_carries_trade_hash(self, protocol, ledger, codec, recorder,
                                                 make_receipt):
        script_trade(ledger, codec, make_receipt())

        outcome = await protocol.trade(TradeRequest(
            max_value=10, max_amount=5, trade_ids=["t1", "t2"], callbacks=recorder.callbacks(),
        ))

        trade_hash = recorder.arg("on_trade_hash")
        assert isinstance(trade_hash, TradeHash)
        assert outcome.trade_hash == trade_hash
        commit_tx, reveal_tx = ledger.submitted
        assert commit_tx.method == "commit_trade"
        assert commit_tx.params == (trade_hash.digest,)
        assert reveal_tx.params == (codec.fix(10), codec.fix(5), ["t1", "t2"])

    @pytest.mark.asyncio
    async def test_next_block_reports_new_number(self, protocol, ledger, codec, recorder,
                                                 make_receipt):
        script_trade(ledger, codec, make_receipt())

        outcome = await protocol.trade(TradeRequest(
            max_value=1, max_amount=1, trade_ids=["t1"], callbacks=recorder.callbacks(),
        ))

        # commit mined at 101, fast-forward to 102
        assert recorder.arg("on_next_block") == 102
        assert outcome.block_number == 102

    @pytest.mark.asyncio
    async def test_absent_callbacks_default_to_noops(self, protocol, ledger, codec,
                                                     make_receipt):
        script_trade(ledger, codec, make_receipt())

        outcome = await protocol.trade(TradeRequest(max_value=1, max_amount=1, trade_ids=["t1"]))

        assert outcome.succeeded is True


class TestAdmissionFailures:
    """Test the gas check phase."""

    @pytest.mark.asyncio
    async def test_gas_limit_exceeded(self, protocol, ledger, recorder):
        ledger.gas_limit = 1

        outcome = await protocol.trade(TradeRequest(
            max_value=1, max_amount=1, trade_ids=["t1"], callbacks=recorder.callbacks(),
        ))

        error = recorder.arg("on_commit_failed")
        assert recorder.names == ["on_commit_failed"]
        assert isinstance(error, AdmissionError)
        assert error.code is ErrorCode.GAS_LIMIT_EXCEEDED
        assert outcome.phase is ProtocolPhase.FAILED
        assert outcome.error is error
        assert ledger.submitted == []

    @pytest.mark.asyncio
    async def test_unknown_trade_id(self, protocol, ledger, recorder):
        outcome = await protocol.trade(TradeRequest(
            max_value=1, max_amount=1, trade_ids=["t1", "nope"], callbacks=recorder.callbacks(),
        ))

        error = recorder.arg("on_commit_failed")
        assert error.code is ErrorCode.TRADE_NOT_FOUND
        assert error.trade_id == "nope"
        assert outcome.trade_hash is None
        assert ledger.submitted == []


class TestCommitFailures:
    """Test the committing phase."""

    @pytest.mark.asyncio
    async def test_commit_failed_is_terminal(self, protocol, ledger, recorder):
        ledger.script("commit_trade", TransactionScript(succeed=False, error=-5,
                                                        message="commit rejected"))

        outcome = await protocol.trade(TradeRequest(
            max_value=1, max_amount=1, trade_ids=["t1"], callbacks=recorder.callbacks(),
        ))

        assert recorder.names == ["on_trade_hash", "on_commit_sent", "on_commit_failed"]
        error = recorder.arg("on_commit_failed")
        assert isinstance(error, CommitmentError)
        assert error.ledger_error == -5
        assert error.trade_hash == outcome.trade_hash.digest
        assert outcome.phase is ProtocolPhase.FAILED
        assert [tx.method for tx in ledger.submitted] == ["commit_trade"]
        assert not any(name == "fast_forward" for name, _ in ledger.history)

    @pytest.mark.asyncio
    async def test_failure_payload_is_structured(self, protocol, ledger, recorder):
        ledger.script("commit_trade", TransactionScript(succeed=False, error="REVERT"))

        await protocol.trade(TradeRequest(
            max_value=1, max_amount=1, trade_ids=["t1"], callbacks=recorder.callbacks(),
        ))

        payload = recorder.arg("on_commit_failed").to_payload()
        assert payload["kind"] == "CommitmentError"
        assert payload["error"] == "REVERT"
        assert payload["context"]["tx"]["method"] == "commit_trade"

    @pytest.mark.asyncio
    async def test_unconfirmed_commit_still_reveals(self, protocol, ledger, codec, recorder,
                                                    make_receipt):
        ledger.script("commit_trade", TransactionScript(confirm=False))
        script_trade(ledger, codec, make_receipt())

        outcome = await protocol.trade(TradeRequest(
            max_value=1, max_amount=1, trade_ids=["t1"], callbacks=recorder.callbacks(),
        ))

        assert "on_commit_confirmed" not in recorder.names
        assert outcome.succeeded is True


class TestRevealFailures:
    """Test the executing phase."""

    @pytest.mark.asyncio
    async def test_reveal_transaction_failed(self, protocol, ledger, recorder):
        ledger.script("trade", TransactionScript(succeed=False, error=-2))

        outcome = await protocol.trade(TradeRequest(
            max_value=1, max_amount=1, trade_ids=["t1"], callbacks=recorder.callbacks(),
        ))

        error = recorder.arg("on_trade_failed")
        assert isinstance(error, ExecutionError)
        assert error.code == -2
        assert error.message == "trader doesn't exist"
        assert outcome.phase is ProtocolPhase.FAILED
        assert "on_trade_success" not in recorder.names

    @pytest.mark.asyncio
    async def test_missing_receipt_never_reports_success(self, protocol, ledger, codec,
                                                         recorder):
        script_trade(ledger, codec, receipt=None)

        outcome = await protocol.trade(TradeRequest(
            max_value=1, max_amount=1, trade_ids=["t1"], callbacks=recorder.callbacks(),
        ))

        error = recorder.arg("on_trade_failed")
        assert isinstance(error, ReceiptError)
        assert error.code is ErrorCode.TRANSACTION_RECEIPT_NOT_FOUND
        assert "on_trade_success" not in recorder.names
        assert "on_trade_confirmed" not in recorder.names
        assert outcome.result is None
        assert outcome.phase is ProtocolPhase.FAILED

    @pytest.mark.asyncio
    async def test_bad_status_halts_reveal(self, protocol, ledger, codec, recorder,
                                           make_receipt):
        script_trade(ledger, codec, make_receipt(), call_return=[0, 0, 0])

        outcome = await protocol.trade(TradeRequest(
            max_value=1, max_amount=1, trade_ids=["t1"], callbacks=recorder.callbacks(),
        ))

        assert recorder.names[-2:] == ["on_trade_sent", "on_trade_failed"]
        assert outcome.error.code is ErrorCode.UNEXPECTED_CALL_RETURN

    @pytest.mark.asyncio
    async def test_malformed_return_value_reaches_failed(self, protocol, ledger, recorder,
                                                         make_receipt):
        script_trade(ledger, None, make_receipt(), call_return=["0x1", None, "0x0"])

        outcome = await protocol.trade(TradeRequest(
            max_value=1, max_amount=1, trade_ids=["t1"], callbacks=recorder.callbacks(),
        ))

        error = recorder.arg("on_trade_failed")
        assert isinstance(error, ExecutionError)
        assert error.code is ErrorCode.UNEXPECTED_CALL_RETURN
        assert recorder.names[-2:] == ["on_trade_sent", "on_trade_failed"]
        assert outcome.phase is ProtocolPhase.FAILED
        assert outcome.error is error

    @pytest.mark.asyncio
    async def test_short_settlement_log_reaches_failed(self, protocol, ledger, codec, abi_map,
                                                       recorder, make_receipt):
        topic = abi_map.event("log_fill_tx").signature
        two_words = (1).to_bytes(32, "big") + codec.fix(4).to_bytes(32, "big")
        script_trade(ledger, codec, make_receipt(
            LogEntry(topics=(topic,), data="0x" + two_words.hex()),
        ))

        outcome = await protocol.trade(TradeRequest(
            max_value=1, max_amount=1, trade_ids=["t1"], callbacks=recorder.callbacks(),
        ))

        assert recorder.arg("on_trade_failed").code is ErrorCode.RECEIPT_ERROR
        assert "on_trade_success" not in recorder.names
        assert outcome.phase is ProtocolPhase.FAILED
        assert outcome.result is None

    @pytest.mark.asyncio
    async def test_unconfirmed_reveal_reports_success_only(self, protocol, ledger, codec,
                                                           recorder, make_receipt):
        script_trade(ledger, codec, make_receipt(), confirm=False)

        outcome = await protocol.trade(TradeRequest(
            max_value=1, max_amount=1, trade_ids=["t1"], callbacks=recorder.callbacks(),
        ))

        assert recorder.names[-1] == "on_trade_success"
        assert outcome.phase is ProtocolPhase.SETTLED


class TestShortSell:
    """Test the short-sell variant of the state machine."""

    @pytest.mark.asyncio
    async def test_short_sell_skips_gas_check(self, protocol, ledger, codec, recorder,
                                              make_receipt):
        # A ceiling no trade could pass; short sells are admitted regardless.
        ledger.gas_limit = 1
        ledger.script("short_sell", TransactionScript(
            call_return=[1, codec.fix(0), codec.fix(3), codec.fix(2)],
            receipt=make_receipt(),
        ))

        outcome = await protocol.short_sell(ShortSellRequest(
            buyer_trade_id="t9", max_amount=3, callbacks=recorder.callbacks(),
        ))

        assert outcome.succeeded is True
        assert not any(name in ("get_trade", "get_block") for name, _ in ledger.history)
        assert recorder.names[0] == "on_trade_hash"

    @pytest.mark.asyncio
    async def test_short_sell_commits_zero_value(self, protocol, ledger, codec, recorder,
                                                 make_receipt):
        ledger.script("short_sell", TransactionScript(
            call_return=[1, codec.fix(0), codec.fix(3), codec.fix(2)],
            receipt=make_receipt(),
        ))

        await protocol.short_sell(ShortSellRequest(
            buyer_trade_id="t9", max_amount=3, callbacks=recorder.callbacks(),
        ))

        expected = make_trade_hash(
            TradeIntent(0, 3, ("t9",), kind=TradeKind.SHORT_SELL), codec
        )
        assert recorder.arg("on_trade_hash").digest == expected.digest
        assert ledger.submitted[1].params == ("t9", codec.fix(3))

    @pytest.mark.asyncio
    async def test_short_sell_classified_error(self, protocol, ledger, codec, recorder,
                                               make_receipt):
        ledger.script("short_sell", TransactionScript(call_return=-1, receipt=make_receipt()))

        outcome = await protocol.short_sell(ShortSellRequest(
            buyer_trade_id="t9", max_amount=3, callbacks=recorder.callbacks(),
        ))

        error = recorder.arg("on_trade_failed")
        assert error.message == "trade doesn't exist"
        assert outcome.phase is ProtocolPhase.FAILED


class TestProtocolRun:
    """Test phase transition validation."""

    def test_allowed_path(self):
        run = ProtocolRun(TradeKind.TRADE, "t1")
        for phase in (ProtocolPhase.HASHING, ProtocolPhase.COMMITTING, ProtocolPhase.ADVANCING,
                      ProtocolPhase.EXECUTING, ProtocolPhase.SETTLED):
            run.advance(phase, "test")
        assert run.phase is ProtocolPhase.SETTLED

    def test_reveal_cannot_skip_advance(self):
        run = ProtocolRun(TradeKind.TRADE, "t1", phase=ProtocolPhase.COMMITTING)
        with pytest.raises(StateTransitionError) as exc_info:
            run.advance(ProtocolPhase.EXECUTING, "test")
        assert exc_info.value.current_state == "committing"

    def test_failed_is_terminal(self):
        run = ProtocolRun(TradeKind.TRADE, "t1")
        run.advance(ProtocolPhase.FAILED, "test")
        assert run.terminal is True
        with pytest.raises(StateTransitionError):
            run.advance(ProtocolPhase.HASHING, "test")


@pytest.mark.asyncio
async def test_reveal_refuses_mismatched_commitment(protocol, ledger, codec, recorder):
    """Test the executor rejects parameters that differ from the commitment."""
    committed = TradeIntent(Decimal(10), Decimal(5), ("t1", "t2"))
    revealed = TradeIntent(Decimal(10), Decimal(5), ("t2", "t1"))
    run = ProtocolRun(TradeKind.TRADE, "t1", phase=ProtocolPhase.EXECUTING)

    report = await protocol.executor.execute(
        run, revealed, make_trade_hash(committed, codec), recorder.callbacks()
    )

    assert report.error.code is ErrorCode.COMMITMENT_MISMATCH
    assert recorder.names == ["on_trade_failed"]
    assert ledger.submitted == []
    assert run.phase is ProtocolPhase.FAILED


@pytest.mark.asyncio
async def test_reveal_refuses_unencoded_amounts(raw_abi, ledger, recorder):
    """Test a reveal whose interface skips fixed-point encoding is never sent."""
    raw = copy.deepcopy(raw_abi)
    trade_entry = next(entry for entry in raw["Trade"] if entry["name"].startswith("trade("))
    for param in trade_entry["inputs"][:2]:
        param["name"] = param["name"].replace("fxp", "")
    protocol = TradeCommitmentProtocol(ledger, build_abi_map(raw))

    outcome = await protocol.trade(TradeRequest(
        max_value=10, max_amount=5, trade_ids=["t1"], callbacks=recorder.callbacks(),
    ))

    assert recorder.arg("on_trade_failed").code is ErrorCode.COMMITMENT_MISMATCH
    assert "on_trade_sent" not in recorder.names
    assert [tx.method for tx in ledger.submitted] == ["commit_trade"]
    assert outcome.phase is ProtocolPhase.FAILED


@pytest.mark.asyncio
async def test_short_sell_reveal_matches_commitment(protocol, codec):
    """Test the short-sell reveal decodes back to the committed triple."""
    intent = ShortSellRequest(buyer_trade_id="t9", max_amount=3).to_intent()
    tx = protocol.executor.reveal_transaction(intent)

    revealed = protocol.executor.revealed_intent(tx, intent.kind)

    assert revealed == intent
