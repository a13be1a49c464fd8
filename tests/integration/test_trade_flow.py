"""End-to-end commit-reveal flows through the TradeClient."""

import asyncio
from decimal import Decimal
from pathlib import Path

import pytest

from settle_app.client import TradeClient
from settle_app.errors import ConfigurationError, ErrorCode
from settle_app.gas import CeilingSource
from settle_app.ledger import TransactionScript
from settle_app.protocol import ProtocolPhase, ShortSellRequest, TradeKind, TradeRequest

REPO_ROOT = Path(__file__).parent.parent.parent
TRADE_ABI_FILE = REPO_ROOT / "config" / "trade_abi.json"


@pytest.fixture
def client(ledger, abi_map) -> TradeClient:
    return TradeClient(ledger, abi_map)


class TestTradeFlow:
    """Test a trade from gas check to settled result."""

    @pytest.mark.asyncio
    async def test_buy_fill_settles(self, client, ledger, codec, recorder,
                                    make_fill_log, make_receipt):
        ledger.script("trade", TransactionScript(
            tx_hash="0xtrade",
            call_return=[1, codec.fix(4), codec.fix(4)],
            receipt=make_receipt(make_fill_log(1, 4, 1)),
        ))

        outcome = await client.trade(TradeRequest(
            max_value=10, max_amount=5, trade_ids=["t1", "t2"],
            callbacks=recorder.callbacks(),
        ))

        result = recorder.arg("on_trade_success")
        assert outcome.succeeded is True
        assert outcome.result == result
        assert outcome.trade_tx_hash == "0xtrade"
        assert result.kind is TradeKind.TRADE
        assert result.shares_bought == Decimal(1)
        assert result.cash_from_trade == Decimal(0)
        assert result.unmatched_cash == Decimal(4)
        assert result.unmatched_shares == Decimal(4)
        assert recorder.arg("on_trade_confirmed") == result

    @pytest.mark.asyncio
    async def test_result_dict_uses_ledger_field_names(self, client, ledger, codec,
                                                       make_fill_log, make_receipt):
        ledger.script("trade", TransactionScript(
            tx_hash="0xtrade",
            call_return=[1, codec.fix(4), codec.fix(4)],
            receipt=make_receipt(make_fill_log(1, 4, 1), make_fill_log(0, 2, 3)),
        ))

        outcome = await client.trade(TradeRequest(
            max_value=10, max_amount=5, trade_ids=["t1", "t2"],
        ))

        data = outcome.result.to_dict()
        assert set(data) == {
            "txHash", "unmatchedCash", "unmatchedShares", "sharesBought", "cashFromTrade",
        }
        assert data == {
            "txHash": "0xtrade",
            "unmatchedCash": "4",
            "unmatchedShares": "4",
            "sharesBought": "1",
            "cashFromTrade": "6",
        }

    @pytest.mark.asyncio
    async def test_over_budget_batch_never_touches_ledger(self, client, ledger, recorder):
        ledger.add_trade("t3", "buy")
        ledger.add_trade("t4", "buy")
        ledger.add_trade("t5", "buy")

        # 787421 + 615817 + 3 * 661894 exceeds the 3141592 block limit
        outcome = await client.trade(TradeRequest(
            max_value=10, max_amount=5, trade_ids=["t1", "t2", "t3", "t4", "t5"],
            callbacks=recorder.callbacks(),
        ))

        assert outcome.phase is ProtocolPhase.FAILED
        assert outcome.error.code is ErrorCode.GAS_LIMIT_EXCEEDED
        assert outcome.error.gas_cost == 787421 + 615817 + 3 * 661894
        assert ledger.submitted == []


class TestShortSellFlow:
    """Test a short sell from commitment to settled result."""

    @pytest.mark.asyncio
    async def test_short_sell_settles(self, client, ledger, codec, recorder,
                                      make_fill_log, make_receipt):
        ledger.script("short_sell", TransactionScript(
            call_return=[1, codec.fix(0), codec.fix(3), codec.fix(2)],
            receipt=make_receipt(make_fill_log(0, 2, 3)),
        ))

        outcome = await client.short_sell(ShortSellRequest(
            buyer_trade_id="t9", max_amount=3, callbacks=recorder.callbacks(),
        ))

        result = recorder.arg("on_trade_success")
        assert outcome.succeeded is True
        assert result.kind is TradeKind.SHORT_SELL
        assert result.cash_from_trade == Decimal(6)
        assert result.matched_shares == Decimal(3)
        assert result.unmatched_shares == Decimal(0)
        assert result.price == Decimal(2)
        assert result.shares_bought is None
        assert "sharesBought" not in result.to_dict()


class TestConcurrentIntents:
    """Test independent intents sharing one client."""

    @pytest.mark.asyncio
    async def test_run_all_keeps_request_order(self, client, ledger, codec, make_receipt):
        ledger.script("trade", TransactionScript(
            call_return=[1, codec.fix(1), codec.fix(1)], receipt=make_receipt(),
        ))
        ledger.script("short_sell", TransactionScript(
            call_return=[1, codec.fix(0), codec.fix(1), codec.fix(1)], receipt=make_receipt(),
        ))

        outcomes = await client.run_all([
            TradeRequest(max_value=1, max_amount=1, trade_ids=["t1"]),
            ShortSellRequest(buyer_trade_id="t9", max_amount=1),
            TradeRequest(max_value=1, max_amount=1, trade_ids=["missing"]),
        ])

        assert [outcome.kind for outcome in outcomes] == [
            TradeKind.TRADE, TradeKind.SHORT_SELL, TradeKind.TRADE,
        ]
        assert outcomes[0].succeeded is True
        assert outcomes[1].succeeded is True
        assert outcomes[2].error.code is ErrorCode.TRADE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_each_intent_keeps_its_own_hash(self, client, ledger, codec, make_receipt):
        for _ in range(2):
            ledger.script("trade", TransactionScript(
                call_return=[1, codec.fix(0), codec.fix(0)], receipt=make_receipt(),
            ))

        first, second = await asyncio.gather(
            client.trade(TradeRequest(max_value=1, max_amount=1, trade_ids=["t1"])),
            client.trade(TradeRequest(max_value=2, max_amount=1, trade_ids=["t1"])),
        )

        assert first.trade_hash.digest != second.trade_hash.digest
        assert first.trade_hash.max_value == 1
        assert second.trade_hash.max_value == 2
        commits = [tx.params[0] for tx in ledger.submitted if tx.method == "commit_trade"]
        assert sorted(commits) == sorted([first.trade_hash.digest, second.trade_hash.digest])


class TestClientConstruction:
    """Test building a client from files."""

    def test_from_files(self, ledger, tmp_path):
        (tmp_path / "settle.yaml").write_text("gas:\n  first_buy: 800000\n")

        client = TradeClient.from_files(ledger, TRADE_ABI_FILE, config_dir=tmp_path)

        assert client.config.gas.first_buy == 800000
        assert client.config.gas.first_sell == 756374
        assert client.abi_map.function("Trade", "commit_trade").signature == ("bytes32",)

    def test_from_files_rejects_bad_config(self, ledger, tmp_path):
        with pytest.raises(ConfigurationError):
            TradeClient.from_files(
                ledger, TRADE_ABI_FILE, config_dir=tmp_path,
                overrides={"gas": {"first_buy": -1}},
            )

    @pytest.mark.asyncio
    async def test_gas_queries(self, client, ledger):
        supplied = await client.is_under_gas_limit(["buy", "sell"], gas_limit=1_543_795)
        live = await client.is_trade_under_gas_limit(["t1", "t2"])

        assert supplied.admitted is True
        assert supplied.source is CeilingSource.SUPPLIED
        assert live.cost == 787421 + 615817
        assert live.ceiling == 3_141_592
        assert live.source is CeilingSource.BLOCK
