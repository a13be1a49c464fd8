"""Pytest configuration and shared fixtures."""

from typing import Any, Callable, Dict

import pytest
from eth_utils import encode_hex

from settle_app.abi import build_abi_map
from settle_app.abi.models import AbiMap
from settle_app.ledger import FixedPointCodec, LogEntry, Receipt, SimulatedLedger
from settle_app.protocol import TradeCallbacks, TradeCommitmentProtocol


TRADE_ABI: Dict[str, Any] = {
    "Trade": [
        {
            "type": "function",
            "name": "commit_trade(bytes32)",
            "constant": False,
            "inputs": [{"name": "trade_hash", "type": "bytes32"}],
            "outputs": [{"name": "out", "type": "int256"}],
        },
        {
            "type": "function",
            "name": "trade(int256,int256,bytes32[])",
            "constant": False,
            "inputs": [
                {"name": "fxpMaxValue", "type": "int256"},
                {"name": "fxpMaxAmount", "type": "int256"},
                {"name": "trade_ids", "type": "bytes32[]"},
            ],
            "outputs": [{"name": "out", "type": "int256[]"}],
        },
        {
            "type": "function",
            "name": "short_sell(bytes32,int256)",
            "constant": False,
            "inputs": [
                {"name": "buyer_trade_id", "type": "bytes32"},
                {"name": "fxpMaxAmount", "type": "int256"},
            ],
            "outputs": [{"name": "out", "type": "int256[]"}],
        },
        {
            "type": "event",
            "name": "log_fill_tx(int256,int256,int256)",
            "inputs": [
                {"name": "type", "type": "int256", "indexed": False},
                {"name": "price", "type": "int256", "indexed": False},
                {"name": "amount", "type": "int256", "indexed": False},
            ],
        },
        {
            "type": "event",
            "name": "log_add_tx",
            "inputs": [{"name": "trade_id", "type": "bytes32", "indexed": True}],
        },
    ],
}


@pytest.fixture
def raw_abi() -> Dict[str, Any]:
    """Interface description of the trade contract."""
    return TRADE_ABI


@pytest.fixture
def abi_map(raw_abi) -> AbiMap:
    """ABI map built from the trade contract description."""
    return build_abi_map(raw_abi)


@pytest.fixture
def codec() -> FixedPointCodec:
    """Default 18-decimal fixed-point codec."""
    return FixedPointCodec(18)


@pytest.fixture
def ledger() -> SimulatedLedger:
    """Simulated ledger at block 100 with three resting orders."""
    sim = SimulatedLedger(
        block_number=100,
        gas_limit=3_141_592,
        error_messages={
            "trade": {-1: "oversold trade", -2: "trader doesn't exist"},
            "short_sell": {-1: "trade doesn't exist"},
        },
    )
    sim.add_trade("t1", "buy")
    sim.add_trade("t2", "sell")
    sim.add_trade("t9", "buy")
    return sim


@pytest.fixture
def protocol(ledger, abi_map) -> TradeCommitmentProtocol:
    """Commit-reveal protocol over the simulated ledger."""
    return TradeCommitmentProtocol(ledger, abi_map)


@pytest.fixture
def make_fill_log(abi_map, codec) -> Callable[..., LogEntry]:
    """Factory for settlement log entries (side, price, quantity)."""
    def _make(side: int, price: Any, quantity: Any, topic: str = None) -> LogEntry:
        words = [side, codec.fix(price), codec.fix(quantity)]
        data = b"".join(word.to_bytes(32, "big", signed=True) for word in words)
        return LogEntry(
            topics=(topic or abi_map.event("log_fill_tx").signature,),
            data=encode_hex(data),
        )
    return _make


@pytest.fixture
def make_receipt() -> Callable[..., Receipt]:
    """Factory for receipts holding the given logs."""
    def _make(*logs: LogEntry, error: Any = None, tx_hash: str = "0xreceipt") -> Receipt:
        return Receipt(tx_hash=tx_hash, logs=tuple(logs), error=error)
    return _make


class CallbackRecorder:
    """Records every protocol callback in firing order."""

    NAMES = (
        "on_trade_hash", "on_commit_sent", "on_commit_success", "on_commit_failed",
        "on_commit_confirmed", "on_next_block", "on_trade_sent", "on_trade_success",
        "on_trade_failed", "on_trade_confirmed",
    )

    def __init__(self) -> None:
        self.calls = []

    def callbacks(self) -> TradeCallbacks:
        def _recorder(name):
            return lambda arg: self.calls.append((name, arg))

        return TradeCallbacks(**{name: _recorder(name) for name in self.NAMES})

    @property
    def names(self):
        return [name for name, _ in self.calls]

    def arg(self, name):
        matches = [arg for called, arg in self.calls if called == name]
        assert len(matches) == 1, f"{name} fired {len(matches)} times"
        return matches[0]


@pytest.fixture
def recorder() -> CallbackRecorder:
    """Fresh callback recorder."""
    return CallbackRecorder()
