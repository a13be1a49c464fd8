#!/usr/bin/env python3
"""
Commit-Reveal Demo - Settlement Client

This script runs a trade and a short sell against the in-memory simulated
ledger. It shows how to:
- Build a client from the shipped interface description and settle.yaml
- Script ledger outcomes (call returns and receipt logs)
- Follow each intent through its lifecycle callbacks

Run: python examples/commit_reveal_demo.py
"""

import asyncio
from pathlib import Path
from typing import Any, Dict

from eth_utils import encode_hex

from settle_app.abi import load_abi_file
from settle_app.client import TradeClient
from settle_app.config import ConfigLoader
from settle_app.ledger import LogEntry, Receipt, SimulatedLedger, TransactionScript
from settle_app.logging import configure_from_params
from settle_app.protocol import ShortSellRequest, TradeCallbacks, TradeRequest

ABI_FILE = Path(__file__).parent.parent / "config" / "trade_abi.json"


def fill_log(client: TradeClient, side: int, price: Any, quantity: Any) -> LogEntry:
    """Settlement log for one fill."""
    codec = client.protocol.codec
    words = [side, codec.fix(price), codec.fix(quantity)]
    data = b"".join(word.to_bytes(32, "big", signed=True) for word in words)
    topic = client.abi_map.event(client.config.protocol.settlement_event).signature
    return LogEntry(topics=(topic,), data=encode_hex(data))


def printing_callbacks(label: str) -> TradeCallbacks:
    """Callbacks that print each lifecycle step."""
    def show(step: str):
        return lambda value: print(f"  [{label}] {step}: {value}")

    return TradeCallbacks(
        on_trade_hash=show("trade hash"),
        on_commit_sent=show("commit sent"),
        on_commit_success=show("commit mined"),
        on_commit_failed=show("commit failed"),
        on_commit_confirmed=show("commit confirmed"),
        on_next_block=show("next block"),
        on_trade_sent=show("reveal sent"),
        on_trade_success=lambda result: print(f"  [{label}] settled: {result.to_dict()}"),
        on_trade_failed=lambda error: print(f"  [{label}] failed: {error.to_payload()}"),
        on_trade_confirmed=show("reveal confirmed"),
    )


def build_ledger() -> SimulatedLedger:
    """Simulated ledger with three resting orders."""
    ledger = SimulatedLedger(
        block_number=1000,
        error_messages={"trade": {-1: "oversold trade"}},
    )
    ledger.add_trade("0xbuy1", "buy")
    ledger.add_trade("0xsell1", "sell")
    ledger.add_trade("0xbuy2", "buy")
    return ledger


async def main() -> None:
    config = ConfigLoader.create().load({"logging": {"level": "WARNING"}})
    configure_from_params(config.logging)

    ledger = build_ledger()
    client = TradeClient(ledger, load_abi_file(ABI_FILE), config)
    codec = client.protocol.codec

    print("=== Gas admission ===")
    budget = await client.is_trade_under_gas_limit(["0xbuy1", "0xsell1"])
    print(f"  cost={budget.cost} ceiling={budget.ceiling} admitted={budget.admitted}")

    print("\n=== Trade ===")
    ledger.script("trade", TransactionScript(
        call_return=[1, codec.fix(4), codec.fix(4)],
        receipt=Receipt(tx_hash="", logs=(fill_log(client, 1, 4, 1),)),
    ))
    outcome = await client.trade(TradeRequest(
        max_value=10,
        max_amount=5,
        trade_ids=["0xbuy1", "0xsell1"],
        callbacks=printing_callbacks("trade"),
    ))
    print(f"  final phase: {outcome.phase.value}")

    print("\n=== Short sell ===")
    ledger.script("short_sell", TransactionScript(
        call_return=[1, codec.fix(0), codec.fix(3), codec.fix(2)],
        receipt=Receipt(tx_hash="", logs=(fill_log(client, 0, 2, 3),)),
    ))
    outcome = await client.short_sell(ShortSellRequest(
        buyer_trade_id="0xbuy2",
        max_amount=3,
        callbacks=printing_callbacks("short"),
    ))
    print(f"  final phase: {outcome.phase.value}")

    print("\n=== Rejected reveal ===")
    ledger.script("trade", TransactionScript(succeed=False, error=-1))
    outcome = await client.trade(TradeRequest(
        max_value=1,
        max_amount=1,
        trade_ids=["0xbuy1"],
        callbacks=printing_callbacks("oversold"),
    ))
    summary: Dict[str, Any] = {"phase": outcome.phase.value, "error": outcome.error.message}
    print(f"  {summary}")


if __name__ == "__main__":
    asyncio.run(main())
