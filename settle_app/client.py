"""
Settlement client coordinator.

Wires configuration, the ABI map, the ledger connection, gas admission
and the commit-reveal protocol behind a single entry point.
"""

import asyncio
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence, Union

import structlog

from .abi.builder import load_abi_file
from .abi.models import AbiMap
from .config.defaults import SettleConfig, get_default_config
from .config.loader import ConfigLoader
from .gas.estimator import GasBudgetEstimator
from .gas.models import GasBudget, TradeType
from .ledger.interface import LedgerConnection
from .protocol.commitment import TradeCommitmentProtocol
from .protocol.models import ProtocolOutcome, ShortSellRequest, TradeRequest

logger = structlog.get_logger(__name__)


class TradeClient:
    """
    Main entry point for commit-reveal trading against one ledger.

    Every dependency is injected; the client holds no mutable state, so
    one instance can run any number of intents concurrently.
    """

    def __init__(self, ledger: LedgerConnection, abi_map: AbiMap,
                 config: Optional[SettleConfig] = None) -> None:
        self.ledger = ledger
        self.abi_map = abi_map
        self.config = config or get_default_config()

        self.estimator = GasBudgetEstimator(ledger, self.config.gas)
        self.protocol = TradeCommitmentProtocol(
            ledger, abi_map, self.config, estimator=self.estimator
        )

        logger.info(
            "Trade client initialized",
            contracts=sorted(abi_map.functions),
            settlement_event=self.config.protocol.settlement_event,
        )

    @classmethod
    def from_files(
        cls,
        ledger: LedgerConnection,
        abi_path: Union[str, Path],
        config_dir: Optional[Union[str, Path]] = None,
        overrides: Optional[dict[str, Any]] = None,
    ) -> "TradeClient":
        """Build a client from a JSON interface description and settle.yaml."""
        loader = ConfigLoader.create(Path(config_dir) if config_dir else None)
        return cls(ledger, load_abi_file(abi_path), loader.load(overrides))

    async def trade(self, request: TradeRequest) -> ProtocolOutcome:
        """Commit and reveal a trade."""
        return await self.protocol.trade(request)

    async def short_sell(self, request: ShortSellRequest) -> ProtocolOutcome:
        """Commit and reveal a short sell."""
        return await self.protocol.short_sell(request)

    async def run_all(
        self,
        requests: Sequence[Union[TradeRequest, ShortSellRequest]],
    ) -> list[ProtocolOutcome]:
        """Run independent intents concurrently; outcomes keep request order."""
        return list(await asyncio.gather(*(
            self.short_sell(request) if isinstance(request, ShortSellRequest)
            else self.trade(request)
            for request in requests
        )))

    async def is_under_gas_limit(
        self,
        trade_types: Iterable[Union[TradeType, str]],
        gas_limit: Optional[int] = None,
    ) -> GasBudget:
        """Gas budget for ``trade_types`` against ``gas_limit`` or the live ceiling."""
        return await self.estimator.is_under_gas_limit(trade_types, gas_limit)

    async def is_trade_under_gas_limit(self, trade_ids: Sequence[str]) -> GasBudget:
        """Gas budget for resting orders ``trade_ids`` against the live ceiling."""
        return await self.estimator.is_trade_under_gas_limit(trade_ids)
