"""
Gas budget estimator.

Trades are costed by position: the first trade in a batch uses the
"first" row of the cost table and every later trade the "subsequent" row.
The static form costs a list of trade types; the dynamic form resolves
trade ids through the ledger first.
"""

from typing import Iterable, Optional, Sequence, Union

from ..config.defaults import GasParams
from ..errors import AdmissionError, ErrorCode
from ..ledger.interface import LedgerConnection
from ..logging.config import get_admission_logger, log_admission_decision
from .models import CeilingSource, GasBudget, TradeType

admission_logger = get_admission_logger(__name__)


class GasBudgetEstimator:
    """Gas admission control against a ledger's per-block ceiling."""

    def __init__(self, ledger: LedgerConnection, params: Optional[GasParams] = None) -> None:
        self.ledger = ledger
        self.params = params or GasParams()

    def sum_trade_gas(self, trade_types: Iterable[Union[TradeType, str]]) -> int:
        """
        Total gas for trades of ``trade_types`` in the given order.

        Raises:
            AdmissionError: If a trade type is not in the cost table.
        """
        gas = 0
        for position, trade_type in enumerate(trade_types):
            try:
                gas += self.params.cost(TradeType(trade_type).value, position)
            except ValueError:
                raise AdmissionError(
                    f"Unknown trade type: {trade_type!r}",
                    context={"position": position},
                ) from None
        return gas

    def within_gas_limit(self, trade_types: Iterable[Union[TradeType, str]],
                         gas_limit: int) -> bool:
        """Synchronous check against a caller-supplied ceiling."""
        return self.sum_trade_gas(trade_types) <= gas_limit

    async def block_gas_limit(self) -> int:
        """Gas ceiling of the current block."""
        block_number = await self.ledger.current_block_number()
        block = await self.ledger.get_block(block_number)
        return block.gas_limit

    async def is_under_gas_limit(
        self,
        trade_types: Iterable[Union[TradeType, str]],
        gas_limit: Optional[int] = None,
    ) -> GasBudget:
        """
        Budget for ``trade_types`` against ``gas_limit``, or the live ceiling.

        Args:
            trade_types: Ordered trade types ("buy"/"sell")
            gas_limit: Explicit ceiling; fetched from the current block if None

        Returns:
            GasBudget with the cost, the ceiling and its source
        """
        cost = self.sum_trade_gas(trade_types)
        if gas_limit is not None:
            budget = GasBudget(cost=cost, ceiling=gas_limit, source=CeilingSource.SUPPLIED)
        else:
            budget = GasBudget(
                cost=cost,
                ceiling=await self.block_gas_limit(),
                source=CeilingSource.BLOCK,
            )
        log_admission_decision(
            admission_logger, budget.admitted, budget.cost, budget.ceiling, budget.source.value
        )
        return budget

    async def trade_gas(self, trade_ids: Sequence[str]) -> int:
        """
        Resolve ``trade_ids`` one at a time and sum their gas.

        Raises:
            AdmissionError: Naming the first id the ledger cannot resolve.
        """
        trade_types = []
        for trade_id in trade_ids:
            trade = await self.ledger.get_trade(trade_id)
            if trade is None or not trade.trade_id:
                raise AdmissionError(
                    f"couldn't find trade: {trade_id}",
                    trade_id=trade_id,
                    code=ErrorCode.TRADE_NOT_FOUND,
                    context={"trade_ids": list(trade_ids)},
                )
            trade_types.append(trade.trade_type)
        return self.sum_trade_gas(trade_types)

    async def is_trade_under_gas_limit(self, trade_ids: Sequence[str]) -> GasBudget:
        """Budget for resting orders ``trade_ids`` against the live ceiling."""
        cost = await self.trade_gas(trade_ids)
        budget = GasBudget(
            cost=cost,
            ceiling=await self.block_gas_limit(),
            source=CeilingSource.BLOCK,
        )
        log_admission_decision(
            admission_logger, budget.admitted, budget.cost, budget.ceiling,
            budget.source.value, context={"trade_ids": list(trade_ids)},
        )
        return budget

    async def check_admission(self, trade_ids: Sequence[str]) -> GasBudget:
        """
        Admit ``trade_ids`` or raise.

        Raises:
            AdmissionError: On an unresolved id or when the cost exceeds the ceiling.
        """
        budget = await self.is_trade_under_gas_limit(trade_ids)
        if not budget.admitted:
            raise AdmissionError(
                "Trade gas exceeds block gas limit",
                code=ErrorCode.GAS_LIMIT_EXCEEDED,
                gas_cost=budget.cost,
                gas_ceiling=budget.ceiling,
                context={"trade_ids": list(trade_ids)},
            )
        return budget
