"""Default configuration parameters for the settlement client."""

from dataclasses import dataclass


@dataclass(frozen=True)
class GasParams:
    """Per-trade gas costs; the first trade in a batch costs more."""
    first_buy: int = 787421                  # Row 0, buy
    first_sell: int = 756374                 # Row 0, sell
    subsequent_buy: int = 661894             # Row 1, buy
    subsequent_sell: int = 615817            # Row 1, sell

    def cost(self, trade_type: str, position: int) -> int:
        """Gas cost of a trade of ``trade_type`` at ``position`` in the batch."""
        row = "first" if position == 0 else "subsequent"
        return getattr(self, f"{row}_{trade_type}")


@dataclass(frozen=True)
class ProtocolParams:
    """Contract, method and event names used by the commit-reveal protocol."""
    trade_contract: str = "Trade"
    commit_method: str = "commit_trade"
    trade_method: str = "trade"
    short_sell_method: str = "short_sell"
    settlement_event: str = "log_fill_tx"
    success_code: int = 1


@dataclass(frozen=True)
class FixedPointParams:
    """Fixed-point encoding of on-chain amounts."""
    decimals: int = 18


@dataclass(frozen=True)
class LoggingParams:
    """Logging output parameters."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class SettleConfig:
    """Complete client configuration."""
    gas: GasParams
    protocol: ProtocolParams
    fixed_point: FixedPointParams
    logging: LoggingParams


def get_default_config() -> SettleConfig:
    """Get the default configuration instance."""
    return SettleConfig(
        gas=GasParams(),
        protocol=ProtocolParams(),
        fixed_point=FixedPointParams(),
        logging=LoggingParams(),
    )
