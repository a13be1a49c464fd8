"""
Trade commitment hashing.

The commitment is keccak-256 over the ABI encoding of the fixed-point
max value, the fixed-point max amount and the ordered trade-id list, so
reordering the ids changes the hash.
"""

from eth_abi import encode
from eth_utils import encode_hex, keccak

from ..ledger.fixed_point import FixedPointCodec
from .models import TradeHash, TradeIntent

COMMITMENT_TYPES = ["int256", "int256", "string[]"]


def make_trade_hash(intent: TradeIntent, codec: FixedPointCodec) -> TradeHash:
    """Commitment for ``intent``."""
    payload = encode(
        COMMITMENT_TYPES,
        [codec.fix(intent.max_value), codec.fix(intent.max_amount), list(intent.trade_ids)],
    )
    return TradeHash(
        digest=encode_hex(keccak(payload)),
        max_value=intent.max_value,
        max_amount=intent.max_amount,
        trade_ids=intent.trade_ids,
    )


def verify_trade_hash(trade_hash: TradeHash, intent: TradeIntent,
                      codec: FixedPointCodec) -> bool:
    """True when ``intent`` is exactly what ``trade_hash`` committed to."""
    return trade_hash.matches(intent) and make_trade_hash(intent, codec).digest == trade_hash.digest
