"""
Structured error classification for the settlement client.

Protocol failures are delivered through the failing phase's callback and
carry a structured payload; build-time failures (ABI map, configuration)
are raised directly to the caller.
"""

from .protocol_failures import (
    ErrorCode,
    SettlementProtocolError,
    AdmissionError,
    CommitmentError,
    ExecutionError,
    ReceiptError,
    StateTransitionError,
)
from .build_failures import (
    BuildError,
    AbiBuildError,
    AbiLookupError,
    ConfigurationError,
)

__all__ = [
    # Protocol failures
    "ErrorCode",
    "SettlementProtocolError",
    "AdmissionError",
    "CommitmentError",
    "ExecutionError",
    "ReceiptError",
    "StateTransitionError",
    # Build failures
    "BuildError",
    "AbiBuildError",
    "AbiLookupError",
    "ConfigurationError",
]
