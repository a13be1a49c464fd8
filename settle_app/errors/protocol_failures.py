"""
Protocol failure classifications for the commit-reveal state machine.

Each error kind belongs to one phase of the protocol. None of them is
retried by the core; callers branch on the class or on ``code``.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Client-side error codes reported alongside ledger classifications."""
    GAS_LIMIT_EXCEEDED = "GAS_LIMIT_EXCEEDED"
    TRADE_NOT_FOUND = "TRADE_NOT_FOUND"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    UNEXPECTED_CALL_RETURN = "UNEXPECTED_CALL_RETURN"
    TRANSACTION_RECEIPT_NOT_FOUND = "TRANSACTION_RECEIPT_NOT_FOUND"
    RECEIPT_ERROR = "RECEIPT_ERROR"
    COMMITMENT_MISMATCH = "COMMITMENT_MISMATCH"


class SettlementProtocolError(Exception):
    """Base class for failures reported by the commit-reveal protocol."""

    def __init__(self, message: str, code: Optional[Any] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.context = context or {}
        self.recoverable = False

    def to_payload(self) -> Dict[str, Any]:
        """Structured payload for failure callbacks and logs."""
        code = self.code.value if isinstance(self.code, ErrorCode) else self.code
        return {
            "kind": type(self).__name__,
            "error": code,
            "message": self.message,
            "context": dict(self.context),
        }


class AdmissionError(SettlementProtocolError):
    """Gas budget exceeded, or a trade id could not be resolved."""

    def __init__(self, message: str, trade_id: Optional[str] = None,
                 gas_cost: Optional[int] = None, gas_ceiling: Optional[int] = None,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.trade_id = trade_id
        self.gas_cost = gas_cost
        self.gas_ceiling = gas_ceiling


class CommitmentError(SettlementProtocolError):
    """The ledger rejected or failed the commitment transaction."""

    def __init__(self, message: str, trade_hash: Optional[str] = None,
                 ledger_error: Optional[Any] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.trade_hash = trade_hash
        self.ledger_error = ledger_error


class ExecutionError(SettlementProtocolError):
    """The reveal transaction failed or returned an unusable result."""

    def __init__(self, message: str, tx: Optional[Any] = None,
                 call_return: Optional[Any] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.tx = tx
        self.call_return = call_return


class ReceiptError(SettlementProtocolError):
    """The receipt of a successful reveal is missing or carries an error."""

    def __init__(self, message: str, tx_hash: Optional[str] = None,
                 receipt: Optional[Any] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.tx_hash = tx_hash
        self.receipt = receipt


class StateTransitionError(Exception):
    """Attempted phase change the protocol state machine does not allow."""

    def __init__(self, message: str, current_state: Optional[str] = None,
                 attempted_transition: Optional[str] = None):
        super().__init__(message)
        self.current_state = current_state
        self.attempted_transition = attempted_transition
        self.recoverable = False
