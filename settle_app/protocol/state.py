"""Phase tracker for a single protocol invocation."""

from typing import Any

from ..errors import StateTransitionError
from ..logging.config import get_protocol_logger, log_phase_transition
from .models import ProtocolPhase, TradeKind

protocol_logger = get_protocol_logger(__name__)

ALLOWED_TRANSITIONS: dict[ProtocolPhase, frozenset[ProtocolPhase]] = {
    ProtocolPhase.GAS_CHECK: frozenset({ProtocolPhase.HASHING, ProtocolPhase.FAILED}),
    ProtocolPhase.HASHING: frozenset({ProtocolPhase.COMMITTING}),
    ProtocolPhase.COMMITTING: frozenset({ProtocolPhase.ADVANCING, ProtocolPhase.FAILED}),
    ProtocolPhase.ADVANCING: frozenset({ProtocolPhase.EXECUTING}),
    ProtocolPhase.EXECUTING: frozenset({ProtocolPhase.SETTLED, ProtocolPhase.FAILED}),
    # A confirmation-level parse can still fail after provisional success.
    ProtocolPhase.SETTLED: frozenset({ProtocolPhase.FAILED}),
    ProtocolPhase.FAILED: frozenset(),
}


class ProtocolRun:
    """Current phase of one intent, with logged, validated transitions."""

    def __init__(self, kind: TradeKind, intent_id: str,
                 phase: ProtocolPhase = ProtocolPhase.GAS_CHECK) -> None:
        self.kind = kind
        self.intent_id = intent_id
        self.phase = phase

    def advance(self, to_phase: ProtocolPhase, trigger: str, **context: Any) -> None:
        """Move to ``to_phase``; raises StateTransitionError if not allowed."""
        if to_phase not in ALLOWED_TRANSITIONS[self.phase]:
            raise StateTransitionError(
                f"Cannot move from {self.phase.value} to {to_phase.value}",
                current_state=self.phase.value,
                attempted_transition=to_phase.value,
            )

        log_phase_transition(
            protocol_logger,
            intent_id=self.intent_id,
            from_phase=self.phase.value,
            to_phase=to_phase.value,
            trigger=trigger,
            context={"kind": self.kind.value, **context},
        )
        self.phase = to_phase

    @property
    def terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.phase]
