"""
Evaluation Run State Machine

In-memory state tracking for one evaluation run of one quiz.

IDLE -> LOADING -> CLASSIFYING -> AGGREGATING -> WRITING -> COMMITTED
FAILED is absorbing and reachable from every middle state.

Nothing here touches the database; the orchestrator drives the transitions
and owns the unit of work.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from quizeval.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)


class EvaluationState(str, Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    CLASSIFYING = "CLASSIFYING"
    AGGREGATING = "AGGREGATING"
    WRITING = "WRITING"
    COMMITTED = "COMMITTED"
    FAILED = "FAILED"


class EvaluationStateMachine:
    """
    Enforces the legal order of an evaluation run.

    Every transition is recorded in ``history`` as
    ``(from_state, to_state, at)``.
    """

    # Valid state transitions: {current_state: [allowed_next_states]}
    ALLOWED_TRANSITIONS: Dict[EvaluationState, List[EvaluationState]] = {
        EvaluationState.IDLE: [
            EvaluationState.LOADING
        ],
        EvaluationState.LOADING: [
            EvaluationState.CLASSIFYING,
            EvaluationState.FAILED
        ],
        EvaluationState.CLASSIFYING: [
            EvaluationState.AGGREGATING,
            EvaluationState.FAILED
        ],
        EvaluationState.AGGREGATING: [
            EvaluationState.WRITING,
            EvaluationState.FAILED
        ],
        EvaluationState.WRITING: [
            EvaluationState.COMMITTED,
            EvaluationState.FAILED
        ],
        EvaluationState.COMMITTED: [],
        EvaluationState.FAILED: []
    }

    TERMINAL_STATES = (EvaluationState.COMMITTED, EvaluationState.FAILED)

    def __init__(self, quiz_id: int):
        self.quiz_id = quiz_id
        self.state = EvaluationState.IDLE
        self.history: List[Tuple[EvaluationState, EvaluationState, datetime]] = []
        self.failure: Optional[BaseException] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in self.TERMINAL_STATES

    def can_transition(self, to_state: EvaluationState) -> bool:
        return to_state in self.ALLOWED_TRANSITIONS.get(self.state, [])

    def transition(self, to_state: EvaluationState) -> EvaluationState:
        """Move to ``to_state`` or raise InvalidTransitionError."""
        if not self.can_transition(to_state):
            raise InvalidTransitionError(self.state.value, to_state.value)

        from_state = self.state
        self.state = to_state
        self.history.append((from_state, to_state, datetime.utcnow()))
        logger.debug(f"[EVALUATION STATE] quiz={self.quiz_id} {from_state.value} -> {to_state.value}")
        return to_state

    def fail(self, cause: BaseException) -> None:
        """
        Move to FAILED from any middle state.

        A run that already reached a terminal state keeps it; failing twice
        is a no-op so nested error handlers stay simple.
        """
        if self.is_terminal:
            return
        if self.state == EvaluationState.IDLE:
            raise InvalidTransitionError(self.state.value, EvaluationState.FAILED.value)
        self.failure = cause
        self.transition(EvaluationState.FAILED)
        logger.warning(
            f"[EVALUATION FAILED] quiz={self.quiz_id} during "
            f"{self.history[-1][0].value}: {type(cause).__name__}"
        )

    def path(self) -> List[str]:
        """States visited so far, starting from IDLE."""
        if not self.history:
            return [self.state.value]
        return [self.history[0][0].value] + [to.value for _, to, _ in self.history]
