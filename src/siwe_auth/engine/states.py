"""
Verification state machine.

A verification call moves forward through ``PARSING -> VALIDATING ->
VERIFYING_SIGNATURE`` and ends in ``SUCCEEDED`` or ``FAILED``. There is no
retry or backtracking inside a call.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional

import structlog

from .exceptions import InvalidTransition
from ..schemas.results import SiweErrorType

logger = structlog.get_logger(__name__)


class VerificationState(str, Enum):
    PARSING = "parsing"
    VALIDATING = "validating"
    VERIFYING_SIGNATURE = "verifying_signature"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS: Dict[VerificationState, FrozenSet[VerificationState]] = {
    VerificationState.PARSING: frozenset({VerificationState.VALIDATING, VerificationState.FAILED}),
    VerificationState.VALIDATING: frozenset({VerificationState.VERIFYING_SIGNATURE, VerificationState.FAILED}),
    VerificationState.VERIFYING_SIGNATURE: frozenset({VerificationState.SUCCEEDED, VerificationState.FAILED}),
    VerificationState.SUCCEEDED: frozenset(),
    VerificationState.FAILED: frozenset(),
}

TERMINAL_STATES = frozenset({VerificationState.SUCCEEDED, VerificationState.FAILED})


class VerificationStateMachine:
    """Tracks the state of one verification call.

    Each call owns its own instance; nothing is shared between calls.
    """

    def __init__(self, initial: VerificationState = VerificationState.PARSING) -> None:
        self.state = initial
        self.failure: Optional[SiweErrorType] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def advance(self, target: VerificationState) -> VerificationState:
        """
        Move to ``target``.

        Raises:
            InvalidTransition: If ``target`` is not reachable from the current state.
        """
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransition(self.state, target)
        logger.debug("siwe_state_transition", source=self.state.value, target=target.value)
        self.state = target
        return target

    def fail(self, kind: SiweErrorType) -> VerificationState:
        """Move to ``FAILED`` recording the failure kind."""
        self.advance(VerificationState.FAILED)
        self.failure = kind
        return self.state
