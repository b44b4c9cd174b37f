"""Session state machine for the single in-flight request."""

from __future__ import annotations

from enum import Enum
import logging

LOGGER = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle of the controller's request slot."""

    IDLE = "IDLE"
    AWAITING_RESPONSE = "AWAITING_RESPONSE"


class StateMachine:
    """Hold the current state and apply guarded transitions.

    Transitions are synchronous: the event loop is single-threaded, so a
    compare-and-set that never awaits cannot interleave with another one.
    """

    def __init__(self) -> None:
        self._state = SessionState.IDLE

    @property
    def state(self) -> SessionState:
        return self._state

    def transition_to(self, new_state: SessionState) -> SessionState:
        """Transition unconditionally and return the new state."""
        if new_state is not self._state:
            LOGGER.debug(
                "session.state.transition",
                extra={
                    "event": "session.state.transition",
                    "from_state": self._state.value,
                    "to_state": new_state.value,
                },
            )
        self._state = new_state
        return self._state

    def transition_if(
        self,
        expected_state: SessionState,
        new_state: SessionState,
    ) -> bool:
        """Transition only when the current state matches ``expected_state``."""
        if self._state is not expected_state:
            return False
        self.transition_to(new_state)
        return True

    def can_send_message(self) -> bool:
        return self._state is SessionState.IDLE
