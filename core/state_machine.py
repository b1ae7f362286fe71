import logging
import time
from typing import Callable, Dict, Optional

from storage.constants import SessionState

# Allowed forward transitions. No state is ever skipped, even on failure.
TRANSITIONS = {
    SessionState.IDLE: SessionState.BUILDING_CANDIDATES,
    SessionState.BUILDING_CANDIDATES: SessionState.FILTERING,
    SessionState.FILTERING: SessionState.TRANSPORTING,
    SessionState.TRANSPORTING: SessionState.RECONCILING,
    SessionState.RECONCILING: SessionState.CLEANING_UP,
    SessionState.CLEANING_UP: SessionState.IDLE,
}


class SessionStateMachine:
    """
    State machine for one archive session.
    Enforces the fixed state order and logs every transition with counts.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.current_state = SessionState.IDLE
        self.previous_state = None
        self.state_start_time = time.time()
        self.logger = logger or logging.getLogger(__name__)

        # Called with (old_state, new_state) after every transition
        self.on_state_change: Optional[Callable[[SessionState, SessionState], None]] = None

        self.history = [SessionState.IDLE]

    def get_current_state(self) -> SessionState:
        """Get the current session state"""
        return self.current_state

    def get_state_duration(self) -> float:
        """Get how long we've been in the current state (seconds)"""
        return time.time() - self.state_start_time

    def advance(self, reason: str = "", **counts) -> SessionState:
        """
        Move to the next state in the fixed order.

        Args:
            reason: Free text appended to the log line
            counts: Counts to report (e.g. candidates=12)

        Returns:
            The new state
        """
        new_state = TRANSITIONS[self.current_state]
        self.transition_to(new_state, reason, **counts)
        return new_state

    def transition_to(self, new_state: SessionState, reason: str = "", **counts):
        """
        Transition to a new state with logging and callback notification

        Raises:
            ValueError: If new_state does not follow the current state
        """
        if TRANSITIONS[self.current_state] != new_state:
            raise ValueError(
                f"Invalid transition: {self.current_state.value} -> {new_state.value}"
            )

        old_state = self.current_state
        self.previous_state = old_state
        self.current_state = new_state
        self.state_start_time = time.time()
        self.history.append(new_state)

        log_msg = f"State transition: {old_state.value} -> {new_state.value}"
        if counts:
            log_msg += " [" + ", ".join(f"{k}={v}" for k, v in counts.items()) + "]"
        if reason:
            log_msg += f" ({reason})"
        self.logger.info(log_msg)

        if self.on_state_change:
            try:
                self.on_state_change(old_state, new_state)
            except Exception as e:
                self.logger.error(f"Error in state change callback: {e}")

    def finish(self, reason: str = "", **counts) -> None:
        """Advance through any remaining states back to IDLE"""
        while self.current_state != SessionState.IDLE:
            self.advance(reason, **counts)

    def get_status_info(self) -> Dict:
        """Get detailed status information for debugging/monitoring"""
        return {
            "current_state": self.current_state.value,
            "previous_state": (
                self.previous_state.value if self.previous_state else None
            ),
            "state_duration": self.get_state_duration(),
            "transitions": len(self.history) - 1,
        }
