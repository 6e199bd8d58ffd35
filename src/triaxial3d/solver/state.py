"""
Run-state machine shared by the driver thread and the controlling host.
"""

import enum
import logging
import threading

logger = logging.getLogger(__name__)

PAUSE_POLL_INTERVAL = 0.05      # s


class StateTransitionError(RuntimeError):
    """Raised when the driver itself requests an impossible transition."""


class SimulationState(enum.Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    RUNNING = "running"
    PAUSED = "paused"
    PAUSED_ON_FAILURE = "paused_on_failure"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SimulationState.COMPLETED, SimulationState.CANCELLED, SimulationState.FAILED)

    @property
    def is_paused(self) -> bool:
        return self in (SimulationState.PAUSED, SimulationState.PAUSED_ON_FAILURE)


_S = SimulationState
TRANSITIONS = {
    _S.IDLE: {_S.INITIALIZING},
    _S.INITIALIZING: {_S.RUNNING, _S.CANCELLED, _S.FAILED},
    _S.RUNNING: {_S.PAUSED, _S.PAUSED_ON_FAILURE, _S.COMPLETED, _S.CANCELLED, _S.FAILED},
    _S.PAUSED: {_S.RUNNING, _S.PAUSED_ON_FAILURE, _S.CANCELLED, _S.FAILED},
    _S.PAUSED_ON_FAILURE: {_S.RUNNING, _S.CANCELLED, _S.FAILED},
    _S.COMPLETED: {_S.INITIALIZING},
    _S.CANCELLED: {_S.INITIALIZING},
    _S.FAILED: {_S.INITIALIZING},
}


class RunControl:
    """Thread-safe owner of the simulation state.

    Host-facing calls (pause, resume, cancel, continue_after_failure) return
    False and log when the current state does not allow them. Driver-facing
    calls raise ``StateTransitionError`` instead.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._state = SimulationState.IDLE
        self._ignore_failure = False

    @property
    def state(self) -> SimulationState:
        with self._cond:
            return self._state

    @property
    def ignore_failure(self) -> bool:
        with self._cond:
            return self._ignore_failure

    @property
    def cancelled(self) -> bool:
        return self.state == SimulationState.CANCELLED

    def _move(self, target: SimulationState, sources=None) -> bool:
        # caller holds the lock
        allowed = target in TRANSITIONS[self._state]
        if sources is not None:
            allowed = allowed and self._state in sources
        if not allowed:
            return False
        logger.debug("State %s -> %s", self._state.name, target.name)
        self._state = target
        self._cond.notify_all()
        return True

    def _request(self, target: SimulationState, action: str, sources=None) -> bool:
        with self._cond:
            if self._move(target, sources):
                return True
            logger.warning("Cannot %s while %s", action, self._state.name)
            return False

    def _require(self, target: SimulationState, sources=None):
        with self._cond:
            if not self._move(target, sources):
                raise StateTransitionError(f"Invalid transition {self._state.name} -> {target.name}")

    # ----- host calls ----- #
    def pause(self) -> bool:
        return self._request(SimulationState.PAUSED, "pause", {SimulationState.RUNNING})

    def resume(self) -> bool:
        return self._request(SimulationState.RUNNING, "resume", {SimulationState.PAUSED})

    def continue_after_failure(self) -> bool:
        with self._cond:
            if self._move(SimulationState.RUNNING, {SimulationState.PAUSED_ON_FAILURE}):
                self._ignore_failure = True
                return True
            logger.warning("Cannot continue after failure while %s", self._state.name)
            return False

    def cancel(self) -> bool:
        return self._request(SimulationState.CANCELLED, "cancel")

    # ----- driver calls ----- #
    def begin(self):
        self._require(SimulationState.INITIALIZING)
        with self._cond:
            self._ignore_failure = False

    def mark_running(self) -> bool:
        """INITIALIZING -> RUNNING; False when cancelled meanwhile."""
        with self._cond:
            if self._state == SimulationState.CANCELLED:
                return False
            if not self._move(SimulationState.RUNNING, {SimulationState.INITIALIZING}):
                raise StateTransitionError(f"Cannot start running from {self._state.name}")
            return True

    def pause_on_failure(self) -> bool:
        with self._cond:
            return self._move(SimulationState.PAUSED_ON_FAILURE,
                              {SimulationState.RUNNING, SimulationState.PAUSED})

    def complete(self) -> bool:
        """RUNNING -> COMPLETED; False while paused or once cancelled."""
        with self._cond:
            return self._move(SimulationState.COMPLETED, {SimulationState.RUNNING})

    def fail(self):
        with self._cond:
            if not self._state.is_terminal:
                self._move(SimulationState.FAILED)

    def checkpoint(self, cancel_event: threading.Event = None, poll: float = PAUSE_POLL_INTERVAL) -> bool:
        """Block while paused; return True to keep running, False once cancelled.

        ``cancel_event`` is an optional external signal polled while waiting.
        """
        with self._cond:
            while True:
                if cancel_event is not None and cancel_event.is_set() and not self._state.is_terminal:
                    self._move(SimulationState.CANCELLED)
                if not self._state.is_paused:
                    break
                self._cond.wait(poll)
            return self._state == SimulationState.RUNNING
