"""Connectivity state machine with a debounce timer.

    connected --disconnect--> disconnected --grace elapsed--> autonomous
        ^                          |                              |
        +--------reconnect---------+-----------reconnect----------+

Every real transition emits ``stateChange`` exactly once. Repeated
disconnects are no-ops; reconnect always emits, even when already connected.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from .events import EventEmitter

logger = logging.getLogger(__name__)

STATE_CHANGE = "stateChange"


class ConnectivityState(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    AUTONOMOUS = "autonomous"

    def __str__(self) -> str:
        return self.value


class ConnectivityStateMachine:
    """Owns the current state and the grace-period timer.

    The timer runs on the asyncio loop that was running when ``disconnect()``
    was called. Cancelling it on reconnect is exact: a cancelled handle never
    fires.
    """

    def __init__(
        self,
        grace_period_ms: int,
        emitter: EventEmitter,
        can_enter_autonomous: Callable[[], bool] = lambda: True,
    ):
        self.grace_period_ms = grace_period_ms
        self.emitter = emitter
        self._can_enter_autonomous = can_enter_autonomous
        self.state = ConnectivityState.CONNECTED
        self._grace_timer: Optional[asyncio.TimerHandle] = None

    @property
    def timer_armed(self) -> bool:
        return self._grace_timer is not None

    def _transition(self, state: ConnectivityState) -> None:
        self.state = state
        self.emitter.emit(STATE_CHANGE, state)

    def disconnect(self) -> bool:
        """Start the grace period. Returns False if it was already started."""
        if self.state is not ConnectivityState.CONNECTED:
            return False

        loop = asyncio.get_running_loop()
        # Armed before listeners run, so a reconnect from a listener cancels it
        self.cancel_timer()
        self._grace_timer = loop.call_later(self.grace_period_ms / 1000.0, self._on_grace_elapsed)
        self._transition(ConnectivityState.DISCONNECTED)
        if self.state is ConnectivityState.DISCONNECTED:
            logger.info(f"Disconnected, waiting {self.grace_period_ms}ms before autonomous mode")
        return True

    def _on_grace_elapsed(self) -> None:
        self._grace_timer = None
        self._enter_autonomous()

    def _enter_autonomous(self) -> bool:
        if self.state is not ConnectivityState.DISCONNECTED:
            return False
        if not self._can_enter_autonomous():
            logger.error("Cannot enter autonomous mode: no models available")
            return False
        self._transition(ConnectivityState.AUTONOMOUS)
        logger.info("Entered autonomous mode")
        return True

    def cancel_timer(self) -> None:
        if self._grace_timer is not None:
            self._grace_timer.cancel()
            self._grace_timer = None

    def reconnect(self) -> ConnectivityState:
        """Return to connected. Returns the state we left."""
        self.cancel_timer()
        previous = self.state
        self._transition(ConnectivityState.CONNECTED)
        return previous
