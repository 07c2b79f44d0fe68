"""Autonomous mode controller.

Falls back to a local Ollama model when the gateway connection is lost:

1. ``initialize()`` discovers the locally served models once
2. ``on_disconnect()`` starts a grace period; if it elapses without a
   reconnect, the controller enters autonomous mode
3. While autonomous, ``chat()`` / ``chat_stream()`` run on the local model and
   callers record offline state changes with ``queue_change()``
4. ``on_reconnect()`` returns to connected and replays the queued changes
   through the reconciliation hook in the background

The owner drives the transitions; this class never talks to the gateway.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, Optional, Union

import httpx

from .changes import ChangeQueue, ChangeType, QueuedStateChange
from .config import AutonomousModeConfig
from .errors import NotAutonomousError
from .events import EventEmitter
from .ollama import MessageLike, OllamaClient, build_messages, select_model
from .state import ConnectivityState, ConnectivityStateMachine

logger = logging.getLogger(__name__)

SYNC_FAILED = "syncFailed"

# Replays one queued change to the gateway
Reconciler = Callable[[QueuedStateChange], Awaitable[None]]


class AutonomousModeManager(EventEmitter):
    """
    Controller facade for autonomous mode.

    Emits ``stateChange`` with the new ``ConnectivityState`` on every
    transition, and ``syncFailed`` with the list of changes the
    reconciliation hook rejected.
    """

    def __init__(
        self,
        config: Optional[AutonomousModeConfig] = None,
        *,
        client: Optional[OllamaClient] = None,
        reconcile: Optional[Reconciler] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__()
        self.config = config or AutonomousModeConfig()
        self.client = client or OllamaClient(
            self.config.base_url,
            timeout=self.config.chat_timeout,
            discovery_timeout=self.config.discovery_timeout,
            transport=transport,
        )
        self.reconcile = reconcile

        self._available_models: list[str] = []
        self._ready = False
        self._queue = ChangeQueue()
        self._sync_tasks: set[asyncio.Task] = set()
        self._machine = ConnectivityStateMachine(
            self.config.grace_period_ms,
            self,
            can_enter_autonomous=lambda: self._ready and bool(self._available_models),
        )

    @property
    def ready(self) -> bool:
        return self._ready

    async def initialize(self) -> bool:
        """Check if Ollama is available and discover models.

        Returns False, leaving the controller untouched, when disabled, when
        the server cannot be reached, or when it serves no models.
        """
        if not self.config.enabled:
            logger.info("Autonomous mode disabled by config")
            return False

        try:
            models = await self.client.discover()
        except Exception as e:
            logger.warning(f"Ollama check failed: {e}")
            return False

        if not models:
            logger.warning("No Ollama models available")
            return False

        model, substituted = select_model(self.config.model, models)
        if substituted:
            logger.info(f"Model '{self.config.model}' not found, using: {model}")
            self.config.model = model

        self._available_models = models
        self._ready = True
        logger.info(f"Ready with {len(models)} models: {', '.join(models)} (using {model})")
        return True

    def on_disconnect(self) -> None:
        """Called when the gateway connection is lost."""
        if not self.config.enabled or not self._ready:
            return
        self._machine.disconnect()

    def on_reconnect(self) -> None:
        """Called when the gateway connection is restored."""
        previous = self._machine.reconnect()
        logger.info("Reconnected to gateway")

        if previous is ConnectivityState.AUTONOMOUS:
            task = asyncio.create_task(self._sync_queued_changes())
            self._sync_tasks.add(task)
            task.add_done_callback(self._sync_tasks.discard)

    async def _sync_queued_changes(self) -> list[QueuedStateChange]:
        """Replay queued changes through the reconciliation hook.

        The whole queue is taken at once and is not restored, whatever the
        hook does. Returns the changes the hook failed on; they are also
        emitted as ``syncFailed``.
        """
        if not len(self._queue):
            logger.info("No queued changes to sync")
            return []

        changes = self._queue.drain()
        logger.info(f"Syncing {len(changes)} queued changes")

        failed: list[QueuedStateChange] = []
        for change in changes:
            if self.reconcile is None:
                queued_at = datetime.fromtimestamp(change.timestamp / 1000, tz=timezone.utc)
                logger.info(f"Would sync: {change.type.value} from {queued_at.isoformat()}")
                continue
            try:
                await self.reconcile(change)
            except Exception as e:
                logger.warning(f"Failed to sync {change.type.value} change: {e}")
                failed.append(change)

        if failed:
            logger.warning(f"{len(failed)} of {len(changes)} queued changes failed to sync")
            self.emit(SYNC_FAILED, failed)
        return failed

    async def wait_for_sync(self) -> None:
        """Wait for background reconciliation started by ``on_reconnect``."""
        if self._sync_tasks:
            await asyncio.gather(*self._sync_tasks, return_exceptions=True)

    def queue_change(self, change_type: Union[ChangeType, str], payload: Any = None) -> QueuedStateChange:
        """Queue a state change for later sync."""
        return self._queue.append(change_type, payload)

    def queued_changes(self) -> list[QueuedStateChange]:
        return self._queue.snapshot()

    def is_autonomous(self) -> bool:
        return self._machine.state is ConnectivityState.AUTONOMOUS

    def get_state(self) -> ConnectivityState:
        return self._machine.state

    def get_models(self) -> list[str]:
        return list(self._available_models)

    def get_model(self) -> str:
        return self.config.model

    def _require_autonomous(self) -> None:
        if not self.is_autonomous():
            raise NotAutonomousError(self._machine.state.value)

    async def chat(self, messages: Iterable[MessageLike]) -> str:
        """Generate a chat completion on the local model."""
        self._require_autonomous()
        return await self.client.chat(
            build_messages(messages, self.config.system_prompt),
            self.config.model,
        )

    def chat_stream(self, messages: Iterable[MessageLike]) -> AsyncIterator[str]:
        """Generate a streaming chat completion on the local model.

        Raises ``NotAutonomousError`` immediately, before any request is made.
        """
        self._require_autonomous()
        return self.client.chat_stream(
            build_messages(messages, self.config.system_prompt),
            self.config.model,
        )

    async def close(self) -> None:
        """Cancel the grace timer, finish pending syncs and close the client."""
        self._machine.cancel_timer()
        await self.wait_for_sync()
        await self.client.close()
