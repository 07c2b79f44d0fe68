"""Local model fallback for an assistant client that loses its gateway.

Typical use from the process that owns the gateway connection::

    manager = init_autonomous_mode_manager(AutonomousModeConfig(model="llama3.2:latest"))
    await manager.initialize()

    gateway.on_close = manager.on_disconnect
    gateway.on_open = manager.on_reconnect

    if manager.is_autonomous():
        async for text in manager.chat_stream(messages):
            ...
"""

from .changes import ChangeQueue, ChangeType, QueuedStateChange
from .config import AutonomousModeConfig, load_config
from .errors import (
    AutonomousModeError,
    InferenceRequestError,
    NoResponseBodyError,
    NotAutonomousError,
)
from .events import EventEmitter
from .manager import SYNC_FAILED, AutonomousModeManager
from .ollama import ChatMessage, OllamaClient
from .registry import (
    ManagerRegistry,
    clear_autonomous_mode_manager,
    get_autonomous_mode_manager,
    init_autonomous_mode_manager,
)
from .state import STATE_CHANGE, ConnectivityState, ConnectivityStateMachine
from .streaming import iter_ndjson_content

__version__ = "0.1.0"

__all__ = [
    "AutonomousModeConfig",
    "AutonomousModeError",
    "AutonomousModeManager",
    "ChangeQueue",
    "ChangeType",
    "ChatMessage",
    "ConnectivityState",
    "ConnectivityStateMachine",
    "EventEmitter",
    "InferenceRequestError",
    "ManagerRegistry",
    "NoResponseBodyError",
    "NotAutonomousError",
    "OllamaClient",
    "QueuedStateChange",
    "STATE_CHANGE",
    "SYNC_FAILED",
    "clear_autonomous_mode_manager",
    "get_autonomous_mode_manager",
    "init_autonomous_mode_manager",
    "iter_ndjson_content",
    "load_config",
]
