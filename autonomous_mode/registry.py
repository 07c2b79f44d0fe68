"""Process-wide access to the autonomous mode controller.

Entry points that want one shared controller register it here; everything
else should receive the controller explicitly.
"""

import logging
from typing import Optional

from .config import AutonomousModeConfig
from .manager import AutonomousModeManager

logger = logging.getLogger(__name__)


class ManagerRegistry:
    """Holds at most one active controller.

    Replacing or clearing does not shut the previous controller down; the
    caller owns it and should ``await old.close()`` when done.
    """

    def __init__(self):
        self._instance: Optional[AutonomousModeManager] = None

    def get(self) -> Optional[AutonomousModeManager]:
        return self._instance

    def set(self, manager: AutonomousModeManager) -> Optional[AutonomousModeManager]:
        """Register ``manager``, returning the one it replaced (if any)."""
        previous, self._instance = self._instance, manager
        if previous is not None and previous is not manager:
            logger.debug("Replaced active autonomous mode manager")
        return previous

    def clear(self) -> Optional[AutonomousModeManager]:
        previous, self._instance = self._instance, None
        return previous


_registry = ManagerRegistry()


def get_autonomous_mode_manager() -> Optional[AutonomousModeManager]:
    return _registry.get()


def init_autonomous_mode_manager(
    config: Optional[AutonomousModeConfig] = None, **kwargs
) -> AutonomousModeManager:
    """Create a controller and make it the process-wide instance."""
    manager = AutonomousModeManager(config, **kwargs)
    _registry.set(manager)
    return manager


def clear_autonomous_mode_manager() -> Optional[AutonomousModeManager]:
    return _registry.clear()
