"""Tests for the process-wide controller registry."""

import pytest

from autonomous_mode.config import AutonomousModeConfig
from autonomous_mode.manager import AutonomousModeManager
from autonomous_mode.registry import (
    ManagerRegistry,
    clear_autonomous_mode_manager,
    get_autonomous_mode_manager,
    init_autonomous_mode_manager,
)


@pytest.fixture(autouse=True)
def empty_registry():
    clear_autonomous_mode_manager()
    yield
    clear_autonomous_mode_manager()


class TestRegistry:

    def test_empty_by_default(self):
        assert get_autonomous_mode_manager() is None

    def test_init_registers_instance(self):
        manager = init_autonomous_mode_manager(AutonomousModeConfig(model="m"))
        assert get_autonomous_mode_manager() is manager
        assert manager.get_model() == "m"

    def test_init_replaces_previous_without_teardown(self, fake_ollama):
        first = init_autonomous_mode_manager(transport=fake_ollama.transport)
        first.queue_change("session_message", "kept")
        second = init_autonomous_mode_manager(transport=fake_ollama.transport)

        assert get_autonomous_mode_manager() is second
        assert second is not first
        # The replaced instance is left as it was
        assert len(first.queued_changes()) == 1
        assert not first.client.client.is_closed

    def test_clear_returns_previous(self):
        manager = init_autonomous_mode_manager()
        assert clear_autonomous_mode_manager() is manager
        assert get_autonomous_mode_manager() is None

    def test_independent_registry(self):
        registry = ManagerRegistry()
        manager = AutonomousModeManager()
        assert registry.set(manager) is None
        assert registry.get() is manager
        assert get_autonomous_mode_manager() is None
