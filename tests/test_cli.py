"""Tests for the diagnostic CLI."""

import httpx
import pytest

from autonomous_mode.cli import AutonomousCLI, main
from autonomous_mode.config import AutonomousModeConfig
from autonomous_mode.manager import AutonomousModeManager


def make_cli(fake, **kwargs) -> AutonomousCLI:
    config = AutonomousModeConfig(grace_period_ms=0, **kwargs)
    return AutonomousCLI(config, AutonomousModeManager(config, transport=fake.transport))


class TestAutonomousCLI:

    @pytest.mark.asyncio
    async def test_models_lists_and_marks_selected(self, fake_ollama, capsys):
        cli = make_cli(fake_ollama, model="qwen3:4b")
        assert await cli.models() == 0

        out = capsys.readouterr().out
        assert "llama3.2:latest" in out
        assert "* qwen3:4b" in out
        assert cli.manager.client.client.is_closed

    @pytest.mark.asyncio
    async def test_models_fails_without_models(self, fake_ollama):
        fake_ollama.models = []
        assert await make_cli(fake_ollama).models() == 1

    @pytest.mark.asyncio
    async def test_chat_streams_reply(self, fake_ollama, capsys):
        cli = make_cli(fake_ollama)
        assert await cli.chat("hi") == 0

        out = capsys.readouterr().out
        assert "Hello" in out
        assert "State: autonomous" in out
        assert "State: connected" in out

    @pytest.mark.asyncio
    async def test_chat_without_stream(self, fake_ollama, capsys):
        fake_ollama.reply = "Full reply"
        assert await make_cli(fake_ollama).chat("hi", stream=False) == 0
        assert "Full reply" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_chat_reports_upstream_error(self, fake_ollama):
        def handler(request):
            if request.url.path == "/api/tags":
                return httpx.Response(200, json={"models": [{"name": "m"}]})
            return httpx.Response(500, text="out of memory")

        fake_ollama.override = handler
        assert await make_cli(fake_ollama).chat("hi", stream=False) == 1


def test_main_rejects_negative_grace():
    with pytest.raises(SystemExit) as exc_info:
        main(["chat", "--grace-ms", "-5", "hi"])
    assert exc_info.value.code == 2
