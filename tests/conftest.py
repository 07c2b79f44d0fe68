"""Shared fixtures: a fake Ollama server behind httpx.MockTransport."""

import json
from typing import Callable, Optional

import httpx
import pytest

from autonomous_mode.config import AutonomousModeConfig
from autonomous_mode.manager import AutonomousModeManager


class FakeOllama:
    """Minimal stand-in for Ollama's /api/tags and /api/chat endpoints."""

    def __init__(
        self,
        models: Optional[list[str]] = None,
        reply: str = "Hello from the local model",
        chunks: Optional[list[bytes]] = None,
    ):
        self.models = ["llama3.2:latest", "qwen3:4b"] if models is None else models
        self.reply = reply
        self.chunks = chunks if chunks is not None else [
            b'{"message":{"role":"assistant","content":"Hel"},"done":false}\n',
            b'{"message":{"role":"assistant","content":"lo"},"done":false}\n',
            b'{"message":{"role":"assistant","content":""},"done":true}\n',
        ]
        self.requests: list[httpx.Request] = []
        self.responses: list[httpx.Response] = []
        # Optional override: return a custom response (or raise) per request
        self.override: Optional[Callable[[httpx.Request], httpx.Response]] = None

    @property
    def chat_requests(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path == "/api/chat"]

    async def _stream(self):
        for chunk in self.chunks:
            yield chunk

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.override is not None:
            response = self.override(request)
        elif request.url.path == "/api/tags":
            response = httpx.Response(200, json={"models": [{"name": m} for m in self.models]})
        elif request.url.path == "/api/chat":
            body = json.loads(request.content)
            if body.get("stream"):
                response = httpx.Response(200, content=self._stream())
            else:
                response = httpx.Response(
                    200,
                    json={"message": {"role": "assistant", "content": self.reply}, "done": True},
                )
        else:
            response = httpx.Response(404, text="not found")
        self.responses.append(response)
        return response

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_ollama() -> FakeOllama:
    return FakeOllama()


@pytest.fixture
def make_manager(fake_ollama):
    """Factory for managers wired to the fake server."""

    def _make(**kwargs) -> AutonomousModeManager:
        reconcile = kwargs.pop("reconcile", None)
        config = AutonomousModeConfig(**kwargs)
        return AutonomousModeManager(config, transport=fake_ollama.transport, reconcile=reconcile)

    return _make
