"""Client for a local Ollama server.

Talks to Ollama's native API:
- ``GET /api/tags`` to discover which models are served locally
- ``POST /api/chat`` for completions, either as one JSON body or as a
  newline-delimited JSON stream (see ``streaming.py``)

No retries are performed: a failed call is reported once to its caller.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Iterable, Optional, Union

import httpx

from .config import DEFAULT_BASE_URL, DISCOVERY_TIMEOUT
from .errors import InferenceRequestError, NoResponseBodyError
from .streaming import iter_ndjson_content

logger = logging.getLogger(__name__)

ROLES = ("system", "user", "assistant")


@dataclass
class ChatMessage:
    """A single chat turn."""
    role: str
    content: str

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"Invalid role: {self.role!r} (expected one of {', '.join(ROLES)})")

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


MessageLike = Union[ChatMessage, dict]


def _as_dict(message: MessageLike) -> dict[str, str]:
    if isinstance(message, ChatMessage):
        return message.to_dict()
    if "role" not in message:
        raise ValueError("Message missing 'role'")
    if "content" not in message:
        raise ValueError("Message missing 'content'")
    return {"role": message["role"], "content": message["content"]}


def build_messages(messages: Iterable[MessageLike], system_prompt: str = "") -> list[dict[str, str]]:
    """Copy ``messages`` into wire form, prepending the system prompt.

    The prompt is only added when the conversation does not already open
    with a system message. The caller's sequence is left untouched.
    """
    result = [_as_dict(m) for m in messages]
    if system_prompt and (not result or result[0]["role"] != "system"):
        result.insert(0, {"role": "system", "content": system_prompt})
    return result


def select_model(configured: str, available: list[str]) -> tuple[str, bool]:
    """Pick the model to use from the discovered list.

    Returns (model, substituted). The configured model is kept when it is
    served; otherwise the first model in the server's own order is used.
    """
    if not available:
        raise ValueError("No models available")
    if configured in available:
        return configured, False
    return available[0], True


class OllamaClient:
    """
    Client for the local Ollama server.

    Holds a single pooled ``httpx.AsyncClient``; call ``close()`` on shutdown.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 120.0,
        discovery_timeout: float = DISCOVERY_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url:
            raise ValueError("Ollama base URL is required")
        self.base_url = base_url.rstrip("/")
        self.default_timeout = timeout
        self.discovery_timeout = discovery_timeout
        self.client = httpx.AsyncClient(
            timeout=timeout,
            limits=httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
                keepalive_expiry=30.0,
            ),
            transport=transport,
        )

    async def close(self):
        """Close the HTTP client. Call on shutdown."""
        await self.client.aclose()

    async def discover(self) -> list[str]:
        """List the models served locally.

        Returns an empty list if the server is unreachable, times out,
        answers with an error status or sends an unreadable body.
        ``discovery_timeout`` bounds the whole request, headers and body.
        """
        try:
            response = await asyncio.wait_for(
                self.client.get(
                    f"{self.base_url}/api/tags",
                    timeout=self.discovery_timeout,
                ),
                timeout=self.discovery_timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(f"Ollama discovery timed out after {self.discovery_timeout}s")
            return []
        except httpx.HTTPError as e:
            logger.warning(f"Ollama check failed: {e}")
            return []

        if not response.is_success:
            logger.warning(f"Ollama not available ({response.status_code})")
            return []

        try:
            data = response.json()
        except ValueError:
            logger.warning("Ollama returned an unreadable model list")
            return []

        models = data.get("models") if isinstance(data, dict) else None
        return [m["name"] for m in models or [] if isinstance(m, dict) and m.get("name")]

    def _payload(self, messages: list[dict[str, str]], model: str, stream: bool) -> dict[str, Any]:
        total_chars = sum(len(m.get("content", "")) for m in messages)
        logger.debug(
            f"Ollama request: model={model}, {len(messages)} messages, {total_chars} chars, stream={stream}"
        )
        return {"model": model, "messages": messages, "stream": stream}

    async def chat(self, messages: list[dict[str, str]], model: str) -> str:
        """Run a non-streaming chat completion and return the reply text."""
        response = await self.client.post(
            f"{self.base_url}/api/chat",
            json=self._payload(messages, model, stream=False),
            timeout=self.default_timeout,
        )

        if not response.is_success:
            logger.warning(f"Ollama returned {response.status_code}: {response.text[:500]}")
            raise InferenceRequestError(response.status_code, response.text)

        try:
            content = response.json()["message"]["content"]
        except (ValueError, KeyError, TypeError):
            logger.warning(f"Ollama returned a malformed chat reply: {response.text[:500]}")
            raise InferenceRequestError(response.status_code, response.text)
        if not isinstance(content, str):
            raise InferenceRequestError(response.status_code, response.text)
        logger.debug(f"Ollama response: {len(content)} chars")
        return content

    async def chat_stream(self, messages: list[dict[str, str]], model: str) -> AsyncIterator[str]:
        """Run a streaming chat completion, yielding text increments.

        The response is closed on every exit path, including when the
        consumer stops iterating early.
        """
        # - connect: fail fast if the server is unreachable
        # - read: max time between chunks, detects a stalled stream
        stream_timeout = httpx.Timeout(
            connect=10.0,
            read=60.0,
            write=30.0,
            pool=10.0,
        )
        async with self.client.stream(
            "POST",
            f"{self.base_url}/api/chat",
            json=self._payload(messages, model, stream=True),
            timeout=stream_timeout,
        ) as response:
            if not response.is_success:
                error_text = (await response.aread()).decode(errors="replace")
                logger.warning(f"Ollama streaming returned {response.status_code}: {error_text[:500]}")
                raise InferenceRequestError(response.status_code, error_text, stream=True)

            if response.status_code == 204 or response.headers.get("content-length") == "0":
                raise NoResponseBodyError()

            count = 0
            async for content in iter_ndjson_content(response.aiter_bytes()):
                count += 1
                yield content
            logger.debug(f"Ollama stream complete: {count} increments")
