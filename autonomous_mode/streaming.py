"""Parser for Ollama's newline-delimited JSON chat stream.

Each line of a streaming ``/api/chat`` response is a JSON object such as::

    {"message": {"role": "assistant", "content": "Hel"}, "done": false}

Reads from the socket do not line up with record boundaries, so a record may
arrive split across several chunks. The parser keeps the trailing partial
line buffered until the rest of it arrives.
"""

import codecs
import json
import logging
from typing import AsyncIterable, AsyncIterator, Optional

logger = logging.getLogger(__name__)


def parse_content(line: str) -> Optional[str]:
    """Return the ``message.content`` increment of one NDJSON line, if any.

    Malformed lines yield None instead of raising.
    """
    if not line.strip():
        return None
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        logger.debug(f"Skipping malformed stream line: {line[:100]}")
        return None

    if not isinstance(data, dict):
        return None
    message = data.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, str) and content:
        return content
    return None


async def iter_ndjson_content(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Yield text increments from a chunked NDJSON byte stream.

    Ends when ``chunks`` is exhausted; the ``done`` flag is not consulted.
    An unterminated line left over at end of stream is discarded.
    """
    # Incremental decoder keeps multi-byte characters split across reads intact
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""

    async for chunk in chunks:
        buffer += decoder.decode(chunk)
        lines = buffer.split("\n")
        buffer = lines.pop()

        for line in lines:
            content = parse_content(line)
            if content:
                yield content

    if buffer.strip():
        logger.debug(f"Stream ended with partial line ({len(buffer)} chars), discarded")
