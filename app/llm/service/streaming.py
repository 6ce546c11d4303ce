# app/llm/service/streaming.py
"""
Adapters turning each provider's native stream into plain text fragments.

Both adapters yield only non-empty ``str`` pieces, so callers can relay the
output without caring where it came from.
"""

import json
from typing import Any, AsyncIterable, AsyncIterator

from app.core.logger import get_logger

logger = get_logger("StreamAdapters")

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


def _delta_content(chunk: Any) -> str | None:
    """Pull ``choices[0].delta.content`` from a decoded dict or an SDK object."""
    if isinstance(chunk, dict):
        choices = chunk.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return None
        delta = choices[0].get("delta") or {}
        return delta.get("content") if isinstance(delta, dict) else None

    choices = getattr(chunk, "choices", None)
    if not choices:
        return None
    delta = getattr(choices[0], "delta", None)
    return getattr(delta, "content", None) if delta is not None else None


async def iter_sse_content(lines: AsyncIterable[str]) -> AsyncIterator[str]:
    """Decode ``data: {json}`` lines until ``data: [DONE]``; malformed lines are skipped."""
    async for raw_line in lines:
        if not raw_line:
            continue
        line = raw_line.strip()
        if not line.startswith(DATA_PREFIX):
            # comments (": keep-alive"), event names and blank keep-alives
            continue
        payload = line[len(DATA_PREFIX):].strip()
        if payload == DONE_SENTINEL:
            return
        try:
            chunk = json.loads(payload)
        except ValueError:
            logger.debug(f"Skipping malformed stream line: {payload[:80]!r}")
            continue
        content = _delta_content(chunk)
        if content:
            yield content


async def iter_sdk_content(stream: AsyncIterable[Any]) -> AsyncIterator[str]:
    """Relay delta content from an SDK's native async chunk iterator."""
    async for chunk in stream:
        content = _delta_content(chunk)
        if content:
            yield content
