"""Transport reader: byte stream to event envelopes.

The server answers with a newline-delimited UTF-8 stream in SSE style::

    data: {"chunk": "<!-- SCREEN_START: Home -->"}

    data: {"usage": {"inputTokens": 10, "outputTokens": 20}}

    data: {"done": true, "messagesRemaining": 4}

Lines are buffered across reads, so a line (or a multi-byte character) split
over two reads is reassembled. Lines without the data prefix are ignored, and
a data line whose payload is not a JSON object is skipped with a warning.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from .envelopes import Envelope, decode_envelopes
from .errors import ModelRestrictedError, QuotaExceededError, ServerStreamError
from .models import QuotaExceededData

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"


def format_event_line(payload: dict) -> bytes:
    """Format one wire object as a data line (terminated by a blank line)."""
    return f"{DATA_PREFIX} {json.dumps(payload)}\n\n".encode("utf-8")


def parse_data_line(line: str) -> dict | None:
    """Return the JSON object of a data line, or None if there is none.

    Non-data lines return None silently; malformed data lines are logged.
    """
    line = line.rstrip("\r")
    if not line.startswith(DATA_PREFIX):
        return None

    payload = line[len(DATA_PREFIX) :]
    if payload.startswith(" "):
        payload = payload[1:]
    try:
        obj = json.loads(payload)
    except json.JSONDecodeError as exc:
        logger.warning("Skipping malformed data line (%d chars): %s", len(payload), exc)
        return None
    if not isinstance(obj, dict):
        logger.warning("Skipping data line: expected object, got %s", type(obj).__name__)
        return None
    return obj


async def iter_envelopes(source: AsyncIterable[bytes]) -> AsyncIterator[Envelope]:
    """Decode a byte stream into envelopes lazily.

    Args:
        source: Async iterable of raw reads, e.g. ``response.content.iter_any()``.

    Yields:
        Envelopes in wire order.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""

    async for data in source:
        buffer += decoder.decode(data)
        lines = buffer.split("\n")
        buffer = lines.pop()
        for line in lines:
            obj = parse_data_line(line)
            if obj is not None:
                for envelope in decode_envelopes(obj):
                    yield envelope

    # A last line without a trailing newline
    buffer += decoder.decode(b"", final=True)
    if buffer.strip():
        obj = parse_data_line(buffer)
        if obj is not None:
            for envelope in decode_envelopes(obj):
                yield envelope


def raise_for_error_response(status: int, body: str) -> None:
    """Map a non-success initial response onto an exception.

    Raises:
        QuotaExceededError: Body code is QUOTA_EXCEEDED.
        ModelRestrictedError: Body code is MODEL_RESTRICTED.
        ServerStreamError: Anything else.
    """
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        raise ServerStreamError(body or f"HTTP {status}") from None

    if not isinstance(data, dict):
        raise ServerStreamError(body)

    code = data.get("code")
    if code == "QUOTA_EXCEEDED":
        raise QuotaExceededError(QuotaExceededData.from_dict(data))
    if code == "MODEL_RESTRICTED":
        raise ModelRestrictedError()
    raise ServerStreamError(data.get("error") or body)
