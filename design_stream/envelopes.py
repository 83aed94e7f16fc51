"""Transport-level event envelopes.

Each ``data:`` line of the wire format carries one JSON object with keys among
``chunk``, ``usage``, ``done`` (plus ``messagesRemaining``) and ``error``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .models import UsageData


@dataclass(frozen=True)
class Chunk:
    """A fragment of raw model output."""

    text: str


@dataclass(frozen=True)
class Usage:
    """Token usage telemetry."""

    usage: UsageData


@dataclass(frozen=True)
class Done:
    """Clean completion signal."""

    messages_remaining: int | None = None


@dataclass(frozen=True)
class Error:
    """Server-side failure reported mid-stream."""

    message: str


# Union type for all envelope types
Envelope = Union[Chunk, Usage, Done, Error]


def decode_envelopes(data: dict) -> list[Envelope]:
    """Decode one wire object into envelopes.

    An ``error`` key is terminal and wins over everything else in the same
    object. Otherwise ``chunk``, ``usage`` and ``done`` are returned in that
    order, so a final chunk is always processed before completion.
    """
    error = data.get("error")
    if error:
        return [Error(message=str(error))]

    envelopes: list[Envelope] = []
    chunk = data.get("chunk")
    if chunk and isinstance(chunk, str):
        envelopes.append(Chunk(text=chunk))

    usage = data.get("usage")
    if isinstance(usage, dict):
        envelopes.append(Usage(usage=UsageData.from_dict(usage)))

    if data.get("done"):
        remaining = data.get("messagesRemaining")
        envelopes.append(Done(messages_remaining=remaining if isinstance(remaining, int) else None))

    return envelopes


def encode_envelope(envelope: Envelope) -> dict:
    """Convert an envelope back to its wire object."""
    if isinstance(envelope, Chunk):
        return {"chunk": envelope.text}
    elif isinstance(envelope, Usage):
        return {"usage": envelope.usage.to_dict()}
    elif isinstance(envelope, Done):
        data: dict = {"done": True}
        if envelope.messages_remaining is not None:
            data["messagesRemaining"] = envelope.messages_remaining
        return data
    elif isinstance(envelope, Error):
        return {"error": envelope.message}
    else:
        return {}
