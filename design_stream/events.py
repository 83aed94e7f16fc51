"""Decoder events.

The decoder turns text fragments into these events; the session controller
maps each one onto a consumer callback.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .models import Screen


@dataclass(frozen=True)
class MessageReceived:
    """A chat message addressed to the user."""

    text: str


@dataclass(frozen=True)
class ProjectNameSuggested:
    name: str


@dataclass(frozen=True)
class ProjectIconSuggested:
    icon: str


@dataclass(frozen=True)
class ScreenOpened:
    """A screen started; emitted before any of its HTML arrives."""

    name: str
    is_edit: bool
    grid_col: int | None = None
    grid_row: int | None = None
    is_root: bool = False


@dataclass(frozen=True)
class ScreenUpdated:
    """Partial HTML of the open screen (a snapshot, not a delta)."""

    name: str
    html: str


@dataclass(frozen=True)
class ScreenCompleted:
    screen: Screen


# Union type for all decoder events
DecoderEvent = Union[
    MessageReceived,
    ProjectNameSuggested,
    ProjectIconSuggested,
    ScreenOpened,
    ScreenUpdated,
    ScreenCompleted,
]
