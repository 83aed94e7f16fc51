"""Consumer callback surface for streaming sessions.

Every handler is optional and there is at most one of each. Handlers are plain
synchronous callables: all parsing and dispatch for one chunk happens without
suspension, so handlers observe events in a strict order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .events import (
    DecoderEvent,
    MessageReceived,
    ProjectIconSuggested,
    ProjectNameSuggested,
    ScreenCompleted,
    ScreenOpened,
    ScreenUpdated,
)
from .models import QuotaExceededData, Screen, SessionResult, UsageData

logger = logging.getLogger(__name__)


@dataclass
class StreamCallbacks:
    """Handlers a UI layer registers for one controller."""

    on_screen_start: Callable[[str], Any] | None = None
    on_screen_edit_start: Callable[[str], Any] | None = None
    on_screen_update: Callable[[str, str], Any] | None = None
    on_screen_complete: Callable[[Screen], Any] | None = None
    on_message: Callable[[str], Any] | None = None
    on_project_name: Callable[[str], Any] | None = None
    on_project_icon: Callable[[str], Any] | None = None
    on_usage: Callable[[UsageData], Any] | None = None
    on_error: Callable[[str], Any] | None = None
    on_quota_exceeded: Callable[[QuotaExceededData], Any] | None = None
    on_stream_complete: Callable[[SessionResult], Any] | None = None

    def invoke(self, name: str, *args: Any) -> None:
        """Call handler ``name`` if registered.

        A handler that raises is logged and does not stop the session.
        """
        handler = getattr(self, name)
        if handler is None:
            return
        try:
            handler(*args)
        except Exception:
            logger.exception("callback_failed", extra={"callback": name})

    def dispatch(self, event: DecoderEvent) -> None:
        """Route a decoder event to its handler."""
        if isinstance(event, ScreenOpened):
            if event.is_edit:
                self.invoke("on_screen_edit_start", event.name)
            else:
                self.invoke("on_screen_start", event.name)
        elif isinstance(event, ScreenUpdated):
            self.invoke("on_screen_update", event.name, event.html)
        elif isinstance(event, ScreenCompleted):
            self.invoke("on_screen_complete", event.screen)
        elif isinstance(event, MessageReceived):
            self.invoke("on_message", event.text)
        elif isinstance(event, ProjectNameSuggested):
            self.invoke("on_project_name", event.name)
        elif isinstance(event, ProjectIconSuggested):
            self.invoke("on_project_icon", event.icon)
