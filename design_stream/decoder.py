"""Incremental protocol decoder for streamed model output.

The decoder is a two-state machine (IDLE, IN_SCREEN) fed with arbitrary text
fragments. Each call to ``feed`` fully drains the fragment: every tag that can
be recognised is dispatched before returning, so a single fragment may open,
fill and complete several screens.

The scan order per fragment is fixed: messages, project name, project icon,
screen start, screen edit, then the drain loop. When two tags overlap in the
same fragment this order decides which one wins.
"""

from __future__ import annotations

import logging

from .events import (
    DecoderEvent,
    MessageReceived,
    ProjectIconSuggested,
    ProjectNameSuggested,
    ScreenCompleted,
    ScreenOpened,
    ScreenUpdated,
)
from .models import ParseMode, ParseState, Screen, ScreenAccumulator
from .recovery import finalize
from .screen_name import parse_screen_name
from .tags import (
    TagMatch,
    extract_messages,
    extract_project_icon,
    extract_project_name,
    find_screen_edit,
    find_screen_end,
    find_screen_start,
    incomplete_tag_offset,
)

logger = logging.getLogger(__name__)


class StreamDecoder:
    """Turns a sequence of text fragments into decoder events.

    Example:
        decoder = StreamDecoder()
        for chunk in chunks:
            for event in decoder.feed(chunk):
                handle(event)
        for event in decoder.finish():
            handle(event)
    """

    def __init__(self) -> None:
        self.state = ParseState()
        self._finished = False

    @property
    def screens(self) -> list[Screen]:
        """Screens completed so far, in completion order."""
        return list(self.state.emitted)

    @property
    def finished(self) -> bool:
        return self._finished

    def feed(self, text: str) -> list[DecoderEvent]:
        """Consume one fragment and return the events it produced.

        Raises:
            RuntimeError: If called after finish().
        """
        if self._finished:
            raise RuntimeError("Decoder already finished")

        events: list[DecoderEvent] = []
        self.state.pending += text

        self._scan_messages(events)
        self._scan_project_metadata(events)
        if self.state.mode is ParseMode.IDLE:
            self._try_open(events)
        self._drain(events)
        return events

    def finish(self) -> list[DecoderEvent]:
        """Run end-of-stream recovery. Only call on clean completion.

        Calling it again returns no events.
        """
        if self._finished:
            return []
        self._finished = True

        events: list[DecoderEvent] = []
        for screen in finalize(self.state):
            self.state.emitted.append(screen)
            events.append(ScreenCompleted(screen=screen))
        logger.debug(
            "Final screens: %d %s",
            len(self.state.emitted),
            [f"{s.name}{' (edit)' if s.is_edit else ''}" for s in self.state.emitted],
        )
        return events

    # ------------------------------------------------------------------
    # Scan steps
    # ------------------------------------------------------------------

    def _scan_messages(self, events: list[DecoderEvent]) -> None:
        messages, self.state.pending = extract_messages(self.state.pending)
        for message in messages:
            logger.debug("MESSAGE found: %.50r", message)
            events.append(MessageReceived(text=message))

    def _scan_project_metadata(self, events: list[DecoderEvent]) -> None:
        name, self.state.pending = extract_project_name(self.state.pending)
        if name is not None:
            logger.debug("PROJECT_NAME found: %r", name)
            events.append(ProjectNameSuggested(name=name))

        icon, self.state.pending = extract_project_icon(self.state.pending)
        if icon is not None:
            logger.debug("PROJECT_ICON found: %r", icon)
            events.append(ProjectIconSuggested(icon=icon))

    def _try_open(self, events: list[DecoderEvent]) -> bool:
        """Open a screen from a start tag, or failing that an edit tag."""
        match = find_screen_start(self.state.pending)
        is_edit = False
        if match is None:
            match = find_screen_edit(self.state.pending)
            is_edit = True
        if match is None:
            return False
        self._open(match, is_edit, events)
        return True

    def _open(self, match: TagMatch, is_edit: bool, events: list[DecoderEvent]) -> None:
        skipped = self.state.pending[: match.start]
        if skipped.strip():
            logger.debug("Discarding %d chars before screen tag", len(skipped))
        self.state.pending = self.state.pending[match.end :]

        parsed = parse_screen_name(match.payload)
        self.state.open(
            ScreenAccumulator(
                name=parsed.name,
                is_edit=is_edit,
                grid_col=parsed.grid_col,
                grid_row=parsed.grid_row,
                is_root=parsed.is_root,
            )
        )
        logger.debug(
            "%s: %r grid=%s root=%s",
            "SCREEN_EDIT" if is_edit else "SCREEN_START",
            parsed.name,
            (parsed.grid_col, parsed.grid_row),
            parsed.is_root,
        )
        events.append(
            ScreenOpened(
                name=parsed.name,
                is_edit=is_edit,
                grid_col=parsed.grid_col,
                grid_row=parsed.grid_row,
                is_root=parsed.is_root,
            )
        )

    def _drain(self, events: list[DecoderEvent]) -> None:
        progress = True
        while progress:
            progress = False
            if self.state.mode is ParseMode.IN_SCREEN:
                progress = self._accumulate(events)
            elif self.state.pending.strip():
                self._scan_messages(events)
                progress = self._try_open(events)

    def _accumulate(self, events: list[DecoderEvent]) -> bool:
        """Feed pending text into the open screen; True if it completed."""
        current = self.state.current
        assert current is not None

        end = find_screen_end(self.state.pending)
        if end is not None:
            current.append(self.state.pending[: end.start])
            self.state.pending = self.state.pending[end.end :]
            screen = current.freeze()
            self.state.emitted.append(screen)
            self.state.close()
            logger.debug(
                "SCREEN_END: %r, isEdit: %s, HTML length: %d",
                screen.name,
                screen.is_edit,
                len(screen.html),
            )
            events.append(ScreenCompleted(screen=screen))
            return bool(self.state.pending.strip())

        # Hold back a tail that may be the first half of a tag
        cut = incomplete_tag_offset(self.state.pending)
        if cut > 0:
            current.append(self.state.pending[:cut])
            self.state.pending = self.state.pending[cut:]
            events.append(ScreenUpdated(name=current.name, html=current.html))
        return False


def decode_chunks(chunks: list[str] | tuple[str, ...]) -> tuple[list[DecoderEvent], list[Screen]]:
    """Decode a complete sequence of fragments, including recovery.

    Returns all events and the final screen list.
    """
    decoder = StreamDecoder()
    events: list[DecoderEvent] = []
    for chunk in chunks:
        events.extend(decoder.feed(chunk))
    events.extend(decoder.finish())
    return events, decoder.screens
