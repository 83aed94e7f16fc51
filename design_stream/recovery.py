"""End-of-stream recovery of screens that were never cleanly terminated.

Runs once, when the server signals clean completion. Two cases, in order:

1. A SCREEN_START left in the idle buffer that was never transitioned into.
   If a SCREEN_END follows it, the HTML in between becomes a new screen.
2. A screen still open at the state-machine level. Its accumulated HTML is
   frozen as-is, keeping the new/edit flag recorded when it opened.

Neither case raises; finding nothing to recover is normal.
"""

from __future__ import annotations

import logging

from .models import ParseMode, ParseState, Screen
from .screen_name import parse_screen_name
from .tags import SCREEN_END_TAG, find_screen_start

logger = logging.getLogger(__name__)


def recover_stranded_start(buffer: str) -> Screen | None:
    """Salvage a start tag stranded in ``buffer`` with a later end tag."""
    match = find_screen_start(buffer)
    if match is None:
        return None

    logger.warning("Found unprocessed SCREEN_START for %r in remaining content", match.payload)
    end = buffer.find(SCREEN_END_TAG, match.end)
    if end == -1:
        return None

    html = buffer[match.end : end].strip()
    if not html:
        return None

    parsed = parse_screen_name(match.payload)
    logger.info("Recovering screen %r with %d chars", parsed.name, len(html))
    return Screen(
        name=parsed.name,
        html=html,
        is_edit=False,
        grid_col=parsed.grid_col,
        grid_row=parsed.grid_row,
        is_root=parsed.is_root,
        recovered=True,
    )


def recover_open_screen(state: ParseState) -> Screen | None:
    """Freeze the screen left open in ``state``, if it has any HTML.

    Text still held back in ``state.pending`` belongs to the open screen and
    is flushed into it first.
    """
    if state.mode is not ParseMode.IN_SCREEN or state.current is None:
        return None

    state.current.append(state.pending)
    state.pending = ""
    screen = None
    if state.current.html.strip():
        logger.info("Stream done while still in screen %r, capturing partial screen", state.current.name)
        screen = state.current.freeze(recovered=True)
    state.close()
    return screen


def finalize(state: ParseState) -> list[Screen]:
    """Run both recovery cases against ``state`` and return what they salvaged."""
    recovered: list[Screen] = []

    if state.mode is ParseMode.IDLE:
        if state.pending.strip():
            logger.debug(
                "Done with remaining content (%d chars): %.500s",
                len(state.pending),
                state.pending,
            )
        screen = recover_stranded_start(state.pending)
        if screen is not None:
            recovered.append(screen)

    screen = recover_open_screen(state)
    if screen is not None:
        recovered.append(screen)

    return recovered
