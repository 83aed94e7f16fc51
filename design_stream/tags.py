"""Delimiter tag scanning for generated markup.

The model embeds a fixed vocabulary of HTML-comment delimiters in its output:

- ``<!-- MESSAGE: text -->``        chat message (payload may span lines)
- ``<!-- PROJECT_NAME: text -->``   suggested project name
- ``<!-- PROJECT_ICON: text -->``   suggested project emoji icon
- ``<!-- SCREEN_START: name -->``   start of a new screen
- ``<!-- SCREEN_EDIT: name -->``    start of an edit of an existing screen
- ``<!-- SCREEN_END -->``           end of a screen

Every function here is pure: it takes a buffer and returns the match (or
matches) together with the buffer with those matches excised. Start and edit
tags are relaxed: when the model forgets the closing ``-->`` the tag is still
recognised if the name is followed by a newline or by another ``<``.
"""

from __future__ import annotations

from dataclasses import dataclass

COMMENT_OPEN = "<!--"
COMMENT_CLOSE = "-->"
STRICT_CLOSE = " -->"

MESSAGE_PREFIX = "<!-- MESSAGE: "
PROJECT_NAME_PREFIX = "<!-- PROJECT_NAME: "
PROJECT_ICON_PREFIX = "<!-- PROJECT_ICON: "
SCREEN_START_PREFIX = "<!-- SCREEN_START:"
SCREEN_EDIT_PREFIX = "<!-- SCREEN_EDIT:"
SCREEN_END_TAG = "<!-- SCREEN_END -->"

# Characters that can never be part of a start/edit tag name
_NAME_STOP = frozenset("\n<>")


@dataclass(frozen=True)
class TagMatch:
    """A recognised tag: its span in the scanned buffer and its payload."""

    start: int
    end: int
    payload: str

    def excise(self, buffer: str) -> str:
        """Return ``buffer`` with this match removed."""
        return buffer[: self.start] + buffer[self.end :]


# ---------------------------------------------------------------------------
# Strict tags
# ---------------------------------------------------------------------------


def _find_strict(
    buffer: str, prefix: str, pos: int = 0, multiline: bool = True, min_length: int = 0
) -> TagMatch | None:
    """Find ``prefix <payload> -->`` with the shortest payload.

    Single-line tags skip an occurrence whose payload would cross a newline and
    carry on with the next occurrence of the prefix.
    """
    while True:
        start = buffer.find(prefix, pos)
        if start == -1:
            return None
        payload_start = start + len(prefix)
        close = buffer.find(STRICT_CLOSE, payload_start + min_length)
        if close != -1:
            payload = buffer[payload_start:close]
            if multiline or "\n" not in payload:
                return TagMatch(start, close + len(STRICT_CLOSE), payload)
        pos = start + 1


def extract_messages(buffer: str) -> tuple[list[str], str]:
    """Extract every complete MESSAGE tag, in order.

    Payloads are returned untrimmed.
    """
    messages: list[str] = []
    pos = 0
    parts: list[str] = []
    while True:
        match = _find_strict(buffer, MESSAGE_PREFIX, pos)
        if match is None:
            break
        parts.append(buffer[pos : match.start])
        messages.append(match.payload)
        pos = match.end
    if not messages:
        return messages, buffer
    parts.append(buffer[pos:])
    return messages, "".join(parts)


def _extract_single_line(buffer: str, prefix: str) -> tuple[str | None, str]:
    match = _find_strict(buffer, prefix, multiline=False, min_length=1)
    if match is None:
        return None, buffer
    return match.payload.strip(), match.excise(buffer)


def extract_project_name(buffer: str) -> tuple[str | None, str]:
    """Extract the first complete PROJECT_NAME tag (trimmed payload)."""
    return _extract_single_line(buffer, PROJECT_NAME_PREFIX)


def extract_project_icon(buffer: str) -> tuple[str | None, str]:
    """Extract the first complete PROJECT_ICON tag (trimmed payload)."""
    return _extract_single_line(buffer, PROJECT_ICON_PREFIX)


def find_screen_end(buffer: str) -> TagMatch | None:
    """Locate the first ``<!-- SCREEN_END -->``."""
    start = buffer.find(SCREEN_END_TAG)
    if start == -1:
        return None
    return TagMatch(start, start + len(SCREEN_END_TAG), "")


# ---------------------------------------------------------------------------
# Relaxed start tags
# ---------------------------------------------------------------------------


def _skip_whitespace(buffer: str, pos: int) -> int:
    while pos < len(buffer) and buffer[pos].isspace():
        pos += 1
    return pos


def _name_boundary(buffer: str, pos: int) -> int | None:
    """Return the tag end if a name may stop at ``pos``, else None.

    Boundaries, tried in order: optional whitespace then ``-->`` (consumed),
    whitespace containing a newline, or a ``<`` (neither consumed). While the
    buffer ends in whitespace or a partial ``-->`` the choice between the
    first two cannot be made yet, so no boundary is reported.
    """
    after_ws = _skip_whitespace(buffer, pos)
    if buffer.startswith(COMMENT_CLOSE, after_ws):
        return after_ws + len(COMMENT_CLOSE)
    if COMMENT_CLOSE.startswith(buffer[after_ws:]):
        return None
    if "\n" in buffer[pos:after_ws]:
        return pos
    if pos < len(buffer) and buffer[pos] == "<":
        return pos
    return None


def _find_relaxed(buffer: str, prefix: str) -> TagMatch | None:
    pos = 0
    while True:
        start = buffer.find(prefix, pos)
        if start == -1:
            return None
        name_start = _skip_whitespace(buffer, start + len(prefix))
        cursor = name_start
        # The name is at least one character and never contains \n, < or >
        while cursor < len(buffer) and buffer[cursor] not in _NAME_STOP:
            cursor += 1
            end = _name_boundary(buffer, cursor)
            if end is not None:
                return TagMatch(start, end, buffer[name_start:cursor].strip())
        pos = start + 1


def find_screen_start(buffer: str) -> TagMatch | None:
    """Locate the first SCREEN_START tag; payload is the raw screen name."""
    return _find_relaxed(buffer, SCREEN_START_PREFIX)


def find_screen_edit(buffer: str) -> TagMatch | None:
    """Locate the first SCREEN_EDIT tag; payload is the raw screen name."""
    return _find_relaxed(buffer, SCREEN_EDIT_PREFIX)


# ---------------------------------------------------------------------------
# Chunk boundaries
# ---------------------------------------------------------------------------


def incomplete_tag_offset(buffer: str) -> int:
    """Offset where a possibly unfinished tag begins at the end of ``buffer``.

    Returns ``len(buffer)`` when the tail cannot be the start of a tag. The
    tail is unfinished when it is a proper prefix of ``<!--`` or when the last
    ``<!--`` has no ``-->`` after it.
    """
    last_open = buffer.rfind(COMMENT_OPEN)
    if last_open != -1 and buffer.find(COMMENT_CLOSE, last_open + len(COMMENT_OPEN)) == -1:
        return last_open
    for size in range(len(COMMENT_OPEN) - 1, 0, -1):
        if buffer.endswith(COMMENT_OPEN[:size]):
            return len(buffer) - size
    return len(buffer)
