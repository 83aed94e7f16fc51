"""Screen name decoding: grid position and root marker.

Prototype screens carry layout hints in their name, e.g.
``"Home [0,0] [ROOT]"`` or ``"Settings [2,1]"``. The markers may appear in
either order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

ROOT_MARKER = "[ROOT]"

_GRID_RE = re.compile(r"\[(\d+),(\d+)\]")


@dataclass(frozen=True)
class ScreenName:
    """A decoded screen name."""

    name: str
    grid_col: int | None = None
    grid_row: int | None = None
    is_root: bool = False


def parse_screen_name(raw: str) -> ScreenName:
    """Split a raw tag name into name, grid position and root flag.

    No grid default is assigned when the name has no ``[col,row]`` suffix.
    """
    name = raw.strip()
    is_root = False
    grid_col: int | None = None
    grid_row: int | None = None

    if ROOT_MARKER in name:
        is_root = True
        name = name.replace(ROOT_MARKER, "", 1).strip()

    match = _GRID_RE.search(name)
    if match:
        grid_col = int(match.group(1))
        grid_row = int(match.group(2))
        name = (name[: match.start()] + name[match.end() :]).strip()

    if name.endswith("-->"):
        name = name[: -len("-->")].rstrip()

    return ScreenName(name=name, grid_col=grid_col, grid_row=grid_row, is_root=is_root)
