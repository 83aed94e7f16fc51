#!/usr/bin/env python3
"""CLI entry point for design-stream.

Generate screens against a streaming endpoint, replay a captured model output
offline through the same decoder, or remember the preferred model.

Usage:
    design-stream generate URL --prompt TEXT [--out DIR] [--raw-out FILE]
    design-stream replay FILE [--sse] [--out DIR]
    design-stream set-model MODEL
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import re
import sys
from collections.abc import AsyncIterator
from pathlib import Path

from .callbacks import StreamCallbacks
from .config import AVAILABLE_MODELS, ConfigStore
from .decoder import StreamDecoder
from .envelopes import Chunk, Done, Error
from .events import ScreenCompleted
from .models import Screen, SessionStatus
from .session import StreamController
from .transport import iter_envelopes

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default Configuration
# ---------------------------------------------------------------------------

DEFAULT_CONFIG_PATH = Path("~/.design-stream/config.yaml").expanduser()
READ_SIZE = 4096


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------


def _slugify(name: str) -> str:
    """Turn a screen name into a file-name-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "screen"


def write_screens(screens: list[Screen], out_dir: Path) -> list[Path]:
    """Write each screen as ``<slug>.html``; repeated names get a numeric suffix."""
    out_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    seen: dict[str, int] = {}
    for screen in screens:
        slug = _slugify(screen.name)
        seen[slug] = seen.get(slug, 0) + 1
        if seen[slug] > 1:
            slug = f"{slug}-{seen[slug]}"
        path = out_dir / f"{slug}.html"
        path.write_text(screen.html, encoding="utf-8")
        written.append(path)
    return written


def _describe(screen: Screen) -> str:
    parts = [screen.name]
    if screen.grid_col is not None:
        parts.append(f"[{screen.grid_col},{screen.grid_row}]")
    if screen.is_root:
        parts.append("[ROOT]")
    if screen.is_edit:
        parts.append("(edit)")
    if screen.recovered:
        parts.append("(recovered)")
    return " ".join(parts)


async def _read_file(path: Path) -> AsyncIterator[bytes]:
    with path.open("rb") as f:
        while True:
            data = f.read(READ_SIZE)
            if not data:
                break
            yield data


# ---------------------------------------------------------------------------
# Command Implementations
# ---------------------------------------------------------------------------


async def _generate(args: argparse.Namespace) -> int:
    store = ConfigStore(args.config)
    config = store.load()
    if args.model:
        config.model = args.model

    endpoint = args.url or config.endpoint
    if not endpoint:
        print("Error: no endpoint given and none configured", file=sys.stderr)
        return 1

    callbacks = StreamCallbacks(
        on_message=lambda text: print(f"💬 {text}"),
        on_project_name=lambda name: print(f"Project: {name}"),
        on_project_icon=lambda icon: print(f"Icon: {icon}"),
        on_screen_start=lambda name: print(f"Generating {name}..."),
        on_screen_edit_start=lambda name: print(f"Editing {name}..."),
        on_screen_complete=lambda screen: print(f"✓ {_describe(screen)} ({len(screen.html)} chars)"),
        on_usage=lambda usage: print(
            f"Tokens: {usage.input_tokens} in / {usage.output_tokens} out"
            f" ({usage.cached_tokens} cached) on {usage.model}"
        ),
        on_error=lambda message: print(f"Error: {message}", file=sys.stderr),
        on_quota_exceeded=lambda quota: print(
            f"Quota exceeded on {quota.plan} plan: {quota.message}", file=sys.stderr
        ),
    )

    controller = StreamController(callbacks, config=config)
    try:
        handle = controller.start(endpoint, {"prompt": args.prompt})
        result = await handle.wait()
    finally:
        await controller.close()

    if args.raw_out:
        args.raw_out.write_text(result.raw_output, encoding="utf-8")
    if result.status is not SessionStatus.COMPLETED:
        return 1
    if args.out:
        for path in write_screens(result.screens, args.out):
            print(f"Wrote {path}")
    return 0


async def _replay_sse(path: Path) -> list[Screen] | None:
    decoder = StreamDecoder()
    async for envelope in iter_envelopes(_read_file(path)):
        if isinstance(envelope, Chunk):
            decoder.feed(envelope.text)
        elif isinstance(envelope, Error):
            print(f"Error: {envelope.message}", file=sys.stderr)
            return None
        elif isinstance(envelope, Done):
            decoder.finish()
            return decoder.screens
    logger.warning("Capture ended without a done event; skipping recovery")
    return decoder.screens


def _replay_raw(path: Path) -> list[Screen]:
    decoder = StreamDecoder()
    decoder.feed(path.read_text(encoding="utf-8"))
    for event in decoder.finish():
        if isinstance(event, ScreenCompleted):
            logger.info(f"Recovered {event.screen.name}")
    return decoder.screens


def _replay(args: argparse.Namespace) -> int:
    if not args.file.exists():
        print(f"Error: file not found: {args.file}", file=sys.stderr)
        return 1

    if args.sse:
        screens = asyncio.run(_replay_sse(args.file))
        if screens is None:
            return 1
    else:
        screens = _replay_raw(args.file)

    print(f"Decoded {len(screens)} screens")
    for screen in screens:
        print(f"  {_describe(screen)} ({len(screen.html)} chars)")
    if args.out:
        for path in write_screens(screens, args.out):
            print(f"Wrote {path}")
    return 0


def _set_model(args: argparse.Namespace) -> int:
    store = ConfigStore(args.config)
    try:
        store.set_model(args.model)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Model set to {args.model}")
    return 0


# ---------------------------------------------------------------------------
# Argument Parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="design-stream",
        description="Stream generated UI screens from a design endpoint",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: WARNING)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to config.yaml (default: {DEFAULT_CONFIG_PATH})",
    )
    subparsers = parser.add_subparsers(dest="command")

    generate = subparsers.add_parser("generate", help="Run one generation session")
    generate.add_argument("url", nargs="?", help="Streaming endpoint (default: from config)")
    generate.add_argument("--prompt", required=True, help="What to design")
    generate.add_argument("--model", choices=AVAILABLE_MODELS, help="Model for this session only")
    generate.add_argument("--out", type=Path, help="Directory to write screens into")
    generate.add_argument("--raw-out", type=Path, help="File to write the raw model output to")

    replay = subparsers.add_parser("replay", help="Decode a captured output offline")
    replay.add_argument("file", type=Path, help="Raw model output, or SSE capture with --sse")
    replay.add_argument("--sse", action="store_true", help="FILE is a captured event stream")
    replay.add_argument("--out", type=Path, help="Directory to write screens into")

    set_model = subparsers.add_parser("set-model", help="Remember the preferred model")
    set_model.add_argument("model", help=f"One of: {', '.join(AVAILABLE_MODELS)}")

    return parser


def setup_logging(level: str) -> None:
    """Configure logging.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if args.command == "generate":
        return asyncio.run(_generate(args))
    if args.command == "replay":
        return _replay(args)
    if args.command == "set-model":
        return _set_model(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
