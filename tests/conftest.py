"""Shared test fixtures for design-stream."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest
from aiohttp import web

from design_stream.transport import format_event_line


# ---------------------------------------------------------------------------
# Model output documents
# ---------------------------------------------------------------------------


@pytest.fixture
def prototype_document() -> str:
    """A full first-turn output: message, project metadata and two screens."""
    return (
        "<!-- MESSAGE: Here is your habit tracker! -->\n"
        "<!-- PROJECT_NAME: Habit Tracker -->\n"
        "<!-- PROJECT_ICON: ✅ -->\n"
        "<!-- SCREEN_START: Home [0,0] [ROOT] -->\n"
        '<div class="p-4">\n  <h1>Today</h1>\n</div>\n'
        "<!-- SCREEN_END -->\n"
        "<!-- SCREEN_START: Stats [1,0] -->\n"
        "<section><!-- chart --><canvas></canvas></section>\n"
        "<!-- SCREEN_END -->\n"
    )


@pytest.fixture
def edit_document() -> str:
    """A follow-up output that edits an existing screen."""
    return (
        "<!-- MESSAGE: Made the header bigger. -->\n"
        "<!-- SCREEN_EDIT: Home -->\n"
        "<h1 class=\"text-4xl\">Today</h1>\n"
        "<!-- SCREEN_END -->"
    )


# ---------------------------------------------------------------------------
# Stream server
# ---------------------------------------------------------------------------


@pytest.fixture
def make_stream_app() -> Callable[..., web.Application]:
    """Factory for an aiohttp app serving a canned event stream.

    Usage:
        app = make_stream_app([{"chunk": "..."}, {"done": True}])
        app = make_stream_app(status=429, body='{"code": "QUOTA_EXCEEDED"}')
        app = make_stream_app([{"chunk": "..."}], hold_open=event)
        app = make_stream_app(payloads, delay=0.1)  # pace writes
    """

    def _create(
        payloads: list[dict] | None = None,
        status: int = 200,
        body: str | bytes | None = None,
        raw: list[bytes] | None = None,
        hold_open: asyncio.Event | None = None,
        delay: float = 0.0,
    ) -> web.Application:
        requests: list[dict] = []

        async def handler(request: web.Request) -> web.StreamResponse:
            requests.append(
                {
                    "json": await request.json(),
                    "headers": {k.lower(): v for k, v in request.headers.items()},
                }
            )
            if isinstance(body, bytes):
                return web.Response(
                    status=status, body=body, content_type="text/html", charset="utf-8"
                )
            if status != 200:
                return web.Response(
                    status=status, text=body or "", content_type="application/json"
                )

            response = web.StreamResponse(
                status=200, headers={"Content-Type": "text/event-stream"}
            )
            await response.prepare(request)
            for part in raw or []:
                await response.write(part)
            for payload in payloads or []:
                if delay:
                    await asyncio.sleep(delay)
                await response.write(format_event_line(payload))
            if hold_open is not None:
                await hold_open.wait()
            await response.write_eof()
            return response

        app = web.Application()
        app.router.add_post("/generate", handler)
        app["requests"] = requests
        return app

    return _create
