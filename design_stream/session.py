"""Session controller: one streaming request from start to a single terminal callback.

The controller issues the HTTP request, feeds the transport's envelopes into a
fresh StreamDecoder, and dispatches decoder events to the consumer's
callbacks. At most one session is active per controller; starting a new one
cancels the previous one first.
"""

from __future__ import annotations

import asyncio
import logging
from uuid import uuid4

import aiohttp

from .callbacks import StreamCallbacks
from .config import StreamConfig
from .decoder import StreamDecoder
from .envelopes import Chunk, Done, Envelope, Error, Usage
from .errors import DesignStreamError, QuotaExceededError, ServerStreamError, TransportError
from .events import (
    DecoderEvent,
    MessageReceived,
    ProjectIconSuggested,
    ProjectNameSuggested,
    ScreenCompleted,
)
from .models import QuotaExceededData, SessionResult, SessionStatus
from .transport import iter_envelopes, raise_for_error_response

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 30.0


class SessionHandle:
    """Handle on one streaming session.

    ``result`` fills in as the session progresses and is final once the
    session reaches a terminal status.
    """

    def __init__(self) -> None:
        self.session_id = uuid4().hex
        self.result = SessionResult()
        self._task: asyncio.Task | None = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self) -> None:
        """Abandon the session: no recovery, no further callbacks."""
        if self._cancelled or self.result.is_terminal:
            return
        self._cancelled = True
        self.result.status = SessionStatus.ABORTED
        if self._task is not None:
            self._task.cancel()
        logger.info("session_cancelled", extra={"session_id": self.session_id})

    async def wait(self) -> SessionResult:
        """Wait for the session to end and return its result."""
        if self._task is not None:
            await asyncio.wait({self._task})
        return self.result


class StreamController:
    """Runs streaming sessions and dispatches their callbacks.

    Example:
        controller = StreamController(StreamCallbacks(on_screen_complete=show))
        handle = controller.start(url, {"prompt": "A habit tracker"})
        result = await handle.wait()
    """

    def __init__(
        self,
        callbacks: StreamCallbacks | None = None,
        config: StreamConfig | None = None,
        http_session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.callbacks = callbacks or StreamCallbacks()
        self.config = config or StreamConfig()
        self._http_session = http_session
        self._owns_http_session = http_session is None
        self._active: SessionHandle | None = None

    @property
    def active(self) -> SessionHandle | None:
        """The current session, if one is running."""
        if self._active is not None and (self._active.done or self._active.cancelled):
            return None
        return self._active

    def start(
        self,
        endpoint: str,
        request_body: dict,
        headers: dict[str, str] | None = None,
        *,
        config: StreamConfig | None = None,
    ) -> SessionHandle:
        """Start a session and return immediately.

        Must be called from a running event loop. Any previous session is
        cancelled before the new one is scheduled.
        """
        self.cancel()

        config = config or self.config
        handle = SessionHandle()
        body = config.request_body(request_body)
        request_headers = config.request_headers(headers)

        handle._task = asyncio.get_running_loop().create_task(
            self._run(handle, endpoint, body, request_headers, config),
            name=f"design_stream_{handle.session_id}",
        )
        self._active = handle
        logger.debug(
            "session_started",
            extra={"session_id": handle.session_id, "endpoint": endpoint, "model": body.get("model")},
        )
        return handle

    def cancel(self) -> None:
        """Cancel the active session, if any."""
        if self._active is not None:
            self._active.cancel()
            self._active = None

    async def close(self) -> None:
        """Cancel the active session and close an owned HTTP session."""
        self.cancel()
        if self._owns_http_session and self._http_session is not None and not self._http_session.closed:
            await self._http_session.close()
            self._http_session = None

    async def _get_http_session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession()
            self._owns_http_session = True
        return self._http_session

    # ------------------------------------------------------------------
    # Session task
    # ------------------------------------------------------------------

    async def _run(
        self,
        handle: SessionHandle,
        endpoint: str,
        body: dict,
        headers: dict[str, str],
        config: StreamConfig,
    ) -> None:
        decoder = StreamDecoder()
        try:
            http = await self._get_http_session()
            # No cap on total length; only a stream idle for timeout_seconds fails
            timeout = aiohttp.ClientTimeout(
                total=None,
                sock_connect=CONNECT_TIMEOUT_SECONDS,
                sock_read=config.timeout_seconds,
            )
            async with http.post(endpoint, json=body, headers=headers, timeout=timeout) as response:
                if not 200 <= response.status < 300:
                    raise_for_error_response(response.status, await response.text(errors="replace"))

                async for envelope in iter_envelopes(response.content.iter_any()):
                    if self._handle_envelope(handle, decoder, envelope):
                        return
            raise TransportError("Stream closed before completion")
        except asyncio.CancelledError:
            logger.debug("session_aborted", extra={"session_id": handle.session_id})
            raise
        except QuotaExceededError as exc:
            self._terminate_quota(handle, exc.quota)
        except DesignStreamError as exc:
            self._terminate_error(handle, str(exc))
        except asyncio.TimeoutError:
            self._terminate_error(handle, "Stream timed out")
        except aiohttp.ClientError as exc:
            self._terminate_error(handle, str(exc) or type(exc).__name__)
        except Exception as exc:
            logger.exception("session_failed", extra={"session_id": handle.session_id})
            self._terminate_error(handle, str(exc) or type(exc).__name__)

    def _handle_envelope(
        self, handle: SessionHandle, decoder: StreamDecoder, envelope: Envelope
    ) -> bool:
        """Process one envelope. Returns True once the session is complete."""
        if isinstance(envelope, Error):
            raise ServerStreamError(envelope.message)

        if isinstance(envelope, Chunk):
            handle.result.raw_output += envelope.text
            for event in decoder.feed(envelope.text):
                self._dispatch(handle, event)
        elif isinstance(envelope, Usage):
            logger.debug("usage_received", extra={"usage": envelope.usage.to_dict()})
            handle.result.usage.append(envelope.usage)
            if not handle.cancelled:
                self.callbacks.invoke("on_usage", envelope.usage)
        elif isinstance(envelope, Done):
            handle.result.messages_remaining = envelope.messages_remaining
            for event in decoder.finish():
                self._dispatch(handle, event)
            self._terminate_complete(handle)
            return True
        return False

    def _dispatch(self, handle: SessionHandle, event: DecoderEvent) -> None:
        if handle.cancelled:
            return
        result = handle.result
        if isinstance(event, ScreenCompleted):
            result.screens.append(event.screen)
        elif isinstance(event, MessageReceived):
            result.messages.append(event.text)
        elif isinstance(event, ProjectNameSuggested):
            result.project_name = event.name
        elif isinstance(event, ProjectIconSuggested):
            result.project_icon = event.icon
        self.callbacks.dispatch(event)

    # ------------------------------------------------------------------
    # Terminal outcomes (exactly one per session)
    # ------------------------------------------------------------------

    def _terminate_complete(self, handle: SessionHandle) -> None:
        if handle.cancelled or handle.result.is_terminal:
            return
        handle.result.status = SessionStatus.COMPLETED
        logger.info(
            "session_completed",
            extra={"session_id": handle.session_id, "screens": len(handle.result.screens)},
        )
        self.callbacks.invoke("on_stream_complete", handle.result)

    def _terminate_error(self, handle: SessionHandle, message: str) -> None:
        if handle.cancelled or handle.result.is_terminal:
            return
        handle.result.status = SessionStatus.FAILED
        handle.result.error = message
        logger.warning(f"Session {handle.session_id} failed: {message}")
        self.callbacks.invoke("on_error", message)

    def _terminate_quota(self, handle: SessionHandle, quota: QuotaExceededData) -> None:
        if handle.cancelled or handle.result.is_terminal:
            return
        handle.result.status = SessionStatus.QUOTA_EXCEEDED
        handle.result.quota = quota
        logger.info(
            "quota_exceeded",
            extra={"session_id": handle.session_id, "plan": quota.plan},
        )
        self.callbacks.invoke("on_quota_exceeded", quota)
