"""ASGI middleware: bounded, redacted request/response body capture for the request log."""

import logging
import time
from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Optional, Tuple

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from baseline_api.core.context import correlation_id_ctx
from baseline_api.observability.redaction import (
    NO_BODY,
    CapturedBody,
    is_allowed_content_type,
)
from baseline_api.observability.request_log import (
    ANONYMOUS,
    RequestLogRecord,
    emit_request_log,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 8192
DEFAULT_CONTENT_TYPES = (
    "application/json",
    "text/plain",
    "application/x-www-form-urlencoded",
)


class _ResponseBuffer:
    """Stands in for the real send() while the app runs. Keeps every message untouched."""

    def __init__(self, max_bytes: int) -> None:
        self._max_bytes = max_bytes
        self.messages: List[Message] = []
        self.status_code: Optional[int] = None
        self.content_type: Optional[str] = None
        self.head = bytearray()
        self.size = 0

    async def send(self, message: Message) -> None:
        self.messages.append(message)
        if message["type"] == "http.response.start":
            self.status_code = message["status"]
            self.content_type = Headers(raw=message.get("headers", [])).get("content-type")
        elif message["type"] == "http.response.body":
            body = message.get("body", b"")
            self.size += len(body)
            room = self._max_bytes - len(self.head)
            if room > 0:
                self.head += body[:room]

    def captured(self) -> CapturedBody:
        return CapturedBody(
            raw=bytes(self.head),
            content_type=self.content_type,
            truncated=self.size > self._max_bytes,
        )


class BodyCaptureMiddleware:
    """
    Captures bounded copies of request and response bodies, redacts them and hands
    them to the request log, without changing what the app reads or what the client
    receives.

    The request body is peeked up to max_bytes and replayed to the app. The
    response is buffered while the app runs and replayed to the client
    afterwards, on every exit path.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_bytes: int = DEFAULT_MAX_BYTES,
        content_types: Iterable[str] = DEFAULT_CONTENT_TYPES,
        trust_forwarded_for: bool = False,
    ) -> None:
        self.app = app
        self.max_bytes = max_bytes
        self.content_types = tuple(content_types)
        self.trust_forwarded_for = trust_forwarded_for

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.perf_counter()
        headers = Headers(scope=scope)
        request_body, receive = await self._peek_request(headers, receive)
        buffer = _ResponseBuffer(self.max_bytes)
        try:
            await self.app(scope, receive, buffer.send)
        finally:
            await self._finalize(scope, headers, request_body, buffer, send, started)

    async def _peek_request(self, headers: Headers, receive: Receive) -> Tuple[Optional[CapturedBody], Receive]:
        content_type = headers.get("content-type")
        length = headers.get("content-length", "")
        if not length.isdigit() or int(length) == 0:
            return None, receive
        if not is_allowed_content_type(content_type, self.content_types):
            return None, receive

        pending: Deque[Message] = deque()
        collected = bytearray()
        more = True
        while more and len(collected) <= self.max_bytes:
            message = await receive()
            pending.append(message)
            if message["type"] != "http.request":
                more = False
                break
            collected += message.get("body", b"")
            more = message.get("more_body", False)

        async def replay() -> Message:
            if pending:
                return pending.popleft()
            return await receive()

        captured = CapturedBody.bounded(bytes(collected), content_type, self.max_bytes, more=more)
        return captured, replay

    async def _finalize(
        self,
        scope: Scope,
        headers: Headers,
        request_body: Optional[CapturedBody],
        buffer: _ResponseBuffer,
        send: Send,
        started: float,
    ) -> None:
        request_text = response_text = NO_BODY
        try:
            if request_body is not None:
                request_text = request_body.render()
            if buffer.head and is_allowed_content_type(buffer.content_type, self.content_types):
                response_text = buffer.captured().render()
        except Exception:
            logger.exception("Body capture failed; logging without bodies")

        # Delivered bytes are exactly what the app produced. A failing send
        # (client gone) still gets its request logged.
        try:
            for message in buffer.messages:
                await send(message)
        finally:
            self._log(scope, headers, buffer, request_text, response_text, started)

    def _log(
        self,
        scope: Scope,
        headers: Headers,
        buffer: _ResponseBuffer,
        request_text: str,
        response_text: str,
        started: float,
    ) -> None:
        try:
            state: Dict[str, Any] = scope.get("state") or {}
            emit_request_log(
                RequestLogRecord(
                    method=scope.get("method", ""),
                    path=scope.get("path", ""),
                    status_code=buffer.status_code or 500,
                    elapsed_ms=(time.perf_counter() - started) * 1000,
                    correlation_id=correlation_id_ctx.get() or state.get("correlation_id"),
                    tenant_id=state.get("tenant_id"),
                    actor_name=state.get("actor_name") or ANONYMOUS,
                    client_ip=self._client_ip(scope, headers),
                    request_body=request_text,
                    response_body=response_text,
                )
            )
        except Exception:
            logger.exception("Request log emission failed")

    def _client_ip(self, scope: Scope, headers: Headers) -> Optional[str]:
        if self.trust_forwarded_for:
            forwarded = headers.get("x-forwarded-for")
            if forwarded:
                return forwarded.split(",")[0].strip()
        client = scope.get("client")
        return client[0] if client else None
