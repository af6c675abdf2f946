"""
ASGI adapter - Bridges the ASGI protocol to the controller engine.

- Builds a ``Request``/``RequestContext`` from the scope and body
- Parses JSON and urlencoded bodies (invalid JSON answers 400)
- Serializes the materialized response state (bytes, text or JSON via orjson)
- Unhandled errors are logged and answered with 500
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import parse_qsl

import orjson

from .config import Configuration
from .controller.engine import ControllerEngine
from .faults import Messages
from .request import Request, RequestContext, normalize_headers, parse_query

Hook = Callable[[], Awaitable[None]]


def _json_default_serializer(o):
    """Default JSON serializer for non-standard types."""
    if isinstance(o, (set, frozenset, tuple)):
        return list(o)
    if isinstance(o, Decimal):
        return str(o)
    if hasattr(o, "isoformat"):
        return o.isoformat()
    if hasattr(o, "__dict__"):
        return {key: value for key, value in vars(o).items() if not key.startswith("_")}
    slots = getattr(type(o), "__slots__", None)
    if slots is not None:
        return {name: getattr(o, name) for name in slots if hasattr(o, name)}
    return str(o)


def dumps(obj: Any) -> bytes:
    return orjson.dumps(
        obj,
        default=_json_default_serializer,
        option=orjson.OPT_PASSTHROUGH_DATACLASS,
    )


class BodyParseError(Exception):
    pass


def parse_body(content_type: str, raw: bytes) -> Any:
    """JSON or urlencoded body; None for anything else."""
    media_type = content_type.split(";")[0].strip().lower()
    if media_type == "application/json" or media_type.endswith("+json"):
        if not raw.strip():
            return None
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError as exc:
            raise BodyParseError(str(exc))
    if media_type == "application/x-www-form-urlencoded":
        form: Dict[str, Any] = {}
        for key, value in parse_qsl(raw.decode("utf-8", "replace"), keep_blank_values=True):
            if key not in form:
                form[key] = value
            elif isinstance(form[key], list):
                form[key].append(value)
            else:
                form[key] = [form[key], value]
        return form
    return None


def render_body(body: Any, headers: Dict[str, str]) -> bytes:
    if body is None:
        return b""
    if isinstance(body, (bytes, bytearray)):
        headers.setdefault("content-type", "application/octet-stream")
        return bytes(body)
    if isinstance(body, str):
        headers.setdefault("content-type", "text/plain; charset=utf-8")
        return body.encode("utf-8")
    headers.setdefault("content-type", "application/json")
    return dumps(body)


class ASGIAdapter:
    """
    ASGI application adapter.

    Converts ASGI events into a ``RequestContext`` and hands it to the
    controller engine.
    """

    def __init__(
        self,
        engine: ControllerEngine,
        on_startup: Sequence[Hook] = (),
        on_shutdown: Sequence[Hook] = (),
    ):
        self.engine = engine
        self.config: Configuration = engine.config
        self.on_startup = list(on_startup)
        self.on_shutdown = list(on_shutdown)
        self.logger = logging.getLogger("pinion.asgi")

    async def __call__(self, scope: dict, receive: Callable, send: Callable):
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)
        else:
            self.logger.warning("Unsupported ASGI scope type: %s", scope_type)

    async def _read_body(self, receive: Callable) -> bytes:
        chunks: List[bytes] = []
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
            chunks.append(message.get("body", b""))
            if not message.get("more_body", False):
                break
        return b"".join(chunks)

    async def _send(
        self,
        send: Callable,
        method: str,
        status: int,
        body: Any,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        headers = dict(headers or {})
        content = render_body(body, headers)
        headers["content-length"] = str(len(content))
        raw_headers: List[Tuple[bytes, bytes]] = [
            (name.lower().encode("latin-1"), str(value).encode("latin-1"))
            for name, value in headers.items()
        ]
        await send({"type": "http.response.start", "status": status, "headers": raw_headers})
        await send({
            "type": "http.response.body",
            "body": b"" if method == "HEAD" else content,
        })

    def build_context(self, scope: dict, raw_body: bytes) -> RequestContext:
        headers = normalize_headers(scope.get("headers", ()))
        query_string = scope.get("query_string", b"")
        if isinstance(query_string, bytes):
            query_string = query_string.decode("latin-1")
        request = Request(
            method=scope.get("method", "GET"),
            path=scope.get("path", "/"),
            query=parse_query(query_string),
            headers=headers,
            body=parse_body(headers.get("content-type", ""), raw_body),
            raw_body=raw_body,
            scope=scope,
        )
        return RequestContext(request=request, config=self.config)

    async def handle_http(self, scope: dict, receive: Callable, send: Callable):
        method = scope.get("method", "GET").upper()
        raw_body = await self._read_body(receive)

        try:
            ctx = self.build_context(scope, raw_body)
        except BodyParseError as exc:
            self.logger.debug("Rejected body of %s %s: %s", method, scope.get("path"), exc)
            await self._send(send, method, 400, Messages.INVALID_JSON_BODY)
            return

        try:
            await self.engine.handle(ctx)
        except Exception:
            self.logger.exception("Unhandled error in %s %s", method, ctx.path)
            await self._send(send, method, 500, {"error": "Internal server error"})
            return

        response = ctx.response
        await self._send(send, method, response.status, response.body, response.headers)

    async def handle_lifespan(self, scope: dict, receive: Callable, send: Callable):
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    for hook in self.on_startup:
                        await hook()
                    self.logger.debug("Startup complete (%d routes)", len(self.engine.routes))
                    await send({"type": "lifespan.startup.complete"})
                except Exception as e:
                    self.logger.error(f"Startup error: {e}", exc_info=True)
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    raise

            elif message["type"] == "lifespan.shutdown":
                try:
                    for hook in self.on_shutdown:
                        await hook()
                    await send({"type": "lifespan.shutdown.complete"})
                except Exception as e:
                    self.logger.error(f"Shutdown error: {e}", exc_info=True)
                    await send({"type": "lifespan.shutdown.failed", "message": str(e)})
                break
