"""
Pinion Testing - In-process ASGI test client.

Issues requests straight into the ASGI application without opening a
socket:

    client = TestClient(Pinion(controller=[AnimalController], mode="production"))
    resp = await client.get("/animal/get?b=ON")
    assert resp.status_code == 200
"""

from __future__ import annotations

import json as stdlib_json
import time as _time
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlencode


class TestResponse:
    """
    Wrapper around captured ASGI response events.

    Provides a friendly API for assertions in tests.
    """

    __test__ = False

    __slots__ = (
        "status_code", "headers", "body", "_json_cache",
        "content_type", "elapsed", "request_method", "request_path",
    )

    def __init__(
        self,
        status_code: int,
        headers: Dict[str, str],
        body: bytes,
        *,
        elapsed: float = 0.0,
        request_method: str = "",
        request_path: str = "",
    ):
        self.status_code = status_code
        self.headers = headers
        self.body = body
        self._json_cache: Any = None
        self.elapsed = elapsed
        self.request_method = request_method
        self.request_path = request_path
        self.content_type = headers.get("content-type", "").split(";")[0].strip()

    @property
    def text(self) -> str:
        """Body decoded as text."""
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """Parse body as JSON."""
        if self._json_cache is None:
            self._json_cache = stdlib_json.loads(self.body)
        return self._json_cache

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    def __repr__(self) -> str:
        return (
            f"<TestResponse [{self.status_code}] "
            f"{self.content_type} {len(self.body)}B "
            f"{self.elapsed:.1f}ms>"
        )


def make_test_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[Tuple[str, str]]] = None,
) -> dict:
    """Build a minimal ASGI HTTP scope for testing."""
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method.upper(),
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": query_string.encode("latin-1"),
        "root_path": "",
        "headers": [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in headers or []
        ],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }


def make_test_receive(body: bytes = b""):
    """Create an ASGI receive callable delivering ``body`` in one message."""
    sent = False

    async def receive():
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return {"type": "http.disconnect"}

    return receive


class TestClient:
    """
    In-process ASGI test client.

    Accepts a ``Pinion`` application (initialized on first use) or any ASGI
    callable.
    """

    __test__ = False

    def __init__(self, app: Any, *, default_headers: Optional[Dict[str, str]] = None):
        self._source = app
        self._app: Optional[Callable] = None if hasattr(app, "initialize") else app
        self._default_headers = default_headers or {}

    @property
    def app(self) -> Callable:
        if self._app is None:
            self._app = self._source.initialize()
        return self._app

    async def get(self, path: str, **kw) -> TestResponse:
        return await self.request("GET", path, **kw)

    async def post(self, path: str, json: Any = None, **kw) -> TestResponse:
        return await self.request("POST", path, json=json, **kw)

    async def put(self, path: str, json: Any = None, **kw) -> TestResponse:
        return await self.request("PUT", path, json=json, **kw)

    async def patch(self, path: str, json: Any = None, **kw) -> TestResponse:
        return await self.request("PATCH", path, json=json, **kw)

    async def delete(self, path: str, **kw) -> TestResponse:
        return await self.request("DELETE", path, **kw)

    async def head(self, path: str, **kw) -> TestResponse:
        return await self.request("HEAD", path, **kw)

    async def options(self, path: str, **kw) -> TestResponse:
        return await self.request("OPTIONS", path, **kw)

    async def trace(self, path: str, **kw) -> TestResponse:
        return await self.request("TRACE", path, **kw)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        data: Optional[Dict[str, str]] = None,
        body: bytes = b"",
    ) -> TestResponse:
        """Issue an in-process ASGI request; ``path`` may carry a query string."""
        path, _, query_string = path.partition("?")
        if params:
            extra = urlencode(params, doseq=True)
            query_string = f"{query_string}&{extra}" if query_string else extra

        combined_headers: List[Tuple[str, str]] = [
            (k.lower(), v) for k, v in self._default_headers.items()
        ]
        if headers:
            combined_headers.extend((k.lower(), v) for k, v in headers.items())

        if json is not None:
            body = stdlib_json.dumps(json).encode("utf-8")
            combined_headers.append(("content-type", "application/json"))
        elif data is not None:
            body = urlencode(data).encode("utf-8")
            combined_headers.append(("content-type", "application/x-www-form-urlencoded"))
        if body:
            combined_headers.append(("content-length", str(len(body))))

        scope = make_test_scope(method, path, query_string, combined_headers)
        receive = make_test_receive(body)

        status_code = 500
        resp_headers: Dict[str, str] = {}
        body_parts: List[bytes] = []

        async def send(event: dict):
            nonlocal status_code
            if event["type"] == "http.response.start":
                status_code = event["status"]
                for name, value in event.get("headers", []):
                    resp_headers[name.decode("latin-1").lower()] = value.decode("latin-1")
            elif event["type"] == "http.response.body":
                body_parts.append(event.get("body", b""))

        start_time = _time.monotonic()
        await self.app(scope, receive, send)
        elapsed_ms = (_time.monotonic() - start_time) * 1000

        return TestResponse(
            status_code=status_code,
            headers=resp_headers,
            body=b"".join(body_parts),
            elapsed=elapsed_ms,
            request_method=method,
            request_path=path,
        )
