"""
Request - Transport-neutral request and per-request context.

The ASGI adapter builds a ``Request`` from the scope and body; everything
downstream (matcher, binder, middleware, actions) only sees
``RequestContext``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union, TYPE_CHECKING
from urllib.parse import parse_qsl

if TYPE_CHECKING:
    from .config import Configuration
    from .controller.compiler import RouteInfo


QueryValue = Union[str, List[str]]


def parse_query(query_string: str) -> Dict[str, QueryValue]:
    """
    Parse a query string into a dict with lower-cased keys.

    Blank values are kept (``?b=`` binds an empty string) and repeated keys
    collapse into a list.
    """
    query: Dict[str, QueryValue] = {}
    for key, value in parse_qsl(query_string, keep_blank_values=True):
        key = key.lower()
        if key not in query:
            query[key] = value
        elif isinstance(query[key], list):
            query[key].append(value)
        else:
            query[key] = [query[key], value]
    return query


def normalize_headers(raw: Sequence[Tuple[Any, Any]]) -> Dict[str, str]:
    """Header names lower-cased; repeated headers joined with ``, ``."""
    headers: Dict[str, str] = {}
    for name, value in raw:
        if isinstance(name, bytes):
            name = name.decode("latin-1")
        if isinstance(value, bytes):
            value = value.decode("latin-1")
        name = name.lower()
        headers[name] = f"{headers[name]}, {value}" if name in headers else value
    return headers


@dataclass
class Request:
    """
    Incoming HTTP request.

    Attributes:
        method: Upper-case HTTP verb
        path: Decoded request path
        query: Query parameters (lower-cased keys) merged with path parameters
        headers: Request headers (lower-cased names)
        body: Parsed body (JSON value or form dict) or None
        raw_body: Body bytes as received
        scope: Originating ASGI scope, if any
    """
    method: str
    path: str
    query: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    raw_body: bytes = b""
    scope: Optional[dict] = None

    def __post_init__(self):
        self.method = self.method.upper()

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)


@dataclass
class ResponseState:
    """Outgoing response, written once by ``ActionResult.execute``."""
    status: int = 404
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class RequestContext:
    """
    Per-request context handed to middleware, bindings and invocations.

    Attributes:
        request: The HTTP request
        config: Process-wide configuration (read-only)
        response: Outgoing response state
        route: Matched route (set by the dispatcher)
        parameters: Bound action parameters (set after successful binding)
        state: Free-form per-request state (e.g. ``state["user"]``)
    """
    request: Request
    config: "Configuration"
    response: ResponseState = field(default_factory=ResponseState)
    route: Optional["RouteInfo"] = None
    parameters: Optional[List[Any]] = None
    state: Dict[str, Any] = field(default_factory=dict)

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def path(self) -> str:
        return self.request.path

    @property
    def query(self) -> Dict[str, Any]:
        return self.request.query
