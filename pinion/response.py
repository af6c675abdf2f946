"""
ActionResult - Mutable result builder returned (or synthesized) from actions.

Materialized once onto the request context after the middleware chain
completes; the ASGI adapter then serializes the context's response state.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .request import RequestContext


class ActionResult:
    """
    Action result.

    Example:
        @route.post()
        def save(self, data: AnimalModel):
            return ActionResult({"id": 1}).set_status(201).set_header("Location", "/animal/1")
    """

    __slots__ = ("body", "status", "headers")

    def __init__(self, body: Any = None, status: Optional[int] = None):
        self.body = body
        self.status = status
        self.headers: Dict[str, str] = {}

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "ActionResult":
        """Read the already materialized response state back into a result."""
        result = cls(ctx.response.body, ctx.response.status)
        result.headers.update(ctx.response.headers)
        return result

    def set_header(self, key: str, value: str) -> "ActionResult":
        self.headers[key] = value
        return self

    def set_status(self, status: int) -> "ActionResult":
        self.status = status
        return self

    async def execute(self, ctx: "RequestContext") -> None:
        """Write headers, body and status onto the outgoing response state."""
        for key, value in self.headers.items():
            ctx.response.headers[key.lower()] = value
        if self.body is not None:
            ctx.response.body = self.body
        if self.status:
            ctx.response.status = self.status

    def __repr__(self) -> str:
        return f"ActionResult(status={self.status!r}, body={self.body!r})"
