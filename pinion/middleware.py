"""
Middleware system - Composable, async-first onion middleware.

A middleware receives an ``Invocation`` and either calls ``proceed()`` to run
everything downstream or returns its own ``ActionResult`` to short-circuit.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TYPE_CHECKING

from .response import ActionResult

if TYPE_CHECKING:
    from .request import RequestContext

# Plain handler style: ``async def handler(ctx, next)``
Handler = Callable[["RequestContext", Callable[[], Awaitable[None]]], Awaitable[Any]]


class Invocation(ABC):
    """One link of the chain; ``proceed()`` runs the rest of it."""

    def __init__(self, context: "RequestContext"):
        self.context = context

    @abstractmethod
    async def proceed(self) -> ActionResult:
        ...


class Middleware(ABC):
    """Base middleware."""

    @abstractmethod
    async def execute(self, invocation: Invocation) -> ActionResult:
        ...


class MiddlewareInvocation(Invocation):
    """Wraps exactly one downstream invocation with one middleware."""

    def __init__(self, middleware: Middleware, context: "RequestContext", next: Invocation):
        super().__init__(context)
        self.middleware = middleware
        self.next = next

    async def proceed(self) -> ActionResult:
        return await self.middleware.execute(self.next)


def pipe(
    middlewares: Sequence[Middleware],
    context: "RequestContext",
    invocation: Invocation,
) -> Invocation:
    """
    Compose ``middlewares`` around ``invocation``.

    Folded right-to-left so the first middleware is the outermost link. The
    input sequence is left untouched.
    """
    current = invocation
    for middleware in reversed(tuple(middlewares)):
        current = MiddlewareInvocation(middleware, context, current)
    return current


# ============================================================================
# Ordering
# ============================================================================

@dataclass(frozen=True)
class MiddlewareDescriptor:
    """Descriptor for middleware registration."""
    middleware: Middleware
    scope: str  # "global", "controller:Name", "action:Name.method"
    order: int


class MiddlewareStack:
    """
    Orders middleware by scope: global < controller < action, then by
    registration order within the same scope.
    """

    SCOPE_ORDER = {"global": 0, "controller": 1, "action": 2}

    def __init__(self):
        self.middlewares: List[MiddlewareDescriptor] = []

    def add(self, middleware: Middleware, scope: str = "global") -> "MiddlewareStack":
        self.middlewares.append(MiddlewareDescriptor(middleware, scope, len(self.middlewares)))
        return self

    def extend(self, middlewares: Sequence[Middleware], scope: str = "global") -> "MiddlewareStack":
        for middleware in middlewares:
            self.add(middleware, scope)
        return self

    def ordered(self) -> List[Middleware]:
        def sort_key(desc: MiddlewareDescriptor):
            scope_type = desc.scope.split(":")[0]
            return (self.SCOPE_ORDER.get(scope_type, 99), desc.order)

        return [desc.middleware for desc in sorted(self.middlewares, key=sort_key)]

    def __len__(self) -> int:
        return len(self.middlewares)


# ============================================================================
# Handler adapter
# ============================================================================

class HandlerMiddleware(Middleware):
    """Middleware built from a plain ``async def handler(ctx, next)``."""

    def __init__(self, handler: Handler):
        self.handler = handler
        self.__name__ = getattr(handler, "__name__", type(self).__name__)

    async def execute(self, invocation: Invocation) -> ActionResult:
        ctx = invocation.context

        async def next() -> None:
            result = await invocation.proceed()
            await result.execute(ctx)

        await self.handler(ctx, next)
        return ActionResult.from_context(ctx)

    def __repr__(self) -> str:
        return f"HandlerMiddleware({self.__name__})"


def from_handler(handler: Handler) -> Middleware:
    """
    Adapt a plain handler into a ``Middleware``.

    Calling ``next()`` proceeds and writes the downstream result onto the
    context; the handler may then inspect or alter ``ctx.response``.
    """
    return HandlerMiddleware(handler)


# ============================================================================
# Default middleware implementations
# ============================================================================

class LoggingMiddleware(Middleware):
    """Logs request/response with timing."""

    def __init__(self, logger: Optional[logging.Logger] = None, slow_ms: float = 1000.0):
        self.logger = logger or logging.getLogger("pinion.requests")
        self.slow_ms = slow_ms

    async def execute(self, invocation: Invocation) -> ActionResult:
        if not self.logger.isEnabledFor(logging.INFO):
            return await invocation.proceed()

        ctx = invocation.context
        start = time.monotonic()
        result = await invocation.proceed()
        elapsed_ms = (time.monotonic() - start) * 1000.0

        self.logger.info(
            "%s %s - %s (%.1fms)",
            ctx.method, ctx.path, result.status, elapsed_ms,
        )
        if elapsed_ms > self.slow_ms:
            self.logger.warning(
                "Slow request: %s %s took %.1fms",
                ctx.method, ctx.path, elapsed_ms,
            )
        return result
