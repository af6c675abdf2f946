"""
Controller Engine - Matches, binds and executes controller actions.

Per request:
- match the route (no match → fallback continuation)
- merge path params into ``request.query``
- bind parameters (a binding fault replaces the action invocation)
- run global, controller and action middleware around the invocation
- materialize the final ``ActionResult`` onto the context once
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from ..config import Configuration
from ..faults import HttpStatusFault
from ..middleware import Invocation, Middleware, MiddlewareStack, pipe
from ..request import RequestContext
from ..response import ActionResult
from .binder import ParameterBinder
from .compiler import RouteInfo
from .decorators import MiddlewareDecorator
from .router import Router

logger = logging.getLogger("pinion.engine")


def _declared(records: Sequence[Any]) -> List[Middleware]:
    # Records are stored bottom-most decorator first
    middlewares: List[Middleware] = []
    for record in reversed([r for r in records if isinstance(r, MiddlewareDecorator)]):
        middlewares.extend(record.value)
    return middlewares


def extract_middleware(route: RouteInfo) -> Tuple[List[Middleware], List[Middleware]]:
    """Controller-level and action-level middleware, each in declared order."""
    return _declared(route.controller.decorators), _declared(route.action.decorators)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class ActionInvocation(Invocation):
    """Innermost link: resolves the controller and calls the action."""

    async def proceed(self) -> ActionResult:
        ctx = self.context
        route = ctx.route
        config = ctx.config

        controller = await _maybe_await(config.dependency_resolver.resolve(route.controller.type))
        method = getattr(controller, route.action.name)

        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        for parameter, value in zip(route.action.parameters, ctx.parameters or ()):
            if parameter.kind is inspect.Parameter.KEYWORD_ONLY:
                kwargs[parameter.name] = value
            else:
                args.append(value)

        result = await _maybe_await(method(*args, **kwargs))
        status = config.status_for(route.method)
        logger.debug("Invoked %s", route.action_name)

        if isinstance(result, ActionResult):
            if result.status is None:
                result.status = status
            return result
        return ActionResult(result, status)


class FaultInvocation(Invocation):
    """Innermost link used when binding failed; the action never runs."""

    def __init__(self, context: RequestContext, fault: HttpStatusFault):
        super().__init__(context)
        self.fault = fault

    async def proceed(self) -> ActionResult:
        return ActionResult(self.fault.body, self.fault.status)


Continuation = Callable[[], Awaitable[None]]


class ControllerEngine:
    """
    Dispatches requests over an immutable route table.

    Example:
        engine = ControllerEngine(build_route_table([AnimalController]), Configuration())
        ctx = RequestContext(Request("GET", "/animal/get", {"id": "1"}), engine.config)
        await engine.handle(ctx)
        ctx.response.status, ctx.response.body
    """

    def __init__(
        self,
        routes: Sequence[RouteInfo],
        config: Configuration,
        middlewares: Sequence[Middleware] = (),
    ):
        self.routes = tuple(routes)
        self.config = config
        self.middlewares = tuple(middlewares)
        self.router = Router(self.routes, cache_size=config.route_cache_size)
        self.binder = ParameterBinder(config)

    def build_chain(self, route: RouteInfo) -> List[Middleware]:
        controller_level, action_level = extract_middleware(route)
        stack = MiddlewareStack()
        stack.extend(self.middlewares, "global")
        stack.extend(controller_level, f"controller:{route.controller.name}")
        stack.extend(action_level, f"action:{route.controller.name}.{route.action.name}")
        return stack.ordered()

    async def dispatch(self, ctx: RequestContext, next: Continuation) -> None:
        match = self.router.match(ctx.method, ctx.path)
        if match is None:
            await next()
            return

        route = match.route
        ctx.route = route
        for key, value in match.params.items():
            ctx.request.query[key.lower()] = value

        invocation: Invocation
        try:
            ctx.parameters = await self.binder.bind(ctx, route.action)
            invocation = ActionInvocation(ctx)
        except HttpStatusFault as fault:
            logger.debug("Binding failed for %s: %s", route.action_name, fault)
            invocation = FaultInvocation(ctx, fault)

        try:
            result = await pipe(self.build_chain(route), ctx, invocation).proceed()
        except HttpStatusFault as fault:
            logger.debug("%s %s answered %d by %s", ctx.method, ctx.path, fault.status, fault.code)
            result = ActionResult(fault.body, fault.status)
        await result.execute(ctx)

    async def handle(self, ctx: RequestContext, fallback: Optional[Continuation] = None) -> None:
        """Dispatch; unmatched requests run ``fallback`` or answer 404."""

        async def not_found() -> None:
            ctx.response.status = 404
            ctx.response.body = "Not Found"

        await self.dispatch(ctx, fallback or not_found)
