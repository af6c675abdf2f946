"""
Pinion Controller System

Controllers are plain classes whose name ends with ``Controller``; their
public methods become actions. Metadata is attached by decorators and
read back through reflection at startup.

Example:
    from typing import Annotated
    from pinion.controller import route, bind

    @route.root("/beast")
    class AnimalController:
        @route.get(":id")
        def get(self, id: int):
            return {"id": id}

        @route.post("")
        def save(self, name: Annotated[str, bind.body("name")]):
            return {"name": name}
"""

from .decorators import (
    AuthDecorator,
    BindingDecorator,
    BindingSource,
    IgnoreDecorator,
    MiddlewareDecorator,
    RootDecorator,
    RouteDecorator,
    ValidatorDecorator,
    ValidatorId,
    authorize,
    bind,
    route,
    use,
    validate,
)
from .metadata import (
    ClassDescriptor,
    MethodDescriptor,
    ParameterDescriptor,
    reflect,
    reflect_module,
)
from .compiler import RouteInfo, build_route_table, transform_controller, transform_module
from .analyzer import Issue, IssueType, TestResult, analyze_routes, print_analysis
from .router import RouteMatch, Router
from .converters import Converter
from .binder import BindingStrategy, ParameterBinder
from .engine import ActionInvocation, ControllerEngine, FaultInvocation, extract_middleware

__all__ = [
    # Decorators
    "route",
    "bind",
    "use",
    "validate",
    "authorize",
    "RouteDecorator",
    "RootDecorator",
    "IgnoreDecorator",
    "MiddlewareDecorator",
    "BindingDecorator",
    "BindingSource",
    "ValidatorDecorator",
    "ValidatorId",
    "AuthDecorator",
    # Reflection
    "reflect",
    "reflect_module",
    "ClassDescriptor",
    "MethodDescriptor",
    "ParameterDescriptor",
    # Route table
    "RouteInfo",
    "build_route_table",
    "transform_controller",
    "transform_module",
    # Analysis
    "analyze_routes",
    "print_analysis",
    "Issue",
    "IssueType",
    "TestResult",
    # Dispatch
    "Router",
    "RouteMatch",
    "Converter",
    "ParameterBinder",
    "BindingStrategy",
    "ControllerEngine",
    "ActionInvocation",
    "FaultInvocation",
    "extract_middleware",
]
