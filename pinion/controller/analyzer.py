"""
Static Route Analyzer

Startup-time checks over the route table. Findings are advisory: they are
printed, never raised.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, IO, List, Optional, Sequence, Set

import click

from ..faults import Messages
from .compiler import RouteInfo
from .decorators import ValidatorDecorator, ValidatorId
from .metadata import ParameterDescriptor, element_type, is_array_type, is_model, reflect

_PARAM_TOKEN = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


class IssueType(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Issue:
    type: IssueType
    message: str = ""


@dataclass
class TestResult:
    __test__ = False

    route: RouteInfo
    issues: List[Issue] = field(default_factory=list)

    @property
    def has_error(self) -> bool:
        return any(issue.type is IssueType.ERROR for issue in self.issues)


AnalyzerFunction = Callable[[RouteInfo, Sequence[RouteInfo]], List[Issue]]


def _skipped(parameter: ParameterDescriptor) -> bool:
    return any(
        isinstance(d, ValidatorDecorator) and d.validator is ValidatorId.SKIP
        for d in parameter.decorators
    )


# ============================================================================
# Checks
# ============================================================================

def backing_parameter_test(route: RouteInfo, all_routes: Sequence[RouteInfo]) -> List[Issue]:
    names = {p.name.lower() for p in route.action.parameters}
    missing = [token for token in _PARAM_TOKEN.findall(route.url) if token.lower() not in names]
    if not missing:
        return [Issue(IssueType.SUCCESS)]
    return [Issue(IssueType.ERROR, Messages.ROUTE_MISSING_BACKING_PARAM.format(", ".join(missing)))]


def metadata_type_test(route: RouteInfo, all_routes: Sequence[RouteInfo]) -> List[Issue]:
    params = route.action.parameters
    if params and all(p.type is None for p in params):
        return [Issue(IssueType.WARNING, Messages.ACTION_WITHOUT_TYPE_INFO)]
    return [Issue(IssueType.SUCCESS)]


def duplicate_route_test(route: RouteInfo, all_routes: Sequence[RouteInfo]) -> List[Issue]:
    duplicates = [r for r in all_routes if r.key == route.key]
    if len(duplicates) > 1:
        names = ", ".join(r.action_name for r in duplicates)
        return [Issue(IssueType.ERROR, Messages.DUPLICATE_ROUTE.format(names))]
    return [Issue(IssueType.SUCCESS)]


def _walk_models(annotation, visited: Dict[type, None]) -> None:
    if is_array_type(annotation):
        annotation = element_type(annotation)
    if not is_model(annotation) or annotation in visited:
        return
    visited[annotation] = None
    for prop in reflect(annotation).properties:
        _walk_models(prop.type, visited)


def model_type_info_test(route: RouteInfo, all_routes: Sequence[RouteInfo]) -> List[Issue]:
    models: Dict[type, None] = {}
    for parameter in route.action.parameters:
        if not _skipped(parameter):
            _walk_models(parameter.type, models)

    issues = []
    for model in models:
        properties = reflect(model).properties
        if not any(p.type is not None for p in properties):
            issues.append(Issue(IssueType.WARNING, Messages.MODEL_WITHOUT_TYPE_INFO.format(model.__name__)))
    return issues or [Issue(IssueType.SUCCESS)]


def _untyped_arrays(name: str, annotation, visited: Set[type], found: List[str]) -> None:
    if is_array_type(annotation):
        element = element_type(annotation)
        if element is None:
            found.append(name)
            return
        annotation = element
    if not is_model(annotation) or annotation in visited:
        return
    visited.add(annotation)
    for prop in reflect(annotation).properties:
        _untyped_arrays(f"{name}.{prop.name}", prop.type, visited, found)


def array_type_info_test(route: RouteInfo, all_routes: Sequence[RouteInfo]) -> List[Issue]:
    found: List[str] = []
    for parameter in route.action.parameters:
        if not _skipped(parameter):
            _untyped_arrays(parameter.name, parameter.type, set(), found)
    issues = [Issue(IssueType.WARNING, Messages.ARRAY_WITHOUT_TYPE_INFO.format(name)) for name in found]
    return issues or [Issue(IssueType.SUCCESS)]


DEFAULT_TESTS: Sequence[AnalyzerFunction] = (
    backing_parameter_test,
    metadata_type_test,
    duplicate_route_test,
    model_type_info_test,
    array_type_info_test,
)


def analyze_route(
    route: RouteInfo,
    tests: Sequence[AnalyzerFunction],
    all_routes: Sequence[RouteInfo],
) -> TestResult:
    issues = [
        issue
        for test in tests
        for issue in test(route, all_routes)
        if issue.type is not IssueType.SUCCESS
    ]
    return TestResult(route, issues)


def analyze_routes(
    routes: Sequence[RouteInfo],
    tests: Sequence[AnalyzerFunction] = DEFAULT_TESTS,
) -> List[TestResult]:
    return [analyze_route(route, tests, routes) for route in routes]


# ============================================================================
# Output
# ============================================================================

def format_analysis(results: Sequence[TestResult]) -> List[tuple]:
    """
    Render results as ``(line, colour)`` pairs; colour is None for plain
    output. Columns are padded to the widest entry.
    """
    if not results:
        return []
    actions = [r.route.action_name for r in results]
    methods = [r.route.method.upper() for r in results]
    urls = [r.route.url for r in results]
    action_width = max(len(a) for a in actions)
    method_width = max(len(m) for m in methods)
    url_width = max(len(u) for u in urls)

    lines = []
    for index, result in enumerate(results):
        if not result.issues:
            colour = None
        elif result.has_error:
            colour = "red"
        else:
            colour = "yellow"
        line = (
            f"{index + 1}. {actions[index].ljust(action_width)} -> "
            f"{methods[index].ljust(method_width)} {urls[index].ljust(url_width)}"
        )
        lines.append((line.rstrip(), colour))
        for issue in result.issues:
            issue_colour = "yellow" if issue.type is IssueType.WARNING else "red"
            lines.append((f" - {issue.type.value} {issue.message}", issue_colour))
    return lines


def print_analysis(results: Sequence[TestResult], file: Optional[IO] = None) -> None:
    for line, colour in format_analysis(results):
        click.echo(click.style(line, fg=colour) if colour else line, file=file)
