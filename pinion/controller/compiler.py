"""
Route Table Builder

Turns reflected controller classes into an immutable tuple of ``RouteInfo``.
Controllers are supplied as classes or discovered from a file or directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from ..faults import ControllerPathNotFoundFault
from .decorators import IgnoreDecorator, RootDecorator, RouteDecorator
from .metadata import ClassDescriptor, MethodDescriptor, reflect, reflect_module


@dataclass(frozen=True)
class RouteInfo:
    """
    A single route.

    Attributes:
        url: Route url with ``:name`` captures
        method: Upper-case HTTP verb
        action: Reflected controller method
        controller: Reflected controller class
    """
    url: str
    method: str
    action: MethodDescriptor
    controller: ClassDescriptor

    @property
    def key(self) -> Tuple[str, str]:
        return (self.method, self.url)

    @property
    def action_name(self) -> str:
        params = ", ".join(p.name for p in self.action.parameters)
        return f"{self.controller.name}.{self.action.name}({params})"

    def __repr__(self) -> str:
        return f"RouteInfo({self.method} {self.url} -> {self.action_name})"


def is_controller(name: str) -> bool:
    return name.lower().endswith("controller")


def strip_controller(name: str) -> str:
    """``AnimalController`` → ``animal``"""
    return name[:name.lower().rfind("controller")].lower()


def controller_prefix(controller: ClassDescriptor) -> str:
    for record in controller.decorators:
        if isinstance(record, RootDecorator) and record.url:
            return record.url
    return f"/{strip_controller(controller.name)}"


def _route_url(root: str, prefix: str, method: MethodDescriptor, url: Optional[str]) -> str:
    if url and url.startswith("/"):
        return root + url
    if url == "":
        return root + prefix
    return f"{root}{prefix}/{url or method.name.lower()}"


def transform_method(
    controller: ClassDescriptor,
    method: MethodDescriptor,
    root: str = "",
) -> List[RouteInfo]:
    if any(isinstance(d, IgnoreDecorator) for d in method.decorators):
        return []

    prefix = controller_prefix(controller)
    records = [d for d in method.decorators if isinstance(d, RouteDecorator)]
    if not records:
        return [RouteInfo(f"{root}{prefix}/{method.name.lower()}", "GET", method, controller)]

    # Records are stored bottom-most decorator first
    return [
        RouteInfo(_route_url(root, prefix, method, record.url), record.method, method, controller)
        for record in records
    ]


def transform_controller(obj: Union[type, ClassDescriptor], root: str = "") -> List[RouteInfo]:
    """Routes of one controller; non-controller classes yield nothing."""
    controller = obj if isinstance(obj, ClassDescriptor) else reflect(obj)
    if not is_controller(controller.name):
        return []
    routes: List[RouteInfo] = []
    for method in controller.methods:
        routes.extend(transform_method(controller, method, root))
    return routes


def _transform_classes(classes: Iterable[type], root: str) -> List[RouteInfo]:
    routes: List[RouteInfo] = []
    for cls in classes:
        routes.extend(transform_controller(cls, root))
    return routes


def _is_source_file(path: Path) -> bool:
    return path.is_file() and path.suffix == ".py" and not path.name.startswith("_")


def _is_package_dir(path: Path) -> bool:
    return path.is_dir() and not path.name.startswith(("_", "."))


def transform_module(path: Union[str, Path], root: str = "") -> List[RouteInfo]:
    """
    Routes of every controller found under ``path``.

    A directory contributes its ``*.py`` files (sorted, ``_``-prefixed files
    skipped) first, then each subdirectory with its name appended to ``root``.
    """
    path = Path(path)
    if not path.exists():
        raise ControllerPathNotFoundFault(str(path))
    if path.is_file():
        return _transform_classes(reflect_module(path), root)

    routes: List[RouteInfo] = []
    entries = sorted(path.iterdir(), key=lambda p: p.name)
    for entry in entries:
        if _is_source_file(entry):
            routes.extend(_transform_classes(reflect_module(entry), root))
    for entry in entries:
        if _is_package_dir(entry):
            routes.extend(transform_module(entry, f"{root}/{entry.name}"))
    return routes


def build_route_table(
    source: Union[str, Path, type, Sequence[type]],
    root_path: Optional[str] = None,
) -> Tuple[RouteInfo, ...]:
    """
    Build the route table from a controller path or controller classes.

    Relative paths are resolved against ``root_path`` (default: cwd).
    """
    if isinstance(source, type):
        return tuple(transform_controller(source))
    if isinstance(source, (str, os.PathLike)):
        path = Path(source)
        if not path.is_absolute():
            path = Path(root_path or os.getcwd()) / path
        return tuple(transform_module(path))
    return tuple(_transform_classes(source, ""))
