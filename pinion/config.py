"""
Config system - Immutable process-wide configuration.

A ``Configuration`` is built once at startup and shared read-only by the
router, binder and engine across all concurrent requests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from types import MappingProxyType
from typing import (
    Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol,
    Sequence, Type, Union, TYPE_CHECKING,
)

if TYPE_CHECKING:
    from ._uploads import FileParser
    from .controller.metadata import ParameterDescriptor
    from .faults import ValidationIssue
    from .request import RequestContext


HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "TRACE", "OPTIONS")

ControllerSource = Union[str, Path, type, Sequence[type]]
ConverterFunction = Callable[[Any, Any], Any]
ValidatorFunction = Callable[[Any, "RequestContext"], Union[Optional[str], Awaitable[Optional[str]]]]
ValidatorHook = Callable[
    [Any, "ParameterDescriptor", "RequestContext", Mapping[str, ValidatorFunction]],
    Awaitable[List["ValidationIssue"]],
]


class DependencyResolver(Protocol):
    """Resolves controller instances; may return an awaitable."""

    def resolve(self, cls: Type) -> Any:
        ...


class DefaultDependencyResolver:
    """Instantiates controllers with no arguments."""

    def resolve(self, cls: Type) -> Any:
        return cls()


class ConfigError(Exception):
    """Raised when configuration values are invalid."""
    pass


@dataclass(frozen=True)
class Configuration:
    """
    Pinion configuration.

    Attributes:
        mode: "debug" prints the route analysis at startup, "production" does not
        controller: Controller path (absolute or relative to root_path) or classes
        root_path: Base directory for a relative controller path
        dependency_resolver: Creates controller instances
        response_status: Default response status per verb, e.g. {"POST": 201}
        converters: Custom converters keyed by target type, ``fn(value, type)``
        validator: Custom validation hook replacing the default validator
        validators: String-keyed validator store used by ``validate("key")``
        file_parser: Multipart file parser factory, ``fn(ctx) -> FileParser``
        route_cache_size: Maximum number of cached match results
    """
    mode: str = "debug"
    controller: ControllerSource = "./controller"
    root_path: str = field(default_factory=os.getcwd)
    dependency_resolver: DependencyResolver = field(default_factory=DefaultDependencyResolver)
    response_status: Mapping[str, int] = field(default_factory=dict)
    converters: Mapping[Any, ConverterFunction] = field(default_factory=dict)
    validator: Optional[ValidatorHook] = None
    validators: Mapping[str, ValidatorFunction] = field(default_factory=dict)
    file_parser: Optional[Callable[["RequestContext"], "FileParser"]] = None
    route_cache_size: int = 1024

    def __post_init__(self):
        if self.mode not in ("debug", "production"):
            raise ConfigError(f"Invalid mode '{self.mode}', expected 'debug' or 'production'")
        if self.route_cache_size < 0:
            raise ConfigError("route_cache_size must not be negative")
        status = {key.upper(): value for key, value in dict(self.response_status).items()}
        unknown = set(status) - set(HTTP_METHODS)
        if unknown:
            raise ConfigError(f"Unknown HTTP method in response_status: {', '.join(sorted(unknown))}")
        object.__setattr__(self, "response_status", MappingProxyType(status))
        object.__setattr__(self, "converters", MappingProxyType(dict(self.converters)))
        object.__setattr__(self, "validators", MappingProxyType(dict(self.validators)))

    def status_for(self, method: str) -> int:
        """Configured default status for a verb (200 when not configured)."""
        return self.response_status.get(method.upper(), 200)

    def replace(self, **changes: Any) -> "Configuration":
        """Return a new configuration with ``changes`` applied."""
        valid = {f.name for f in fields(self)}
        unknown = set(changes) - valid
        if unknown:
            raise ConfigError(f"Unknown configuration option(s): {', '.join(sorted(unknown))}")
        return replace(self, **changes)


def load_configuration(
    env_prefix: str = "PINION_",
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> Configuration:
    """
    Load configuration with precedence: defaults < environment < overrides.

    Recognized variables (with the default prefix): ``PINION_MODE``,
    ``PINION_CONTROLLER``, ``PINION_ROOT_PATH``, ``PINION_ROUTE_CACHE_SIZE``.
    """
    environ = os.environ if environ is None else environ
    options: Dict[str, Any] = {}

    for name in ("mode", "controller", "root_path"):
        value = environ.get(f"{env_prefix}{name.upper()}")
        if value:
            options[name] = value

    cache_size = environ.get(f"{env_prefix}ROUTE_CACHE_SIZE")
    if cache_size:
        try:
            options["route_cache_size"] = int(cache_size)
        except ValueError:
            raise ConfigError(f"{env_prefix}ROUTE_CACHE_SIZE must be an integer, got '{cache_size}'")

    options.update(overrides)
    return Configuration().replace(**options)
