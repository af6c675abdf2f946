"""
Pinion Faults - Core types and fault taxonomy.

Defines:
- Fault base class (structured fault objects)
- FaultDomain (explicit fault domains)
- Severity levels
- Configuration faults raised at startup
- HTTP status faults raised while handling a request
- ValidationIssue (conversion / validation failure record)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Tuple


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines logging level and whether startup is aborted.
    """
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


# Standard Domains
FaultDomain.CONFIG = FaultDomain("config", "Configuration errors")
FaultDomain.ROUTING = FaultDomain("routing", "Route table and matching errors")
FaultDomain.BINDING = FaultDomain("binding", "Parameter conversion and validation errors")
FaultDomain.FLOW = FaultDomain("flow", "Action execution errors")
FaultDomain.SECURITY = FaultDomain("security", "Authorization errors")


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: Severity.FATAL,
    FaultDomain.ROUTING: Severity.ERROR,
    FaultDomain.BINDING: Severity.WARN,
    FaultDomain.FLOW: Severity.ERROR,
    FaultDomain.SECURITY: Severity.ERROR,
}


# ============================================================================
# Messages
# ============================================================================

class Messages:
    """Message templates, formatted with ``str.format``."""

    # User configuration errors (startup)
    ROUTE_MISSING_BACKING_PARAM = "Route parameters ({0}) don't have a matching action parameter"
    ACTION_WITHOUT_TYPE_INFO = "Parameter binding skipped because action parameters have no type annotation"
    DUPLICATE_ROUTE = "Duplicate route found in {0}"
    CONTROLLER_PATH_NOT_FOUND = "Controller file or directory {0} not found"
    MODEL_WITHOUT_TYPE_INFO = "Parameter binding skipped because {0} has no typed field"
    ARRAY_WITHOUT_TYPE_INFO = "Parameter binding skipped because array field without element type found in ({0})"
    PUBLIC_NOT_IN_PARAMETER = "authorize.public() can not be applied to a parameter"
    FILE_PARSER_MISSING = "No file parser found in configuration"
    VALIDATOR_NOT_FOUND = "Validator '{0}' is not registered in configuration"

    # End user errors
    UNABLE_TO_CONVERT = 'Unable to convert "{0}" into {1}'
    INVALID_JSON_BODY = "Request body is not valid JSON"


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    Attributes:
        code: Stable machine-readable identifier (e.g., "CONTROLLER_PATH_NOT_FOUND")
        message: Human-readable summary
        severity: Fault severity
        domain: Fault domain
        public: Whether safe to expose to client
        metadata: Additional context data
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        domain: FaultDomain,
        severity: Optional[Severity] = None,
        public: bool = False,
        metadata: Optional[dict] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.domain = domain
        self.severity = severity or DOMAIN_DEFAULTS.get(domain, Severity.ERROR)
        self.public = public
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value}, public={self.public})"
        )


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=severity,
            public=False,
            metadata=metadata,
        )


class ControllerPathNotFoundFault(ConfigFault):
    """Controller file or directory does not exist."""

    def __init__(self, path: str):
        super().__init__(
            code="CONTROLLER_PATH_NOT_FOUND",
            message=Messages.CONTROLLER_PATH_NOT_FOUND.format(path),
            metadata={"path": path},
        )


class InvalidDecoratorFault(ConfigFault):
    """Decorator applied where it is not supported."""

    def __init__(self, message: str, **metadata):
        super().__init__(code="INVALID_DECORATOR", message=message, metadata=metadata)


class FileParserMissingFault(ConfigFault):
    """A file binding was requested but no file parser is configured."""

    def __init__(self):
        super().__init__(
            code="FILE_PARSER_MISSING",
            message=Messages.FILE_PARSER_MISSING,
            severity=Severity.ERROR,
        )


class ValidatorNotFoundFault(ConfigFault):
    """A string-keyed validator is not registered."""

    def __init__(self, key: str):
        super().__init__(
            code="VALIDATOR_NOT_FOUND",
            message=Messages.VALIDATOR_NOT_FOUND.format(key),
            severity=Severity.ERROR,
            metadata={"key": key},
        )


# ============================================================================
# Request Faults (carry an HTTP status)
# ============================================================================

@dataclass(frozen=True)
class ValidationIssue:
    """
    A conversion or validation failure.

    ``path`` starts with the action parameter name followed by the field
    names (or array indices) traversed to reach the offending value.
    """
    path: Tuple[str, ...]
    messages: Tuple[str, ...]

    def describe(self) -> List[str]:
        location = "->".join(self.path)
        return [f"{message} in parameter {location}" for message in self.messages]

    def to_dict(self) -> dict:
        return {"path": list(self.path), "messages": list(self.messages)}


class HttpStatusFault(Fault):
    """
    Fault that maps onto an HTTP status.

    Raise it from middleware or actions (e.g. 401/403 from an authorization
    collaborator) to answer with ``status`` and ``body``.
    """

    def __init__(
        self,
        status: int,
        message: str = "",
        *,
        code: str = "HTTP_STATUS",
        body: Any = None,
        domain: FaultDomain = FaultDomain.FLOW,
        metadata: Optional[dict] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=domain,
            public=True,
            metadata=metadata,
        )
        self.status = status
        self.body = message if body is None else body


class ConversionFault(HttpStatusFault):
    """One or more parameter values could not be converted (400)."""

    def __init__(self, issues: Sequence[ValidationIssue]):
        self.issues = tuple(issues)
        lines = [line for issue in self.issues for line in issue.describe()]
        super().__init__(
            400,
            "\n".join(lines),
            code="CONVERSION_FAILED",
            domain=FaultDomain.BINDING,
        )


class ValidationFault(HttpStatusFault):
    """One or more converted values were rejected by a validator (422)."""

    def __init__(self, issues: Iterable[ValidationIssue]):
        self.issues = tuple(issues)
        super().__init__(
            422,
            "; ".join(line for issue in self.issues for line in issue.describe()),
            code="VALIDATION_FAILED",
            body=[issue.to_dict() for issue in self.issues],
            domain=FaultDomain.BINDING,
        )
