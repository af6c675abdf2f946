"""
Pinion - Controller-based HTTP routing and request dispatch.

Decorated controller classes become an immutable route table; each request
is matched, its parameters bound and converted to the declared types, and
the action runs inside an onion middleware chain.
"""

__version__ = "0.1.0"

from .config import Configuration, DefaultDependencyResolver, load_configuration
from .faults import (
    ConfigFault,
    ControllerPathNotFoundFault,
    ConversionFault,
    Fault,
    FaultDomain,
    HttpStatusFault,
    Severity,
    ValidationFault,
    ValidationIssue,
)
from .request import Request, RequestContext
from .response import ActionResult
from .middleware import Invocation, LoggingMiddleware, Middleware, from_handler, pipe
from ._uploads import FileParser, FileUploadInfo
from .controller import (
    authorize,
    bind,
    route,
    use,
    validate,
    ValidatorId,
)
from .application import Pinion

__all__ = [
    "__version__",
    "Pinion",
    "Configuration",
    "DefaultDependencyResolver",
    "load_configuration",
    "Request",
    "RequestContext",
    "ActionResult",
    "Invocation",
    "Middleware",
    "LoggingMiddleware",
    "from_handler",
    "pipe",
    "route",
    "bind",
    "use",
    "validate",
    "authorize",
    "ValidatorId",
    "FileParser",
    "FileUploadInfo",
    "Fault",
    "FaultDomain",
    "Severity",
    "ConfigFault",
    "ControllerPathNotFoundFault",
    "HttpStatusFault",
    "ConversionFault",
    "ValidationFault",
    "ValidationIssue",
]
