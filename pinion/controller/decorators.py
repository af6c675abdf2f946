"""
Controller Decorators

Route, binding, middleware, validation and authorization decorators.
Attach metadata records without import-time side effects; the records are
read back by ``pinion.controller.metadata``.

Methods and classes carry records in ``__pinion_decorators__`` (application
order, i.e. bottom-most decorator first). Parameters and model fields carry
records through ``typing.Annotated``:

    class AnimalController:
        @route.post("/beast/:id")
        @use(AuditMiddleware())
        def save(self, id: int, data: Annotated[dict, bind.body()]):
            ...
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple, TypeVar, Union

from .._datastructures import ObjectPath, parse_path
from ..faults import InvalidDecoratorFault, Messages

T = TypeVar("T")

DECORATORS_ATTR = "__pinion_decorators__"


def attach(target: T, record: Any) -> T:
    """Append a record to a function or class without touching its bases."""
    records = list(vars(target).get(DECORATORS_ATTR, ()))
    records.append(record)
    setattr(target, DECORATORS_ATTR, records)
    return target


def get_records(target: Any) -> Tuple[Any, ...]:
    """Records attached directly to ``target`` (inherited ones excluded)."""
    try:
        return tuple(vars(target).get(DECORATORS_ATTR, ()))
    except TypeError:
        return ()


# ============================================================================
# Records
# ============================================================================

@dataclass(frozen=True)
class RouteDecorator:
    method: str
    url: Optional[str] = None


@dataclass(frozen=True)
class IgnoreDecorator:
    pass


@dataclass(frozen=True)
class RootDecorator:
    url: str


@dataclass(frozen=True)
class MiddlewareDecorator:
    value: Tuple[Any, ...]


class ValidatorId(str, Enum):
    """Internal validator markers."""
    OPTIONAL = "internal:optional"
    SKIP = "internal:skip"


@dataclass(frozen=True)
class ValidatorDecorator:
    validator: Union[str, Callable[..., Any], ValidatorId]

    @property
    def is_marker(self) -> bool:
        return isinstance(self.validator, ValidatorId)


class BindingSource(str, Enum):
    """Where a decorated parameter takes its value from."""
    CONTEXT = "context"
    REQUEST = "request"
    CUSTOM = "custom"
    FILE = "file"


@dataclass(frozen=True)
class BindingDecorator:
    """
    Parameter binding instruction.

    Attributes:
        source: Value source
        path: Parsed sub-path inside the source (empty for the whole source)
        process: Extraction function for ``CUSTOM`` bindings
        convert: Whether the resolved value is converted to the declared type
    """
    source: BindingSource
    path: ObjectPath = ()
    process: Optional[Callable[..., Any]] = None
    convert: bool = True

    @property
    def implied(self) -> Tuple[Any, ...]:
        if self.convert:
            return ()
        return (ValidatorDecorator(ValidatorId.SKIP),)


@dataclass(frozen=True)
class AuthDecorator:
    """
    Authorization metadata. Enforcement belongs to an authorization
    collaborator; Pinion only carries the records.
    """
    type: str
    value: Tuple[str, ...] = ()

    @property
    def implied(self) -> Tuple[Any, ...]:
        if self.type == "authorize:role":
            return (ValidatorDecorator(ValidatorId.OPTIONAL),)
        return ()

    def __call__(self, target: T) -> T:
        return attach(target, self)


# ============================================================================
# route
# ============================================================================

class RouteDecoratorFactory:
    """
    Route decorators.

    ``url`` omitted → lower-cased method name relative to the controller
    prefix, ``"/..."`` → absolute, ``""`` → the controller prefix itself,
    anything else → relative to the controller prefix:

        class AnimalController:
            @route.get()              # GET /animal/method
            def method(self, id: int): ...

            @route.get("/beast/:id")  # GET /beast/:id
            def other(self, id: int): ...
    """

    def _decorate(self, method: str, url: Optional[str]) -> Callable[[T], T]:
        record = RouteDecorator(method, url)

        def decorator(func: T) -> T:
            return attach(func, record)

        return decorator

    def get(self, url: Optional[str] = None):
        return self._decorate("GET", url)

    def post(self, url: Optional[str] = None):
        return self._decorate("POST", url)

    def put(self, url: Optional[str] = None):
        return self._decorate("PUT", url)

    def delete(self, url: Optional[str] = None):
        return self._decorate("DELETE", url)

    def patch(self, url: Optional[str] = None):
        return self._decorate("PATCH", url)

    def head(self, url: Optional[str] = None):
        return self._decorate("HEAD", url)

    def trace(self, url: Optional[str] = None):
        return self._decorate("TRACE", url)

    def options(self, url: Optional[str] = None):
        return self._decorate("OPTIONS", url)

    def root(self, url: str) -> Callable[[T], T]:
        """
        Override the controller prefix; may contain parameters:

            @route.root("/beast/:type/bunny")
            class AnimalController:
                @route.get(":id")     # GET /beast/:type/bunny/:id
                def get(self, type: str, id: int): ...
        """
        record = RootDecorator(url)
        return lambda cls: attach(cls, record)

    def ignore(self) -> Callable[[T], T]:
        """Exclude a method from route generation."""
        record = IgnoreDecorator()
        return lambda func: attach(func, record)


route = RouteDecoratorFactory()


# ============================================================================
# bind
# ============================================================================

def _join(*parts: Optional[str]) -> str:
    return ".".join(part for part in parts if part)


class BindingDecoratorFactory:
    """
    Parameter binding records, used as ``typing.Annotated`` metadata:

        def get(self, ip: Annotated[str, bind.ctx("request.headers.x-real-ip")]): ...
        def save(self, name: Annotated[str, bind.body("name")]): ...
        def first(self, id: Annotated[int, bind.body("items[0].id")]): ...
    """

    def ctx(self, part: Optional[str] = None) -> BindingDecorator:
        """Whole request context, or a dot path inside it."""
        return BindingDecorator(BindingSource.CONTEXT, parse_path(part), convert=False)

    def request(self, part: Optional[str] = None) -> BindingDecorator:
        """Whole request, or one of its attributes (``method``, ``path`` ...)."""
        return BindingDecorator(BindingSource.REQUEST, parse_path(part), convert=False)

    def body(self, part: Optional[str] = None) -> BindingDecorator:
        return BindingDecorator(BindingSource.REQUEST, parse_path(_join("body", part)))

    def header(self, key: Optional[str] = None) -> BindingDecorator:
        path = ("headers",) if not key else ("headers", key.lower())
        return BindingDecorator(BindingSource.REQUEST, path)

    def query(self, name: Optional[str] = None) -> BindingDecorator:
        path = ("query",) if not name else ("query", name.lower())
        return BindingDecorator(BindingSource.REQUEST, path)

    def user(self) -> BindingDecorator:
        """Current login user stored by an authentication collaborator."""
        return BindingDecorator(BindingSource.CONTEXT, ("state", "user"))

    def file(self) -> BindingDecorator:
        """File parser handle, requires ``Configuration.file_parser``."""
        return BindingDecorator(BindingSource.FILE, convert=False)

    def custom(self, process: Callable[..., Any]) -> BindingDecorator:
        """
        Bind the result of ``process(ctx)`` (sync or async):

            def body():
                return bind.custom(lambda ctx: ctx.request.body)
        """
        return BindingDecorator(BindingSource.CUSTOM, process=process)


bind = BindingDecoratorFactory()


# ============================================================================
# use / validate / authorize
# ============================================================================

def use(*middleware: Any) -> Callable[[T], T]:
    """
    Attach middleware to a controller class or an action.

    Accepts ``Middleware`` objects and plain ``async def fn(ctx, next)``
    handlers. Class middleware runs outside method middleware; within a level,
    declared order is outer-to-inner.
    """
    from ..middleware import from_handler

    adapted = tuple(
        mw if hasattr(mw, "execute") else from_handler(mw)
        for mw in middleware
    )
    record = MiddlewareDecorator(adapted)
    return lambda target: attach(target, record)


def validate(validator: Union[str, Callable[..., Any]]) -> ValidatorDecorator:
    """
    Validator record for ``typing.Annotated``. ``validator`` is a key of
    ``Configuration.validators`` or a function ``fn(value, ctx) -> message | None``.
    """
    return ValidatorDecorator(validator)


class AuthDecoratorFactory:
    """Authorization metadata for classes, actions and parameters."""

    def public(self) -> AuthDecorator:
        """Controller/action accessible without authentication."""
        return AuthDecorator("authorize:public")

    def role(self, *roles: str) -> AuthDecorator:
        """Controller/action/parameter restricted to ``roles``."""
        return AuthDecorator("authorize:role", tuple(roles))


authorize = AuthDecoratorFactory()


def check_parameter_record(record: Any, parameter: str) -> None:
    """Reject records that are not allowed on parameters."""
    if isinstance(record, AuthDecorator) and record.type == "authorize:public":
        raise InvalidDecoratorFault(Messages.PUBLIC_NOT_IN_PARAMETER, parameter=parameter)
