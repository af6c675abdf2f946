"""
Controller Metadata Reader

Read-only reflection over controller classes, their public methods, method
parameters and model properties. Descriptors are built once per class and
cached; route table, analyzer and binder only ever read them.
"""

from __future__ import annotations

import dataclasses
import hashlib
import importlib.util
import inspect
import sys
import types
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import (
    Annotated, Any, Callable, ClassVar, Dict, List, Mapping, Optional, Tuple, Union,
    get_args, get_origin, get_type_hints,
)

from .decorators import check_parameter_record, get_records


# ============================================================================
# Descriptors
# ============================================================================

@dataclass(frozen=True)
class ParameterDescriptor:
    """
    Action parameter or model property.

    Attributes:
        name: Parameter name
        type: Resolved type (``Annotated``/``Optional`` unwrapped), None when unannotated
        decorators: Records from ``Annotated`` metadata plus their implied markers
        default: Declared default, ``inspect.Parameter.empty`` when none
        kind: ``inspect.Parameter`` kind
    """
    name: str
    type: Any = None
    decorators: Tuple[Any, ...] = ()
    default: Any = inspect.Parameter.empty
    kind: Any = inspect.Parameter.POSITIONAL_OR_KEYWORD

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty


@dataclass(frozen=True)
class MethodDescriptor:
    name: str
    function: Callable[..., Any]
    parameters: Tuple[ParameterDescriptor, ...] = ()
    decorators: Tuple[Any, ...] = ()

    @property
    def is_coroutine(self) -> bool:
        return inspect.iscoroutinefunction(self.function)


@dataclass(frozen=True)
class ClassDescriptor:
    """
    Reflected class.

    ``properties`` are the typed constructor parameters, or the annotated
    class attributes when the class has no constructor of its own.
    """
    name: str
    type: type
    methods: Tuple[MethodDescriptor, ...] = ()
    decorators: Tuple[Any, ...] = ()
    properties: Tuple[ParameterDescriptor, ...] = ()

    def method(self, name: str) -> Optional[MethodDescriptor]:
        for method in self.methods:
            if method.name == name:
                return method
        return None


# ============================================================================
# Type helpers
# ============================================================================

PRIMITIVE_TYPES = (str, int, float, bool, Decimal, date, datetime, bytes, object)
ARRAY_TYPES = (list, tuple, set, frozenset)

_UNION_TYPES = (Union, types.UnionType)
_NON_MODEL_BASES = (Mapping, Enum, str, int, float, Decimal, date, bytes) + ARRAY_TYPES


def unwrap_type(annotation: Any) -> Tuple[Any, Tuple[Any, ...]]:
    """
    Strip ``Annotated`` and ``Optional`` layers.

    Returns the bare type and the collected ``Annotated`` metadata.
    """
    metadata: List[Any] = []
    while True:
        origin = get_origin(annotation)
        if origin is Annotated:
            metadata.extend(annotation.__metadata__)
            annotation = get_args(annotation)[0]
        elif origin in _UNION_TYPES:
            args = [arg for arg in get_args(annotation) if arg is not type(None)]
            if len(args) != 1:
                break
            annotation = args[0]
        else:
            break
    return annotation, tuple(metadata)


def is_array_type(annotation: Any) -> bool:
    return annotation in ARRAY_TYPES or get_origin(annotation) in ARRAY_TYPES


def element_type(annotation: Any) -> Any:
    """Element type of ``list[T]``/``set[T]``/``tuple[T, ...]``; None when undeclared."""
    args = [arg for arg in get_args(annotation) if arg is not Ellipsis]
    if not args:
        return None
    element, _ = unwrap_type(args[0])
    return element


def is_model(annotation: Any) -> bool:
    """A user class converted field by field."""
    if annotation is Any:
        return False
    if get_origin(annotation) is not None or not inspect.isclass(annotation):
        return False
    if annotation in PRIMITIVE_TYPES:
        return False
    return not issubclass(annotation, _NON_MODEL_BASES)


def type_name(annotation: Any) -> str:
    if annotation is None:
        return "Any"
    if is_array_type(annotation):
        element = element_type(annotation)
        return f"[{type_name(element)}]" if element is not None else "Array"
    return getattr(annotation, "__name__", repr(annotation))


_RESOLVE_ERRORS = (NameError, TypeError, AttributeError, SyntaxError)


def _annotation_scopes(obj: Any):
    """Yield ``(owner, globals, locals)`` for every object contributing annotations."""
    if inspect.isclass(obj):
        for base in reversed(obj.__mro__[:-1]):
            module = sys.modules.get(base.__module__)
            yield base, getattr(module, "__dict__", {}), dict(vars(base))
    else:
        func = inspect.unwrap(obj)
        yield func, getattr(func, "__globals__", {}), None


def _type_hints(obj: Any) -> Dict[str, Any]:
    try:
        return get_type_hints(obj, include_extras=True)
    except _RESOLVE_ERRORS:
        pass

    # Resolve one annotation at a time; an unresolvable one degrades to "no type"
    # and is kept as an empty annotation so its position survives
    hints: Dict[str, Any] = {}
    for owner, globalns, localns in _annotation_scopes(obj):
        try:
            annotations = inspect.get_annotations(owner)
        except _RESOLVE_ERRORS:
            continue
        for name, annotation in annotations.items():
            try:
                hints[name] = eval(annotation, globalns, localns) if isinstance(annotation, str) else annotation
            except _RESOLVE_ERRORS:
                hints[name] = inspect.Parameter.empty
    return hints


def _parameter(name: str, annotation: Any, default: Any, kind: Any) -> ParameterDescriptor:
    if annotation is inspect.Parameter.empty:
        return ParameterDescriptor(name=name, default=default, kind=kind)

    bare, metadata = unwrap_type(annotation)
    decorators: List[Any] = []
    for record in metadata:
        check_parameter_record(record, name)
        decorators.append(record)
        decorators.extend(getattr(record, "implied", ()))
    return ParameterDescriptor(
        name=name,
        type=bare,
        decorators=tuple(decorators),
        default=default,
        kind=kind,
    )


def _signature_parameters(func: Callable[..., Any], skip_first: bool) -> Tuple[ParameterDescriptor, ...]:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return ()
    hints = _type_hints(func)
    params = list(signature.parameters.values())
    if skip_first and params:
        params = params[1:]
    return tuple(
        _parameter(p.name, hints.get(p.name, inspect.Parameter.empty), p.default, p.kind)
        for p in params
        if p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    )


def _has_own_init(cls: type) -> bool:
    for klass in cls.__mro__[:-1]:
        if "__init__" in vars(klass):
            return True
    return False


def _properties(cls: type) -> Tuple[ParameterDescriptor, ...]:
    if dataclasses.is_dataclass(cls):
        hints = _type_hints(cls)
        return tuple(
            _parameter(
                f.name,
                hints.get(f.name, inspect.Parameter.empty),
                f.default if f.default is not dataclasses.MISSING else inspect.Parameter.empty,
                inspect.Parameter.POSITIONAL_OR_KEYWORD,
            )
            for f in dataclasses.fields(cls)
            if f.init
        )
    if _has_own_init(cls):
        return _signature_parameters(cls.__init__, skip_first=True)

    hints = _type_hints(cls)
    result = []
    for name, annotation in hints.items():
        if name.startswith("_") or get_origin(annotation) is ClassVar:
            continue
        result.append(_parameter(
            name,
            annotation,
            getattr(cls, name, inspect.Parameter.empty),
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ))
    return tuple(result)


def _public_functions(cls: type) -> Dict[str, Callable[..., Any]]:
    functions: Dict[str, Callable[..., Any]] = {}
    for klass in reversed(cls.__mro__[:-1]):
        for name, value in vars(klass).items():
            if name.startswith("_"):
                continue
            if inspect.isfunction(value):
                functions[name] = value
            elif name in functions:
                del functions[name]
    return functions


# ============================================================================
# Reflection
# ============================================================================

@lru_cache(maxsize=None)
def reflect(cls: type) -> ClassDescriptor:
    """
    Reflect a class.

    Methods are collected base-first in declaration order; an override keeps
    the position of the method it replaces.
    """
    methods = tuple(
        MethodDescriptor(
            name=name,
            function=func,
            parameters=_signature_parameters(func, skip_first=True),
            decorators=get_records(func),
        )
        for name, func in _public_functions(cls).items()
    )
    return ClassDescriptor(
        name=cls.__name__,
        type=cls,
        methods=methods,
        decorators=get_records(cls),
        properties=_properties(cls),
    )


def _module_name(path: Path) -> str:
    digest = hashlib.md5(str(path).encode("utf-8")).hexdigest()[:12]
    stem = "".join(ch if ch.isalnum() else "_" for ch in path.stem)
    return f"_pinion_controller_{digest}_{stem}"


def reflect_module(path: Union[str, Path]) -> List[type]:
    """
    Import a Python file and return the classes defined in it, in
    definition order. Each file is imported once per process.
    """
    path = Path(path).resolve()
    name = _module_name(path)
    module = sys.modules.get(name)
    if module is None:
        spec = importlib.util.spec_from_file_location(name, path)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot import controller file {path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            del sys.modules[name]
            raise
    return [
        obj for obj in vars(module).values()
        if inspect.isclass(obj) and obj.__module__ == module.__name__
    ]
