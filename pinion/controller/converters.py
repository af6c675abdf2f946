"""
Value converters.

Turns raw request values (strings, JSON values, form fields) into the types
declared on action parameters and model properties. Conversion never raises
for bad input: every failure is recorded as a ``ValidationIssue`` carrying
the path of the offending value, and the caller decides what to do with the
collected issues.
"""

from __future__ import annotations

import inspect
import logging
import math
import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .._datastructures import MISSING
from ..faults import Messages, ValidationIssue
from .metadata import element_type, is_array_type, is_model, reflect, type_name

logger = logging.getLogger("pinion.binder")

ConverterFunction = Callable[[Any, Any], Any]

Path = Tuple[str, ...]


# ============================================================================
# Built-in converters
# ============================================================================

TRUE_VALUES = frozenset({"on", "true", "1", "yes"})
FALSE_VALUES = frozenset({"off", "false", "0", "no"})

_INTEGER = re.compile(r"^[+-]?\d+$")
_DECIMAL = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_DATE = re.compile(
    r"^(\d{4})-(\d{1,2})-(\d{1,2})"
    r"(?:[T ](\d{1,2}):(\d{2})(?::(\d{2})(?:\.(\d{1,6})\d*)?)?)?"
    r"\s*(Z|[+-]\d{2}:?\d{2})?$"
)


def boolean_converter(value: Any, type_: Any = bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
    raise ValueError(f"Not a boolean: {value!r}")


def integer_converter(value: Any, type_: Any = int) -> int:
    if isinstance(value, bool):
        raise ValueError("Booleans are not numbers")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INTEGER.match(value.strip()):
        return int(value.strip())
    raise ValueError(f"Not an integer: {value!r}")


def float_converter(value: Any, type_: Any = float) -> float:
    if isinstance(value, bool):
        raise ValueError("Booleans are not numbers")
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str) and _DECIMAL.match(value.strip()):
        result = float(value.strip())
    else:
        raise ValueError(f"Not a number: {value!r}")
    if not math.isfinite(result):
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def decimal_converter(value: Any, type_: Any = Decimal) -> Decimal:
    if isinstance(value, bool):
        raise ValueError("Booleans are not numbers")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str) and _DECIMAL.match(value.strip()):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(str(exc))
    else:
        raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def parse_datetime(text: str) -> datetime:
    """
    Parse ISO-like dates: ``2018-12-22``, ``2018-1-1``,
    ``2018-12-22T10:00:00Z``, ``2018-12-22 10:00:00.123+07:00``.
    """
    match = _DATE.match(text.strip())
    if not match:
        raise ValueError(f"Not a date: {text!r}")
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    tzinfo = None
    if zone == "Z":
        tzinfo = timezone.utc
    elif zone:
        sign = -1 if zone[0] == "-" else 1
        digits = zone[1:].replace(":", "")
        offset = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
        tzinfo = timezone(sign * offset)
    return datetime(
        int(year), int(month), int(day),
        int(hour or 0), int(minute or 0), int(second or 0),
        int((fraction or "0").ljust(6, "0")),
        tzinfo=tzinfo,
    )


def datetime_converter(value: Any, type_: Any = datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return parse_datetime(value)
    raise ValueError(f"Not a date: {value!r}")


def date_converter(value: Any, type_: Any = date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_datetime(value).date()
    raise ValueError(f"Not a date: {value!r}")


def string_converter(value: Any, type_: Any = str) -> Any:
    return value


def enum_converter(value: Any, type_: Any) -> Enum:
    if isinstance(value, type_):
        return value
    try:
        return type_(value)
    except ValueError:
        if isinstance(value, str) and value in type_.__members__:
            return type_[value]
        raise


DEFAULT_CONVERTERS: Dict[Any, ConverterFunction] = {
    bool: boolean_converter,
    int: integer_converter,
    float: float_converter,
    Decimal: decimal_converter,
    datetime: datetime_converter,
    date: date_converter,
    str: string_converter,
}

DISPLAY_NAMES: Dict[Any, str] = {
    bool: "Boolean",
    int: "Number",
    float: "Number",
    Decimal: "Number",
    datetime: "Date",
    date: "Date",
}


def display_name(type_: Any) -> str:
    return DISPLAY_NAMES.get(type_) or type_name(type_)


# ============================================================================
# Converter
# ============================================================================

class Converter:
    """
    Recursive value converter.

    Custom converters take precedence over the built-ins for their type:

        converter = Converter({Point: lambda value, type_: Point(*value.split(","))})
        issues = []
        point = await converter.convert("1,2", ("origin",), Point, issues)
    """

    def __init__(self, converters: Optional[Mapping[Any, ConverterFunction]] = None):
        self.converters: Dict[Any, ConverterFunction] = dict(DEFAULT_CONVERTERS)
        self.converters.update(converters or {})

    def _fail(self, value: Any, path: Path, type_: Any, issues: List[ValidationIssue]) -> None:
        message = Messages.UNABLE_TO_CONVERT.format(value, display_name(type_))
        logger.debug("%s at %s", message, "->".join(path))
        issues.append(ValidationIssue(path, (message,)))

    async def convert(
        self,
        value: Any,
        path: Path,
        type_: Any,
        issues: List[ValidationIssue],
    ) -> Any:
        """
        Convert ``value`` into ``type_``.

        ``None`` and absent values pass through unchanged. On failure an
        issue is appended and None returned.
        """
        if value is MISSING:
            return None
        if value is None or type_ is None:
            return value

        function = self.converters.get(type_)
        if function is None and inspect.isclass(type_) and issubclass(type_, Enum):
            function = enum_converter
        if function is not None:
            try:
                result = function(value, type_)
                if inspect.isawaitable(result):
                    result = await result
                return result
            except (ValueError, TypeError, ArithmeticError):
                self._fail(value, path, type_, issues)
                return None

        if is_array_type(type_):
            return await self._convert_array(value, path, type_, issues)
        if is_model(type_):
            return await self._convert_model(value, path, type_, issues)
        return value

    async def _convert_array(
        self,
        value: Any,
        path: Path,
        type_: Any,
        issues: List[ValidationIssue],
    ) -> Any:
        items = list(value) if isinstance(value, (list, tuple, set, frozenset)) else [value]
        element = element_type(type_)
        if element is not None:
            items = [
                await self.convert(item, path + (str(index),), element, issues)
                for index, item in enumerate(items)
            ]
        container = getattr(type_, "__origin__", type_)
        if container in (set, frozenset):
            return container(items)
        if container is tuple:
            return tuple(items)
        return items

    async def _convert_model(
        self,
        value: Any,
        path: Path,
        type_: type,
        issues: List[ValidationIssue],
    ) -> Any:
        if isinstance(value, type_):
            return value
        if not isinstance(value, Mapping):
            self._fail(value, path, type_, issues)
            return None

        instance = type_.__new__(type_)
        for prop in reflect(type_).properties:
            if prop.name not in value:
                continue
            converted = await self.convert(value[prop.name], path + (prop.name,), prop.type, issues)
            object.__setattr__(instance, prop.name, converted)
        return instance
