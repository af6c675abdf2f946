"""
Parameter Binder

Resolves action parameter values from the request context. Each parameter
is bound by the first applicable strategy:

1. DECORATOR - a ``bind.*`` record in the parameter's ``Annotated`` metadata
2. MODEL     - the declared type is a model (or an array of models): request body
3. REGULAR   - ``request.query[name.lower()]`` (path params are merged there)

All conversion issues of all parameters are collected before failing with a
``ConversionFault`` (400). Converted values are then validated; any issue
fails with a ``ValidationFault`` (422).
"""

from __future__ import annotations

import inspect
import logging
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple, TYPE_CHECKING

from .._datastructures import MISSING, get_child_value
from ..faults import (
    ConversionFault,
    FileParserMissingFault,
    ValidationFault,
    ValidationIssue,
    ValidatorNotFoundFault,
)
from .converters import Converter
from .decorators import (
    BindingDecorator,
    BindingSource,
    ValidatorDecorator,
    ValidatorId,
)
from .metadata import (
    MethodDescriptor,
    ParameterDescriptor,
    element_type,
    is_array_type,
    is_model,
    reflect,
)

if TYPE_CHECKING:
    from ..config import Configuration, ValidatorFunction
    from ..request import RequestContext

logger = logging.getLogger("pinion.binder")


class BindingStrategy(str, Enum):
    DECORATOR = "decorator"
    MODEL = "model"
    REGULAR = "regular"


def get_binding(parameter: ParameterDescriptor) -> Optional[BindingDecorator]:
    for record in parameter.decorators:
        if isinstance(record, BindingDecorator):
            return record
    return None


def has_marker(parameter: ParameterDescriptor, marker: ValidatorId) -> bool:
    return any(
        isinstance(record, ValidatorDecorator) and record.validator is marker
        for record in parameter.decorators
    )


def is_model_binding(type_: Any) -> bool:
    if is_array_type(type_):
        return is_model(element_type(type_))
    return is_model(type_)


def strategy_for(parameter: ParameterDescriptor) -> BindingStrategy:
    if get_binding(parameter) is not None:
        return BindingStrategy.DECORATOR
    if is_model_binding(parameter.type):
        return BindingStrategy.MODEL
    return BindingStrategy.REGULAR


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


# ============================================================================
# Validation
# ============================================================================

def _resolve_validator(
    validator: Any,
    store: Mapping[str, "ValidatorFunction"],
) -> "ValidatorFunction":
    if isinstance(validator, str):
        try:
            return store[validator]
        except KeyError:
            raise ValidatorNotFoundFault(validator)
    return validator


async def validate_value(
    value: Any,
    path: Tuple[str, ...],
    descriptor: ParameterDescriptor,
    ctx: "RequestContext",
    store: Mapping[str, "ValidatorFunction"],
) -> List[ValidationIssue]:
    """
    Default validator: run the declared validators, then recurse into model
    properties (and arrays of models) with extended paths.
    """
    if has_marker(descriptor, ValidatorId.SKIP):
        return []
    if value is None and has_marker(descriptor, ValidatorId.OPTIONAL):
        return []

    issues: List[ValidationIssue] = []
    messages = []
    for record in descriptor.decorators:
        if not isinstance(record, ValidatorDecorator) or record.is_marker:
            continue
        validator = _resolve_validator(record.validator, store)
        message = await _maybe_await(validator(value, ctx))
        if message:
            messages.append(message)
    if messages:
        issues.append(ValidationIssue(path, tuple(messages)))

    if value is None:
        return issues
    if is_array_type(descriptor.type) and is_model(element_type(descriptor.type)):
        element = element_type(descriptor.type)
        for index, item in enumerate(value):
            if isinstance(item, element):
                issues.extend(await _validate_model(item, path + (str(index),), ctx, store))
    elif is_model(descriptor.type) and isinstance(value, descriptor.type):
        issues.extend(await _validate_model(value, path, ctx, store))
    return issues


async def _validate_model(
    instance: Any,
    path: Tuple[str, ...],
    ctx: "RequestContext",
    store: Mapping[str, "ValidatorFunction"],
) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    for prop in reflect(type(instance)).properties:
        value = getattr(instance, prop.name, None)
        issues.extend(await validate_value(value, path + (prop.name,), prop, ctx, store))
    return issues


# ============================================================================
# Binder
# ============================================================================

class ParameterBinder:
    """
    Binds action parameters for one configuration.

    Stateless across requests; safe to share between concurrent requests.
    """

    def __init__(self, config: "Configuration"):
        self.config = config
        self.converter = Converter(config.converters)

    async def resolve(self, binding: BindingDecorator, ctx: "RequestContext") -> Any:
        """Raw value of a decorator binding (``MISSING`` when absent)."""
        source = binding.source
        if source is BindingSource.CONTEXT:
            return get_child_value(ctx, binding.path) if binding.path else ctx
        if source is BindingSource.REQUEST:
            return get_child_value(ctx.request, binding.path) if binding.path else ctx.request
        if source is BindingSource.CUSTOM:
            return await _maybe_await(binding.process(ctx))
        if source is BindingSource.FILE:
            if self.config.file_parser is None:
                raise FileParserMissingFault()
            return self.config.file_parser(ctx)
        raise ValueError(f"Unknown binding source: {source}")

    async def bind_parameter(
        self,
        ctx: "RequestContext",
        action: MethodDescriptor,
        parameter: ParameterDescriptor,
        issues: List[ValidationIssue],
    ) -> Any:
        path = (parameter.name,)
        strategy = strategy_for(parameter)

        if strategy is BindingStrategy.DECORATOR:
            binding = get_binding(parameter)
            logger.debug(
                "[Decorator Binder] Action: %s Parameter: %s Source: %s Path: %s",
                action.name, parameter.name, binding.source.value, binding.path,
            )
            raw = await self.resolve(binding, ctx)
            if binding.convert:
                value = await self.converter.convert(raw, path, parameter.type, issues)
            else:
                value = None if raw is MISSING else raw
        elif strategy is BindingStrategy.MODEL:
            logger.debug(
                "[Model Binder] Action: %s Parameter: %s Type: %s",
                action.name, parameter.name, parameter.type,
            )
            value = await self.converter.convert(ctx.request.body, path, parameter.type, issues)
        else:
            raw = ctx.request.query.get(parameter.name.lower(), MISSING)
            logger.debug(
                "[Regular Binder] Action: %s Parameter: %s Value: %r",
                action.name, parameter.name, raw,
            )
            value = await self.converter.convert(raw, path, parameter.type, issues)

        if value is None and parameter.has_default:
            return parameter.default
        return value

    async def validate(
        self,
        ctx: "RequestContext",
        action: MethodDescriptor,
        values: List[Any],
    ) -> None:
        issues: List[ValidationIssue] = []
        hook = self.config.validator
        store = self.config.validators
        for parameter, value in zip(action.parameters, values):
            if has_marker(parameter, ValidatorId.SKIP):
                continue
            if value is None and has_marker(parameter, ValidatorId.OPTIONAL):
                continue
            if hook is not None:
                issues.extend(await _maybe_await(hook(value, parameter, ctx, store)) or [])
            else:
                issues.extend(await validate_value(value, (parameter.name,), parameter, ctx, store))
        if issues:
            raise ValidationFault(issues)

    async def bind(self, ctx: "RequestContext", action: MethodDescriptor) -> List[Any]:
        """
        Bind, convert and validate all parameters of ``action``.

        Raises:
            ConversionFault: one or more values could not be converted
            ValidationFault: one or more converted values were rejected
        """
        issues: List[ValidationIssue] = []
        values = [
            await self.bind_parameter(ctx, action, parameter, issues)
            for parameter in action.parameters
        ]
        if issues:
            raise ConversionFault(issues)
        await self.validate(ctx, action, values)
        return values
