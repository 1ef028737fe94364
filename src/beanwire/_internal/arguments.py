from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Callable
from inspect import Parameter
from typing import TYPE_CHECKING, Any, Protocol, get_type_hints

from beanwire.exceptions import BeanWireInvalidBeanError
from beanwire.markers import Option
from beanwire.properties import MISSING

if TYPE_CHECKING:
    from beanwire.conditions import Condition

logger = logging.getLogger(__name__)

_POSITIONAL_KINDS = (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD)
_VARIADIC_KINDS = (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD)


class ArgumentResolver(Protocol):
    """Turn registration arguments and bare parameters into call values."""

    def resolve_argument(self, argument: Any, annotation: Any) -> Any: ...

    def autowire_parameter(self, annotation: Any, *, has_default: bool) -> Any: ...

    def matches(self, condition: Condition) -> bool: ...


class ArgumentList:
    """Bind registration arguments to the parameters of a callable.

    Positional arguments fill positional parameters in order; surplus
    positional arguments and ``Option`` groups go to ``*args``. Keyword
    arguments bind by name, falling back to ``**kwargs``. Every other
    parameter is autowired from its annotation when the call is prepared, or
    keeps its default when nothing matches.

    The binding is validated when the list is created so signature mistakes
    surface at registration time.
    """

    def __init__(
        self,
        fn: Callable[..., Any],
        args: tuple[Any, ...] = (),
        kwargs: dict[str, Any] | None = None,
        *,
        skip_first: bool = False,
    ) -> None:
        self.fn = fn
        self.name = callable_name(fn)
        try:
            signature = inspect.signature(fn)
        except (TypeError, ValueError) as error:
            msg = f"Cannot inspect the signature of {self.name}: {error}"
            raise BeanWireInvalidBeanError(msg) from error

        parameters = list(signature.parameters.values())
        if skip_first:
            if not parameters or parameters[0].kind not in _POSITIONAL_KINDS:
                msg = f"{self.name} must take its parent bean as first positional parameter."
                raise BeanWireInvalidBeanError(msg)
            parameters = parameters[1:]

        hints, hint_error = resolved_type_hints(fn)
        self._parameters = tuple(parameters)
        self._annotations = {
            parameter.name: _parameter_annotation(parameter, hints) for parameter in parameters
        }
        self._explicit: dict[str, Any] = {}
        self._extra_args: list[Any] = []
        self._extra_kwargs: dict[str, Any] = {}
        self._options: list[tuple[Option, ArgumentList]] = []

        self._bind_positional(args)
        self._bind_keywords(kwargs or {})
        self._check_inferable(hint_error)

    @property
    def parameters(self) -> tuple[Parameter, ...]:
        return self._parameters

    def bind(self, resolver: ArgumentResolver, *leading: Any) -> tuple[list[Any], dict[str, Any]]:
        """Resolve every parameter and return call arguments.

        Args:
            resolver: Source of beans and property values.
            *leading: Values placed before all bound arguments, such as the
                parent bean of a method bean.

        """
        call_args: list[Any] = list(leading)
        call_kwargs: dict[str, Any] = {}
        for parameter in self._parameters:
            annotation = self._annotations[parameter.name]
            if parameter.kind is Parameter.VAR_POSITIONAL:
                call_args.extend(
                    resolver.resolve_argument(argument, annotation) for argument in self._extra_args
                )
                call_args.extend(self._option_values(resolver))
                continue
            if parameter.kind is Parameter.VAR_KEYWORD:
                for key, argument in self._extra_kwargs.items():
                    call_kwargs[key] = resolver.resolve_argument(argument, annotation)
                continue

            value = self._parameter_value(resolver, parameter, annotation)
            if parameter.kind is Parameter.KEYWORD_ONLY:
                if value is not MISSING:
                    call_kwargs[parameter.name] = value
            else:
                call_args.append(parameter.default if value is MISSING else value)
        return call_args, call_kwargs

    def call(self, resolver: ArgumentResolver, *leading: Any) -> Any:
        call_args, call_kwargs = self.bind(resolver, *leading)
        return self.fn(*call_args, **call_kwargs)

    def _parameter_value(
        self,
        resolver: ArgumentResolver,
        parameter: Parameter,
        annotation: Any,
    ) -> Any:
        if parameter.name in self._explicit:
            return resolver.resolve_argument(self._explicit[parameter.name], annotation)
        if annotation is MISSING:
            return MISSING
        has_default = parameter.default is not Parameter.empty
        value = resolver.autowire_parameter(annotation, has_default=has_default)
        if has_default and (value is None or value is MISSING):
            return MISSING
        return value

    def _option_values(self, resolver: ArgumentResolver) -> list[Any]:
        values: list[Any] = []
        for option, arguments in self._options:
            if option.condition is not None and not resolver.matches(option.condition):
                logger.debug("Skipping option %r of %s: condition not met", option, self.name)
                continue
            values.append(arguments.call(resolver))
        return values

    def _bind_positional(self, args: tuple[Any, ...]) -> None:
        positional = [
            parameter for parameter in self._parameters if parameter.kind in _POSITIONAL_KINDS
        ]
        has_var_positional = any(
            parameter.kind is Parameter.VAR_POSITIONAL for parameter in self._parameters
        )
        plain: list[Any] = []
        for argument in args:
            if isinstance(argument, Option):
                option_arguments = ArgumentList(argument.fn, argument.args, argument.kwargs)
                self._options.append((argument, option_arguments))
            else:
                plain.append(argument)

        if self._options and not has_var_positional:
            msg = f"{self.name} must accept *args to receive option arguments."
            raise BeanWireInvalidBeanError(msg)
        if len(plain) > len(positional) and not has_var_positional:
            msg = (
                f"{self.name} takes {len(positional)} positional arguments "
                f"but {len(plain)} were registered."
            )
            raise BeanWireInvalidBeanError(msg)

        for parameter, argument in zip(positional, plain):
            self._explicit[parameter.name] = argument
        self._extra_args = plain[len(positional) :]

    def _bind_keywords(self, kwargs: dict[str, Any]) -> None:
        by_name = {parameter.name: parameter for parameter in self._parameters}
        has_var_keyword = any(
            parameter.kind is Parameter.VAR_KEYWORD for parameter in self._parameters
        )
        for key, argument in kwargs.items():
            if key in self._explicit:
                msg = f"{self.name} got multiple registered values for parameter {key!r}."
                raise BeanWireInvalidBeanError(msg)
            parameter = by_name.get(key)
            if parameter is not None and parameter.kind not in (
                Parameter.POSITIONAL_ONLY,
                *_VARIADIC_KINDS,
            ):
                self._explicit[key] = argument
            elif has_var_keyword:
                self._extra_kwargs[key] = argument
            else:
                msg = f"{self.name} has no parameter named {key!r}."
                raise BeanWireInvalidBeanError(msg)

    def _check_inferable(self, hint_error: Exception | None) -> None:
        for parameter in self._parameters:
            if parameter.kind in _VARIADIC_KINDS or parameter.name in self._explicit:
                continue
            if parameter.default is not Parameter.empty:
                continue
            if self._annotations[parameter.name] is not MISSING:
                continue
            error_message = (
                f"Unable to infer a value for required parameter {parameter.name!r} of "
                f"{self.name}. Add a type annotation or register an explicit argument."
            )
            if hint_error is None:
                raise BeanWireInvalidBeanError(error_message)
            msg = f"{error_message} Original annotation error: {hint_error}"
            raise BeanWireInvalidBeanError(msg) from hint_error


def resolved_type_hints(fn: Callable[..., Any]) -> tuple[dict[str, Any], Exception | None]:
    """Return evaluated annotations of a callable, keeping ``Annotated`` metadata.

    Classes merge the hints of ``__init__`` and ``__new__``; partials use the
    wrapped function. Evaluation errors are returned instead of raised.
    """
    target: Any = fn.func if isinstance(fn, functools.partial) else fn
    annotations: dict[str, Any] = {}
    annotation_error: Exception | None = None

    if inspect.isclass(target):
        for member_name in ("__init__", "__new__"):
            member = getattr(target, member_name)
            try:
                member_annotations = get_type_hints(member, include_extras=True)
            except (AttributeError, NameError, TypeError) as error:
                if annotation_error is None:
                    annotation_error = error
                continue
            for parameter_name, parameter_annotation in member_annotations.items():
                annotations.setdefault(parameter_name, parameter_annotation)
        return annotations, annotation_error

    try:
        annotations = get_type_hints(target, include_extras=True)
    except (AttributeError, NameError, TypeError) as error:
        annotation_error = error
    return annotations, annotation_error


def callable_name(fn: Any) -> str:
    target = fn.func if isinstance(fn, functools.partial) else fn
    return getattr(target, "__qualname__", None) or repr(fn)


def _parameter_annotation(parameter: Parameter, hints: dict[str, Any]) -> Any:
    annotation = hints.get(parameter.name, MISSING)
    if annotation is not MISSING:
        return annotation
    raw_annotation = parameter.annotation
    if raw_annotation is not Parameter.empty and not isinstance(raw_annotation, str):
        return raw_annotation
    return MISSING


__all__ = ["ArgumentList", "ArgumentResolver", "callable_name", "resolved_type_hints"]
