from __future__ import annotations

import enum
import functools
import inspect
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import (
    TYPE_CHECKING,
    Any,
    Protocol,
    get_args,
    get_origin,
    get_type_hints,
    runtime_checkable,
)

from typing_extensions import Self

from beanwire._internal.annotations import is_optional, split_annotated
from beanwire._internal.arguments import ArgumentList, resolved_type_hints
from beanwire._internal.type_checks import (
    implements,
    is_bean_value,
    is_interface,
    is_runtime_class,
    short_name,
    type_name,
    type_name_matches,
)
from beanwire.conditions import And, Condition
from beanwire.exceptions import (
    BeanWireExportConflictError,
    BeanWireInvalidBeanError,
    BeanWireRegisterAfterRefreshError,
)
from beanwire.markers import Parent

if TYPE_CHECKING:
    from beanwire.selectors import Selector

_PACKAGE_ROOT = Path(__file__).resolve().parent
_IMPLICIT_PARENT_PARAMETER = "self"
_NONE_TYPES: tuple[Any, ...] = (None, type(None))


class BeanStatus(enum.IntEnum):
    """Lifecycle state of a bean definition inside one container.

    Statuses only move forward. ``DELETED`` is terminal and only reachable
    from ``RESOLVING``, when a condition or a method bean's parent excludes
    the bean.
    """

    DEFAULT = 0
    RESOLVING = 1
    RESOLVED = 2
    CREATING = 3
    CREATED = 4
    WIRED = 5
    DELETED = 6


@runtime_checkable
class InitializingBean(Protocol):
    """Beans implementing ``on_init`` get it called after wiring when no init hook is set."""

    def on_init(self) -> None: ...


@runtime_checkable
class DisposableBean(Protocol):
    """Beans implementing ``on_destroy`` get it called on close when no destroy hook is set."""

    def on_destroy(self) -> None: ...


class BeanDefinition:
    """Describe one registrable bean: its value or constructor plus wiring metadata.

    Create definitions with ``new_bean``, ``Container.add_object`` or
    ``Container.provide`` and refine them with the fluent setters. Setters
    are rejected once the owning container started refreshing.

    Attributes exposed read-only:
        id: ``type_name + ":" + name``, unique among active beans.
        name: Bean name, defaulting to the bare class name of ``type``.
        type: Runtime class of the bean value (declared return type for
            constructors).
        type_name: Fully qualified ``module.qualname`` of ``type``.
        status: Current ``BeanStatus``.
        value: The bean value, ``None`` until a constructor bean is created.

    """

    def __init__(
        self,
        *,
        bean_type: type[Any],
        value: Any = None,
        constructor: ArgumentList | None = None,
        parent_selector: Selector | None = None,
        element_type: type[Any] | None = None,
        file: str = "<unknown>",
        line: int = 0,
    ) -> None:
        self._type = bean_type
        self._type_name = type_name(bean_type)
        self._value = value
        self._constructor = constructor
        self._parent_selector = parent_selector
        self._parent: BeanDefinition | None = None
        self._element_type = element_type
        self._file = file
        self._line = line
        self._name = short_name(bean_type)
        self._status = BeanStatus.DEFAULT
        self._condition: Condition | None = None
        self._primary = False
        self._order = 0
        self._depends_on: list[Selector] = []
        self._init: Callable[[Any], Any] | None = None
        self._destroy: Callable[[Any], Any] | None = None
        self._exports: list[type[Any]] = []
        self._locked = False

    @property
    def id(self) -> str:
        return f"{self._type_name}:{self._name}"

    @property
    def name(self) -> str:
        return self._name

    @property
    def type(self) -> type[Any]:
        return self._type

    @property
    def type_name(self) -> str:
        return self._type_name

    @property
    def status(self) -> BeanStatus:
        return self._status

    @property
    def value(self) -> Any:
        return self._value

    @property
    def condition(self) -> Condition | None:
        return self._condition

    @property
    def primary(self) -> bool:
        return self._primary

    @property
    def order(self) -> int:
        return self._order

    @property
    def dependencies(self) -> tuple[Selector, ...]:
        return tuple(self._depends_on)

    @property
    def exports(self) -> tuple[type[Any], ...]:
        return tuple(self._exports)

    @property
    def init_hook(self) -> Callable[[Any], Any] | None:
        return self._init

    @property
    def destroy_hook(self) -> Callable[[Any], Any] | None:
        return self._destroy

    @property
    def file(self) -> str:
        return self._file

    @property
    def line(self) -> int:
        return self._line

    @property
    def caller(self) -> str:
        """Return the registration site as ``file:line``."""
        return f"{self._file}:{self._line}"

    @property
    def constructor(self) -> ArgumentList | None:
        return self._constructor

    @property
    def is_method(self) -> bool:
        """Return whether the constructor receives a parent bean as first argument."""
        return self._parent_selector is not None

    @property
    def parent_selector(self) -> Selector | None:
        return self._parent_selector

    @property
    def parent(self) -> BeanDefinition | None:
        return self._parent

    @property
    def element_type(self) -> type[Any] | None:
        """Return the item type when the bean value is a list or a dict of beans."""
        return self._element_type

    @property
    def has_destroy(self) -> bool:
        if self._destroy is not None:
            return True
        return callable(getattr(self._type, "on_destroy", None))

    def set_name(self, name: str) -> Self:
        self._check_mutable()
        if not name or not name.strip():
            msg = f"Bean name must not be empty for {self}."
            raise BeanWireInvalidBeanError(msg)
        self._name = name.strip()
        return self

    def on(self, condition: Condition) -> Self:
        """Attach a condition; several calls are combined with ``And``."""
        self._check_mutable()
        self._condition = condition if self._condition is None else And(self._condition, condition)
        return self

    def set_order(self, order: int) -> Self:
        """Set the position used when the bean is collected; lower sorts first."""
        self._check_mutable()
        self._order = order
        return self

    def set_primary(self, primary: bool = True) -> Self:  # noqa: FBT001,FBT002
        self._check_mutable()
        self._primary = primary
        return self

    def depends_on(self, *selectors: Selector) -> Self:
        """Force the selected beans to be wired before this one."""
        self._check_mutable()
        self._depends_on.extend(selectors)
        return self

    def init(self, hook: Callable[[Any], Any]) -> Self:
        """Set the hook called with the bean after its attributes are wired.

        Raises:
            BeanWireInvalidBeanError: If the hook does not take exactly one
                parameter compatible with the bean type.

        """
        self._check_mutable()
        self._init = self._validate_hook(hook, kind="init")
        return self

    def destroy(self, hook: Callable[[Any], Any]) -> Self:
        """Set the hook called with the bean when the container closes."""
        self._check_mutable()
        self._destroy = self._validate_hook(hook, kind="destroy")
        return self

    def export(self, *interfaces: type[Any]) -> Self:
        """Make the bean available for lookups by the given interfaces.

        Raises:
            BeanWireExportConflictError: If an export is not an interface or
                the bean type does not implement it.

        """
        self._check_mutable()
        for interface in interfaces:
            self.add_export(interface)
        return self

    def add_export(self, interface: type[Any]) -> None:
        if not is_interface(interface):
            msg = f"Only interfaces can be exported, got {interface!r} on {self}."
            raise BeanWireExportConflictError(msg)
        if not implements(self._type, interface):
            msg = f"{self} does not implement exported interface {type_name(interface)}."
            raise BeanWireExportConflictError(msg)
        if interface not in self._exports:
            self._exports.append(interface)

    def match(self, expected_type_name: str, expected_bean_name: str) -> bool:
        """Return whether the bean matches a selector's type name and bean name."""
        if expected_bean_name and expected_bean_name != self._name:
            return False
        return type_name_matches(self._type, expected_type_name)

    def lock(self) -> None:
        self._locked = True

    def mark(self, status: BeanStatus) -> None:
        self._status = status

    def bind_parent(self, parent: BeanDefinition) -> None:
        self._parent = parent

    def set_value(self, value: Any) -> None:
        self._value = value

    def run_init(self) -> None:
        if self._init is not None:
            self._init(self._value)
        elif isinstance(self._value, InitializingBean):
            self._value.on_init()

    def run_destroy(self) -> None:
        if self._destroy is not None:
            self._destroy(self._value)
        elif isinstance(self._value, DisposableBean):
            self._value.on_destroy()

    def kind(self) -> str:
        if self._constructor is None:
            return "object bean"
        if self.is_method:
            return "method bean"
        return "constructor bean"

    def __str__(self) -> str:
        return f'{self.kind()} "{self._name}" {self._file}:{self._line}'

    def __repr__(self) -> str:
        return f"BeanDefinition(id={self.id!r}, status={self._status.name})"

    def _check_mutable(self) -> None:
        if self._locked:
            msg = f"Cannot change {self} after the container was refreshed."
            raise BeanWireRegisterAfterRefreshError(msg)

    def _validate_hook(self, hook: Callable[[Any], Any], *, kind: str) -> Callable[[Any], Any]:
        if not callable(hook):
            msg = f"The {kind} hook of {self} must be callable, got {hook!r}."
            raise BeanWireInvalidBeanError(msg)
        try:
            parameters = list(inspect.signature(hook).parameters.values())
        except (TypeError, ValueError) as error:
            msg = f"Cannot inspect the {kind} hook of {self}: {error}"
            raise BeanWireInvalidBeanError(msg) from error
        if len(parameters) != 1 or parameters[0].kind in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
            inspect.Parameter.KEYWORD_ONLY,
        ):
            msg = f"The {kind} hook of {self} must take exactly one positional parameter."
            raise BeanWireInvalidBeanError(msg)

        hints, _error = resolved_type_hints(hook)
        annotation, _metadata = split_annotated(hints.get(parameters[0].name, Any))
        if is_runtime_class(annotation) and annotation is not object:
            compatible = issubclass(self._type, annotation) or implements(self._type, annotation)
            if not compatible:
                msg = (
                    f"The {kind} hook of {self} expects {type_name(annotation)}, "
                    f"which {self._type_name} is not."
                )
                raise BeanWireInvalidBeanError(msg)
        return hook


def new_bean(subject: Any, *args: Any, **kwargs: Any) -> BeanDefinition:
    """Create a bean definition from a value or a constructor.

    Classes, functions, methods and ``functools.partial`` objects are
    constructors: they are called during refresh with their arguments bound
    from ``args``/``kwargs`` and autowired from their annotations. Any other
    object is registered as a ready value.

    Args:
        subject: Bean value or constructor.
        *args: Constructor arguments; each is a selector string, a
            ``${...}`` property template, a ``Const``, an ``Option``, a class,
            a ``BeanDefinition`` or a literal value.
        **kwargs: Constructor arguments bound by parameter name.

    Raises:
        BeanWireInvalidBeanError: If the value is not eligible, the
            constructor declares no bean type, or arguments do not fit the
            constructor signature.

    """
    file, line = _registration_site()
    if _is_constructor(subject):
        return _constructor_bean(subject, args, kwargs, file=file, line=line)
    if args or kwargs:
        msg = f"Arguments are only accepted for constructors, got value {subject!r}."
        raise BeanWireInvalidBeanError(msg)
    return _value_bean(subject, file=file, line=line)


def value_bean(value: Any) -> BeanDefinition:
    """Create a bean definition for a ready value, even a callable one."""
    file, line = _registration_site()
    return _value_bean(value, file=file, line=line)


def _value_bean(value: Any, *, file: str, line: int) -> BeanDefinition:
    if not is_bean_value(value):
        msg = f"Bean value must be a shared reference, got {value!r}."
        raise BeanWireInvalidBeanError(msg)
    return BeanDefinition(
        bean_type=type(value),
        value=value,
        element_type=_value_element_type(value),
        file=file,
        line=line,
    )


def _constructor_bean(
    constructor: Callable[..., Any],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
    *,
    file: str,
    line: int,
) -> BeanDefinition:
    declared = _declared_return_type(constructor)
    bean_type = get_origin(declared) or declared
    if not is_runtime_class(bean_type) or bean_type in _NONE_TYPES:
        msg = (
            f"Constructor {_callable_name(constructor)} must return a class instance; "
            f"declared return type is {declared!r}."
        )
        raise BeanWireInvalidBeanError(msg)

    parent_selector: Any = None
    if _takes_parent(constructor):
        if args and not isinstance(args[0], Parent):
            parent_selector, args = args[0], args[1:]
        elif args:
            parent_selector, args = args[0].selector or _owner_selector(constructor), args[1:]
        else:
            parent_selector = _owner_selector(constructor)
    elif args and isinstance(args[0], Parent):
        parent_selector, args = args[0].selector, args[1:]
        if not parent_selector:
            msg = f"Parent selector of {_callable_name(constructor)} must not be empty."
            raise BeanWireInvalidBeanError(msg)

    arguments = ArgumentList(
        constructor,
        args,
        kwargs,
        skip_first=parent_selector is not None,
    )
    return BeanDefinition(
        bean_type=bean_type,
        constructor=arguments,
        parent_selector=parent_selector,
        element_type=_declared_element_type(declared),
        file=file,
        line=line,
    )


def _is_constructor(subject: Any) -> bool:
    return (
        inspect.isclass(subject)
        or inspect.isfunction(subject)
        or inspect.ismethod(subject)
        or isinstance(subject, functools.partial)
    )


def _declared_return_type(constructor: Callable[..., Any]) -> Any:
    if inspect.isclass(constructor):
        if inspect.isabstract(constructor):
            msg = f"Abstract class {constructor.__qualname__} cannot be a bean constructor."
            raise BeanWireInvalidBeanError(msg)
        return constructor

    target = constructor.func if isinstance(constructor, functools.partial) else constructor
    try:
        hints = get_type_hints(target, include_extras=True)
    except (AttributeError, NameError, TypeError) as error:
        msg = f"Cannot resolve the return annotation of {_callable_name(constructor)}: {error}"
        raise BeanWireInvalidBeanError(msg) from error
    if "return" not in hints:
        msg = f"Constructor {_callable_name(constructor)} must annotate its return type."
        raise BeanWireInvalidBeanError(msg)

    declared, _metadata = split_annotated(hints["return"])
    if is_optional(declared):
        msg = f"Constructor {_callable_name(constructor)} must not declare an optional result."
        raise BeanWireInvalidBeanError(msg)
    return declared


def _declared_element_type(declared: Any) -> type[Any] | None:
    origin = get_origin(declared)
    arguments = get_args(declared)
    if origin in (list, tuple, Sequence) and arguments:
        candidate = arguments[0]
    elif origin in (dict, Mapping) and len(arguments) == 2:  # noqa: PLR2004
        candidate = arguments[1]
    else:
        return None
    return candidate if is_runtime_class(candidate) else None


def _value_element_type(value: Any) -> type[Any] | None:
    if isinstance(value, (list, tuple)):
        items: list[Any] = list(value)
    elif isinstance(value, dict):
        items = list(value.values())
    else:
        return None
    if not items:
        return None
    first = type(items[0])
    if all(type(item) is first for item in items) and all(is_bean_value(item) for item in items):
        return first
    return None


def _takes_parent(constructor: Callable[..., Any]) -> bool:
    if not inspect.isfunction(constructor):
        return False
    parameters = list(inspect.signature(constructor).parameters)
    return bool(parameters) and parameters[0] == _IMPLICIT_PARENT_PARAMETER


def _owner_selector(constructor: Callable[..., Any]) -> str:
    owner, _, _ = constructor.__qualname__.rpartition(".")
    if not owner:
        msg = f"Cannot infer the parent bean of {_callable_name(constructor)}; pass Parent(...)."
        raise BeanWireInvalidBeanError(msg)
    return f"{owner}:"


def _callable_name(candidate: Any) -> str:
    return getattr(candidate, "__qualname__", None) or repr(candidate)


def _registration_site() -> tuple[str, int]:
    frame = inspect.currentframe()
    try:
        while frame is not None:
            filename = frame.f_code.co_filename
            if not Path(filename).resolve().is_relative_to(_PACKAGE_ROOT):
                return filename, frame.f_lineno
            frame = frame.f_back
    finally:
        del frame
    return "<unknown>", 0


__all__ = [
    "BeanDefinition",
    "BeanStatus",
    "DisposableBean",
    "InitializingBean",
    "new_bean",
    "value_bean",
]
