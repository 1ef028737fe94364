from __future__ import annotations

import abc
import inspect
import types
from contextlib import suppress
from typing import Any, TypeGuard

from typing_extensions import get_protocol_members, is_protocol

_IMMUTABLE_SCALARS: tuple[type[Any], ...] = (bool, int, float, complex, str, bytes)


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    if candidate is Any:
        return False
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def is_bean_value(candidate: object) -> bool:
    """Return whether a value may be registered as a bean.

    Beans are shared references, so ``None``, immutable scalars, classes and
    modules are rejected.
    """
    if candidate is None:
        return False
    if isinstance(candidate, _IMMUTABLE_SCALARS):
        return False
    return not isinstance(candidate, (type, types.ModuleType))


def is_interface(candidate: object) -> bool:
    """Return whether candidate can be used as an export type.

    Interfaces are ``typing.Protocol`` classes and abstract classes, either
    with abstract members or declared as direct ``abc.ABC`` subclasses.
    """
    if not is_runtime_class(candidate):
        return False
    if is_protocol(candidate):
        return True
    return inspect.isabstract(candidate) or abc.ABC in candidate.__bases__


def implements(concrete: type[Any], interface: type[Any]) -> bool:
    """Return whether instances of ``concrete`` satisfy ``interface``.

    Nominal subclasses always match. Protocols that are not runtime checkable
    are compared structurally by member presence.
    """
    if interface in getattr(concrete, "__mro__", ()):
        return True
    with suppress(TypeError):
        if issubclass(concrete, interface):
            return True
    if is_protocol(interface):
        return all(_has_member(concrete, name) for name in get_protocol_members(interface))
    return False


def _has_member(concrete: type[Any], name: str) -> bool:
    if hasattr(concrete, name):
        return True
    return any(name in getattr(klass, "__annotations__", {}) for klass in concrete.__mro__)


def type_name(candidate: Any) -> str:
    """Return the fully qualified ``module.qualname`` form of a type."""
    module = getattr(candidate, "__module__", None)
    qualname = getattr(candidate, "__qualname__", None) or getattr(candidate, "__name__", None)
    if qualname is None:
        return repr(candidate)
    if module in (None, "builtins"):
        return qualname
    return f"{module}.{qualname}"


def short_name(candidate: Any) -> str:
    """Return the final path segment of a type name."""
    return getattr(candidate, "__name__", None) or type_name(candidate).rsplit(".", 1)[-1]


def type_name_matches(candidate: Any, expected: str) -> bool:
    """Match a selector type name against the full name, qualified name or bare name."""
    if not expected:
        return True
    return expected in {
        type_name(candidate),
        getattr(candidate, "__qualname__", None),
        getattr(candidate, "__name__", None),
    }


__all__ = [
    "implements",
    "is_bean_value",
    "is_interface",
    "is_runtime_class",
    "short_name",
    "type_name",
    "type_name_matches",
]
