from __future__ import annotations

import abc
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

from beanwire._internal.expressions import VALUE_PLACEHOLDER, evaluate_condition

if TYPE_CHECKING:
    from beanwire.bean import BeanDefinition
    from beanwire.properties import Properties
    from beanwire.selectors import Selector


class ConditionContext(Protocol):
    """Read-only view of the container handed to conditions.

    ``find`` resolves candidate beans lazily: it evaluates their conditions
    when needed but never constructs or wires them.
    """

    @property
    def properties(self) -> Properties: ...

    def find(self, selector: Selector) -> list[BeanDefinition]: ...


class Condition(abc.ABC):
    """Predicate deciding whether a bean, option or configurer is active.

    Conditions compose with ``&``, ``|`` and ``~``.

    Examples:
        .. code-block:: python

            definition.on(OnProfile("dev") & ~OnBean("metrics_exporter"))

    """

    @abc.abstractmethod
    def matches(self, ctx: ConditionContext) -> bool:
        """Return whether the condition holds for ``ctx``."""

    def __and__(self, other: Condition) -> Condition:
        return And(self, other)

    def __or__(self, other: Condition) -> Condition:
        return Or(self, other)

    def __invert__(self) -> Condition:
        return Not(self)


class OnProperty(Condition):
    """Match when a property (or a prefix of properties) is present.

    With ``having_value`` the property must also equal that value. A value
    containing ``$`` is an expression evaluated against the property value,
    for example ``"$ >= 3"``.
    """

    def __init__(
        self,
        key: str,
        *,
        having_value: Any = None,
        match_if_missing: bool = False,
    ) -> None:
        self.key = key
        self.having_value = having_value
        self.match_if_missing = match_if_missing

    def matches(self, ctx: ConditionContext) -> bool:
        if not ctx.properties.has(self.key):
            return self.match_if_missing
        if self.having_value is None:
            return True
        return _value_matches(ctx.properties.get(self.key), self.having_value)

    def __repr__(self) -> str:
        return (
            f"OnProperty({self.key!r}, having_value={self.having_value!r}, "
            f"match_if_missing={self.match_if_missing})"
        )


class OnPropertyValue(OnProperty):
    """Match when a property equals ``expectation`` or satisfies a ``$`` expression."""

    def __init__(self, key: str, expectation: Any, *, match_if_missing: bool = False) -> None:
        super().__init__(key, having_value=expectation, match_if_missing=match_if_missing)

    def __repr__(self) -> str:
        return f"OnPropertyValue({self.key!r}, {self.having_value!r})"


class OnMissingProperty(Condition):
    def __init__(self, key: str) -> None:
        self.key = key

    def matches(self, ctx: ConditionContext) -> bool:
        return not ctx.properties.has(self.key)

    def __repr__(self) -> str:
        return f"OnMissingProperty({self.key!r})"


class OnBean(Condition):
    """Match when at least one active bean matches ``selector``."""

    def __init__(self, selector: Selector) -> None:
        self.selector = selector

    def matches(self, ctx: ConditionContext) -> bool:
        return len(ctx.find(self.selector)) > 0

    def __repr__(self) -> str:
        return f"OnBean({self.selector!r})"


class OnMissingBean(Condition):
    """Match when no active bean matches ``selector``."""

    def __init__(self, selector: Selector) -> None:
        self.selector = selector

    def matches(self, ctx: ConditionContext) -> bool:
        return len(ctx.find(self.selector)) == 0

    def __repr__(self) -> str:
        return f"OnMissingBean({self.selector!r})"


class OnSingleCandidate(Condition):
    """Match when exactly one active bean matches ``selector``."""

    def __init__(self, selector: Selector) -> None:
        self.selector = selector

    def matches(self, ctx: ConditionContext) -> bool:
        return len(ctx.find(self.selector)) == 1

    def __repr__(self) -> str:
        return f"OnSingleCandidate({self.selector!r})"


class OnProfile(Condition):
    """Match when one of the comma-separated profiles is active.

    Active profiles come from the ``profile`` property and are compared
    case-insensitively. An empty profile matches any environment.
    """

    def __init__(self, profile: str) -> None:
        self.profile = profile

    def matches(self, ctx: ConditionContext) -> bool:
        active = ctx.properties.profiles()
        wanted = {item.strip().lower() for item in self.profile.split(",") if item.strip()}
        if not wanted:
            return True
        return bool(wanted & active)

    def __repr__(self) -> str:
        return f"OnProfile({self.profile!r})"


class OnMatches(Condition):
    """Delegate to a user function receiving the condition context."""

    def __init__(self, fn: Callable[[ConditionContext], bool]) -> None:
        self.fn = fn

    def matches(self, ctx: ConditionContext) -> bool:
        return bool(self.fn(ctx))

    def __repr__(self) -> str:
        return f"OnMatches({getattr(self.fn, '__qualname__', self.fn)!r})"


class And(Condition):
    def __init__(self, *conditions: Condition) -> None:
        self.conditions = conditions

    def matches(self, ctx: ConditionContext) -> bool:
        return all(condition.matches(ctx) for condition in self.conditions)

    def __repr__(self) -> str:
        return f"And{self.conditions!r}"


class Or(Condition):
    def __init__(self, *conditions: Condition) -> None:
        self.conditions = conditions

    def matches(self, ctx: ConditionContext) -> bool:
        return any(condition.matches(ctx) for condition in self.conditions)

    def __repr__(self) -> str:
        return f"Or{self.conditions!r}"


class Not(Condition):
    def __init__(self, condition: Condition) -> None:
        self.condition = condition

    def matches(self, ctx: ConditionContext) -> bool:
        return not self.condition.matches(ctx)

    def __repr__(self) -> str:
        return f"Not({self.condition!r})"


def _value_matches(actual: Any, expected: Any) -> bool:
    if isinstance(expected, str) and VALUE_PLACEHOLDER in expected:
        return evaluate_condition(expected, actual)
    return _as_text(actual) == _as_text(expected)


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


__all__ = [
    "And",
    "Condition",
    "ConditionContext",
    "Not",
    "OnBean",
    "OnMatches",
    "OnMissingBean",
    "OnMissingProperty",
    "OnProfile",
    "OnProperty",
    "OnPropertyValue",
    "OnSingleCandidate",
    "Or",
]
