"""Selector strings and their parsed forms.

A selector identifies candidate beans. The string form is
``[typeName][:beanName][?]``: text left of the first ``:`` matches the bean
type name, text right of it matches the bean name, a string without ``:`` is a
bare bean name and a trailing ``?`` makes the injection point nullable.
Collection targets accept a comma-separated list of such items where one item
may be ``*``, the anchor at which every unlisted matching bean is inserted.

Callers may also select by a class or by a ``BeanDefinition`` directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeAlias

from beanwire._internal.type_checks import is_runtime_class, type_name
from beanwire.exceptions import BeanWireInvalidTagError

if TYPE_CHECKING:
    from beanwire.bean import BeanDefinition

Selector: TypeAlias = "str | type[Any] | BeanDefinition"

ANY_BEAN = "*"
_NULLABLE_SUFFIX = "?"
_LAZY_OPTION = "lazy"


@dataclass(frozen=True, slots=True)
class WireTag:
    """Parsed single-bean selector."""

    type_name: str = ""
    bean_name: str = ""
    nullable: bool = False

    @classmethod
    def parse(cls, raw: str) -> WireTag:
        text = raw.strip()
        if not text:
            return cls()
        nullable = text.endswith(_NULLABLE_SUFFIX)
        if nullable:
            text = text[:-1]
        type_part, colon, bean_part = text.partition(":")
        if not colon:
            return cls(bean_name=type_part, nullable=nullable)
        return cls(type_name=type_part, bean_name=bean_part, nullable=nullable)

    @property
    def is_any(self) -> bool:
        return self.bean_name == ANY_BEAN

    def __str__(self) -> str:
        text = f"{self.type_name}:{self.bean_name}" if self.type_name else self.bean_name
        return text + (_NULLABLE_SUFFIX if self.nullable else "")


@dataclass(frozen=True, slots=True)
class CollectionTag:
    """Parsed collection selector.

    ``items`` is empty in automatic mode, where every matching bean is
    collected and sorted by ``order``. Otherwise it keeps the listed order with
    at most one ``*`` anchor.
    """

    items: tuple[WireTag, ...] = ()
    nullable: bool = False

    @classmethod
    def parse(cls, raw: str) -> CollectionTag:
        """Parse a comma-separated selector list.

        Raises:
            BeanWireInvalidTagError: If an item is empty or ``*`` appears more
                than once.

        """
        text = raw.strip()
        if not text:
            return cls()
        if text == _NULLABLE_SUFFIX:
            return cls(nullable=True)

        items: list[WireTag] = []
        for part in text.split(","):
            if not part.strip():
                msg = f"Empty item in collection selector {raw!r}."
                raise BeanWireInvalidTagError(msg)
            items.append(WireTag.parse(part))

        if sum(1 for item in items if item.is_any) > 1:
            msg = f"Collection selector {raw!r} may contain at most one '{ANY_BEAN}'."
            raise BeanWireInvalidTagError(msg)
        return cls(items=tuple(items), nullable=all(item.nullable for item in items))

    @property
    def has_anchor(self) -> bool:
        return any(item.is_any for item in self.items)

    def __str__(self) -> str:
        if not self.items:
            return _NULLABLE_SUFFIX if self.nullable else ""
        return ",".join(str(item) for item in self.items)


@dataclass(frozen=True, slots=True)
class InjectionTag:
    """Selector text of an ``Autowire`` marker split from its options."""

    selector: str
    lazy: bool = False

    @classmethod
    def parse(cls, raw: str) -> InjectionTag:
        """Split trailing ``,lazy`` from the selector.

        Examples:
            .. code-block:: python

                InjectionTag.parse("primary_db?,lazy")
                # InjectionTag(selector='primary_db?', lazy=True)

        """
        head, comma, option = raw.rpartition(",")
        if comma and option.strip() == _LAZY_OPTION:
            return cls(selector=head.strip(), lazy=True)
        return cls(selector=raw.strip())


def to_wire_tag(selector: Selector) -> WireTag:
    """Convert any selector variant to a ``WireTag``."""
    from beanwire.bean import BeanDefinition  # noqa: PLC0415

    if isinstance(selector, str):
        return WireTag.parse(selector)
    if isinstance(selector, BeanDefinition):
        return WireTag.parse(selector.id)
    if is_runtime_class(selector):
        return WireTag(type_name=type_name(selector))
    msg = f"Unsupported selector {selector!r}; expected a string, a class or a bean definition."
    raise BeanWireInvalidTagError(msg)


__all__ = [
    "ANY_BEAN",
    "CollectionTag",
    "InjectionTag",
    "Selector",
    "WireTag",
    "to_wire_tag",
]
