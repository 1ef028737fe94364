from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any

from beanwire._internal.fields import exported_interfaces
from beanwire._internal.type_checks import implements, is_interface, is_runtime_class, type_name
from beanwire.bean import BeanDefinition, BeanStatus
from beanwire.exceptions import (
    BeanWireAmbiguousParentError,
    BeanWireDuplicateBeanError,
    BeanWireExportConflictError,
    BeanWireInvalidTagError,
)
from beanwire.selectors import to_wire_tag

if TYPE_CHECKING:
    from beanwire.conditions import Condition
    from beanwire.properties import Properties
    from beanwire.selectors import Selector

logger = logging.getLogger(__name__)


class BeanRegistry:
    """Hold registered definitions and the indexes built while resolving them.

    The registry is also the view handed to conditions: ``find`` resolves
    candidate definitions on demand, so a condition may depend on beans that
    were registered later than the bean it guards.
    """

    def __init__(self, properties: Properties) -> None:
        self._properties = properties
        self._definitions: list[BeanDefinition] = []
        self._by_id: dict[str, BeanDefinition] = {}
        self._by_name: dict[str, list[BeanDefinition]] = defaultdict(list)
        self._by_type: dict[type[Any], list[BeanDefinition]] = defaultdict(list)
        self._by_collection: dict[type[Any], list[BeanDefinition]] = defaultdict(list)
        self._positions: dict[int, int] = {}

    @property
    def properties(self) -> Properties:
        return self._properties

    @property
    def definitions(self) -> list[BeanDefinition]:
        """Return the registered definitions in registration order."""
        return list(self._definitions)

    def add(self, definition: BeanDefinition) -> BeanDefinition:
        self._positions[id(definition)] = len(self._definitions)
        self._definitions.append(definition)
        logger.debug("Registered %s", definition)
        return definition

    def active(self) -> list[BeanDefinition]:
        """Return resolved definitions sorted by id."""
        return sorted(
            (item for item in self._definitions if item.status is not BeanStatus.DELETED),
            key=lambda item: item.id,
        )

    def by_id(self, bean_id: str) -> BeanDefinition | None:
        return self._by_id.get(bean_id)

    def by_name(self, name: str) -> list[BeanDefinition]:
        return self._alive(self._by_name.get(name, ()))

    def by_type(self, bean_type: Any) -> list[BeanDefinition]:
        return self._alive(self._by_type.get(bean_type, ()))

    def by_collection(self, element_type: Any) -> list[BeanDefinition]:
        return self._alive(self._by_collection.get(element_type, ()))

    def all_beans(self) -> list[BeanDefinition]:
        return self._alive(self._definitions)

    def holds_value(self, value: Any) -> bool:
        """Return whether ``value`` is the object held by an active bean."""
        return any(
            item.value is value
            for item in self._definitions
            if item.status is not BeanStatus.DELETED
        )

    def matches(self, condition: Condition) -> bool:
        return condition.matches(self)

    def resolve_all(self) -> None:
        """Resolve every definition and index the ones that stay active.

        Raises:
            BeanWireDuplicateBeanError: If two active definitions share an id.

        """
        for definition in list(self._definitions):
            self.resolve(definition)

        for definition in self._definitions:
            if definition.status is BeanStatus.DELETED:
                continue
            existing = self._by_id.get(definition.id)
            if existing is not None and existing is not definition:
                msg = f"Found duplicate bean {definition.id!r}: {existing} and {definition}."
                raise BeanWireDuplicateBeanError(msg)
            self._by_id[definition.id] = definition
        logger.debug(
            "Resolved %d active beans out of %d registered",
            len(self._by_id),
            len(self._definitions),
        )

    def resolve(self, definition: BeanDefinition) -> None:
        if definition.status >= BeanStatus.RESOLVING:
            return
        definition.mark(BeanStatus.RESOLVING)

        if definition.is_method:
            parents = self.find(definition.parent_selector)
            if not parents:
                logger.debug("Excluded %s: parent bean is not active", definition)
                definition.mark(BeanStatus.DELETED)
                return
            if len(parents) > 1:
                names = ", ".join(str(parent) for parent in parents)
                msg = f"Found {len(parents)} parent beans for {definition}: {names}."
                raise BeanWireAmbiguousParentError(msg)
            definition.bind_parent(parents[0])

        if definition.condition is not None and not definition.condition.matches(self):
            logger.debug("Excluded %s: condition %r not met", definition, definition.condition)
            definition.mark(BeanStatus.DELETED)
            return

        for interface in exported_interfaces(definition.type):
            definition.add_export(interface)
        for interface in definition.exports:
            if not implements(definition.type, interface):
                msg = f"{definition} does not implement exported interface {type_name(interface)}."
                raise BeanWireExportConflictError(msg)

        self._index(definition)
        definition.mark(BeanStatus.RESOLVED)

    def find(self, selector: Selector) -> list[BeanDefinition]:
        """Return the active definitions matching ``selector`` without wiring them.

        Definitions still being resolved are skipped; unresolved candidates are
        resolved first, which may exclude them.
        """
        if isinstance(selector, BeanDefinition):
            candidates = [selector] if selector in self._definitions else []
            return self._resolved(candidates)

        if is_runtime_class(selector):
            target = selector
            exported_only = is_interface(target)
            found: list[BeanDefinition] = []
            for definition in self._resolved(
                [item for item in self._definitions if _assignable(item.type, target)],
            ):
                if exported_only and target not in definition.exports:
                    continue
                found.append(definition)
            return found

        if not isinstance(selector, str):
            msg = f"Unsupported selector {selector!r}."
            raise BeanWireInvalidTagError(msg)
        tag = to_wire_tag(selector)
        candidates = [
            item
            for item in self._definitions
            if item.match(tag.type_name, tag.bean_name) and item.status is not BeanStatus.RESOLVING
        ]
        return self._resolved(candidates)

    def _resolved(self, candidates: list[BeanDefinition]) -> list[BeanDefinition]:
        found: list[BeanDefinition] = []
        for definition in candidates:
            if definition.status is BeanStatus.RESOLVING:
                continue
            self.resolve(definition)
            if definition.status is not BeanStatus.DELETED:
                found.append(definition)
        return found

    def _alive(self, definitions: Any) -> list[BeanDefinition]:
        """Drop excluded definitions and restore registration order."""
        alive = [item for item in definitions if item.status is not BeanStatus.DELETED]
        return sorted(alive, key=lambda item: self._positions.get(id(item), len(self._positions)))

    def _index(self, definition: BeanDefinition) -> None:
        self._by_name[definition.name].append(definition)
        self._by_type[definition.type].append(definition)
        for interface in definition.exports:
            self._by_type[interface].append(definition)
        if definition.element_type is not None:
            self._by_collection[definition.element_type].append(definition)
        logger.debug("Indexed %s as %s", definition, definition.id)


def _assignable(concrete: type[Any], target: type[Any]) -> bool:
    if concrete is target:
        return True
    try:
        if issubclass(concrete, target):
            return True
    except TypeError:
        return False
    return is_interface(target) and implements(concrete, target)


__all__ = ["BeanRegistry"]
