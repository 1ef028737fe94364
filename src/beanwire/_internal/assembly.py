from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, get_origin

from beanwire._internal.annotations import (
    CollectionShape,
    collection_shape,
    split_annotated,
    strip_optional,
)
from beanwire._internal.fields import FieldSpec, class_fields, has_injection_fields
from beanwire._internal.sorting import triple_sort
from beanwire._internal.type_checks import implements, is_interface, is_runtime_class, type_name
from beanwire.bean import BeanDefinition, BeanStatus
from beanwire.exceptions import (
    BeanWireAmbiguousBeanError,
    BeanWireAmbiguousPrimaryError,
    BeanWireCircularConstructionError,
    BeanWireDestroyerCycleError,
    BeanWireExportConflictError,
    BeanWireInvalidBeanError,
    BeanWireInvalidTagError,
    BeanWireNoSuchBeanError,
)
from beanwire.markers import Autowire, Const, Value
from beanwire.properties import MISSING
from beanwire.selectors import CollectionTag, InjectionTag, WireTag
from beanwire.supervisor import CancelContext

if TYPE_CHECKING:
    from beanwire._internal.registry import BeanRegistry
    from beanwire.conditions import Condition

logger = logging.getLogger(__name__)

_PROPERTY_PREFIX = "${"


class WiringStack:
    """Beans currently being wired, outermost first.

    Frames are only popped when a bean finished wiring, so after a failure the
    stack still holds the path that led to the failing bean.
    """

    def __init__(self) -> None:
        self._frames: list[BeanDefinition] = []

    def push(self, definition: BeanDefinition) -> None:
        logger.debug("Wiring %s", definition)
        self._frames.append(definition)

    def pop(self) -> None:
        definition = self._frames.pop()
        logger.debug("Wired %s", definition)

    def path(self) -> str:
        return "\n".join(f"=> {frame}" for frame in self._frames)

    def __len__(self) -> int:
        return len(self._frames)


@dataclass(eq=False)
class DestroyerNode:
    """A bean with a destroy hook and the beans that must be destroyed before it."""

    definition: BeanDefinition
    earlier: list[DestroyerNode] = field(default_factory=list)

    def add_earlier(self, node: DestroyerNode) -> None:
        if node is not self and all(item is not node for item in self.earlier):
            self.earlier.append(node)


@dataclass(eq=False)
class LazyField:
    target: Any
    spec: FieldSpec


class BeanAssembly:
    """Create beans, inject their attributes and record the destroy order.

    One assembly serves one refresh pass. Lookups after refresh use a fresh
    assembly that neither tracks destroyers nor changes any bean status,
    since every bean it meets is already wired.
    """

    def __init__(
        self,
        registry: BeanRegistry,
        context: CancelContext,
        *,
        refreshed: bool = False,
    ) -> None:
        self._registry = registry
        self._properties = registry.properties
        self._context = context
        self._refreshed = refreshed
        self._stack = WiringStack()
        self._destroyers: dict[str, DestroyerNode] = {}
        self._destroyer_stack: list[DestroyerNode] = []
        self._lazy_fields: list[LazyField] = []
        self.context_aware = False

    @property
    def lazy_fields(self) -> list[LazyField]:
        return list(self._lazy_fields)

    def path(self) -> str:
        return self._stack.path()

    def matches(self, condition: Condition) -> bool:
        return condition.matches(self._registry)

    def wire_bean(self, definition: BeanDefinition) -> Any:
        """Create and inject ``definition`` once, returning its value.

        Raises:
            BeanWireNoSuchBeanError: If the bean was excluded.
            BeanWireCircularConstructionError: If a constructor bean is
                needed while its own constructor is still running.

        """
        if definition.status is BeanStatus.DELETED:
            msg = f"Bean {definition.id!r} was excluded and cannot be wired."
            raise BeanWireNoSuchBeanError(msg)
        if self._refreshed and definition.status is BeanStatus.WIRED:
            return definition.value

        tracked = not self._refreshed and definition.has_destroy
        if tracked:
            node = self._destroyers.get(definition.id)
            if node is None:
                node = self._destroyers[definition.id] = DestroyerNode(definition)
            if self._destroyer_stack:
                node.add_earlier(self._destroyer_stack[-1])
            self._destroyer_stack.append(node)
        try:
            return self._wire(definition)
        finally:
            if tracked:
                self._destroyer_stack.pop()

    def _wire(self, definition: BeanDefinition) -> Any:
        if definition.status is BeanStatus.WIRED:
            return definition.value

        self._stack.push(definition)
        if definition.status is BeanStatus.CREATING and definition.constructor is not None:
            msg = f"Found circular construction at {definition}."
            raise BeanWireCircularConstructionError(msg)
        if definition.status >= BeanStatus.CREATING:
            self._stack.pop()
            return definition.value

        definition.mark(BeanStatus.CREATING)
        for selector in definition.dependencies:
            for dependency in self._registry.find(selector):
                self.wire_bean(dependency)

        value = self._materialize(definition)
        definition.mark(BeanStatus.CREATED)
        for interface in definition.exports:
            if not implements(type(value), interface):
                msg = (
                    f"{definition} produced {type_name(type(value))}, "
                    f"which does not implement {type_name(interface)}."
                )
                raise BeanWireExportConflictError(msg)

        self.wire_value(value)
        definition.run_init()
        definition.mark(BeanStatus.WIRED)
        self._stack.pop()
        return value

    def _materialize(self, definition: BeanDefinition) -> Any:
        constructor = definition.constructor
        if constructor is None:
            return definition.value

        leading: tuple[Any, ...] = ()
        if definition.is_method:
            parent = definition.parent
            if parent is None:
                msg = f"Parent bean of {definition} was not resolved."
                raise BeanWireNoSuchBeanError(msg)
            leading = (self.wire_bean(parent),)

        value = constructor.call(self, *leading)
        if value is None:
            msg = f"Constructor of {definition} returned None."
            raise BeanWireInvalidBeanError(msg)
        definition.set_value(value)
        return value

    def get_bean(self, target: Any, tag: WireTag) -> Any:
        """Return the single bean matching ``target`` and ``tag``.

        ``target`` ``None`` searches every active bean. A unique primary
        candidate wins over the others.

        Raises:
            BeanWireNoSuchBeanError: If nothing matches a non-nullable tag.
            BeanWireAmbiguousBeanError: If several candidates match and none
                is primary.
            BeanWireAmbiguousPrimaryError: If several primary candidates match.

        """
        if target is None:
            pool = self._registry.all_beans()
        else:
            pool = self._registry.by_type(target)
        found = [item for item in pool if item.match(tag.type_name, tag.bean_name)]

        if target is not None and is_interface(target) and tag.bean_name:
            for item in self._registry.by_name(tag.bean_name):
                if any(existing is item for existing in found):
                    continue
                if implements(item.type, target) and item.match(tag.type_name, tag.bean_name):
                    logger.warning("You should call export() on %s", item)
                    found.append(item)

        if not found:
            if tag.nullable:
                return None
            msg = f"Cannot find bean {str(tag)!r} of type {_describe(target)}."
            raise BeanWireNoSuchBeanError(msg)

        primaries = [item for item in found if item.primary]
        if len(primaries) > 1:
            msg = (
                f"Found {len(primaries)} primary beans for {str(tag)!r} of type "
                f"{_describe(target)}: {_list(primaries)}"
            )
            raise BeanWireAmbiguousPrimaryError(msg)
        if not primaries and len(found) > 1:
            msg = (
                f"Found {len(found)} beans for {str(tag)!r} of type "
                f"{_describe(target)}: {_list(found)}"
            )
            raise BeanWireAmbiguousBeanError(msg)

        chosen = primaries[0] if primaries else found[0]
        return self.wire_bean(chosen)

    def collect_beans(self, shape: CollectionShape, tag: CollectionTag) -> Any:
        """Gather every bean of ``shape.element`` into the requested collection.

        Without listed items beans are sorted by ``order``. Listed items keep
        their position; the ``*`` anchor receives every unlisted bean sorted by
        ``order``, and unlisted beans are dropped when there is no anchor.
        """
        pool: list[BeanDefinition] = []
        candidates = [
            *self._registry.by_collection(shape.element),
            *self._registry.by_type(shape.element),
        ]
        for item in candidates:
            if all(existing is not item for existing in pool):
                pool.append(item)

        if tag.items:
            selected = self._select_listed(pool, tag, shape)
        else:
            selected = sorted(pool, key=lambda item: item.order)

        if not selected:
            if tag.nullable:
                return shape.build([], [])
            msg = f"No beans collected for {str(tag)!r} of type {_describe(shape.element)}."
            raise BeanWireNoSuchBeanError(msg)

        names: list[str] = []
        values: list[Any] = []
        for definition in selected:
            value = self.wire_bean(definition)
            if definition.element_type is not None and isinstance(value, dict):
                for key, item in value.items():
                    names.append(f"{definition.name}#{key}")
                    values.append(item)
            elif definition.element_type is not None and isinstance(value, (list, tuple)):
                for index, item in enumerate(value):
                    names.append(f"{definition.name}#{index}")
                    values.append(item)
            else:
                names.append(definition.name)
                values.append(value)
        return shape.build(names, values)

    def _select_listed(
        self,
        pool: list[BeanDefinition],
        tag: CollectionTag,
        shape: CollectionShape,
    ) -> list[BeanDefinition]:
        remaining = list(pool)
        before: list[BeanDefinition] = []
        after: list[BeanDefinition] = []
        anchored = False
        for item in tag.items:
            if item.is_any:
                anchored = True
                continue
            found = [
                candidate
                for candidate in remaining
                if candidate.match(item.type_name, item.bean_name)
            ]
            if len(found) > 1:
                msg = (
                    f"Found {len(found)} beans for {str(item)!r} of type "
                    f"{_describe(shape.element)}: {_list(found)}"
                )
                raise BeanWireAmbiguousBeanError(msg)
            if not found:
                if item.nullable:
                    continue
                msg = f"Cannot find bean {str(item)!r} of type {_describe(shape.element)}."
                raise BeanWireNoSuchBeanError(msg)
            remaining.remove(found[0])
            (after if anchored else before).append(found[0])

        if not anchored:
            return before
        return [*before, *sorted(remaining, key=lambda item: item.order), *after]

    def autowire(self, annotation: Any, selector: str, *, nullable: bool = False) -> Any:
        """Inject by annotation and selector text, choosing single or collection mode.

        A selector starting with ``${`` is read from the property store first.
        """
        if selector.startswith(_PROPERTY_PREFIX):
            selector = str(self._properties.resolve(selector))

        inner, optional = strip_optional(split_annotated(annotation)[0])
        shape = collection_shape(inner)
        if shape is not None:
            collection_tag = CollectionTag.parse(selector)
            if optional or nullable:
                collection_tag = dataclasses.replace(collection_tag, nullable=True)
            return self.collect_beans(shape, collection_tag)

        if "," in selector:
            msg = (
                f"Selector {selector!r} lists several beans but the target "
                f"{_describe(inner)} is not a collection."
            )
            raise BeanWireInvalidTagError(msg)
        tag = WireTag.parse(selector)
        if optional or nullable:
            tag = dataclasses.replace(tag, nullable=True)
        target = inner if is_runtime_class(inner) and inner is not object else None
        return self.get_bean(target, tag)

    def resolve_argument(self, argument: Any, annotation: Any) -> Any:
        """Turn one registered argument into a call value."""
        inner = Any if annotation is MISSING else split_annotated(annotation)[0]
        if isinstance(argument, Const):
            return argument.value
        if isinstance(argument, str):
            if argument.startswith(_PROPERTY_PREFIX):
                if inner is Any:
                    return self._properties.resolve(argument)
                return self._properties.bind(inner, argument)
            return self.autowire(inner, argument)
        if isinstance(argument, BeanDefinition):
            return self.wire_bean(argument)
        if is_runtime_class(argument) and not _expects_class(inner):
            return self.autowire(argument, "")
        return argument

    def autowire_parameter(self, annotation: Any, *, has_default: bool) -> Any:
        """Inject a parameter that has no registered argument."""
        inner, metadata = split_annotated(annotation)
        for marker in metadata:
            if isinstance(marker, Value):
                return self._properties.bind(inner, marker.tag)
            if isinstance(marker, Autowire):
                tag = InjectionTag.parse(marker.selector)
                return self._default_if_empty(
                    self.autowire(inner, tag.selector, nullable=has_default),
                    has_default=has_default,
                )
        if strip_optional(inner)[0] is CancelContext:
            self.context_aware = True
            return self._context
        return self._default_if_empty(
            self.autowire(inner, "", nullable=has_default),
            has_default=has_default,
        )

    def wire_value(self, value: Any) -> None:
        """Inject the marked attributes of ``value``; list and dict beans are wired item by item."""
        if isinstance(value, (list, tuple)):
            for item in value:
                self.wire_value(item)
            return
        if isinstance(value, dict):
            for item in value.values():
                self.wire_value(item)
            return
        self._wire_fields(value, set())

    def _wire_fields(self, target: Any, visited: set[int]) -> None:
        if id(target) in visited:
            return
        visited.add(id(target))

        for spec in class_fields(type(target)):
            if spec.kind == "value":
                setattr(target, spec.name, self._properties.bind(spec.annotation, spec.value_tag))
            elif spec.kind == "autowire":
                if spec.injection is not None and spec.injection.lazy:
                    self._lazy_fields.append(LazyField(target, spec))
                    continue
                self._inject_field(target, spec)
            elif spec.kind == "logger":
                setattr(target, spec.name, logging.getLogger(type_name(type(target))))
            elif spec.kind == "context":
                setattr(target, spec.name, self._context)
                self.context_aware = True
            elif spec.kind == "embedded":
                nested = getattr(target, spec.name, None)
                if nested is None or not has_injection_fields(type(nested)):
                    continue
                # Beans are wired by their own definition, exactly once.
                if self._registry.holds_value(nested):
                    continue
                self._wire_fields(nested, visited)

    def _inject_field(self, target: Any, spec: FieldSpec) -> None:
        selector = spec.injection.selector if spec.injection is not None else ""
        value = self.autowire(spec.annotation, selector, nullable=spec.nullable)
        if value is None and hasattr(target, spec.name):
            return
        setattr(target, spec.name, value)

    def wire_lazy_fields(self) -> None:
        """Inject the attributes deferred with ``,lazy``."""
        pending, self._lazy_fields = self._lazy_fields, []
        for lazy in pending:
            self._inject_field(lazy.target, lazy.spec)

    def sorted_destroyers(self) -> list[BeanDefinition]:
        """Return beans with destroy hooks, each before the beans it depended on.

        Raises:
            BeanWireDestroyerCycleError: If the recorded edges form a cycle.

        """
        nodes = [self._destroyers[key] for key in sorted(self._destroyers)]
        ordered = triple_sort(
            nodes,
            lambda node: node.earlier,
            describe=lambda node: str(node.definition),
            error_cls=BeanWireDestroyerCycleError,
        )
        return [node.definition for node in ordered]

    def _default_if_empty(self, value: Any, *, has_default: bool) -> Any:
        if not has_default:
            return value
        if value is None or (isinstance(value, (list, tuple, set, dict)) and not value):
            return MISSING
        return value


def _expects_class(annotation: Any) -> bool:
    return annotation is type or get_origin(annotation) is type


def _describe(target: Any) -> str:
    if target is None:
        return "any"
    if is_runtime_class(target):
        return type_name(target)
    return repr(target)


def _list(definitions: list[BeanDefinition]) -> str:
    return "[" + ", ".join(f"({definition})" for definition in definitions) + "]"


__all__ = ["BeanAssembly", "DestroyerNode", "LazyField", "WiringStack"]
