from __future__ import annotations

import builtins
import functools
import inspect
from dataclasses import dataclass
from typing import Any, ClassVar, Literal, get_origin, get_type_hints

from beanwire._internal.annotations import split_annotated, strip_optional
from beanwire._internal.type_checks import is_interface, is_runtime_class, type_name
from beanwire.exceptions import BeanWireExportConflictError, BeanWireInvalidBeanError
from beanwire.markers import Autowire, Export, Logger, Value
from beanwire.selectors import InjectionTag
from beanwire.supervisor import CancelContext

FieldKind = Literal["value", "autowire", "logger", "context", "export", "embedded"]


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Injection instruction for one annotated class attribute."""

    name: str
    kind: FieldKind
    annotation: Any
    nullable: bool = False
    value_tag: str = ""
    injection: InjectionTag | None = None


@functools.lru_cache(maxsize=None)
def class_fields(cls: type[Any]) -> tuple[FieldSpec, ...]:
    """Return the injection instructions declared on ``cls`` and its bases.

    Attributes are read from class-level annotations. ``Value``, ``Autowire``,
    ``Logger`` and ``Export`` markers select the behavior; unmarked
    attributes typed ``CancelContext`` receive the container context, and
    unmarked attributes typed with a user class are candidates for recursive
    wiring.

    Raises:
        BeanWireExportConflictError: If an attribute is both exported and
            autowired, or exports a type that is not an interface.

    """
    specs: list[FieldSpec] = []
    for name, annotation in _class_annotations(cls).items():
        if get_origin(annotation) is ClassVar:
            continue
        spec = _field_spec(cls, name, annotation)
        if spec is not None:
            specs.append(spec)
    return tuple(specs)


def has_injection_fields(cls: type[Any]) -> bool:
    return any(spec.kind != "export" for spec in class_fields(cls))


def exported_interfaces(cls: type[Any]) -> list[type[Any]]:
    """Return interfaces marked ``Export`` on ``cls`` and its unmarked attribute classes.

    Only one level of unmarked attributes is inspected.
    """
    interfaces: list[type[Any]] = []
    for spec in class_fields(cls):
        if spec.kind == "export":
            interfaces.append(spec.annotation)
        elif spec.kind == "embedded":
            interfaces.extend(
                nested.annotation
                for nested in class_fields(spec.annotation)
                if nested.kind == "export"
            )
    return list(dict.fromkeys(interfaces))


def _field_spec(cls: type[Any], name: str, annotation: Any) -> FieldSpec | None:
    inner, metadata = split_annotated(annotation)
    base, nullable = strip_optional(inner)

    exported = any(_is_marker(item, Export) for item in metadata)
    autowire = next((item for item in metadata if isinstance(item, Autowire)), None)
    value = next((item for item in metadata if isinstance(item, Value)), None)

    if exported:
        if autowire is not None:
            msg = f"Attribute {name!r} of {type_name(cls)} cannot be both exported and autowired."
            raise BeanWireExportConflictError(msg)
        if not is_interface(base):
            msg = (
                f"Attribute {name!r} of {type_name(cls)} exports {base!r}, "
                "which is not an interface."
            )
            raise BeanWireExportConflictError(msg)
        return FieldSpec(name=name, kind="export", annotation=base)

    if value is not None:
        if autowire is not None:
            msg = f"Attribute {name!r} of {type_name(cls)} cannot carry both Value and Autowire."
            raise BeanWireInvalidBeanError(msg)
        return FieldSpec(name=name, kind="value", annotation=inner, value_tag=value.tag)
    if autowire is not None:
        return FieldSpec(
            name=name,
            kind="autowire",
            annotation=base,
            nullable=nullable,
            injection=InjectionTag.parse(autowire.selector),
        )
    if any(_is_marker(item, Logger) for item in metadata):
        return FieldSpec(name=name, kind="logger", annotation=base)
    if base is CancelContext:
        return FieldSpec(name=name, kind="context", annotation=base)
    if _is_embeddable(base):
        return FieldSpec(name=name, kind="embedded", annotation=base, nullable=nullable)
    return None


def _is_marker(item: Any, marker: type[Any]) -> bool:
    return item is marker or isinstance(item, marker)


def _is_embeddable(annotation: Any) -> bool:
    if not is_runtime_class(annotation) or annotation is CancelContext:
        return False
    if getattr(builtins, annotation.__name__, None) is annotation:
        return False
    return inspect.isclass(annotation) and not is_interface(annotation)


def _class_annotations(cls: type[Any]) -> dict[str, Any]:
    try:
        return get_type_hints(cls, include_extras=True)
    except (AttributeError, NameError, TypeError):
        annotations: dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            for name, annotation in vars(klass).get("__annotations__", {}).items():
                if not isinstance(annotation, str):
                    annotations[name] = annotation
        return annotations


__all__ = ["FieldSpec", "class_fields", "exported_interfaces", "has_injection_fields"]
