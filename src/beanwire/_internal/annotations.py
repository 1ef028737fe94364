from __future__ import annotations

import types
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Annotated, Any, Literal, Union, get_args, get_origin

_UNION_ORIGINS: tuple[Any, ...] = (Union, types.UnionType)
_SEQUENCE_ORIGINS: dict[Any, Literal["list", "tuple", "set"]] = {
    list: "list",
    Sequence: "list",
    tuple: "tuple",
    set: "set",
    frozenset: "set",
}
_MAPPING_ORIGINS: tuple[Any, ...] = (dict, Mapping)


def split_annotated(annotation: Any) -> tuple[Any, tuple[Any, ...]]:
    """Return the inner annotation and the ``Annotated`` metadata tuple."""
    if get_origin(annotation) is Annotated:
        inner, *metadata = get_args(annotation)
        nested_inner, nested_metadata = split_annotated(inner)
        return nested_inner, (*nested_metadata, *metadata)
    return annotation, ()


def strip_optional(annotation: Any) -> tuple[Any, bool]:
    """Return ``(inner, True)`` for ``T | None`` and ``(annotation, False)`` otherwise."""
    if get_origin(annotation) not in _UNION_ORIGINS:
        return annotation, False
    members = [member for member in get_args(annotation) if member is not type(None)]
    if len(members) == len(get_args(annotation)):
        return annotation, False
    if len(members) == 1:
        return members[0], True
    return Union[tuple(members)], True  # noqa: UP007


def is_optional(annotation: Any) -> bool:
    return strip_optional(annotation)[1]


@dataclass(frozen=True, slots=True)
class CollectionShape:
    """Describe a collection injection target."""

    kind: Literal["list", "tuple", "set", "dict"]
    element: Any

    def build(self, names: Sequence[str], values: Sequence[Any]) -> Any:
        if self.kind == "dict":
            return dict(zip(names, values))
        if self.kind == "tuple":
            return tuple(values)
        if self.kind == "set":
            return set(values)
        return list(values)


def collection_shape(annotation: Any) -> CollectionShape | None:
    """Return the collection shape of ``annotation`` or ``None`` for single-bean targets.

    ``dict`` targets must be keyed by ``str``; the key is the bean name.
    """
    origin = get_origin(annotation)
    arguments = get_args(annotation)
    if origin in _SEQUENCE_ORIGINS and arguments:
        return CollectionShape(kind=_SEQUENCE_ORIGINS[origin], element=arguments[0])
    if origin in _MAPPING_ORIGINS and len(arguments) == 2 and arguments[0] is str:  # noqa: PLR2004
        return CollectionShape(kind="dict", element=arguments[1])
    return None


__all__ = [
    "CollectionShape",
    "collection_shape",
    "is_optional",
    "split_annotated",
    "strip_optional",
]
