from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from typing import Any, Final, get_origin

from pydantic import PydanticSchemaGenerationError, TypeAdapter, ValidationError

from beanwire.exceptions import (
    BeanWireBindError,
    BeanWireMissingPropertyError,
    BeanWirePropertyCycleError,
    BeanWirePropertyError,
    BeanWireRegisterAfterRefreshError,
)

logger = logging.getLogger(__name__)

PROFILE_KEY: Final = "profile"

_REFERENCE_START = "${"
_DEFAULT_SEPARATOR = ":="
_SEQUENCE_ORIGINS: tuple[Any, ...] = (list, tuple, set, frozenset, Sequence)


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Final[Any] = _Missing()


class Properties:
    """Store flat, dotted property keys and expand ``${key:=default}`` references.

    Keys are case-folded. Nested mappings passed to ``set`` or ``update`` are
    flattened into dotted keys, sequences are stored as single leaves. A key
    that only exists as a prefix of other keys (``server`` when ``server.port``
    is set) is reported by ``has`` and resolves to a nested ``dict`` built from
    its sub-keys.

    The store is mutable until ``freeze`` is called. ``Container.refresh``
    freezes the store before any condition is evaluated.

    Examples:
        .. code-block:: python

            properties = Properties({"server": {"host": "localhost", "port": 8080}})
            properties.resolve("http://${server.host}:${server.port}")
            # 'http://localhost:8080'
            properties.bind(int, "${server.port}")
            # 8080

    """

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = {}
        self._frozen = False
        if initial:
            self.update(initial)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Reject every write from now on."""
        self._frozen = True

    def set(self, key: str, value: Any) -> None:
        """Set one property, flattening mapping values into dotted sub-keys.

        Raises:
            BeanWireRegisterAfterRefreshError: If the store is frozen.
            BeanWirePropertyError: If the key is empty.

        """
        if self._frozen:
            msg = f"Cannot set property {key!r} after the container was refreshed."
            raise BeanWireRegisterAfterRefreshError(msg)
        normalized_key = _normalize_key(key)
        if isinstance(value, Mapping):
            for sub_key, sub_value in value.items():
                self.set(f"{normalized_key}.{sub_key}", sub_value)
            return
        self._data[normalized_key] = value

    def update(self, values: Mapping[str, Any]) -> None:
        for key, value in values.items():
            self.set(key, value)

    def keys(self) -> list[str]:
        """Return every stored key in sorted order."""
        return sorted(self._data)

    def has(self, key: str) -> bool:
        """Return whether ``key`` is stored or is a prefix of a stored key."""
        normalized_key = _normalize_key(key)
        if normalized_key in self._data:
            return True
        prefix = normalized_key + "."
        return any(stored.startswith(prefix) for stored in self._data)

    def get(self, key: str, default: Any = MISSING) -> Any:
        """Return the resolved value of ``key``.

        String values have their ``${...}`` references expanded. Prefix keys
        return a nested ``dict`` of their sub-keys.

        Raises:
            BeanWireMissingPropertyError: If the key is undefined and no
                default is given.

        """
        normalized_key = _normalize_key(key)
        if self.has(normalized_key):
            return self._lookup(normalized_key, ())
        if default is MISSING:
            msg = f"Property {normalized_key!r} is not defined."
            raise BeanWireMissingPropertyError(msg)
        return default

    def resolve(self, template: Any) -> Any:
        """Expand every ``${key[:=default]}`` span of ``template``.

        A template made of exactly one span returns the referenced value
        unchanged, so non-string values keep their type. Defaults may contain
        references of their own.

        Raises:
            BeanWireMissingPropertyError: If a key is undefined and has no default.
            BeanWirePropertyCycleError: If a reference expands back to itself.
            BeanWirePropertyError: If a ``${`` span is not terminated.

        """
        return self._resolve(template, ())

    def bind(self, annotation: Any, tag: str) -> Any:
        """Resolve ``tag`` and convert the result to ``annotation``.

        Conversion uses ``pydantic.TypeAdapter`` in lax mode, so ``"8080"``
        binds to ``int`` and a prefix key binds to a model or ``dict``. A
        comma-separated string binds to sequence targets item by item.

        Raises:
            BeanWireBindError: If the resolved value does not validate.

        """
        value = self.resolve(tag)
        if isinstance(value, str) and _is_sequence_annotation(annotation):
            value = [item.strip() for item in value.split(",")] if value else []
        elif annotation is str and isinstance(value, (int, float)):
            value = str(value)
        try:
            adapter: TypeAdapter[Any] = TypeAdapter(annotation)
        except PydanticSchemaGenerationError as error:
            msg = f"Cannot bind property {tag!r}: unsupported target type {annotation!r}."
            raise BeanWireBindError(msg) from error
        try:
            return adapter.validate_python(value)
        except ValidationError as error:
            msg = f"Cannot bind property {tag!r} with value {value!r} to {annotation!r}: {error}"
            raise BeanWireBindError(msg) from error

    def subtree(self, prefix: str) -> dict[str, Any]:
        """Return the sub-keys below ``prefix`` as a nested ``dict``."""
        return self._subtree(_normalize_key(prefix), ())

    def profiles(self) -> frozenset[str]:
        """Return the active profiles from the comma-separated ``profile`` key."""
        raw = self.get(PROFILE_KEY, "")
        if isinstance(raw, str):
            items: Sequence[Any] = raw.split(",")
        elif isinstance(raw, Sequence):
            items = raw
        else:
            items = [raw]
        return frozenset(str(item).strip().lower() for item in items if str(item).strip())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Properties({len(self._data)} keys, frozen={self._frozen})"

    def _resolve(self, template: Any, resolving: tuple[str, ...]) -> Any:
        if isinstance(template, list):
            return [self._resolve(item, resolving) for item in template]
        if not isinstance(template, str) or _REFERENCE_START not in template:
            return template

        spans = list(_reference_spans(template))
        if len(spans) == 1 and spans[0] == (0, len(template)):
            return self._resolve_reference(template[2:-1], resolving)

        parts: list[str] = []
        last = 0
        for start, end in spans:
            parts.append(template[last:start])
            parts.append(str(self._resolve_reference(template[start + 2 : end - 1], resolving)))
            last = end
        parts.append(template[last:])
        return "".join(parts)

    def _resolve_reference(self, body: str, resolving: tuple[str, ...]) -> Any:
        key, separator, default = body.partition(_DEFAULT_SEPARATOR)
        normalized_key = _normalize_key(key)
        if normalized_key in resolving:
            chain = " -> ".join((*resolving, normalized_key))
            msg = f"Property reference cycle: {chain}."
            raise BeanWirePropertyCycleError(msg)
        if self.has(normalized_key):
            return self._lookup(normalized_key, resolving)
        if separator:
            return self._resolve(default, resolving)
        msg = f"Property {normalized_key!r} is not defined and has no default."
        raise BeanWireMissingPropertyError(msg)

    def _lookup(self, key: str, resolving: tuple[str, ...]) -> Any:
        chain = (*resolving, key)
        if key in self._data:
            return self._resolve(self._data[key], chain)
        return self._subtree(key, chain)

    def _subtree(self, prefix: str, resolving: tuple[str, ...]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        start = prefix + "."
        for stored in self.keys():
            if not stored.startswith(start):
                continue
            node = result
            *parents, leaf = stored[len(start) :].split(".")
            for parent in parents:
                child = node.setdefault(parent, {})
                if not isinstance(child, dict):
                    msg = f"Property {stored!r} conflicts with scalar property under {prefix!r}."
                    raise BeanWirePropertyError(msg)
                node = child
            node[leaf] = self._resolve(self._data[stored], resolving)
        return result


def _normalize_key(key: str) -> str:
    normalized = key.strip().lower()
    if not normalized:
        msg = "Property key must not be empty."
        raise BeanWirePropertyError(msg)
    return normalized


def _reference_spans(template: str) -> Iterator[tuple[int, int]]:
    """Yield ``(start, end)`` of every outermost ``${...}`` span."""
    index = template.find(_REFERENCE_START)
    while index >= 0:
        depth = 0
        end = -1
        for position in range(index + 1, len(template)):
            char = template[position]
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    end = position + 1
                    break
        if end < 0:
            msg = f"Unterminated property reference in {template!r}."
            raise BeanWirePropertyError(msg)
        yield index, end
        index = template.find(_REFERENCE_START, end)


def _is_sequence_annotation(annotation: Any) -> bool:
    origin = get_origin(annotation) or annotation
    return origin in _SEQUENCE_ORIGINS


__all__ = ["MISSING", "PROFILE_KEY", "Properties"]
