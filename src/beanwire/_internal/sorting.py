from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeVar

from beanwire.exceptions import BeanWireError

T = TypeVar("T")


def triple_sort(
    items: Sequence[T],
    get_before: Callable[[T], Sequence[T]],
    *,
    describe: Callable[[T], str],
    error_cls: type[BeanWireError],
) -> list[T]:
    """Order ``items`` so every item follows the items ``get_before`` returns.

    The walk keeps three collections: items still to sort, items already
    sorted and the chain currently being processed. Reaching an item that is
    already on the chain is a cycle.

    Raises:
        error_cls: If the relation contains a cycle; the message lists the
            cycle path.

    """
    to_sort = list(items)
    ordered: list[T] = []
    processing: list[T] = []
    while to_sort:
        _visit(to_sort[0], to_sort, ordered, processing, get_before, describe, error_cls)
    return ordered


def _visit(
    current: T,
    to_sort: list[T],
    ordered: list[T],
    processing: list[T],
    get_before: Callable[[T], Sequence[T]],
    describe: Callable[[T], str],
    error_cls: type[BeanWireError],
) -> None:
    if _index(processing, current) >= 0:
        cycle = [*processing[_index(processing, current) :], current]
        msg = "Found sorting cycle: " + " => ".join(describe(item) for item in cycle)
        raise error_cls(msg)

    processing.append(current)
    for before in get_before(current):
        if _index(ordered, before) >= 0:
            continue
        _visit(before, to_sort, ordered, processing, get_before, describe, error_cls)
    processing.pop()

    position = _index(to_sort, current)
    if position >= 0:
        del to_sort[position]
    ordered.append(current)


def _index(items: list[T], wanted: T) -> int:
    for position, item in enumerate(items):
        if item is wanted:
            return position
    return -1


__all__ = ["triple_sort"]
