from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from typing_extensions import Self

from beanwire._internal.arguments import ArgumentList, callable_name
from beanwire._internal.sorting import triple_sort
from beanwire.conditions import And, Condition
from beanwire.exceptions import BeanWireConfigurerCycleError, BeanWireRegisterAfterRefreshError

if TYPE_CHECKING:
    from beanwire._internal.assembly import BeanAssembly

logger = logging.getLogger(__name__)


class Configurer:
    """A configuration function run once during refresh.

    Configuration functions run after every bean was resolved and before the
    first bean is wired. Their parameters are bound like constructor
    parameters, so they can receive beans and properties. ``before`` and
    ``after`` order configurers by name.

    Examples:
        .. code-block:: python

            container.config(register_routes).after("load_plugins")
            container.config(load_plugins, name="load_plugins")

    """

    def __init__(
        self,
        fn: Callable[..., Any],
        args: tuple[Any, ...] = (),
        kwargs: dict[str, Any] | None = None,
        *,
        name: str | None = None,
    ) -> None:
        self._arguments = ArgumentList(fn, args, kwargs)
        self._name = name or getattr(fn, "__name__", None) or callable_name(fn)
        self._condition: Condition | None = None
        self._before: list[str] = []
        self._after: list[str] = []
        self._locked = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def condition(self) -> Condition | None:
        return self._condition

    @property
    def before_names(self) -> tuple[str, ...]:
        return tuple(self._before)

    @property
    def after_names(self) -> tuple[str, ...]:
        return tuple(self._after)

    def on(self, condition: Condition) -> Self:
        self._check_mutable()
        self._condition = condition if self._condition is None else And(self._condition, condition)
        return self

    def before(self, *names: str) -> Self:
        """Run this configurer before the configurers called ``names``."""
        self._check_mutable()
        self._before.extend(names)
        return self

    def after(self, *names: str) -> Self:
        """Run this configurer after the configurers called ``names``."""
        self._check_mutable()
        self._after.extend(names)
        return self

    def lock(self) -> None:
        self._locked = True

    def run(self, assembly: BeanAssembly) -> None:
        logger.debug("Running configurer %s", self._name)
        self._arguments.call(assembly)

    def __repr__(self) -> str:
        return f"Configurer({self._name!r})"

    def _check_mutable(self) -> None:
        if self._locked:
            msg = f"Cannot change configurer {self._name!r} after the container was refreshed."
            raise BeanWireRegisterAfterRefreshError(msg)


def sort_configurers(configurers: list[Configurer]) -> list[Configurer]:
    """Order configurers so ``before``/``after`` constraints hold.

    Raises:
        BeanWireConfigurerCycleError: If the constraints form a cycle.

    """

    def get_before(current: Configurer) -> list[Configurer]:
        return [
            item
            for item in configurers
            if item is not current
            and (current.name in item.before_names or item.name in current.after_names)
        ]

    return triple_sort(
        configurers,
        get_before,
        describe=lambda item: item.name,
        error_cls=BeanWireConfigurerCycleError,
    )


__all__ = ["Configurer", "sort_configurers"]
