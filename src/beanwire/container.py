from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar, overload

from beanwire._internal.arguments import ArgumentList
from beanwire._internal.assembly import BeanAssembly
from beanwire._internal.registry import BeanRegistry
from beanwire.bean import BeanDefinition, BeanStatus, new_bean, value_bean
from beanwire.configurer import Configurer, sort_configurers
from beanwire.exceptions import (
    BeanWireAlreadyRefreshedError,
    BeanWireAmbiguousParentError,
    BeanWireCircularConstructionError,
    BeanWireContainerClosedError,
    BeanWireError,
    BeanWireNoSuchBeanError,
    BeanWireNotRefreshedError,
    BeanWireRegisterAfterRefreshError,
)
from beanwire.integrations.pydantic_settings import settings_properties
from beanwire.properties import Properties
from beanwire.supervisor import CancelContext, TaskSupervisor

if TYPE_CHECKING:
    from types import TracebackType

    from typing_extensions import Self

    from beanwire.selectors import Selector

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ContainerState(enum.Enum):
    UNREFRESHED = "unrefreshed"
    REFRESHING = "refreshing"
    REFRESHED = "refreshed"


class Container:
    """Inversion-of-control container holding beans, properties and background tasks.

    Registration happens before ``refresh``: properties, ready values
    (``add_object``), constructors (``provide``) and configuration functions
    (``config``). ``refresh`` evaluates conditions, creates every active bean
    once, injects its attributes and runs init hooks in bean id order.
    Afterwards the bean set is frozen and ``get``, ``find``, ``wire`` and
    ``invoke`` are safe to call from several threads. ``close`` cancels the
    container context, waits for tasks started with ``go`` and runs destroy
    hooks, each bean before the beans it depended on.

    Args:
        properties: Initial properties; nested mappings become dotted keys.
        allow_circular_references: When ``False`` any ``,lazy`` attribute left
            to inject after the main pass fails the refresh.

    Examples:
        .. code-block:: python

            container = Container({"server": {"port": 8080}})
            container.add_object(Server())
            container.provide(new_handler, "${server.port}").set_name("handler")
            container.refresh()
            with container:
                handler = container.get(Handler)

    """

    def __init__(
        self,
        properties: Mapping[str, Any] | None = None,
        *,
        allow_circular_references: bool = True,
    ) -> None:
        self._properties = Properties(properties)
        self._registry = BeanRegistry(self._properties)
        self._configurers: list[Configurer] = []
        self._allow_circular_references = allow_circular_references
        self._supervisor = TaskSupervisor(CancelContext())
        self._state = ContainerState.UNREFRESHED
        self._destroyers: list[BeanDefinition] = []
        self._context_aware = False
        self._closed = False
        self._close_lock = threading.Lock()

    @property
    def properties(self) -> Properties:
        return self._properties

    @property
    def profiles(self) -> frozenset[str]:
        return self._properties.profiles()

    @property
    def context(self) -> CancelContext:
        return self._supervisor.context

    @property
    def context_aware(self) -> bool:
        """Return whether a bean asked for the container context."""
        return self._context_aware

    @property
    def refreshed(self) -> bool:
        return self._state is ContainerState.REFRESHED

    @property
    def closed(self) -> bool:
        return self._closed

    def set_property(self, key: str, value: Any) -> None:
        self._check_registration()
        self._properties.set(key, value)

    def add_property_source(self, source: Any) -> None:
        """Merge a mapping, a pydantic model or a ``BaseSettings`` class into the properties."""
        self._check_registration()
        self._properties.update(settings_properties(source))

    def add_object(self, value: Any) -> BeanDefinition:
        """Register a ready value as a bean, even when the value is callable."""
        self._check_registration()
        return self._registry.add(value_bean(value))

    def provide(self, subject: Any, *args: Any, **kwargs: Any) -> BeanDefinition:
        """Register a constructor (or a value) as a bean.

        See ``new_bean`` for the accepted arguments.
        """
        self._check_registration()
        return self._registry.add(new_bean(subject, *args, **kwargs))

    def register(self, definition: BeanDefinition) -> BeanDefinition:
        self._check_registration()
        return self._registry.add(definition)

    def config(
        self,
        fn: Callable[..., Any],
        *args: Any,
        name: str | None = None,
        **kwargs: Any,
    ) -> Configurer:
        """Register a configuration function run during refresh, before beans are wired."""
        self._check_registration()
        configurer = Configurer(fn, args, kwargs, name=name)
        self._configurers.append(configurer)
        return configurer

    def refresh(self) -> None:
        """Resolve, create and wire every active bean.

        Raises:
            BeanWireAlreadyRefreshedError: If called more than once.
            BeanWireError: For any resolution or wiring failure; the error
                carries the wiring path in ``wiring_path``. Exceptions raised by
                user constructors and hooks propagate unchanged.

        """
        if self._state is not ContainerState.UNREFRESHED:
            msg = "The container was already refreshed."
            raise BeanWireAlreadyRefreshedError(msg)
        self._state = ContainerState.REFRESHING
        self._properties.freeze()
        for definition in self._registry.definitions:
            definition.lock()
        for configurer in self._configurers:
            configurer.lock()

        assembly = BeanAssembly(self._registry, self._supervisor.context)
        try:
            self._registry.resolve_all()
            self._run_configurers(assembly)
            for definition in self._registry.active():
                assembly.wire_bean(definition)
            self._wire_lazy_fields(assembly)
            self._destroyers = assembly.sorted_destroyers()
        except Exception as error:
            path = assembly.path()
            if path:
                logger.error("Refresh failed: %s\nwiring path:\n%s", error, path)
                if isinstance(error, BeanWireError) and error.wiring_path is None:
                    error.wiring_path = path
            else:
                logger.error("Refresh failed: %s", error)
            raise

        self._context_aware = assembly.context_aware
        self._state = ContainerState.REFRESHED
        logger.info(
            "Container refreshed with %d beans (%d with destroy hooks)",
            len(self._registry.active()),
            len(self._destroyers),
        )

    @overload
    def get(self, target: type[T], selector: str = "") -> T: ...

    @overload
    def get(self, target: str, selector: str = "") -> Any: ...

    def get(self, target: Any, selector: str = "") -> Any:
        """Return the bean matching a type and an optional selector.

        A string ``target`` is a selector matched against every bean.
        ``list[T]`` and ``dict[str, T]`` targets collect beans.

        Raises:
            BeanWireNotRefreshedError: If the container was not refreshed.
            BeanWireNoSuchBeanError: If nothing matches.
            BeanWireAmbiguousBeanError: If several beans match.

        """
        self._check_refreshed()
        assembly = self._lookup_assembly()
        if isinstance(target, str):
            return assembly.autowire(Any, target)
        return assembly.autowire(target, selector)

    def find(self, selector: Selector) -> list[BeanDefinition]:
        """Return the active definitions matching ``selector``, wired or not."""
        self._check_refreshed()
        return self._registry.find(selector)

    def wire(self, subject: Any, *args: Any, **kwargs: Any) -> Any:
        """Build an ad-hoc bean against the refreshed container and return its value.

        ``subject`` may be an existing object, whose marked attributes are
        injected, or a constructor called with bound arguments. The result is
        not registered and its destroy hook is never called.
        """
        self._check_refreshed()
        definition = new_bean(subject, *args, **kwargs)
        if definition.is_method:
            parents = self._registry.find(definition.parent_selector)
            if not parents:
                msg = f"Cannot find the parent bean of {definition}."
                raise BeanWireNoSuchBeanError(msg)
            if len(parents) > 1:
                msg = f"Found {len(parents)} parent beans for {definition}."
                raise BeanWireAmbiguousParentError(msg)
            definition.bind_parent(parents[0])
        definition.mark(BeanStatus.RESOLVED)

        assembly = self._lookup_assembly()
        value = assembly.wire_bean(definition)
        assembly.wire_lazy_fields()
        return value

    def invoke(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call ``fn`` with arguments bound like constructor arguments."""
        self._check_refreshed()
        assembly = self._lookup_assembly()
        result = ArgumentList(fn, args, kwargs).call(assembly)
        assembly.wire_lazy_fields()
        return result

    def go(self, fn: Callable[[CancelContext], Any]) -> None:
        """Run ``fn(context)`` in a supervised background thread.

        Failures inside ``fn`` are logged. ``close`` cancels the context and
        waits for the task.

        Raises:
            BeanWireContainerClosedError: If the container was closed.

        """
        with self._close_lock:
            if self._closed:
                msg = "Cannot start a task on a closed container."
                raise BeanWireContainerClosedError(msg)
            self._supervisor.go(fn)

    def close(self) -> None:
        """Cancel tasks, wait for them and run destroy hooks; later calls do nothing."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        self._supervisor.shutdown()
        logger.info("Supervised tasks exited")

        if self._state is not ContainerState.REFRESHED:
            return
        for definition in self._destroyers:
            try:
                definition.run_destroy()
            except Exception:
                logger.exception("Destroy hook of %s failed", definition)
        logger.info("Container closed")

    def bean_definitions(self) -> list[BeanDefinition]:
        """Return every registered definition in registration order."""
        return self._registry.definitions

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Container(state={self._state.value}, beans={len(self._registry.definitions)})"

    def _run_configurers(self, assembly: BeanAssembly) -> None:
        active = [
            configurer
            for configurer in self._configurers
            if configurer.condition is None or configurer.condition.matches(self._registry)
        ]
        for configurer in sort_configurers(active):
            configurer.run(assembly)

    def _wire_lazy_fields(self, assembly: BeanAssembly) -> None:
        pending = assembly.lazy_fields
        if not pending:
            return
        if not self._allow_circular_references:
            names = ", ".join(
                f"{type(item.target).__qualname__}.{item.spec.name}" for item in pending
            )
            msg = f"Found lazy attributes while circular references are not allowed: {names}."
            raise BeanWireCircularConstructionError(msg)
        assembly.wire_lazy_fields()

    def _lookup_assembly(self) -> BeanAssembly:
        return BeanAssembly(self._registry, self._supervisor.context, refreshed=True)

    def _check_registration(self) -> None:
        if self._state is not ContainerState.UNREFRESHED:
            msg = "Registration is frozen once the container started refreshing."
            raise BeanWireRegisterAfterRefreshError(msg)

    def _check_refreshed(self) -> None:
        if self._state is not ContainerState.REFRESHED:
            msg = "The container must be refreshed before beans can be looked up."
            raise BeanWireNotRefreshedError(msg)


__all__ = ["Container", "ContainerState"]
