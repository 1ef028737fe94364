from __future__ import annotations

import functools
import inspect
from collections.abc import Callable, Iterator
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, cast

import pytest

from beanwire._internal.annotations import split_annotated
from beanwire._internal.arguments import resolved_type_hints
from beanwire.container import Container
from beanwire.markers import Autowire
from beanwire.selectors import InjectionTag

_BEANWIRE_CONTAINER_ATTR = "_beanwire_container"
_BEANWIRE_INJECTED_PARAMETERS_ATTR = "__beanwire_pytest_injected_parameters__"
_BEANWIRE_ORIGINAL_SIGNATURE_ATTR = "__beanwire_pytest_original_signature__"


@dataclass(frozen=True, slots=True)
class InjectedParameter:
    name: str
    annotation: Any
    selector: str


@pytest.fixture()
def beanwire_container() -> Iterator[Container]:
    """Create a per-test container that is closed on teardown.

    Tests register beans on it directly, or override the fixture to share a
    configured container. Parameters annotated with ``Autowire(...)`` are
    resolved from it after it is refreshed.

    Yields:
        A new ``Container`` instance.

    """
    container = Container()
    try:
        yield container
    finally:
        container.close()


@pytest.fixture(autouse=True)
def _beanwire_state(
    request: pytest.FixtureRequest,
    beanwire_container: Container,
) -> None:
    """Store plugin state on the test node for hook access."""
    node = cast("Any", request.node)
    setattr(node, _BEANWIRE_CONTAINER_ATTR, beanwire_container)


def pytest_pycollect_makeitem(
    collector: Any,
    name: str,
    obj: object,
) -> Any | None:
    """Hide ``Autowire(...)`` parameters from pytest fixture name matching.

    Args:
        collector: Pytest collector instance.
        name: Collected object name.
        obj: Candidate object.

    Returns:
        ``None`` to continue default collection flow.

    """
    if not callable(obj):
        return None
    if not collector.istestfunction(obj, name):
        return None

    callable_obj = cast("Callable[..., Any]", obj)
    injected_parameters = injected_test_parameters(callable_obj)
    if not injected_parameters:
        return None

    signature = inspect.signature(callable_obj)
    injected_names = {parameter.name for parameter in injected_parameters}
    public_signature = signature.replace(
        parameters=[
            parameter
            for parameter in signature.parameters.values()
            if parameter.name not in injected_names
        ],
    )
    obj_as_any = cast("Any", obj)
    obj_as_any.__dict__[_BEANWIRE_INJECTED_PARAMETERS_ATTR] = injected_parameters
    obj_as_any.__dict__[_BEANWIRE_ORIGINAL_SIGNATURE_ATTR] = signature
    obj_as_any.__signature__ = public_signature
    return None


@pytest.hookimpl(hookwrapper=True, tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> Iterator[None]:
    """Resolve ``Autowire(...)`` parameters of a test from its container.

    The container is refreshed on first use, so a test can register beans in
    other fixtures before its injected parameters are resolved.

    Args:
        pyfuncitem: Collected pytest function item.

    Yields:
        Control back to pytest around test execution.

    """
    original_callable = cast("Callable[..., Any]", pyfuncitem.obj)
    injected_parameters = cast(
        "tuple[InjectedParameter, ...] | None",
        getattr(original_callable, _BEANWIRE_INJECTED_PARAMETERS_ATTR, None),
    )
    if injected_parameters is None:
        injected_parameters = injected_test_parameters(original_callable)
    if not injected_parameters:
        yield
        return

    container = cast("Container | None", getattr(pyfuncitem, _BEANWIRE_CONTAINER_ATTR, None))
    if container is None:
        yield
        return

    if not container.refreshed:
        container.refresh()
    injected_values = {
        parameter.name: container.get(parameter.annotation, parameter.selector)
        for parameter in injected_parameters
    }

    @functools.wraps(original_callable)
    def injected_callable(*args: Any, **kwargs: Any) -> Any:
        return original_callable(*args, **{**injected_values, **kwargs})

    callable_as_any = cast("Any", injected_callable)
    with suppress(AttributeError):
        del callable_as_any.__signature__
    pyfuncitem.obj = injected_callable
    try:
        yield
    finally:
        pyfuncitem.obj = original_callable


def injected_test_parameters(fn: Callable[..., Any]) -> tuple[InjectedParameter, ...]:
    """Return the parameters of ``fn`` annotated with an ``Autowire`` marker."""
    hints, _error = resolved_type_hints(fn)
    parameters: list[InjectedParameter] = []
    for name, annotation in hints.items():
        if name == "return":
            continue
        inner, metadata = split_annotated(annotation)
        marker = next((item for item in metadata if isinstance(item, Autowire)), None)
        if marker is None:
            continue
        parameters.append(
            InjectedParameter(
                name=name,
                annotation=inner,
                selector=InjectionTag.parse(marker.selector).selector,
            ),
        )
    return tuple(parameters)


__all__ = ["InjectedParameter", "beanwire_container", "injected_test_parameters"]
