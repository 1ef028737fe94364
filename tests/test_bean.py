"""Tests for bean definitions and their validation."""

from __future__ import annotations

import abc
import functools
from pathlib import Path

import pytest

from beanwire import Container
from beanwire.bean import BeanDefinition, BeanStatus, new_bean, value_bean
from beanwire.conditions import And, OnProfile, OnProperty
from beanwire.exceptions import (
    BeanWireExportConflictError,
    BeanWireInvalidBeanError,
    BeanWireRegisterAfterRefreshError,
)
from beanwire.markers import Parent


class Shape(abc.ABC):
    @abc.abstractmethod
    def area(self) -> float: ...


class Square(Shape):
    def __init__(self, side: float = 1.0) -> None:
        self.side = side

    def area(self) -> float:
        return self.side * self.side


class Resource:
    def __init__(self) -> None:
        self.events: list[str] = []

    def on_init(self) -> None:
        self.events.append("init")

    def on_destroy(self) -> None:
        self.events.append("destroy")


class Owner:
    def child(self) -> Square:
        return Square()


def new_square(side: float) -> Square:
    return Square(side)


def new_nothing() -> None:
    return None


def new_unknown():  # noqa: ANN201
    return Square()


def new_squares() -> list[Square]:
    return [Square(1.0), Square(2.0)]


class TestNewBean:
    def test_value_bean_metadata(self) -> None:
        square = Square()
        definition = new_bean(square)

        assert definition.type is Square
        assert definition.type_name == f"{__name__}.Square"
        assert definition.name == "Square"
        assert definition.id == f"{__name__}.Square:Square"
        assert definition.value is square
        assert definition.status is BeanStatus.DEFAULT
        assert definition.constructor is None
        assert definition.kind() == "object bean"

    def test_registration_site_points_at_caller(self) -> None:
        definition = new_bean(Square())

        assert Path(definition.file).name == "test_bean.py"
        assert definition.line > 0
        assert definition.caller == f"{definition.file}:{definition.line}"
        assert str(definition) == f'object bean "Square" {definition.file}:{definition.line}'

    @pytest.mark.parametrize("value", [None, 1, 1.5, True, "text", b"bytes", Square])
    def test_rejects_non_reference_values(self, value: object) -> None:
        with pytest.raises(BeanWireInvalidBeanError):
            value_bean(value)

    def test_value_bean_accepts_callables(self) -> None:
        definition = value_bean(new_square)

        assert definition.value is new_square
        assert definition.constructor is None

    def test_class_is_a_constructor(self) -> None:
        definition = new_bean(Square, 2.0)

        assert definition.type is Square
        assert definition.value is None
        assert definition.kind() == "constructor bean"

    def test_function_constructor_uses_return_annotation(self) -> None:
        definition = new_bean(new_square, "${side}")

        assert definition.type is Square
        assert definition.constructor is not None
        assert definition.constructor.name == "new_square"

    def test_partial_constructor(self) -> None:
        definition = new_bean(functools.partial(new_square, 3.0))

        assert definition.type is Square

    def test_list_constructor_records_element_type(self) -> None:
        definition = new_bean(new_squares)

        assert definition.type is list
        assert definition.element_type is Square

    def test_list_value_records_element_type(self) -> None:
        assert value_bean([Square(), Square()]).element_type is Square
        assert value_bean([Square(), Resource()]).element_type is None

    @pytest.mark.parametrize("constructor", [new_nothing, new_unknown])
    def test_constructor_needs_a_class_result(self, constructor: object) -> None:
        with pytest.raises(BeanWireInvalidBeanError):
            new_bean(constructor)

    def test_abstract_class_cannot_be_constructed(self) -> None:
        with pytest.raises(BeanWireInvalidBeanError, match="Abstract class"):
            new_bean(Shape)

    def test_arguments_are_rejected_for_values(self) -> None:
        with pytest.raises(BeanWireInvalidBeanError, match="only accepted for constructors"):
            new_bean(Square(), 1)

    def test_too_many_positional_arguments(self) -> None:
        with pytest.raises(BeanWireInvalidBeanError, match="positional arguments"):
            new_bean(new_square, 1.0, 2.0)

    def test_unannotated_parameter_without_argument(self) -> None:
        def build(side) -> Square:  # noqa: ANN001
            return Square(side)

        with pytest.raises(BeanWireInvalidBeanError, match="Unable to infer a value"):
            new_bean(build)

    def test_method_bean_parent_defaults_to_owner(self) -> None:
        definition = new_bean(Owner.child)

        assert definition.is_method
        assert definition.parent_selector == "Owner:"
        assert definition.kind() == "method bean"

    def test_method_bean_parent_selector_argument(self) -> None:
        assert new_bean(Owner.child, "main").parent_selector == "main"
        assert new_bean(Owner.child, Parent("main")).parent_selector == "main"


class TestFluentSetters:
    def test_setters_chain(self) -> None:
        condition = OnProperty("a")
        definition = (
            new_bean(Square())
            .set_name("unit")
            .set_order(5)
            .set_primary()
            .depends_on("other")
            .on(condition)
        )

        assert definition.name == "unit"
        assert definition.id == f"{__name__}.Square:unit"
        assert definition.order == 5
        assert definition.primary
        assert definition.dependencies == ("other",)
        assert definition.condition is condition

    def test_conditions_are_combined(self) -> None:
        definition = new_bean(Square()).on(OnProperty("a")).on(OnProfile("dev"))

        assert isinstance(definition.condition, And)

    def test_empty_name_is_rejected(self) -> None:
        with pytest.raises(BeanWireInvalidBeanError):
            new_bean(Square()).set_name(" ")

    def test_export_requires_interface(self) -> None:
        definition = new_bean(Square()).export(Shape)

        assert definition.exports == (Shape,)
        with pytest.raises(BeanWireExportConflictError):
            new_bean(Resource()).export(Shape)

    def test_locked_definition_rejects_changes(self) -> None:
        definition = new_bean(Square())
        definition.lock()

        with pytest.raises(BeanWireRegisterAfterRefreshError):
            definition.set_order(1)


class TestHooks:
    def test_hook_must_take_one_parameter(self) -> None:
        definition = new_bean(Square())

        with pytest.raises(BeanWireInvalidBeanError, match="exactly one"):
            definition.init(lambda: None)  # type: ignore[arg-type,misc]
        with pytest.raises(BeanWireInvalidBeanError, match="exactly one"):
            definition.destroy(lambda a, b: None)  # type: ignore[arg-type,misc]

    def test_hook_annotation_must_fit_bean_type(self) -> None:
        def close(resource: Resource) -> None:
            resource.events.append("closed")

        with pytest.raises(BeanWireInvalidBeanError, match="expects"):
            new_bean(Square()).destroy(close)

    def test_hook_may_accept_an_interface(self) -> None:
        def check(shape: Shape) -> None:
            assert shape.area() > 0

        definition = new_bean(Square()).init(check)

        assert definition.init_hook is check

    def test_lifecycle_protocols_are_used_without_hooks(self, container: Container) -> None:
        resource = Resource()
        definition = container.add_object(resource)

        container.refresh()
        container.close()

        assert definition.has_destroy
        assert resource.events == ["init", "destroy"]

    def test_explicit_hooks_replace_protocol_methods(self, container: Container) -> None:
        resource = Resource()
        container.add_object(resource).init(lambda bean: bean.events.append("hook"))

        container.refresh()

        assert resource.events == ["hook"]


def test_definition_repr() -> None:
    definition = BeanDefinition(bean_type=Square, value=Square())

    assert repr(definition) == f"BeanDefinition(id='{__name__}.Square:Square', status=DEFAULT)"
