"""Tests for selector parsing."""

from __future__ import annotations

import pytest

from beanwire import Container
from beanwire.exceptions import BeanWireInvalidTagError
from beanwire.selectors import CollectionTag, InjectionTag, WireTag, to_wire_tag


class Widget:
    pass


class TestWireTag:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("", WireTag()),
            ("db", WireTag(bean_name="db")),
            ("db?", WireTag(bean_name="db", nullable=True)),
            ("Widget:", WireTag(type_name="Widget")),
            (":db", WireTag(bean_name="db")),
            ("pkg.Widget:db?", WireTag(type_name="pkg.Widget", bean_name="db", nullable=True)),
            ("a:b:c", WireTag(type_name="a", bean_name="b:c")),
        ],
    )
    def test_parse(self, raw: str, expected: WireTag) -> None:
        assert WireTag.parse(raw) == expected

    def test_str_renders_selector_back(self) -> None:
        assert str(WireTag.parse("pkg.Widget:db?")) == "pkg.Widget:db?"
        assert str(WireTag.parse("db")) == "db"

    def test_star_is_the_any_placeholder(self) -> None:
        assert WireTag.parse("*").is_any
        assert not WireTag.parse("db").is_any


class TestCollectionTag:
    def test_empty_selector_collects_everything(self) -> None:
        tag = CollectionTag.parse("")

        assert tag.items == ()
        assert not tag.nullable

    def test_question_mark_alone_is_nullable(self) -> None:
        assert CollectionTag.parse("?") == CollectionTag(nullable=True)

    def test_items_keep_their_order(self) -> None:
        tag = CollectionTag.parse("a,*,b")

        assert [str(item) for item in tag.items] == ["a", "*", "b"]
        assert tag.has_anchor

    def test_nullable_only_when_every_item_is_nullable(self) -> None:
        assert CollectionTag.parse("a?,b?").nullable
        assert not CollectionTag.parse("a?,b").nullable

    def test_more_than_one_star_raises(self) -> None:
        with pytest.raises(BeanWireInvalidTagError, match="at most one"):
            CollectionTag.parse("a,*,b,*")

    def test_empty_item_raises(self) -> None:
        with pytest.raises(BeanWireInvalidTagError, match="Empty item"):
            CollectionTag.parse("a,,b")


class TestInjectionTag:
    def test_lazy_option_is_split(self) -> None:
        assert InjectionTag.parse("db?,lazy") == InjectionTag(selector="db?", lazy=True)

    def test_without_option(self) -> None:
        assert InjectionTag.parse("a,b") == InjectionTag(selector="a,b")

    def test_lazy_alone(self) -> None:
        assert InjectionTag.parse(",lazy") == InjectionTag(selector="", lazy=True)


class TestToWireTag:
    def test_class_selects_by_type_name(self) -> None:
        tag = to_wire_tag(Widget)

        assert tag == WireTag(type_name=f"{__name__}.Widget")

    def test_definition_selects_by_id(self, container: Container) -> None:
        definition = container.add_object(Widget()).set_name("main")

        assert to_wire_tag(definition) == WireTag(type_name=f"{__name__}.Widget", bean_name="main")

    def test_unsupported_selector_raises(self) -> None:
        with pytest.raises(BeanWireInvalidTagError):
            to_wire_tag(42)  # type: ignore[arg-type]
