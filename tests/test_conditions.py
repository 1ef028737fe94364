"""Tests for conditions and condition expressions."""

from __future__ import annotations

from typing import Any

import pytest

from beanwire._internal.expressions import coerce_scalar, evaluate_condition
from beanwire._internal.registry import BeanRegistry
from beanwire.bean import new_bean
from beanwire.conditions import (
    And,
    ConditionContext,
    Not,
    OnBean,
    OnMatches,
    OnMissingBean,
    OnMissingProperty,
    OnProfile,
    OnProperty,
    OnPropertyValue,
    OnSingleCandidate,
    Or,
)
from beanwire.exceptions import BeanWireConditionError
from beanwire.properties import Properties


class Sink:
    pass


def make_registry(properties: dict[str, Any] | None = None) -> BeanRegistry:
    return BeanRegistry(Properties(properties))


class TestPropertyConditions:
    def test_on_property_checks_presence(self) -> None:
        registry = make_registry({"feature": {"enabled": "true"}})

        assert OnProperty("feature.enabled").matches(registry)
        assert OnProperty("feature").matches(registry)
        assert not OnProperty("other").matches(registry)

    def test_on_property_match_if_missing(self) -> None:
        assert OnProperty("other", match_if_missing=True).matches(make_registry())

    def test_on_property_having_value_compares_text(self) -> None:
        registry = make_registry({"mode": "fast", "enabled": True, "level": 3})

        assert OnProperty("mode", having_value="fast").matches(registry)
        assert not OnProperty("mode", having_value="slow").matches(registry)
        assert OnProperty("enabled", having_value="true").matches(registry)
        assert OnProperty("level", having_value=3).matches(registry)

    def test_on_property_value_evaluates_expression(self) -> None:
        registry = make_registry({"workers": "4"})

        assert OnPropertyValue("workers", "$ >= 3").matches(registry)
        assert not OnPropertyValue("workers", "$ > 4").matches(registry)

    def test_on_property_value_substitutes_value_text_in_literals(self) -> None:
        registry = make_registry({"str": "this is a str", "int": 3})

        assert OnPropertyValue("int", 3).matches(registry)
        assert OnPropertyValue("int", "$>2&&$<4").matches(registry)
        assert OnPropertyValue("str", '"$"=="this is a str"').matches(registry)
        assert not OnPropertyValue("bool", True).matches(registry)

    def test_on_missing_property(self) -> None:
        registry = make_registry({"a": 1})

        assert OnMissingProperty("b").matches(registry)
        assert not OnMissingProperty("a").matches(registry)

    @pytest.mark.parametrize(
        ("profiles", "wanted", "expected"),
        [
            ("dev", "dev", True),
            ("DEV,test", "test", True),
            ("dev", "prod,Dev", True),
            ("dev", "prod", False),
            (None, "dev", False),
            ("dev", "", True),
            (None, "", True),
        ],
    )
    def test_on_profile(self, profiles: str | None, wanted: str, expected: bool) -> None:
        registry = make_registry({"profile": profiles} if profiles else None)

        assert OnProfile(wanted).matches(registry) is expected


class TestBeanConditions:
    def test_on_bean_and_on_missing_bean(self) -> None:
        registry = make_registry()
        registry.add(new_bean(Sink()))

        assert OnBean(Sink).matches(registry)
        assert OnBean("Sink").matches(registry)
        assert not OnMissingBean(Sink).matches(registry)
        assert OnMissingBean("missing").matches(registry)

    def test_on_bean_resolves_candidates_lazily(self) -> None:
        registry = make_registry()
        candidate = registry.add(new_bean(Sink()).on(OnProperty("sink.enabled")))

        assert not OnBean(Sink).matches(registry)
        assert candidate.status.name == "DELETED"

    def test_on_single_candidate(self) -> None:
        registry = make_registry()
        registry.add(new_bean(Sink()).set_name("first"))

        assert OnSingleCandidate(Sink).matches(registry)

        registry.add(new_bean(Sink()).set_name("second"))

        assert not OnSingleCandidate(Sink).matches(registry)

    def test_on_matches_receives_context(self) -> None:
        seen: list[ConditionContext] = []
        registry = make_registry({"a": 1})

        def check(ctx: ConditionContext) -> bool:
            seen.append(ctx)
            return ctx.properties.has("a")

        assert OnMatches(check).matches(registry)
        assert seen == [registry]


class TestCombinators:
    def test_operators_build_combinators(self) -> None:
        present = OnProperty("a")
        absent = OnProperty("b")

        assert isinstance(present & absent, And)
        assert isinstance(present | absent, Or)
        assert isinstance(~present, Not)

    def test_combinators_evaluate(self) -> None:
        registry = make_registry({"a": 1})
        present = OnProperty("a")
        absent = OnProperty("b")

        assert not (present & absent).matches(registry)
        assert (present | absent).matches(registry)
        assert (~absent).matches(registry)
        assert And().matches(registry)
        assert not Or().matches(registry)


class TestExpressions:
    @pytest.mark.parametrize(
        ("expression", "value", "expected"),
        [
            ("$ == 3", "3", True),
            ("$ > 2 and $ < 5", 4, True),
            ("$ in ('a', 'b')", "a", True),
            ("not $", "false", True),
            ("$ % 2 == 0", "7", False),
            ("$ == true", "TRUE", True),
            ("1 < $ <= 3", 3.0, True),
            ("$ == 'fast'", "fast", True),
            ("$>2&&$<4", 3, True),
            ("$>2&&$<3", 3, False),
            ("!($ > 4) || $ == 9", 9, True),
            ("$ != 3", "3", False),
            ('"$"=="this is a str"', "this is a str", True),
            ('"$" == "other"', "this is a str", False),
            ("'$-suffix' == 'on-suffix'", "on", True),
        ],
    )
    def test_evaluate(self, expression: str, value: Any, expected: bool) -> None:
        assert evaluate_condition(expression, value) is expected

    def test_coerce_scalar(self) -> None:
        assert coerce_scalar("12") == 12
        assert coerce_scalar("1.5") == 1.5
        assert coerce_scalar("False") is False
        assert coerce_scalar("text") == "text"
        assert coerce_scalar([1]) == [1]

    @pytest.mark.parametrize(
        "expression",
        [
            "$ >",
            "__import__('os')",
            "$.real",
            "unknown == $",
            "$ + 1",
        ],
    )
    def test_rejected_expressions(self, expression: str) -> None:
        with pytest.raises(BeanWireConditionError):
            evaluate_condition(expression, "1")

    def test_type_mismatch_is_reported(self) -> None:
        with pytest.raises(BeanWireConditionError, match="Cannot evaluate"):
            evaluate_condition("$ > 'a'", 1)
