"""Tests for the property store."""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from beanwire.exceptions import (
    BeanWireBindError,
    BeanWireMissingPropertyError,
    BeanWirePropertyCycleError,
    BeanWirePropertyError,
    BeanWireRegisterAfterRefreshError,
)
from beanwire.properties import Properties


class ServerConfig(BaseModel):
    host: str
    port: int


class TestPropertiesStorage:
    def test_nested_mappings_are_flattened(self) -> None:
        properties = Properties({"server": {"host": "localhost", "port": 8080}})

        assert properties.keys() == ["server.host", "server.port"]
        assert properties.get("server.port") == 8080

    def test_keys_are_case_folded(self) -> None:
        properties = Properties()
        properties.set("Server.Host", "example.org")

        assert properties.get("server.host") == "example.org"
        assert properties.has("SERVER.HOST")
        assert "server.host" in properties

    def test_has_accepts_key_prefixes(self) -> None:
        properties = Properties({"a.b.c": 1})

        assert properties.has("a")
        assert properties.has("a.b")
        assert not properties.has("a.b.c.d")
        assert not properties.has("a.bc")

    def test_prefix_key_returns_nested_dict(self) -> None:
        properties = Properties({"db": {"primary": {"url": "sqlite://"}, "pool": 5}})

        assert properties.get("db") == {"primary": {"url": "sqlite://"}, "pool": 5}
        assert properties.subtree("db.primary") == {"url": "sqlite://"}

    def test_sequences_stay_leaves(self) -> None:
        properties = Properties({"hosts": ["a", "b"]})

        assert properties.get("hosts") == ["a", "b"]
        assert properties.keys() == ["hosts"]

    def test_missing_key_without_default_raises(self) -> None:
        with pytest.raises(BeanWireMissingPropertyError, match="not defined"):
            Properties().get("missing")

    def test_missing_key_returns_default(self) -> None:
        assert Properties().get("missing", "fallback") == "fallback"

    def test_empty_key_is_rejected(self) -> None:
        with pytest.raises(BeanWirePropertyError):
            Properties().set("  ", 1)

    def test_frozen_store_rejects_writes(self) -> None:
        properties = Properties({"a": 1})
        properties.freeze()

        with pytest.raises(BeanWireRegisterAfterRefreshError):
            properties.set("b", 2)
        assert properties.frozen

    def test_profiles_are_split_and_lowercased(self) -> None:
        properties = Properties({"profile": "Dev, Test"})

        assert properties.profiles() == frozenset({"dev", "test"})

    def test_no_profile_means_no_active_profiles(self) -> None:
        assert Properties().profiles() == frozenset()


class TestPropertiesResolve:
    def test_single_span_returns_raw_value(self) -> None:
        properties = Properties({"port": 8080})

        assert properties.resolve("${port}") == 8080

    def test_embedded_spans_are_concatenated(self) -> None:
        properties = Properties({"server": {"host": "localhost", "port": 8080}})

        resolved = properties.resolve("http://${server.host}:${server.port}/")

        assert resolved == "http://localhost:8080/"

    def test_default_is_used_for_missing_key(self) -> None:
        assert Properties().resolve("${timeout:=30}") == "30"

    def test_default_may_reference_other_keys(self) -> None:
        properties = Properties({"fallback": "b"})

        assert properties.resolve("${a:=${fallback:=c}}") == "b"
        assert properties.resolve("${a:=${other:=c}}") == "c"

    def test_values_are_resolved_recursively(self) -> None:
        properties = Properties({"base": "/srv", "logs": "${base}/logs"})

        assert properties.get("logs") == "/srv/logs"

    def test_non_templates_are_returned_unchanged(self) -> None:
        properties = Properties()

        assert properties.resolve("plain") == "plain"
        assert properties.resolve(42) == 42

    def test_lists_are_resolved_item_by_item(self) -> None:
        properties = Properties({"a": "x"})

        assert properties.resolve(["${a}", "y"]) == ["x", "y"]

    def test_missing_reference_raises(self) -> None:
        with pytest.raises(BeanWireMissingPropertyError, match="no default"):
            Properties().resolve("${missing}")

    def test_reference_cycle_raises(self) -> None:
        properties = Properties({"a": "${b}", "b": "${a}"})

        with pytest.raises(BeanWirePropertyCycleError, match="a -> b -> a"):
            properties.get("a")

    def test_unterminated_reference_raises(self) -> None:
        with pytest.raises(BeanWirePropertyError, match="Unterminated"):
            Properties({"a": 1}).resolve("${a")


class TestPropertiesBind:
    def test_binds_numeric_string_to_int(self) -> None:
        properties = Properties({"port": "8080"})

        assert properties.bind(int, "${port}") == 8080

    def test_binds_number_to_str(self) -> None:
        properties = Properties({"version": 2})

        assert properties.bind(str, "${version}") == "2"

    def test_binds_comma_separated_string_to_list(self) -> None:
        properties = Properties({"hosts": "a, b ,c"})

        assert properties.bind(list[str], "${hosts}") == ["a", "b", "c"]

    def test_binds_prefix_to_model(self) -> None:
        properties = Properties({"server": {"host": "localhost", "port": "9000"}})

        config = properties.bind(ServerConfig, "${server}")

        assert config == ServerConfig(host="localhost", port=9000)

    def test_binds_default(self) -> None:
        assert Properties().bind(float, "${ratio:=0.5}") == 0.5

    def test_invalid_value_raises_bind_error(self) -> None:
        properties = Properties({"port": "eighty"})

        with pytest.raises(BeanWireBindError) as exc_info:
            properties.bind(int, "${port}")

        assert exc_info.value.__cause__ is not None
