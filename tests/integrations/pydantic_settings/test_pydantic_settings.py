from __future__ import annotations

from typing import Annotated

import pytest
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from beanwire import Container, Value
from beanwire.integrations.pydantic_settings import (
    is_pydantic_settings_subclass,
    settings_properties,
)


class ServerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BEANWIRE_TEST_SERVER_")

    host: str = "localhost"
    port: int = 8080


class Limits(BaseModel):
    burst: int = 10


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BEANWIRE_TEST_APP_")

    limits: Limits = Limits()
    debug: bool = False


class HttpServer:
    host: Annotated[str, Value("${host}")]
    port: Annotated[int, Value("${port}")]


class LimitedServer:
    burst: Annotated[int, Value("${limits.burst}")]


def test_detects_settings_subclasses() -> None:
    assert is_pydantic_settings_subclass(ServerSettings)
    assert not is_pydantic_settings_subclass(ServerSettings())
    assert not is_pydantic_settings_subclass(Limits)
    assert not is_pydantic_settings_subclass(list[int])


def test_settings_class_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BEANWIRE_TEST_SERVER_PORT", "9090")

    assert settings_properties(ServerSettings) == {"host": "localhost", "port": 9090}


def test_nested_models_are_dumped() -> None:
    properties = settings_properties(AppSettings())

    assert properties["limits"] == {"burst": 10}
    assert properties["debug"] is False


def test_mapping_is_copied() -> None:
    source = {"a": 1}

    properties = settings_properties(source)

    assert properties == source
    assert properties is not source


def test_unsupported_source_raises() -> None:
    with pytest.raises(TypeError, match="Property sources"):
        settings_properties(42)


def test_settings_feed_value_attributes(
    container: Container,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("BEANWIRE_TEST_SERVER_HOST", "example.org")
    container.add_property_source(ServerSettings)
    container.add_object(HttpServer())

    container.refresh()

    server = container.get(HttpServer)
    assert server.host == "example.org"
    assert server.port == 8080


def test_nested_model_becomes_dotted_keys(container: Container) -> None:
    container.add_property_source({"limits": Limits(burst=3).model_dump()})
    container.add_object(LimitedServer())

    container.refresh()

    assert container.properties.get("limits.burst") == 3
    assert container.get(LimitedServer).burst == 3
