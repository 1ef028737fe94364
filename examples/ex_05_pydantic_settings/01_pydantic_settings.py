"""Feed the property store from pydantic-settings.

``add_property_source`` accepts a ``BaseSettings`` class, which is
instantiated so it reads the environment, and flattens it into dotted keys.
"""

from __future__ import annotations

import os
from typing import Annotated

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from beanwire import Container, Value


class Limits(BaseModel):
    burst: int = 10


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="APP_", env_nested_delimiter="__")

    name: str = "demo"
    limits: Limits = Limits()


class RateLimiter:
    app: Annotated[str, Value("${name}")]
    burst: Annotated[int, Value("${limits.burst}")]


def main() -> None:
    os.environ["APP_LIMITS__BURST"] = "25"

    container = Container()
    container.add_property_source(AppSettings)
    container.add_object(RateLimiter())
    container.refresh()

    with container:
        limiter = container.get(RateLimiter)
        print(f"app={limiter.app} burst={limiter.burst}")  # => app=demo burst=25


if __name__ == "__main__":
    main()
