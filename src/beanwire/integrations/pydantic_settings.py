from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel
from pydantic_settings import BaseSettings

from beanwire._internal.type_checks import is_runtime_class


def is_pydantic_settings_subclass(candidate: object) -> bool:
    """Return whether ``candidate`` is a ``pydantic_settings.BaseSettings`` subclass."""
    if not is_runtime_class(candidate):
        return False
    try:
        return issubclass(candidate, BaseSettings)
    except TypeError:
        return False


def settings_properties(source: Any) -> dict[str, Any]:
    """Flatten a property source into a nested mapping for the property store.

    Accepted sources are plain mappings, pydantic models (``BaseSettings``
    instances included) and ``BaseSettings`` subclasses, which are
    instantiated so they read their configured environment and dotenv files.

    Examples:
        .. code-block:: python

            class ServerSettings(BaseSettings):
                model_config = SettingsConfigDict(env_prefix="SERVER_")

                host: str = "localhost"
                port: int = 8080


            container.add_property_source(ServerSettings)
            # properties "host" and "port" become available

    Raises:
        TypeError: If ``source`` is none of the accepted kinds.

    """
    if is_pydantic_settings_subclass(source):
        source = source()
    if isinstance(source, BaseModel):
        return source.model_dump(mode="python")
    if isinstance(source, Mapping):
        return dict(source)
    msg = (
        "Property sources must be a mapping, a pydantic model or a BaseSettings subclass, "
        f"got {source!r}."
    )
    raise TypeError(msg)


__all__ = ["is_pydantic_settings_subclass", "settings_properties"]
