"""Quickstart: register beans, refresh once, look them up.

Ready objects are registered with ``add_object`` and constructors with
``provide``. ``refresh`` wires every bean exactly once; annotated attributes
and constructor parameters are filled from other beans and properties.
"""

from __future__ import annotations

from typing import Annotated

from beanwire import Autowire, Container, Value


class Database:
    url: Annotated[str, Value("${db.url:=sqlite://}")]


class UserRepository:
    def __init__(self, database: Database) -> None:
        self.database = database


class UserService:
    repository: Annotated[UserRepository, Autowire()]


def main() -> None:
    container = Container({"db": {"url": "postgresql://localhost/app"}})
    container.add_object(Database())
    container.provide(UserRepository)
    container.add_object(UserService())
    container.refresh()

    with container:
        service = container.get(UserService)
        print(f"db_url={service.repository.database.url}")  # => db_url=postgresql://localhost/app

        chain = (
            f"{type(service).__name__}"
            f">{type(service.repository).__name__}"
            f">{type(service.repository.database).__name__}"
        )
        print(f"chain={chain}")  # => chain=UserService>UserRepository>Database


if __name__ == "__main__":
    main()
