"""Collections of beans.

``list[T]`` attributes collect every matching bean sorted by ``order``. A
selector list pins named beans in place; ``*`` marks where the rest go.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from beanwire import Autowire, Container


@dataclass
class Middleware:
    label: str


class Pipeline:
    by_order: Annotated[list[Middleware], Autowire()]
    pinned: Annotated[list[Middleware], Autowire("auth,*,audit")]


def main() -> None:
    container = Container()
    container.add_object(Middleware("audit")).set_name("audit").set_order(0)
    container.add_object(Middleware("gzip")).set_name("gzip").set_order(2)
    container.add_object(Middleware("auth")).set_name("auth").set_order(3)
    container.add_object(Middleware("cors")).set_name("cors").set_order(1)
    container.add_object(Pipeline())
    container.refresh()

    with container:
        pipeline = container.get(Pipeline)
        print([item.label for item in pipeline.by_order])  # => ['audit', 'cors', 'gzip', 'auth']
        print([item.label for item in pipeline.pinned])  # => ['auth', 'cors', 'gzip', 'audit']


if __name__ == "__main__":
    main()
