"""Init and destroy hooks, background tasks.

``close`` cancels the container context, waits for tasks started with
``go`` and then runs destroy hooks, each bean before the beans it used.
"""

from __future__ import annotations

from typing import Annotated

from beanwire import Autowire, CancelContext, Container

events: list[str] = []


class Pool:
    def on_init(self) -> None:
        events.append("pool:init")

    def on_destroy(self) -> None:
        events.append("pool:destroy")


class Scheduler:
    pool: Annotated[Pool, Autowire()]
    ctx: CancelContext

    def run(self, ctx: CancelContext) -> None:
        ctx.wait()
        events.append("scheduler:stopped")

    def on_destroy(self) -> None:
        events.append("scheduler:destroy")


def main() -> None:
    container = Container()
    container.add_object(Pool())
    container.add_object(Scheduler())
    container.refresh()

    container.go(container.get(Scheduler).run)
    container.close()

    print(events)  # => ['pool:init', 'scheduler:stopped', 'scheduler:destroy', 'pool:destroy']


if __name__ == "__main__":
    main()
