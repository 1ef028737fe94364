"""Conditions and profiles.

A bean whose condition does not hold is never created. When several beans
match an interface, conditions can keep only one of them active.
"""

from __future__ import annotations

from typing import Annotated, Protocol

from beanwire import Autowire, Container, Export, OnMissingBean, OnProfile


class Mailer(Protocol):
    def send(self, to: str) -> str: ...


class SmtpMailer:
    mailer: Annotated[Mailer, Export()]

    def send(self, to: str) -> str:
        return f"smtp:{to}"


class ConsoleMailer:
    mailer: Annotated[Mailer, Export()]

    def send(self, to: str) -> str:
        return f"console:{to}"


class Signup:
    mailer: Annotated[Mailer, Autowire()]


def build(profile: str) -> Container:
    container = Container({"profile": profile})
    container.add_object(SmtpMailer()).on(OnProfile("prod"))
    container.add_object(ConsoleMailer()).on(OnMissingBean("SmtpMailer"))
    container.add_object(Signup())
    container.refresh()
    return container


def main() -> None:
    with build("prod") as container:
        print(container.get(Signup).mailer.send("ada"))  # => smtp:ada

    with build("dev") as container:
        print(container.get(Signup).mailer.send("ada"))  # => console:ada


if __name__ == "__main__":
    main()
