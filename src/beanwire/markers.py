from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Annotated, Any, NamedTuple, TypeVar, Union, get_args, get_origin

from typing_extensions import Self

if TYPE_CHECKING:
    from beanwire.conditions import Condition

T = TypeVar("T")


class Value(NamedTuple):
    """Bind a class attribute from the property store.

    The tag is a ``${key[:=default]}`` template; the resolved value is
    converted to the attribute annotation with pydantic.

    Examples:
        .. code-block:: python

            class Server:
                host: Annotated[str, Value("${server.host:=localhost}")]
                port: Annotated[int, Value("${server.port:=8080}")]

    """

    tag: str


class Autowire(NamedTuple):
    """Inject one bean or a collection of beans into a class attribute.

    The selector follows ``[typeName][:beanName][?]``; an empty selector
    autowires by the attribute type. Collection annotations (``list[T]``,
    ``tuple[T, ...]``, ``dict[str, T]``) accept a comma-separated selector list
    with at most one ``*`` anchor. A trailing ``,lazy`` defers the injection
    until every other bean is wired.

    Examples:
        .. code-block:: python

            class Handler:
                repo: Annotated[Repo, Autowire()]
                cache: Annotated[Cache | None, Autowire("redis?")]
                plugins: Annotated[list[Plugin], Autowire("auth,*,audit")]

    """

    selector: str = ""


Inject = Autowire


class Export:
    """Mark an interface-typed attribute as an interface the bean exports.

    The attribute itself is not injected. The enclosing bean becomes available
    for lookups by the annotated interface type.
    """

    def __repr__(self) -> str:
        return "Export()"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Export)

    def __hash__(self) -> int:
        return hash(Export)


class Logger:
    """Inject ``logging.getLogger(<bean type name>)`` into a class attribute."""

    def __repr__(self) -> str:
        return "Logger()"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Logger)

    def __hash__(self) -> int:
        return hash(Logger)


class Const(NamedTuple):
    """Pass a constructor argument through unchanged.

    Plain strings are read as selectors or property templates; wrap a string
    in ``Const`` to pass it literally.
    """

    value: Any


class Parent(NamedTuple):
    """Designate the parent bean of a method bean.

    Used as the first constructor argument. The parent is resolved before the
    method bean; when it is excluded by a condition the method bean is
    excluded as well.

    Examples:
        .. code-block:: python

            container.provide(Server.consumer, Parent("server"))

    """

    selector: Any = ""


class Option:
    """Conditionally bound option function for a constructor's ``*args``.

    The option function is called with its own bound arguments; its return
    value is appended to the variadic arguments of the constructor. Options
    whose condition does not match are skipped.

    Examples:
        .. code-block:: python

            container.provide(
                new_client,
                Option(with_timeout, "${client.timeout:=5}"),
                Option(with_tracing).on(OnProperty("tracing.enabled")),
            )

    """

    def __init__(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        if not callable(fn):
            msg = f"Option function must be callable, got {fn!r}."
            raise TypeError(msg)
        self.fn = fn
        self.args = args
        self.kwargs = kwargs
        self.condition: Condition | None = None

    def on(self, condition: Condition) -> Self:
        """Attach a condition; several calls are combined with ``And``."""
        if self.condition is None:
            self.condition = condition
        else:
            self.condition = self.condition & condition
        return self

    def __repr__(self) -> str:
        return f"Option({getattr(self.fn, '__qualname__', self.fn)!r})"


if TYPE_CHECKING:
    Autowired = Union[T, T]  # noqa: UP007,PYI016
    """Shorthand for ``Annotated[T, Autowire()]``."""

else:

    class Autowired:
        """Shorthand for ``Annotated[T, Autowire()]``.

        Examples:
            .. code-block:: python

                class Service:
                    repo: Autowired[Repo]

        """

        def __class_getitem__(cls, item: T) -> Annotated[T, Autowire]:
            if get_origin(item) is Annotated:
                inner, *metadata = get_args(item)
                return Annotated[(inner, *metadata, Autowire())]
            return Annotated[item, Autowire()]


__all__ = [
    "Autowire",
    "Autowired",
    "Const",
    "Export",
    "Inject",
    "Logger",
    "Option",
    "Parent",
    "Value",
]
