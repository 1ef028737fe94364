from __future__ import annotations


class BeanWireError(Exception):
    """Represent a base class for all BeanWire-specific failures.

    Catch this type when you want to handle any BeanWire error path without
    matching each concrete exception class individually.

    Errors raised while ``Container.refresh`` walks the bean graph carry the
    wiring path that was active at the failure point in ``wiring_path``. The
    path is appended to ``str(error)`` so log output shows which chain of beans
    led to the failing one.
    """

    wiring_path: str | None = None

    def __str__(self) -> str:
        message = super().__str__()
        if self.wiring_path:
            return f"{message}\nwiring path:\n{self.wiring_path}"
        return message


class BeanWireInvalidBeanError(BeanWireError):
    """Signal an invalid bean subject, constructor, or hook.

    Raised by ``new_bean``, ``Container.add_object`` and ``Container.provide``
    when the registered value is ``None`` or an immutable scalar, when a
    constructor declares no usable return type, when constructor arguments do
    not match its signature, or when an init/destroy hook does not take exactly
    one parameter.

    Also raised during refresh when a constructor returns ``None``.
    """


class BeanWireExportConflictError(BeanWireError):
    """Signal an invalid export declaration.

    Raised when an exported type is not an interface (a ``Protocol`` or an
    abstract class), when the bean type does not implement an exported
    interface, or when a class attribute is marked both ``Export()`` and
    ``Autowire(...)``.
    """


class BeanWireDuplicateBeanError(BeanWireError):
    """Signal that two surviving bean definitions share one id.

    Typical fix is giving one of the beans an explicit name with
    ``BeanDefinition.set_name`` or excluding one of them with a condition.
    """


class BeanWirePropertyError(BeanWireError):
    """Represent a base class for property store failures."""


class BeanWireMissingPropertyError(BeanWirePropertyError):
    """Signal a ``${key}`` reference to an undefined key without a default."""


class BeanWirePropertyCycleError(BeanWirePropertyError):
    """Signal that ``${...}`` expansion refers back to a key being expanded."""


class BeanWireBindError(BeanWirePropertyError):
    """Signal that a property value cannot be converted to the target type.

    The original ``pydantic.ValidationError`` is chained as ``__cause__``.
    """


class BeanWireNoSuchBeanError(BeanWireError):
    """Signal that a required selector matches no active bean.

    Append ``?`` to the selector to make the injection point nullable.
    """


class BeanWireAmbiguousBeanError(BeanWireError):
    """Signal that a single-valued selector matches more than one bean.

    Typical fixes include a more specific selector, a bean name, or marking one
    candidate with ``BeanDefinition.set_primary``.
    """


class BeanWireAmbiguousPrimaryError(BeanWireAmbiguousBeanError):
    """Signal that more than one matching candidate is marked primary."""


class BeanWireAmbiguousParentError(BeanWireAmbiguousBeanError):
    """Signal that the parent selector of a method bean matches several beans."""


class BeanWireCircularConstructionError(BeanWireError):
    """Signal a dependency cycle that passes through a constructor bean.

    Value beans may point at each other freely. A constructor cannot receive a
    bean that is still waiting for the same constructor to return, so such a
    cycle fails. Mark one of the injection points ``lazy`` to break it.
    """


class BeanWireDestroyerCycleError(BeanWireError):
    """Signal that destroy hooks cannot be put into a linear order."""


class BeanWireConfigurerCycleError(BeanWireError):
    """Signal that configuration functions have cyclic before/after constraints."""


class BeanWireLifecycleError(BeanWireError):
    """Represent a base class for container lifecycle misuse."""


class BeanWireRegisterAfterRefreshError(BeanWireLifecycleError):
    """Signal a registration or property write after refresh has started."""


class BeanWireAlreadyRefreshedError(BeanWireLifecycleError):
    """Signal a second ``Container.refresh`` call."""


class BeanWireNotRefreshedError(BeanWireLifecycleError):
    """Signal a lookup operation before ``Container.refresh`` completed."""


class BeanWireContainerClosedError(BeanWireLifecycleError):
    """Signal ``Container.go`` after the container was closed."""


class BeanWireInvalidTagError(BeanWireError):
    """Signal a malformed selector string.

    Raised for collection selectors with more than one ``*`` placeholder and
    for empty items inside a comma-separated selector list.
    """


class BeanWireConditionError(BeanWireError):
    """Signal a condition that cannot be evaluated.

    Raised for malformed ``OnPropertyValue`` expressions and for conditions
    referring to property values of an unsupported shape.
    """

