"""Exceptions raised by test doubles and by service resolution."""

from typing import Any, Optional, Sequence

__all__ = [
    "DoppelError",
    "DoubleError",
    "UnexpectedCallError",
    "ExpectationNotMetError",
    "UnknownMethodError",
    "ContextClosedError",
    "DependencyError",
    "ServiceNotRegisteredError",
    "CircularDependencyError",
]


class DoppelError(Exception):
    """Base class for every error raised by the framework itself."""

    pass


class DoubleError(DoppelError):
    """Raised when a test double is misused or its expectations are not met."""

    pass


class UnexpectedCallError(DoubleError, AssertionError):
    """Raised when a Dummy, which must never be exercised, is called."""

    def __init__(self, interface_name: str, method_name: str, args: tuple, kwargs: dict):
        super().__init__(
            f"Unexpected call to {interface_name}.{method_name}"
            f"({_format_arguments(args, kwargs)}): this collaborator must not be used"
        )
        self.interface_name = interface_name
        self.method_name = method_name
        self.args_received = args
        self.kwargs_received = kwargs


class ExpectationNotMetError(DoubleError, AssertionError):
    """Raised by ``verify()`` when recorded calls violate an expectation.

    Attributes:
        method_name: The method whose expectation failed.
        expected: The violated bound (a count) or the expected argument list.
        actual: The observed call count or argument list.
    """

    def __init__(self, message: str, method_name: str, expected: Any, actual: Any):
        super().__init__(message)
        self.method_name = method_name
        self.expected = expected
        self.actual = actual


class UnknownMethodError(DoubleError, AttributeError):
    """Raised when a double is configured for a method its interface does not have."""

    pass


class ContextClosedError(DoubleError):
    """Raised when a torn-down TestContext is used again."""

    pass


class DependencyError(DoppelError):
    """Raised when a service's dependency cannot be resolved or is misdeclared."""

    pass


class ServiceNotRegisteredError(DependencyError, KeyError):
    """Raised when a requested, or transitively required, service has no recipe."""

    def __init__(self, name: str, path: Optional[Sequence[str]] = None):
        self.name = name
        self.path = list(path or [])
        if self.path:
            message = f"No service registered for '{name}' (required by {' -> '.join(self.path)})"
        else:
            message = f"No service registered for '{name}'"
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class CircularDependencyError(DependencyError):
    """Raised when constructor recipes depend on each other in a cycle."""

    def __init__(self, path: Sequence[str]):
        self.path = list(path)
        super().__init__(f"Circular dependency: {' -> '.join(self.path)}")


def _format_arguments(args: tuple, kwargs: dict) -> str:
    rendered = [repr(a) for a in args]
    rendered.extend(f"{k}={v!r}" for k, v in kwargs.items())
    return ", ".join(rendered)
