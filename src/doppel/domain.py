"""Domain models used throughout the framework."""

import itertools
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence, Union

__all__ = [
    "UNSET",
    "MethodCall",
    "Returns",
    "ReturnsSequence",
    "Raises",
    "ResponseRecipe",
    "Expectation",
    "ConstructorRecipe",
    "FactoryRecipe",
    "SingletonRecipe",
    "ServiceRecipe",
    "next_sequence_number",
]


class _Unset:
    """Marker for "no value configured", distinct from a configured ``None``."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()

_sequence = itertools.count(1)


def next_sequence_number() -> int:
    """Return the next value of the process-wide monotonic call counter."""
    return next(_sequence)


@dataclass(frozen=True)
class MethodCall:
    """A single recorded invocation of a doubled method.

    Attributes:
        method_name: Name of the invoked method.
        args: Positional arguments, normalised against the method signature when known.
        kwargs: Keyword arguments that could not be bound positionally.
        sequence: Monotonic counter value, ordering calls across every double.
    """

    method_name: str
    args: tuple
    kwargs: dict = field(default_factory=dict)
    sequence: int = 0


@dataclass(frozen=True)
class Returns:
    """Answer every call with ``value``."""

    value: Any


@dataclass(frozen=True)
class ReturnsSequence:
    """Answer successive calls with successive values, repeating the last one."""

    values: tuple

    def __post_init__(self):
        if not self.values:
            raise ValueError("ReturnsSequence needs at least one value")


@dataclass(frozen=True)
class Raises:
    """Raise ``error`` when called; once only unless ``persistent``."""

    error: BaseException
    persistent: bool = True


ResponseRecipe = Union[Returns, ReturnsSequence, Raises]


@dataclass(frozen=True)
class Expectation:
    """A declared constraint on how a mocked method should be called.

    ``times`` takes precedence over ``min_times``/``max_times`` when both are given.
    ``with_args`` and ``with_kwargs`` are compared against the most recent call only.
    ``returns`` and ``raises`` decide how the mock answers the call.
    """

    method_name: str
    times: Optional[int] = None
    min_times: Optional[int] = None
    max_times: Optional[int] = None
    with_args: Optional[tuple] = None
    with_kwargs: Optional[dict] = None
    returns: Any = UNSET
    raises: Optional[BaseException] = None

    def __post_init__(self):
        for label in ("times", "min_times", "max_times"):
            value = getattr(self, label)
            if value is not None and (not isinstance(value, int) or value < 0):
                raise ValueError(
                    f"Expectation for '{self.method_name}': {label} must be a "
                    f"non-negative integer, got {value!r}"
                )
        if (
            self.min_times is not None
            and self.max_times is not None
            and self.min_times > self.max_times
        ):
            raise ValueError(
                f"Expectation for '{self.method_name}': min_times {self.min_times} "
                f"exceeds max_times {self.max_times}"
            )

    def merged_with(self, other: "Expectation") -> "Expectation":
        """Return a copy of this expectation overlaid with the fields set on ``other``."""
        return Expectation(
            self.method_name,
            times=_pick(other.times, self.times),
            min_times=_pick(other.min_times, self.min_times),
            max_times=_pick(other.max_times, self.max_times),
            with_args=_pick(other.with_args, self.with_args),
            with_kwargs=_pick(other.with_kwargs, self.with_kwargs),
            returns=self.returns if other.returns is UNSET else other.returns,
            raises=_pick(other.raises, self.raises),
        )


def _pick(preferred, fallback):
    return fallback if preferred is None else preferred


@dataclass(frozen=True)
class ConstructorRecipe:
    """Build a service by calling ``build`` with the resolved named dependencies, in order."""

    build: Callable[..., Any]
    dependency_names: Sequence[str] = ()

    kind = "constructor"


@dataclass(frozen=True)
class FactoryRecipe:
    """Build a service by calling a zero-argument factory."""

    build: Callable[[], Any]

    kind = "factory"


@dataclass(frozen=True)
class SingletonRecipe:
    """A pre-built service instance."""

    instance: Any

    kind = "singleton"


ServiceRecipe = Union[ConstructorRecipe, FactoryRecipe, SingletonRecipe]
