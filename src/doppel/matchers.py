"""Argument matchers for ``with_args`` expectations.

Plain values in ``with_args`` are compared with ``==``, which is structural
for lists, dicts, tuples and dataclasses. A :class:`Matcher` can stand in any
position where equality is too strict.

Example:
    >>> mock.expect("save", with_args=[instance_of(User), anything()])
"""

from typing import Any, Callable

__all__ = ["Matcher", "anything", "instance_of", "equal_to", "that", "argument_matches"]


class Matcher:
    """Base class for argument matchers."""

    def matches(self, value: Any) -> bool:
        raise NotImplementedError

    def __eq__(self, other: Any) -> bool:
        return self.matches(other)

    def __ne__(self, other: Any) -> bool:
        return not self.matches(other)

    __hash__ = None


class _Anything(Matcher):
    def matches(self, value: Any) -> bool:
        return True

    def __repr__(self) -> str:
        return "anything()"


class _InstanceOf(Matcher):
    def __init__(self, expected_type: type):
        self._expected_type = expected_type

    def matches(self, value: Any) -> bool:
        return isinstance(value, self._expected_type)

    def __repr__(self) -> str:
        return f"instance_of({self._expected_type.__name__})"


class _EqualTo(Matcher):
    def __init__(self, expected: Any):
        self._expected = expected

    def matches(self, value: Any) -> bool:
        return type(value) is type(self._expected) and value == self._expected

    def __repr__(self) -> str:
        return f"equal_to({self._expected!r})"


class _That(Matcher):
    def __init__(self, predicate: Callable[[Any], bool], description: str):
        self._predicate = predicate
        self._description = description

    def matches(self, value: Any) -> bool:
        return bool(self._predicate(value))

    def __repr__(self) -> str:
        return f"that({self._description})"


def anything() -> Matcher:
    return _Anything()


def instance_of(expected_type: type) -> Matcher:
    return _InstanceOf(expected_type)


def equal_to(expected: Any) -> Matcher:
    """Strict equality: the types must match too, so ``1`` does not match ``True``."""
    return _EqualTo(expected)


def that(predicate: Callable[[Any], bool], description: str = "predicate") -> Matcher:
    return _That(predicate, description)


def argument_matches(expected: Any, actual: Any) -> bool:
    if isinstance(expected, Matcher):
        return expected.matches(actual)
    return expected == actual
