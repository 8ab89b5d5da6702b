"""Checking recorded calls against declared expectations.

Expectations are evaluated in the order they were registered. For each one
the call count is checked first (an exact ``times``, otherwise the
``min_times``/``max_times`` bounds), then the arguments of the most recent
call against ``with_args`` and ``with_kwargs``. An expectation yields at most
one violation.
"""

import logging
from typing import Iterable, Iterator, Optional

from doppel.domain import Expectation
from doppel.errors import ExpectationNotMetError
from doppel.matchers import argument_matches
from doppel.recorder import CallRecorder

__all__ = ["violations", "verify"]

logger = logging.getLogger(__name__)


def verify(expectations: Iterable[Expectation], recorder: CallRecorder) -> None:
    """Raise the first violated expectation, if any.

    Raises:
        ExpectationNotMetError: Naming the method, the expected bound or
            arguments, and what was actually observed.
    """
    for violation in violations(expectations, recorder):
        logger.debug("Verification failed: %s", violation)
        raise violation


def violations(
    expectations: Iterable[Expectation], recorder: CallRecorder
) -> Iterator[ExpectationNotMetError]:
    """Yield one error per violated expectation, in registration order."""
    for expectation in expectations:
        violation = _check_count(expectation, recorder) or _check_arguments(
            expectation, recorder
        )
        if violation is not None:
            yield violation


def _check_count(
    expectation: Expectation, recorder: CallRecorder
) -> Optional[ExpectationNotMetError]:
    name = expectation.method_name
    actual = recorder.count(name)

    if expectation.times is not None:
        if actual != expectation.times:
            return ExpectationNotMetError(
                f"{name}: expected {_calls(expectation.times)}, got {actual}",
                name,
                expectation.times,
                actual,
            )
        return None

    if expectation.min_times is not None and actual < expectation.min_times:
        return ExpectationNotMetError(
            f"{name}: expected at least {_calls(expectation.min_times)}, got {actual}",
            name,
            expectation.min_times,
            actual,
        )
    if expectation.max_times is not None and actual > expectation.max_times:
        return ExpectationNotMetError(
            f"{name}: expected at most {_calls(expectation.max_times)}, got {actual}",
            name,
            expectation.max_times,
            actual,
        )
    return None


def _check_arguments(
    expectation: Expectation, recorder: CallRecorder
) -> Optional[ExpectationNotMetError]:
    if expectation.with_args is None and expectation.with_kwargs is None:
        return None
    last_call = recorder.last_call(expectation.method_name)
    if last_call is None:
        return None

    # Naming only keywords leaves the positional arguments unchecked.
    expected_args = expectation.with_args
    actual_args = last_call.args if expected_args is not None else None
    expected_kwargs = expectation.with_kwargs or {}
    if _positional_match(expected_args, actual_args) and _keywords_match(
        expected_kwargs, last_call.kwargs
    ):
        return None

    expected = _arguments(expected_args, expected_kwargs, last_call.kwargs)
    actual = _arguments(actual_args, last_call.kwargs, expected_kwargs)
    return ExpectationNotMetError(
        f"{expectation.method_name}: expected last call with arguments "
        f"{_describe(expected)}, got {_describe(actual)}",
        expectation.method_name,
        expected,
        actual,
    )


def _positional_match(expected: Optional[tuple], actual: Optional[tuple]) -> bool:
    if expected is None:
        return True
    return len(expected) == len(actual) and all(
        argument_matches(e, a) for e, a in zip(expected, actual)
    )


def _keywords_match(expected: dict, actual: dict) -> bool:
    return expected.keys() == actual.keys() and all(
        argument_matches(value, actual[key]) for key, value in expected.items()
    )


def _arguments(args: Optional[tuple], kwargs: dict, other_kwargs: dict):
    """Positional arguments as a list, paired with keywords if either side has any."""
    positional = list(args) if args is not None else None
    if not kwargs and not other_kwargs:
        return positional
    return positional, dict(kwargs)


def _describe(arguments) -> str:
    if isinstance(arguments, tuple):
        positional, keywords = arguments
        if positional is None:
            return repr(keywords)
        return f"{positional!r} {keywords!r}"
    return repr(arguments)


def _calls(count: int) -> str:
    return f"{count} call" if count == 1 else f"{count} calls"
