"""Test doubles: Dummy, Stub, Spy and Mock.

A double is an instance of a class generated for its interface: the
generated class derives from both the double variant and the interface, and
defines one explicit intercepting method per capability. There is no
``__getattr__`` or proxy dispatch; calling a method the interface does not
declare is an ordinary ``AttributeError``.

The variants differ only in how they answer calls:

    - Dummy raises :class:`UnexpectedCallError` on every call.
    - Stub answers from its response table, or with an empty default.
    - Spy is a Stub that records every call for later inspection.
    - Mock is a Spy with expectations, checked by :meth:`Mock.verify`.

Example:
    >>> repo = make_mock(UserRepository)
    >>> repo.expect("save", times=1, returns=User("u1"))
    >>> SignupService(repo).sign_up("u1")
    >>> repo.verify()

If an interface declares a method with the same name as part of the double's
own API (``reset``, ``verify``...), the interface method wins; the double's
version stays reachable through the class, e.g. ``Mock.verify(repo)``.
"""

import logging
import types
from typing import Any, Callable, Iterable, Optional, Union

from doppel.domain import UNSET, Expectation, MethodCall, Raises, Returns, ReturnsSequence, ResponseRecipe
from doppel.errors import UnexpectedCallError, UnknownMethodError
from doppel.interface import MethodSpec, capabilities_of, method_name_of
from doppel.recorder import CallRecorder
from doppel.responses import ResponseTable
from doppel import verification

__all__ = [
    "TestDouble",
    "Dummy",
    "Stub",
    "Spy",
    "Mock",
    "make_dummy",
    "make_stub",
    "make_spy",
    "make_mock",
]

logger = logging.getLogger(__name__)

MethodKey = Union[str, Callable]
Answer = Callable[[], Any]


class TestDouble:
    """Common base of every generated double class."""

    __test__ = False

    _capabilities: tuple[MethodSpec, ...] = ()
    _interface_name: str = "<interface>"

    def __init__(self):
        # The interface's own __init__ is never called.
        self._specs = {spec.name: spec for spec in self._capabilities}

    def _spec_for(self, method: MethodKey) -> MethodSpec:
        name = method_name_of(method)
        try:
            return self._specs[name]
        except KeyError:
            raise UnknownMethodError(
                f"{self._interface_name} has no method '{name}'"
            ) from None

    def _intercept(self, spec: MethodSpec, args: tuple, kwargs: dict) -> Answer:
        """Do the call's bookkeeping now and return a thunk producing its answer.

        ``args`` and ``kwargs`` arrive already bound to the method signature.
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"

    # Doubles compare by identity and stay mutable, whatever the interface declares.
    __eq__ = object.__eq__
    __ne__ = object.__ne__
    __hash__ = object.__hash__
    __setattr__ = object.__setattr__
    __delattr__ = object.__delattr__


class Dummy(TestDouble):
    """A collaborator that must not be exercised by the test at all."""

    def _intercept(self, spec: MethodSpec, args: tuple, kwargs: dict) -> Answer:
        raise UnexpectedCallError(self._interface_name, spec.name, args, kwargs)


class Stub(TestDouble):
    """Answers calls with canned responses, never failing on its own."""

    def __init__(self):
        super().__init__()
        self._responses = ResponseTable()

    def set_response(self, method: MethodKey, recipe: ResponseRecipe) -> "Stub":
        self._responses.set_response(self._spec_for(method).name, recipe)
        return self

    def returns(self, method: MethodKey, value: Any) -> "Stub":
        return self.set_response(method, Returns(value))

    def returns_sequence(self, method: MethodKey, *values: Any) -> "Stub":
        """Answer successive calls with ``values`` in turn, then keep repeating the last."""
        return self.set_response(method, ReturnsSequence(tuple(values)))

    def raises(self, method: MethodKey, error: BaseException, persistent: bool = True) -> "Stub":
        return self.set_response(method, Raises(error, persistent))

    def _intercept(self, spec: MethodSpec, args: tuple, kwargs: dict) -> Answer:
        return lambda: self._responses.resolve(spec.name, spec.empty_default)


class Spy(Stub):
    """A Stub that records every call for assertions made by the test itself."""

    def __init__(self):
        super().__init__()
        self._recorder = CallRecorder()

    def get_calls_for(self, method: MethodKey) -> list[MethodCall]:
        return self._recorder.calls_for(self._spec_for(method).name)

    def get_calls(self) -> list[MethodCall]:
        """All calls to any method, in the order they were made."""
        return self._recorder.all_calls()

    def last_call(self, method: MethodKey) -> Optional[MethodCall]:
        return self._recorder.last_call(self._spec_for(method).name)

    def was_called(self, method: MethodKey) -> bool:
        return self._recorder.was_called(self._spec_for(method).name)

    def get_call_count(self, method: MethodKey) -> int:
        return self._recorder.count(self._spec_for(method).name)

    def reset(self) -> None:
        """Forget every recorded call. Configured responses are kept."""
        self._recorder.reset()

    def _intercept(self, spec: MethodSpec, args: tuple, kwargs: dict) -> Answer:
        self._recorder.record(spec.name, args, kwargs)
        return super()._intercept(spec, args, kwargs)


class Mock(Spy):
    """A Spy holding expectations that it verifies itself.

    Calls are answered from the expectation registered for the method
    (``raises`` first, then ``returns``); failing that from a response
    configured as for a Stub; otherwise with ``None``.
    """

    def __init__(self):
        super().__init__()
        self._expectations: dict[str, Expectation] = {}

    def expect(
        self,
        method: MethodKey,
        *,
        times: Optional[int] = None,
        min_times: Optional[int] = None,
        max_times: Optional[int] = None,
        with_args: Optional[Iterable[Any]] = None,
        with_kwargs: Optional[dict[str, Any]] = None,
        returns: Any = UNSET,
        raises: Optional[BaseException] = None,
    ) -> Expectation:
        """Register an expectation for ``method``.

        A later expectation for the same method is merged into the earlier
        one: the fields it sets replace the earlier values, and the others
        are kept. The expectation keeps its original place in the
        verification order.

        ``with_args`` and ``with_kwargs`` are matched against the most recent
        call, after binding it to the method signature. Once either is given,
        a keyword argument the expectation does not name is a mismatch.

        Returns:
            The expectation now in force for the method.

        Raises:
            UnknownMethodError: If the interface has no such method.
            ValueError: If the counts are negative or ``min_times > max_times``.
        """
        name = self._spec_for(method).name
        expectation = Expectation(
            name,
            times=times,
            min_times=min_times,
            max_times=max_times,
            with_args=tuple(with_args) if with_args is not None else None,
            with_kwargs=dict(with_kwargs) if with_kwargs is not None else None,
            returns=returns,
            raises=raises,
        )
        existing = self._expectations.get(name)
        if existing is not None:
            expectation = existing.merged_with(expectation)
        self._expectations[name] = expectation
        logger.debug("%s expects %s", self._interface_name, expectation)
        return expectation

    def expectations(self) -> list[Expectation]:
        return list(self._expectations.values())

    def verify(self) -> None:
        """Check every expectation, raising on the first one that is not met.

        Raises:
            ExpectationNotMetError: For the first violated expectation, in
                registration order.
        """
        verification.verify(self._expectations.values(), self._recorder)

    def unmet_expectations(self) -> list[Exception]:
        """Every violated expectation at once, for a fuller failure report."""
        return list(verification.violations(self._expectations.values(), self._recorder))

    def _intercept(self, spec: MethodSpec, args: tuple, kwargs: dict) -> Answer:
        self._recorder.record(spec.name, args, kwargs)

        def answer():
            expectation = self._expectations.get(spec.name)
            if expectation is not None:
                if expectation.raises is not None:
                    raise expectation.raises
                if expectation.returns is not UNSET:
                    return expectation.returns
            return self._responses.resolve(spec.name, lambda: None)

        return answer


def make_dummy(interface: Optional[type] = None, methods: Optional[Iterable] = None) -> Dummy:
    return _make_double(Dummy, interface, methods)


def make_stub(interface: Optional[type] = None, methods: Optional[Iterable] = None) -> Stub:
    return _make_double(Stub, interface, methods)


def make_spy(interface: Optional[type] = None, methods: Optional[Iterable] = None) -> Spy:
    return _make_double(Spy, interface, methods)


def make_mock(interface: Optional[type] = None, methods: Optional[Iterable] = None) -> Mock:
    """Create a Mock standing in for ``interface``.

    Args:
        interface: A class, ABC or Protocol whose public methods are doubled.
        methods: Method names (or :class:`MethodSpec`) to double in addition
            to, or instead of, those of the interface.
    """
    return _make_double(Mock, interface, methods)


_double_classes: dict[tuple[type, type], type] = {}


def _make_double(variant: type, interface: Optional[type], methods: Optional[Iterable]):
    if interface is not None and methods is None:
        key = (variant, interface)
        if key not in _double_classes:
            _double_classes[key] = _double_class(variant, interface, capabilities_of(interface))
        return _double_classes[key]()
    return _double_class(variant, interface, capabilities_of(interface, methods))()


def _double_class(
    variant: type, interface: Optional[type], capabilities: tuple[MethodSpec, ...]
) -> type:
    interface_name = interface.__name__ if interface is not None else "Double"
    namespace = {spec.name: _intercepting_method(spec) for spec in capabilities}
    namespace["_capabilities"] = capabilities
    namespace["_interface_name"] = interface_name

    bases = (variant,) if interface is None else (variant, interface)
    cls = types.new_class(
        f"{variant.__name__}[{interface_name}]",
        bases,
        exec_body=lambda ns: ns.update(namespace),
    )
    if getattr(cls, "__abstractmethods__", None):
        # abstract properties and the like are not doubled; allow instantiation anyway
        cls.__abstractmethods__ = frozenset()
    logger.debug(
        "Generated %s with methods %s", cls.__name__, [spec.name for spec in capabilities]
    )
    return cls


def _intercepting_method(spec: MethodSpec) -> Callable:
    if spec.is_async:

        def method(self, *args, **kwargs):
            answer = self._intercept(spec, *spec.bind(args, kwargs))
            try:
                value = answer()
            except BaseException as error:
                return _raise_when_awaited(error)
            return _return_when_awaited(value)

    else:

        def method(self, *args, **kwargs):
            return self._intercept(spec, *spec.bind(args, kwargs))()

    method.__name__ = spec.name
    method.__qualname__ = spec.name
    return method


async def _return_when_awaited(value):
    return value


async def _raise_when_awaited(error):
    raise error
