"""Per-test ownership of doubles and service overrides."""

import logging
from typing import Any, Iterable, Optional, TypeVar

from doppel.doubles import Dummy, Mock, Spy, Stub, TestDouble, make_dummy, make_mock, make_spy, make_stub
from doppel.errors import ContextClosedError
from doppel.fakes import Fake
from doppel.registry import Registration, ServiceRegistry

__all__ = ["TestContext"]

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Fake)


class TestContext:
    """Creates the doubles for one test and undoes everything in :meth:`teardown`.

    Overrides replace a service's recipe in a registry with a pre-built
    instance for the duration of the test; teardown restores the original
    registrations. The context can be used as a context manager.

    Example:
        >>> with TestContext() as ctx:
        ...     repo = ctx.mock(UserRepository)
        ...     ctx.override(registry, "user_repository", repo)
        ...     repo.expect("save", times=1)
        ...     Resolver(registry).resolve("signup").sign_up("u1")
        ...     ctx.verify()
    """

    __test__ = False

    def __init__(self):
        self._doubles: list[TestDouble] = []
        self._fakes: list[Fake] = []
        self._overrides: list[tuple[ServiceRegistry, str, list[Registration]]] = []
        self._closed = False

    def dummy(self, interface: Optional[type] = None, methods: Optional[Iterable] = None) -> Dummy:
        return self._track(make_dummy(interface, methods))

    def stub(self, interface: Optional[type] = None, methods: Optional[Iterable] = None) -> Stub:
        return self._track(make_stub(interface, methods))

    def spy(self, interface: Optional[type] = None, methods: Optional[Iterable] = None) -> Spy:
        return self._track(make_spy(interface, methods))

    def mock(self, interface: Optional[type] = None, methods: Optional[Iterable] = None) -> Mock:
        return self._track(make_mock(interface, methods))

    def fake(self, fake_class: type[F], *args: Any, **kwargs: Any) -> F:
        self._ensure_open()
        fake = fake_class(*args, **kwargs)
        self._fakes.append(fake)
        return fake

    def override(self, registry: ServiceRegistry, name: str, instance: Any) -> None:
        """Make ``name`` resolve to ``instance`` until teardown."""
        self._ensure_open()
        self._overrides.append((registry, name, registry.registrations(name)))
        registry.unregister(name)
        registry.register_singleton(name, instance)
        logger.debug("Overrode service '%s' for this test", name)

    def verify(self) -> None:
        """Verify every mock created by this context, in creation order."""
        self._ensure_open()
        for double in self._doubles:
            if isinstance(double, Mock):
                Mock.verify(double)

    def teardown(self) -> None:
        """Reset recorded calls and fakes and restore overridden services.

        Calling it again has no effect.
        """
        if self._closed:
            return
        for registry, name, registrations in reversed(self._overrides):
            registry.restore(name, registrations)
        for double in self._doubles:
            if isinstance(double, Spy):
                Spy.reset(double)
        for fake in self._fakes:
            fake.reset()
        self._doubles.clear()
        self._fakes.clear()
        self._overrides.clear()
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "TestContext":
        return self

    def __exit__(self, *exc_info) -> None:
        self.teardown()

    def _track(self, double):
        self._ensure_open()
        self._doubles.append(double)
        return double

    def _ensure_open(self) -> None:
        if self._closed:
            raise ContextClosedError("This TestContext has been torn down")
