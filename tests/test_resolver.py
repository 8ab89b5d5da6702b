import threading
from dataclasses import dataclass
from typing import Annotated, Any, Callable

import pytest

from doppel.errors import CircularDependencyError, ServiceNotRegisteredError
from doppel.registry import ServiceRegistry
from doppel.resolver import Resolver

DB = Callable[[str], dict[str, Any]]


class Printer:
    def __init__(self):
        self.printed = []

    def print(self, user_details):
        for k, v in user_details.items():
            self.printed.append(f"{k}: {v}")


@dataclass(frozen=True)
class Service:
    db: DB
    printer: Printer

    def print_user_details(self, user_id):
        user_details = self.db(user_id)
        self.printer.print(user_details)


@pytest.fixture
def registry() -> ServiceRegistry:
    registry = ServiceRegistry()

    @registry.provides(name="db", profiles=["test"])
    def make_test_db() -> DB:
        def db(_user_id: str) -> dict[str, Any]:
            return {"name": "Arthur Putey", "age": 42}

        return db

    @registry.provides(name="db", profiles=["uat"])
    def make_uat_db() -> DB:
        def db(_user_id: str) -> dict:
            return {"name": "Gawain of Camelot", "age": 23}

        return db

    registry.provides(name="printer")(Printer)
    registry.provides(name="service")(Service)

    return registry


def test_resolves_constructor_dependencies_by_name(registry):
    resolver = Resolver(registry, {"test"})
    service = resolver.resolve("service")
    service.print_user_details("id123")

    assert resolver["printer"].printed == ["name: Arthur Putey", "age: 42"]


def test_profiles_select_recipes(registry):
    resolver = Resolver(registry, {"uat"})

    assert resolver["db"]("u1")["name"] == "Gawain of Camelot"


@pytest.mark.parametrize("kind", ["constructor", "factory", "singleton"])
def test_resolution_is_identity_stable(kind):
    registry = ServiceRegistry()
    if kind == "constructor":
        registry.register_constructor("svc", Printer)
    elif kind == "factory":
        registry.register_factory("svc", Printer)
    else:
        registry.register_singleton("svc", Printer())
    resolver = Resolver(registry)

    assert resolver.resolve("svc") is resolver.resolve("svc")


def test_factory_is_invoked_once():
    calls = []
    registry = ServiceRegistry().register_factory("svc", lambda: calls.append(1) or object())
    resolver = Resolver(registry)

    resolver.resolve("svc")
    resolver.resolve("svc")

    assert calls == [1]


def test_dependencies_resolved_left_to_right_before_constructor():
    events = []

    def build(label):
        def make(*args):
            events.append(label)
            return (label, args)

        return make

    registry = (
        ServiceRegistry()
        .register_constructor("a", build("a"), ["b", "c"])
        .register_factory("b", build("b"))
        .register_factory("c", build("c"))
    )

    a = Resolver(registry).resolve("a")

    assert events == ["b", "c", "a"]
    assert a == ("a", (("b", ()), ("c", ())))


def test_shared_dependency_built_once():
    registry = (
        ServiceRegistry()
        .register_constructor("a", lambda b, c: (b, c), ["b", "c"])
        .register_constructor("b", lambda d: ("b", d), ["d"])
        .register_constructor("c", lambda d: ("c", d), ["d"])
        .register_factory("d", object)
    )

    b, c = Resolver(registry).resolve("a")

    assert b[1] is c[1]


def test_resolve_by_qualifier():
    registry = ServiceRegistry()

    @registry.provides(name="foo")
    def make_foo() -> str:
        return "foo"

    @registry.provides(name="bar")
    def make_bar() -> str:
        return "bar"

    @registry.provides()
    def make_concat(foo: Annotated[str, "foo"], bar: Annotated[str, "bar"]) -> str:
        return foo + bar

    assert Resolver(registry)["concat"] == "foobar"


def test_missing_registration_raises_without_caching():
    registry = ServiceRegistry().register_factory("present", object)
    resolver = Resolver(registry)

    with pytest.raises(ServiceNotRegisteredError, match="No service registered for 'missing'"):
        resolver.resolve("missing")

    assert not resolver.is_resolved("present")


def test_missing_transitive_dependency_leaves_cache_untouched():
    registry = (
        ServiceRegistry()
        .register_constructor("a", lambda b, c: (b, c), ["b", "c"])
        .register_factory("b", object)
    )
    resolver = Resolver(registry)

    with pytest.raises(ServiceNotRegisteredError, match=r"'c' \(required by a\)") as raised:
        resolver.resolve("a")

    assert raised.value.name == "c"
    assert isinstance(raised.value, KeyError)
    assert not resolver.is_resolved("b")


def test_failed_build_is_retried():
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("not yet")
        return "ready"

    resolver = Resolver(ServiceRegistry().register_factory("svc", flaky))

    with pytest.raises(RuntimeError, match="not yet"):
        resolver.resolve("svc")
    assert resolver.resolve("svc") == "ready"
    assert len(attempts) == 2


def test_dependency_cycle_detected():
    registry = ServiceRegistry()

    @registry.provides(name="a")
    def make_a(b: Annotated[int, "b"]) -> int:
        return b + 1

    @registry.provides(name="b")
    def make_b(a: Annotated[int, "a"]) -> int:
        return a + 1

    with pytest.raises(CircularDependencyError, match="Circular dependency: a -> b -> a") as raised:
        Resolver(registry).resolve("a")
    assert raised.value.path == ["a", "b", "a"]


def test_self_dependency_detected():
    registry = ServiceRegistry().register_constructor("a", lambda a: a, ["a"])

    with pytest.raises(CircularDependencyError, match="a -> a"):
        Resolver(registry).resolve("a")


def test_replaced_recipe_is_rebuilt():
    registry = ServiceRegistry().register_singleton("svc", "original")
    resolver = Resolver(registry)
    assert resolver.resolve("svc") == "original"

    registry.register_singleton("svc", "override")

    assert resolver.resolve("svc") == "override"


def test_clear_forgets_instances():
    resolver = Resolver(ServiceRegistry().register_factory("svc", object))
    first = resolver.resolve("svc")

    resolver.clear()

    assert resolver.resolve("svc") is not first


def test_child_resolver_falls_back_to_parent():
    global_registry = ServiceRegistry().register_singleton("lhs", 42)
    kid_a_registry = ServiceRegistry().register_singleton("rhs", 23)
    kid_b_registry = ServiceRegistry().register_singleton("rhs", 19)
    for kid in (kid_a_registry, kid_b_registry):
        kid.register_constructor("sum", lambda lhs, rhs: lhs + rhs, ["lhs", "rhs"])

    parent = Resolver(global_registry)
    kid_a = parent.child(kid_a_registry)
    kid_b = parent.child(kid_b_registry)

    assert kid_a["sum"] == 65
    assert kid_b["sum"] == 61
    assert "rhs" not in parent
    assert "lhs" in kid_a


def test_child_does_not_leak_into_parent():
    parent = Resolver(ServiceRegistry())
    kid = parent.child(ServiceRegistry().register_singleton("local", 1))

    assert kid["local"] == 1
    with pytest.raises(ServiceNotRegisteredError):
        parent.resolve("local")


def test_concurrent_first_resolution_builds_once():
    built = []
    barrier = threading.Barrier(4)

    def build():
        built.append(1)
        return object()

    resolver = Resolver(ServiceRegistry().register_factory("svc", build))
    results = []

    def worker():
        barrier.wait()
        results.append(resolver.resolve("svc"))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(built) == 1
    assert all(result is results[0] for result in results)


def test_resolvers_over_one_registry_share_instances():
    registry = ServiceRegistry().register_factory("svc", object)

    first = Resolver(registry).resolve("svc")

    assert Resolver(registry).resolve("svc") is first
    assert Resolver(registry).is_resolved("svc")
    assert Resolver(registry, {"dev"}).resolve("svc") is not first


def test_profile_sets_share_instances_regardless_of_order():
    registry = ServiceRegistry().register_factory("svc", object)

    first = Resolver(registry, {"dev", "local"}).resolve("svc")

    assert Resolver(registry, ["local", "dev"]).resolve("svc") is first


def test_clear_applies_to_every_resolver_over_the_registry():
    registry = ServiceRegistry().register_factory("svc", object)
    first = Resolver(registry).resolve("svc")

    Resolver(registry).clear()

    assert Resolver(registry).resolve("svc") is not first


def test_failed_child_resolution_leaves_parent_cache_untouched():
    parent = Resolver(ServiceRegistry().register_factory("shared", object))
    kid = parent.child(
        ServiceRegistry().register_constructor("a", lambda s, m: (s, m), ["shared", "missing"])
    )

    with pytest.raises(ServiceNotRegisteredError, match=r"'missing' \(required by a\)"):
        kid.resolve("a")

    assert not parent.is_resolved("shared")


def test_parent_instances_built_for_a_child_are_cached_in_the_parent():
    parent = Resolver(ServiceRegistry().register_factory("shared", object))
    kid = parent.child(ServiceRegistry().register_constructor("a", lambda s: s, ["shared"]))

    shared = kid.resolve("a")

    assert parent.is_resolved("shared")
    assert parent.resolve("shared") is shared
    assert not parent.is_resolved("a")
