"""Test doubles and a minimal service resolver.

Doppel has two halves that are often used together in tests:

Test doubles, generated per interface with explicit intercepting methods
(no runtime proxies):
    - Dummy: must never be called
    - Stub: canned answers
    - Spy: a Stub that records calls
    - Mock: a Spy with expectations and ``verify()``
    - Fake: a small working implementation, such as an in-memory repository

Service resolution:
    - ServiceRegistry: named recipes (constructor, factory, singleton)
    - Resolver: builds each service once, resolving dependencies depth-first

Basic Usage:
    >>> from doppel import ServiceRegistry, Resolver, make_mock
    >>>
    >>> registry = ServiceRegistry()
    >>> registry.register_constructor("signup", SignupService, ["user_repository"])
    >>> repo = make_mock(UserRepository)
    >>> registry.register_singleton("user_repository", repo)
    >>> repo.expect("save", times=1)
    >>>
    >>> Resolver(registry).resolve("signup").sign_up("u1")
    >>> repo.verify()
"""

from doppel.context import TestContext
from doppel.domain import (
    UNSET,
    ConstructorRecipe,
    Expectation,
    FactoryRecipe,
    MethodCall,
    Raises,
    Returns,
    ReturnsSequence,
    SingletonRecipe,
)
from doppel.doubles import Dummy, Mock, Spy, Stub, TestDouble, make_dummy, make_mock, make_spy, make_stub
from doppel.errors import (
    CircularDependencyError,
    ContextClosedError,
    DependencyError,
    DoppelError,
    DoubleError,
    ExpectationNotMetError,
    ServiceNotRegisteredError,
    UnexpectedCallError,
    UnknownMethodError,
)
from doppel.fakes import Fake, InMemoryRepository
from doppel.interface import MethodSpec
from doppel.matchers import anything, equal_to, instance_of, that
from doppel.registry import ServiceRegistry
from doppel.resolver import Resolver

__all__ = [
    "TestContext",
    "UNSET",
    "ConstructorRecipe",
    "Expectation",
    "FactoryRecipe",
    "MethodCall",
    "Raises",
    "Returns",
    "ReturnsSequence",
    "SingletonRecipe",
    "Dummy",
    "Mock",
    "Spy",
    "Stub",
    "TestDouble",
    "make_dummy",
    "make_mock",
    "make_spy",
    "make_stub",
    "CircularDependencyError",
    "ContextClosedError",
    "DependencyError",
    "DoppelError",
    "DoubleError",
    "ExpectationNotMetError",
    "ServiceNotRegisteredError",
    "UnexpectedCallError",
    "UnknownMethodError",
    "Fake",
    "InMemoryRepository",
    "MethodSpec",
    "anything",
    "equal_to",
    "instance_of",
    "that",
    "ServiceRegistry",
    "Resolver",
]
