"""Resolution of named services into cached instances.

A :class:`Resolver` builds each service at most once and hands out the same
instance on every later request, whatever kind of recipe it came from. The
instances are cached by the registry, per set of active profiles, so any
number of resolvers over one registry share them. Constructor dependencies
are resolved depth-first, left to right, before the constructor itself is
called.

Resolution is transactional: instances built while resolving a name are only
cached once the whole request succeeds. If any build fails, or a dependency
is missing or cyclic, every cache involved is left as it was and a later
request starts again from scratch.

Resolvers may be layered: a name with no recipe in the resolver's own
registry is requested from its parent, so a test-scoped resolver can add or
replace services on top of an application-wide one. Names built by the
parent on the child's behalf belong to the same transaction.
"""

import logging
from typing import Any, Optional

from doppel.domain import ConstructorRecipe, FactoryRecipe, ServiceRecipe, SingletonRecipe
from doppel.errors import CircularDependencyError, ServiceNotRegisteredError
from doppel.registry import ServiceRegistry

__all__ = ["Resolver"]

logger = logging.getLogger(__name__)

# Instances built during one request, per resolver, committed together.
Transaction = dict["Resolver", dict[str, tuple[ServiceRecipe, Any]]]


class Resolver:
    """Resolves service names against a registry, caching what it builds.

    Args:
        registry: The registry holding the recipes and the resolved instances.
        profiles: Active profile names used to select recipes. If None,
            profile restrictions are ignored.
        parent: An optional resolver consulted for names this registry lacks.
    """

    def __init__(
        self,
        registry: ServiceRegistry,
        profiles: Optional[set[str]] = None,
        parent: Optional["Resolver"] = None,
    ):
        self._registry = registry
        self._profiles = set(profiles) if profiles is not None else None
        self._parent = parent
        self._cache = registry.resolved_cache(self._profiles)
        self._lock = registry.lock

    def resolve(self, name: str) -> Any:
        """Return the instance for ``name``, building it and its dependencies if needed.

        Raises:
            ServiceNotRegisteredError: If ``name``, or anything it depends on,
                has no recipe here or in a parent.
            CircularDependencyError: If constructor recipes depend on each other in a cycle.
        """
        with self._lock:
            transaction: Transaction = {}
            instance = self._resolve(name, transaction, [])
            for resolver, built in transaction.items():
                with resolver._lock:
                    resolver._cache.update(built)
            return instance

    def __getitem__(self, name: str) -> Any:
        return self.resolve(name)

    def __contains__(self, name: str) -> bool:
        return self._recipe_for(name) is not None or (
            self._parent is not None and name in self._parent
        )

    def is_resolved(self, name: str) -> bool:
        with self._lock:
            return self._cached(name, self._recipe_for(name)) is not None

    def clear(self) -> None:
        """Forget every instance cached for this registry and these profiles."""
        with self._lock:
            self._cache.clear()

    def child(self, registry: ServiceRegistry) -> "Resolver":
        """Create a resolver for ``registry`` that falls back to this one."""
        return Resolver(registry, self._profiles, self)

    def _resolve(self, name: str, transaction: Transaction, path: list[str]) -> Any:
        if name in path:
            raise CircularDependencyError(path[path.index(name):] + [name])

        recipe = self._recipe_for(name)
        if recipe is None:
            if self._parent is not None and name in self._parent:
                return self._parent._resolve(name, transaction, path)
            raise ServiceNotRegisteredError(name, path)

        built = transaction.setdefault(self, {})
        cached = self._cached(name, recipe) or built.get(name)
        if cached is not None:
            return cached[1]

        instance = self._build(name, recipe, transaction, path + [name])
        built[name] = (recipe, instance)
        logger.debug("Resolved %s service '%s'", recipe.kind, name)
        return instance

    def _build(
        self, name: str, recipe: ServiceRecipe, transaction: Transaction, path: list[str]
    ) -> Any:
        if isinstance(recipe, SingletonRecipe):
            return recipe.instance
        if isinstance(recipe, FactoryRecipe):
            return recipe.build()
        if isinstance(recipe, ConstructorRecipe):
            dependencies = [
                self._resolve(dependency_name, transaction, path)
                for dependency_name in recipe.dependency_names
            ]
            return recipe.build(*dependencies)
        raise TypeError(f"Unknown recipe {recipe!r} for '{name}'")

    def _recipe_for(self, name: str) -> Optional[ServiceRecipe]:
        return self._registry.recipe_for(name, self._profiles)

    def _cached(self, name: str, recipe: Optional[ServiceRecipe]) -> Optional[tuple]:
        # An entry built from a since-replaced recipe is stale.
        entry = self._cache.get(name)
        if entry is None or entry[0] is not recipe:
            return None
        return entry
