"""Registration of service recipes.

A :class:`ServiceRegistry` maps service names to recipes describing how to
build them: a constructor with an ordered list of dependency names, a
zero-argument factory, or a pre-built instance. Registering a name again
replaces the earlier recipe. Dependency names are not checked here; a
:class:`~doppel.resolver.Resolver` reports missing ones when it resolves.

Recipes may be limited to profiles, so that one registry can describe
several configurations of an application:

    >>> registry = ServiceRegistry()
    >>> registry.register_factory("db", InMemoryDb, profiles=["test"])
    >>> registry.register_factory("db", PostgresDb, profiles=["!test"])
    >>> Resolver(registry, profiles={"test"}).resolve("db")
"""

import inspect
import logging
import threading
from dataclasses import dataclass
from typing import Annotated, Any, Callable, Iterator, Optional, get_args, get_origin, get_type_hints

from doppel.domain import ConstructorRecipe, FactoryRecipe, ServiceRecipe, SingletonRecipe
from doppel.errors import DependencyError

__all__ = [
    "Registration",
    "ServiceRegistry",
    "inferred_name",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Registration:
    """A recipe together with the profiles under which it is active.

    Attributes:
        name: The service name.
        recipe: How to build the service.
        profiles: Profile patterns; empty means active in every profile.
    """

    name: str
    recipe: ServiceRecipe
    profiles: tuple[str, ...] = ()


class ServiceRegistry:
    """Maps service names to recipes; the last registration for a name wins.

    The registry also owns the instances resolved from it, one cache per set
    of active profiles, so every :class:`~doppel.resolver.Resolver` over the
    same registry and profiles shares them.
    """

    def __init__(self):
        self._registrations: dict[str, list[Registration]] = {}
        self._resolved: dict[Optional[frozenset], dict[str, tuple]] = {}
        self.lock = threading.RLock()

    def register(
        self, name: str, recipe: ServiceRecipe, profiles: Optional[list[str]] = None
    ) -> "ServiceRegistry":
        """Register, or replace, the recipe for ``name``.

        A registration replaces any earlier one for the same name and the
        same profiles, in any order. Registrations for other profiles are
        kept, and the most recent one active in the resolver's profiles is
        used.

        Returns:
            The registry, so registrations can be chained.
        """
        if not isinstance(recipe, (ConstructorRecipe, FactoryRecipe, SingletonRecipe)):
            raise TypeError(f"{recipe!r} is not a service recipe")
        registration = Registration(name, recipe, tuple(profiles or ()))
        profile_set = frozenset(registration.profiles)
        existing = [
            r for r in self._registrations.get(name, []) if frozenset(r.profiles) != profile_set
        ]
        self._registrations[name] = existing + [registration]
        logger.debug("Registered %s recipe for '%s'", recipe.kind, name)
        return self

    def register_singleton(
        self, name: str, instance: Any, profiles: Optional[list[str]] = None
    ) -> "ServiceRegistry":
        return self.register(name, SingletonRecipe(instance), profiles)

    def register_factory(
        self, name: str, factory: Callable[[], Any], profiles: Optional[list[str]] = None
    ) -> "ServiceRegistry":
        return self.register(name, FactoryRecipe(factory), profiles)

    def register_constructor(
        self,
        name: str,
        build: Callable[..., Any],
        dependency_names: Optional[list[str]] = None,
        profiles: Optional[list[str]] = None,
    ) -> "ServiceRegistry":
        return self.register(name, ConstructorRecipe(build, tuple(dependency_names or ())), profiles)

    def recipe_for(self, name: str, profiles: Optional[set[str]] = None) -> Optional[ServiceRecipe]:
        """Return the recipe in force for ``name``, or None if there is none.

        Args:
            name: The service name.
            profiles: Active profile names. If None, profile restrictions are
                ignored and the latest registration wins.
        """
        for registration in reversed(self._registrations.get(name, [])):
            if profiles is None or _profiles_match(registration.profiles, profiles):
                return registration.recipe
        return None

    def resolved_cache(self, profiles: Optional[set[str]] = None) -> dict[str, tuple]:
        """The cache of instances resolved under ``profiles``, shared by every resolver."""
        key = frozenset(profiles) if profiles is not None else None
        with self.lock:
            return self._resolved.setdefault(key, {})

    def unregister(self, name: str) -> None:
        self._registrations.pop(name, None)

    def registrations(self, name: str) -> list[Registration]:
        return list(self._registrations.get(name, []))

    def restore(self, name: str, registrations: list[Registration]) -> None:
        """Put back registrations previously taken with :meth:`registrations`."""
        if registrations:
            self._registrations[name] = list(registrations)
        else:
            self._registrations.pop(name, None)

    def names(self, profiles: Optional[set[str]] = None) -> list[str]:
        return [name for name in self._registrations if self.recipe_for(name, profiles) is not None]

    def __contains__(self, name: str) -> bool:
        return name in self._registrations

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._registrations))

    def provides(
        self, name: Optional[str] = None, profiles: Optional[list[str]] = None
    ) -> Callable:
        """Decorator registering a function or class as a constructor recipe.

        Dependency names are read from the signature: a parameter annotated
        ``Annotated[T, "name"]`` depends on the service ``name``, any other
        parameter on the service with the parameter's own name.

        Args:
            name: Optional service name; defaults to the class name, or the
                function name with any 'make_' prefix removed.
            profiles: Optional list of profiles for which the recipe is active.

        Returns:
            A decorator that registers its target and returns it unchanged.

        Example:
            @registry.provides(profiles=["dev"])
            def make_mailer(smtp: Annotated[Smtp, "dev_smtp"]) -> Mailer:
                return Mailer(smtp)
        """

        def decorator(obj):
            if not (inspect.isclass(obj) or inspect.isfunction(obj)):
                raise DependencyError(f"{obj} is not a class or function")
            provided_name = name or inferred_name(obj)
            self.register(
                provided_name,
                ConstructorRecipe(obj, tuple(_dependency_names(obj))),
                profiles,
            )
            return obj

        return decorator


def inferred_name(target: Any) -> str:
    """Derive a service name from a class or function name, removing any 'make_' prefix.

    Example:
        >>> inferred_name(Database)       # Returns "Database"
        >>> inferred_name(make_database)  # Returns "database"
        >>> inferred_name(my_service)     # Returns "my_service"
    """
    if inspect.isclass(target):
        return target.__name__

    if target.__name__.startswith("make_"):
        return target.__name__[5:]
    else:
        return target.__name__


def _profiles_match(stated: tuple[str, ...], selected: set[str]) -> bool:
    """Check if a recipe's profile requirements match the selected profiles.

    Profile matching supports inclusion and exclusion patterns:
    - Normal profiles ("dev", "prod") must be in the selected set
    - Exclusion profiles ("!test") must NOT be in the selected set
    - Empty stated profiles match all selected profiles

    Example:
        >>> _profiles_match(("dev",), {"dev"})          # True
        >>> _profiles_match(("!test",), {"dev"})        # True
        >>> _profiles_match(("!test",), {"test"})       # False
        >>> _profiles_match(("prod",), {"dev"})         # False
    """
    provided = [p for p in stated if not p.startswith("!")]
    excluded = [p[1:] for p in stated if p.startswith("!")]

    return not any(e in selected for e in excluded) and (
        not provided or any(p in selected for p in provided)
    )


def _dependency_names(func: Callable) -> list[str]:
    """Read the names of the services a constructor depends on, in parameter order.

    Example:
        >>> def make_service(db, cache: Annotated[Cache, "redis"]) -> Service:
        ...     pass
        >>> _dependency_names(make_service)   # ["db", "redis"]

    Raises:
        DependencyError: For ``*args``/``**kwargs`` or keyword-only parameters,
            which cannot be filled positionally.
    """
    sig = inspect.signature(func)
    hints = get_type_hints(func.__init__ if inspect.isclass(func) else func, include_extras=True)
    names = []
    for parameter in sig.parameters.values():
        if parameter.kind not in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            raise DependencyError(
                "Dependency <%s> of provider <%s> cannot be passed positionally"
                % (parameter.name, func.__name__)
            )
        names.append(_dependency_name(hints.get(parameter.name), parameter.name))
    return names


def _dependency_name(annotation, parameter_name: str) -> str:
    if get_origin(annotation) is Annotated:
        _, *metadata = get_args(annotation)
        qualifier = next((m for m in metadata if isinstance(m, str)), None)
        if qualifier:
            return qualifier
    return parameter_name
