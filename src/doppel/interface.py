"""Introspection of the interfaces that test doubles stand in for.

A double is built from a capability list: one :class:`MethodSpec` per public
method of the interface. The list is derived from a class, ABC or
``typing.Protocol`` by :func:`capabilities_of`, or given explicitly as a list
of method names.
"""

import collections.abc
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union, get_origin, get_type_hints

__all__ = ["MethodSpec", "capabilities_of", "empty_default_for", "method_name_of"]


_EMPTY_DEFAULTS: dict[Any, Callable[[], Any]] = {
    list: list,
    dict: dict,
    set: set,
    frozenset: frozenset,
    tuple: tuple,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Iterable: list,
    collections.abc.Collection: list,
    collections.abc.Mapping: dict,
    collections.abc.MutableMapping: dict,
    collections.abc.Set: set,
    collections.abc.MutableSet: set,
}


@dataclass(frozen=True)
class MethodSpec:
    """Describes one method a double must provide.

    Attributes:
        name: The method name.
        is_async: Whether the interface declares it ``async def``.
        signature: The signature without ``self``, used to normalise recorded
            arguments; ``None`` when unknown.
        return_type: The annotated return type, if any.
    """

    name: str
    is_async: bool = False
    signature: Optional[inspect.Signature] = None
    return_type: Any = None

    def bind(self, args: tuple, kwargs: dict) -> tuple[tuple, dict]:
        """Normalise call arguments so positional and keyword spellings record alike.

        Raises:
            TypeError: If the arguments do not fit the known signature, as
                calling the real method would.
        """
        if self.signature is None:
            return tuple(args), dict(kwargs)
        try:
            bound = self.signature.bind(*args, **kwargs)
        except TypeError as error:
            raise TypeError(f"{self.name}(): {error}") from None
        return tuple(bound.args), dict(bound.kwargs)

    def empty_default(self) -> Any:
        return empty_default_for(self.return_type)


def empty_default_for(return_type: Any) -> Any:
    """Return the "empty" value a Stub answers with for an unconfigured method.

    Example:
        >>> empty_default_for(list[str])   # []
        >>> empty_default_for(dict)        # {}
        >>> empty_default_for(User)        # None
    """
    origin = get_origin(return_type) or return_type
    try:
        factory = _EMPTY_DEFAULTS.get(origin)
    except TypeError:
        # unhashable annotation objects
        return None
    return factory() if factory else None


def capabilities_of(
    interface: Optional[type] = None,
    methods: Optional[Iterable[Union[str, MethodSpec]]] = None,
) -> tuple[MethodSpec, ...]:
    """Build the capability list for an interface, an explicit method list, or both.

    Public functions declared on the interface (including inherited and
    abstract ones) become capabilities. Explicit ``methods`` are added to,
    or override, those found on the interface.

    Raises:
        ValueError: If neither an interface nor methods are given.
    """
    if interface is None and methods is None:
        raise ValueError("A double needs an interface or an explicit list of methods")

    specs: dict[str, MethodSpec] = {}
    if interface is not None:
        for name, member in inspect.getmembers(interface):
            if name.startswith("_") or not inspect.isfunction(member):
                continue
            specs[name] = _spec_for_function(name, member)

    for entry in methods or ():
        spec = entry if isinstance(entry, MethodSpec) else MethodSpec(str(entry))
        if not spec.name.isidentifier():
            raise ValueError(f"{spec.name!r} is not a valid method name")
        specs[spec.name] = spec

    return tuple(specs.values())


def method_name_of(method: Union[str, Callable]) -> str:
    """Accept a method name, an interface function or a double's bound method."""
    if isinstance(method, str):
        return method
    name = getattr(method, "__name__", None)
    if name is None:
        raise TypeError(f"Cannot determine a method name from {method!r}")
    return name


def _spec_for_function(name: str, func: Callable) -> MethodSpec:
    signature = inspect.signature(func)
    parameters = list(signature.parameters.values())
    if parameters and parameters[0].name in ("self", "cls"):
        parameters = parameters[1:]
    try:
        hints = get_type_hints(func)
    except NameError:
        # unresolvable forward reference: no empty default can be derived
        hints = {}
    return MethodSpec(
        name,
        inspect.iscoroutinefunction(func),
        signature.replace(parameters=parameters),
        hints.get("return"),
    )
