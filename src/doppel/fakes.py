"""Fakes: small working implementations of a collaborator.

Unlike the other doubles, a Fake is validated by its behaviour rather than by
inspecting calls. It keeps real state and exposes test-only mutators
(``seed``, ``reset``, ``snapshot``) next to the interface it implements.

Example:
    >>> class FakeUserRepository(InMemoryRepository, UserRepository):
    ...     pass
    >>> repo = FakeUserRepository(key="user_id", seed=[User("u1"), User("u2")])
    >>> repo.get("u1")
"""

import copy
from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Hashable, Iterable, Iterator, Optional, TypeVar, Union

__all__ = ["Fake", "InMemoryRepository"]

T = TypeVar("T")


class Fake(ABC):
    """Base class for fakes: state is created by :meth:`reset` and filled by :meth:`seed`."""

    __test__ = False

    def __init__(self, seed: Any = None):
        self.reset()
        if seed is not None:
            self.seed(seed)

    @abstractmethod
    def seed(self, state: Any) -> None:
        """Load initial state, on top of whatever is already held."""

    @abstractmethod
    def reset(self) -> None:
        """Discard all state."""

    @abstractmethod
    def snapshot(self) -> Any:
        """Return a copy of the current state for assertions."""


class InMemoryRepository(Fake, Generic[T]):
    """A keyed in-memory store.

    Args:
        key: Attribute name, or a callable, giving each item's key.
        seed: Items to store initially.
    """

    def __init__(self, key: Union[str, Callable[[T], Hashable]] = "id", seed: Optional[Iterable[T]] = None):
        self._key = key if callable(key) else _attribute_getter(key)
        super().__init__(seed)

    def seed(self, state: Iterable[T]) -> None:
        for item in state:
            self.save(item)

    def reset(self) -> None:
        self._items: dict[Hashable, T] = {}

    def snapshot(self) -> dict[Hashable, T]:
        return copy.deepcopy(self._items)

    def save(self, item: T) -> T:
        self._items[self._key(item)] = item
        return item

    def get(self, key: Hashable) -> Optional[T]:
        return self._items.get(key)

    def exists(self, key: Hashable) -> bool:
        return key in self._items

    def delete(self, key: Hashable) -> bool:
        if key not in self._items:
            return False
        del self._items[key]
        return True

    def find_all(self) -> list[T]:
        return list(self._items.values())

    def find_by(self, predicate: Callable[[T], bool]) -> list[T]:
        return [item for item in self._items.values() if predicate(item)]

    def count(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)


def _attribute_getter(name: str) -> Callable[[Any], Hashable]:
    def get_key(item: Any) -> Hashable:
        if isinstance(item, dict):
            return item[name]
        return getattr(item, name)

    return get_key
