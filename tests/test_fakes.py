from dataclasses import dataclass
from typing import Optional, Protocol

import pytest

from doppel.fakes import Fake, InMemoryRepository


@dataclass
class Order:
    order_id: str
    total: int


class OrderRepository(Protocol):
    def get(self, key: str) -> Optional[Order]:
        ...

    def save(self, item: Order) -> Order:
        ...


class FakeOrderRepository(InMemoryRepository[Order], OrderRepository):
    def __init__(self, seed=None):
        super().__init__(key="order_id", seed=seed)


@pytest.fixture
def orders():
    return FakeOrderRepository(seed=[Order("o1", 10), Order("o2", 25)])


def test_fake_is_seeded(orders):
    assert orders.get("o1") == Order("o1", 10)
    assert orders.count() == 2
    assert OrderRepository in type(orders).__mro__


def test_fake_behaves_like_a_store(orders):
    orders.save(Order("o3", 5))
    orders.save(Order("o1", 99))

    assert orders.get("o1").total == 99
    assert orders.exists("o3")
    assert orders.delete("o2")
    assert not orders.delete("o2")
    assert [o.order_id for o in orders.find_all()] == ["o1", "o3"]
    assert orders.find_by(lambda o: o.total > 50) == [Order("o1", 99)]


def test_reset_discards_state(orders):
    orders.reset()

    assert orders.find_all() == []
    assert len(orders) == 0
    assert orders.get("o1") is None


def test_snapshot_is_a_copy(orders):
    snapshot = orders.snapshot()
    orders.get("o1").total = 1000

    assert snapshot["o1"].total == 10


def test_key_can_be_a_callable():
    repo = InMemoryRepository(key=lambda pair: pair[0], seed=[("a", 1), ("b", 2)])

    assert repo.get("b") == ("b", 2)
    assert list(repo) == [("a", 1), ("b", 2)]


def test_dict_items_are_keyed_by_field():
    repo = InMemoryRepository(seed=[{"id": 7, "name": "seven"}])

    assert repo.get(7)["name"] == "seven"


def test_fake_base_requires_state_methods():
    with pytest.raises(TypeError):
        Fake()
