"""pytest fixture providing a fresh :class:`~doppel.context.TestContext` per test."""

import pytest

from doppel.context import TestContext


@pytest.fixture
def doppel_context():
    context = TestContext()
    yield context
    context.teardown()
