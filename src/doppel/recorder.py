"""Append-only, per-method log of calls made to a test double."""

import logging
from collections import defaultdict
from typing import Optional

from doppel.domain import MethodCall, next_sequence_number

__all__ = ["CallRecorder"]

logger = logging.getLogger(__name__)


class CallRecorder:
    """Records calls keyed by method name, in call order.

    Each double owns its own recorder. Calls are only ever appended,
    until :meth:`reset` clears them all.
    """

    def __init__(self):
        self._calls: dict[str, list[MethodCall]] = defaultdict(list)

    def record(self, method_name: str, args: tuple, kwargs: Optional[dict] = None) -> MethodCall:
        call = MethodCall(method_name, tuple(args), dict(kwargs or {}), next_sequence_number())
        self._calls[method_name].append(call)
        logger.debug("Recorded call #%d to %s", call.sequence, method_name)
        return call

    def calls_for(self, method_name: str) -> list[MethodCall]:
        return list(self._calls.get(method_name, ()))

    def last_call(self, method_name: str) -> Optional[MethodCall]:
        calls = self._calls.get(method_name)
        return calls[-1] if calls else None

    def count(self, method_name: str) -> int:
        return len(self._calls.get(method_name, ()))

    def was_called(self, method_name: str) -> bool:
        return self.count(method_name) > 0

    def all_calls(self) -> list[MethodCall]:
        """Every recorded call, across methods, in the order the calls were made."""
        return sorted(
            (call for calls in self._calls.values() for call in calls),
            key=lambda call: call.sequence,
        )

    def reset(self) -> None:
        self._calls.clear()
