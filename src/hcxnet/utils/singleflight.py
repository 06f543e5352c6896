"""
Single-flight call coalescing.

Concurrent callers asking for the same key share one in-flight call:
the first caller (the leader) runs the function, everyone else blocks on
the leader's Future and receives the same result or the same exception.
Once the call settles the key is released, so the next call starts fresh.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Callable, Dict, Hashable, TypeVar

T = TypeVar("T")


class SingleFlight:
    """Keyed registry of in-flight calls."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: Dict[Hashable, Future] = {}

    def do(self, key: Hashable, fn: Callable[[], T]) -> T:
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if leader:
                call = Future()
                self._calls[key] = call

        if not leader:
            return call.result()

        try:
            result = fn()
        except BaseException as exc:
            call.set_exception(exc)
            raise
        else:
            call.set_result(result)
            return result
        finally:
            with self._lock:
                self._calls.pop(key, None)

    def in_flight(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._calls
