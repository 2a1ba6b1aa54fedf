from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import Any, Generic, TypeVar

T = TypeVar("T")


def typeify(value: Any) -> Any:
    """Turn query-string text into bools/ints where it obviously is one."""
    if not isinstance(value, str):
        return value
    v = value.strip()
    if v.lower() == "true":
        return True
    if v.lower() == "false":
        return False
    if v.lstrip("-").isdigit():
        return int(v)
    return v


def parse_id(raw: Any) -> int | None:
    v = typeify(raw)
    if isinstance(v, bool) or not isinstance(v, int) or v < 1:
        return None
    return v


class KeyedOnce(Generic[T]):
    """
    Runs a blocking loader at most once per key and hands every caller the
    same result (or the same exception).

    Entries are ``concurrent.futures.Future`` objects so waiters on different
    threads or event loops all see the single in-flight load. The load runs on
    its own thread and only the load settles the entry, so a cancelled waiter
    never leaves its cancellation behind for the key.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._futures: dict[str, Future[T]] = {}

    async def get(self, key: str, load: Callable[[], T]) -> T:
        with self._lock:
            fut = self._futures.get(key)
            if fut is None:
                fut = Future()
                # A running future refuses cancel() from waiters.
                fut.set_running_or_notify_cancel()
                self._futures[key] = fut
                threading.Thread(target=_settle, args=(fut, load), name=f"load:{key}", daemon=True).start()
        return await asyncio.wrap_future(fut)

    def discard(self, key: str) -> bool:
        with self._lock:
            return self._futures.pop(key, None) is not None

    def done_value(self, key: str) -> T | None:
        """Return the loaded value if the load already succeeded."""
        with self._lock:
            fut = self._futures.get(key)
        if fut is None or not fut.done() or fut.exception() is not None:
            return None
        return fut.result()


def _settle(fut: Future[T], load: Callable[[], T]) -> None:
    try:
        value = load()
    except BaseException as e:
        fut.set_exception(e)
    else:
        fut.set_result(value)
