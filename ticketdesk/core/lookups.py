# Role: Cancellable handles for in-flight catalog lookups, one per logical field (e.g. "<session>:event").
# Starting a new lookup for a key cancels the previous handle, so a superseded search can never write its
# results into conversation state.

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Dict, List, Optional


class LookupHandle:
    def __init__(self, key: str) -> None:
        self.key = key
        self._cancelled = False
        self._futures: List[Future] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def attach(self, futures: List[Future]) -> None:
        self._futures.extend(futures)
        if self._cancelled:
            self._cancel_futures()

    def cancel(self) -> None:
        # Key line: futures already running finish on their own; their results are simply ignored.
        self._cancelled = True
        self._cancel_futures()

    def _cancel_futures(self) -> None:
        for future in self._futures:
            future.cancel()


class LookupRegistry:
    """
    Shared by every session of one FlowController, so all access to the active handles goes through
    one lock. Handles are cancelled outside the lock.
    """

    def __init__(self) -> None:
        self._active: Dict[str, LookupHandle] = {}
        self._lock = threading.Lock()

    def begin(self, key: str) -> LookupHandle:
        handle = LookupHandle(key)
        with self._lock:
            previous = self._active.get(key)
            self._active[key] = handle
        if previous is not None:
            previous.cancel()
        return handle

    def is_current(self, handle: LookupHandle) -> bool:
        with self._lock:
            return not handle.cancelled and self._active.get(handle.key) is handle

    def finish(self, handle: LookupHandle) -> None:
        with self._lock:
            if self._active.get(handle.key) is handle:
                del self._active[handle.key]

    def cancel(self, key: str) -> bool:
        with self._lock:
            handle: Optional[LookupHandle] = self._active.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_prefix(self, prefix: str) -> int:
        # Used when a whole conversation resets (new tile, cancel).
        with self._lock:
            keys = [k for k in self._active if k.startswith(prefix)]
            handles = [self._active.pop(k) for k in keys]
        for handle in handles:
            handle.cancel()
        return len(handles)

    def active_keys(self) -> List[str]:
        with self._lock:
            return list(self._active)
