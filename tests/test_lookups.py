import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

from ticketdesk.core.lookups import LookupRegistry


class TestLookupRegistry:
    def test_begin_cancels_previous_handle_for_same_key(self):
        registry = LookupRegistry()
        first = registry.begin("s1:event")
        second = registry.begin("s1:event")
        assert first.cancelled
        assert not registry.is_current(first)
        assert registry.is_current(second)

    def test_keys_are_independent(self):
        registry = LookupRegistry()
        a = registry.begin("s1:event")
        b = registry.begin("s2:event")
        assert registry.is_current(a)
        assert registry.is_current(b)

    def test_finish_only_removes_own_handle(self):
        registry = LookupRegistry()
        old = registry.begin("k")
        new = registry.begin("k")
        registry.finish(old)
        assert registry.active_keys() == ["k"]
        registry.finish(new)
        assert registry.active_keys() == []

    def test_cancel(self):
        registry = LookupRegistry()
        handle = registry.begin("k")
        assert registry.cancel("k") is True
        assert handle.cancelled
        assert registry.cancel("k") is False

    def test_cancel_prefix(self):
        registry = LookupRegistry()
        registry.begin("s1:event")
        registry.begin("s1:other")
        registry.begin("s2:event")
        assert registry.cancel_prefix("s1:") == 2
        assert registry.active_keys() == ["s2:event"]

    def test_cancel_cancels_attached_futures(self):
        registry = LookupRegistry()
        handle = registry.begin("k")
        future = MagicMock()
        handle.attach([future])
        handle.cancel()
        future.cancel.assert_called_once()

    def test_attach_after_cancel_cancels_immediately(self):
        registry = LookupRegistry()
        handle = registry.begin("k")
        handle.cancel()
        future = MagicMock()
        handle.attach([future])
        future.cancel.assert_called_once()

    def test_concurrent_sessions_and_prefix_cancel(self):
        """Sessions sharing one registry keep working while another conversation resets."""
        registry = LookupRegistry()
        done = threading.Event()

        def session(n):
            for i in range(2000):
                handle = registry.begin(f"s{n}:event{i % 7}")
                registry.finish(handle)

        def resetter():
            cancelled = 0
            while not done.is_set():
                cancelled += registry.cancel_prefix("x:")
            return cancelled

        with ThreadPoolExecutor(max_workers=4) as pool:
            reset = pool.submit(resetter)
            workers = [pool.submit(session, n) for n in range(3)]
            for future in workers:
                future.result()
            done.set()
            assert reset.result() == 0

        assert registry.active_keys() == []
