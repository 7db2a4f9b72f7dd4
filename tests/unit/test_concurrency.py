"""
KeyedLock and SingleFlight tests.

Thread timing uses Events and Barriers with timeouts so a broken
primitive fails the test instead of hanging it.
"""

import threading
import time

import pytest

from core.concurrency import KeyedLock, SingleFlight


class TestKeyedLock:

    def test_same_key_is_exclusive(self):
        locks = KeyedLock()
        active = 0
        peak = 0
        guard = threading.Lock()

        def work():
            nonlocal active, peak
            with locks.hold("AtoN-1"):
                with guard:
                    active += 1
                    peak = max(peak, active)
                time.sleep(0.01)
                with guard:
                    active -= 1

        threads = [threading.Thread(target=work) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)
        assert peak == 1

    def test_different_keys_run_in_parallel(self):
        locks = KeyedLock()
        barrier = threading.Barrier(2, timeout=2)
        errors = []

        def work(key):
            with locks.hold(key):
                try:
                    barrier.wait()
                except threading.BrokenBarrierError as e:
                    errors.append(e)

        threads = [threading.Thread(target=work, args=(k,)) for k in ("A", "B")]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)
        assert errors == []

    def test_entries_released(self):
        locks = KeyedLock()
        with locks.hold("A"):
            assert locks.active_keys() == 1
        assert locks.active_keys() == 0

    def test_released_on_exception(self):
        locks = KeyedLock()
        with pytest.raises(RuntimeError):
            with locks.hold("A"):
                raise RuntimeError("boom")
        with locks.hold("A"):
            pass
        assert locks.active_keys() == 0


class TestSingleFlight:

    def test_sequential_calls_each_run(self):
        flights = SingleFlight()
        calls = []
        flights.do("k", lambda: calls.append(1))
        flights.do("k", lambda: calls.append(1))
        assert len(calls) == 2

    def test_concurrent_callers_share_one_follow_up(self):
        flights = SingleFlight()
        release = threading.Event()
        started = threading.Event()
        calls = []
        lock = threading.Lock()

        def leader_fn():
            with lock:
                calls.append("pass")
            started.set()
            release.wait(timeout=5)
            return "leader"

        def follower_fn():
            with lock:
                calls.append("pass")
            return "follow-up"

        results = []
        leader = threading.Thread(target=lambda: results.append(flights.do("k", leader_fn)))
        leader.start()
        assert started.wait(timeout=5)

        followers = [
            threading.Thread(target=lambda: results.append(flights.do("k", follower_fn)))
            for _ in range(5)
        ]
        for t in followers:
            t.start()
        time.sleep(0.2)
        release.set()

        leader.join(timeout=5)
        for t in followers:
            t.join(timeout=5)

        assert len(calls) == 2
        assert sorted(results) == ["follow-up"] * 5 + ["leader"]
        assert not flights.in_flight("k")

    def test_exception_reaches_caller(self):
        flights = SingleFlight()

        def fail():
            raise ValueError("bad pass")

        with pytest.raises(ValueError, match="bad pass"):
            flights.do("k", fail)
        assert not flights.in_flight("k")

    def test_keys_independent(self):
        flights = SingleFlight()
        assert flights.do("a", lambda: 1) == 1
        assert flights.do("b", lambda: 2) == 2
