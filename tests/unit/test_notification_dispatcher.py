"""
NotificationDispatcher tests - bounded capacity, rejection, failure logging.
"""

import logging
import threading

from core.errors import ErrorClassification, ErrorCode
from services.notification_dispatcher import NotificationDispatcher, logger as dispatcher_logger


class TestNotificationDispatcher:

    def test_runs_tasks(self):
        pool = NotificationDispatcher(max_workers=2, queue_size=4)
        try:
            future = pool.submit(lambda x: x * 2, 21)
            assert future.result(timeout=5) == 42
        finally:
            pool.shutdown()

    def test_full_pool_rejects_without_blocking(self):
        pool = NotificationDispatcher(max_workers=1, queue_size=1)
        release = threading.Event()
        try:
            first = pool.submit(release.wait, 5)
            second = pool.submit(release.wait, 5)
            third = pool.submit(release.wait, 5)

            assert first is not None
            assert second is not None
            assert third is None
            assert pool.rejected == 1
        finally:
            release.set()
            pool.shutdown()

    def test_rejection_logged_as_throttling(self, caplog):
        pool = NotificationDispatcher(max_workers=1, queue_size=0)
        release = threading.Event()
        try:
            pool.submit(release.wait, 5)
            with caplog.at_level(logging.WARNING, logger=dispatcher_logger.name):
                assert pool.submit(release.wait, 5) is None
        finally:
            release.set()
            pool.shutdown()

        dims = caplog.records[-1].custom_dimensions
        assert dims["error_code"] == ErrorCode.QUEUE_FULL.value
        assert dims["error_classification"] == ErrorClassification.THROTTLING.value
        assert dims["reason"] == "queue full"

    def test_capacity_freed_after_completion(self):
        pool = NotificationDispatcher(max_workers=1, queue_size=1)
        try:
            for _ in range(5):
                future = pool.submit(lambda: None)
                assert future is not None
                future.result(timeout=5)
                assert pool.drain(timeout=5)
        finally:
            pool.shutdown()

    def test_task_failure_does_not_propagate(self):
        pool = NotificationDispatcher(max_workers=1, queue_size=2)

        def boom():
            raise RuntimeError("endpoint exploded")

        try:
            future = pool.submit(boom)
            assert pool.drain(timeout=5)
            assert isinstance(future.exception(timeout=5), RuntimeError)
            assert pool.submit(lambda: "still alive").result(timeout=5) == "still alive"
        finally:
            pool.shutdown()

    def test_submit_after_shutdown_rejected(self):
        pool = NotificationDispatcher(max_workers=1, queue_size=1)
        pool.shutdown()
        assert pool.submit(lambda: None) is None
        assert pool.rejected == 1

    def test_drain_with_nothing_pending(self):
        pool = NotificationDispatcher()
        try:
            assert pool.drain(timeout=0.1)
            assert pool.pending == 0
        finally:
            pool.shutdown()
