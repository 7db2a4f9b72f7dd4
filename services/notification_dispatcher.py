"""
Notification Dispatcher - Bounded Asynchronous Task Pool.

Runs subscriber notifications off the ingestion path. Capacity counts
running plus queued tasks; when it is exhausted a submission is rejected
and logged immediately instead of blocking the caller.

Exports:
    NotificationDispatcher
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from typing import Callable, Optional, Set

from core.errors import ErrorCode, error_dimensions, get_error_classification
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.WORKER, "NotificationDispatcher")


class NotificationDispatcher:
    """
    Thread pool behind a non-blocking capacity gate.

    submit() returns the task's Future, or None when the pool is full or
    shut down. Task exceptions are logged when the task finishes; nobody
    needs to wait on the Future.
    """

    def __init__(self, max_workers: int = 4, queue_size: int = 100):
        self.max_workers = max_workers
        self.capacity = max_workers + queue_size
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="aton-notify")
        self._slots = threading.BoundedSemaphore(self.capacity)
        self._pending: Set[Future] = set()
        self._pending_lock = threading.Lock()
        self.rejected = 0

    def submit(self, fn: Callable, *args, **kwargs) -> Optional[Future]:
        if not self._slots.acquire(blocking=False):
            self._reject(fn, "queue full")
            return None

        try:
            future = self._executor.submit(fn, *args, **kwargs)
        except RuntimeError:
            self._slots.release()
            self._reject(fn, "dispatcher shut down")
            return None

        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._on_done)
        return future

    def _reject(self, fn: Callable, reason: str) -> None:
        with self._pending_lock:
            self.rejected += 1
        logger.warning(
            f"⚠️ Notification rejected ({reason}): {getattr(fn, '__qualname__', fn)}",
            extra={'custom_dimensions': {
                'error_code': ErrorCode.QUEUE_FULL.value,
                'error_classification': get_error_classification(ErrorCode.QUEUE_FULL).value,
                'capacity': self.capacity,
                'reason': reason,
            }}
        )

    def _on_done(self, future: Future) -> None:
        self._slots.release()
        with self._pending_lock:
            self._pending.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(
                f"❌ Notification task failed: {error}",
                exc_info=error,
                extra={'custom_dimensions': error_dimensions(error)}
            )

    @property
    def pending(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for every task submitted so far. Returns False on timeout."""
        with self._pending_lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait_futures(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
        logger.info(f"🛑 Notification pool stopped ({self.rejected} rejected)")
