"""
Event Source Base and In-Process Event Source.

Exports:
    EventSourceBase: Thread-safe listener registry + fan-out
    LocalEventSource: In-process event source (standalone mode, tests)
"""

import threading
from typing import List

from core.models import ChangeEvent
from util_logger import LoggerFactory, ComponentType
from .interface_repository import IChangeListener, IEventSource


class EventSourceBase(IEventSource):
    """
    Listener registry shared by event source implementations.

    dispatch() may run on several threads at once; it iterates a snapshot of
    the listeners so registration never blocks delivery.
    """

    def __init__(self):
        self._listeners: List[IChangeListener] = []
        self._listeners_lock = threading.Lock()
        self.logger = LoggerFactory.create_logger(ComponentType.ADAPTER, self.__class__.__name__)

    def add_listener(self, listener: IChangeListener) -> None:
        with self._listeners_lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: IChangeListener) -> bool:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)
                return True
            return False

    @property
    def listener_count(self) -> int:
        with self._listeners_lock:
            return len(self._listeners)

    def dispatch(self, event: ChangeEvent) -> int:
        """Hand the event to every registered listener. Returns how many got it."""
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener.on_event(event)
        return len(listeners)


class LocalEventSource(EventSourceBase):
    """
    In-process event source.

    emit() delivers on the calling thread, so callers can drive the listener
    concurrently from their own threads.
    """

    def emit(self, event: ChangeEvent) -> int:
        self.logger.debug(f"📨 Local event {event.kind.value} ({event.message_id or 'no id'})")
        return self.dispatch(event)
