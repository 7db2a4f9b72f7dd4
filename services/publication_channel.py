"""
Publication Channel.

Internal fan-out of AtonPublication notifications from the reconciler to
the content engine and the subscription notifier. Handlers run in
subscription order on the publishing thread; a failing handler is logged
and never stops the others or reaches the publisher.

Exports:
    PublicationChannel: Synchronous publish/subscribe
"""

import threading
from typing import Callable, List

from core.errors import error_dimensions
from core.models import AtonPublication
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "PublicationChannel")

PublicationHandler = Callable[[AtonPublication], None]


class PublicationChannel:

    def __init__(self):
        self._handlers: List[PublicationHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: PublicationHandler) -> None:
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)

    def unsubscribe(self, handler: PublicationHandler) -> bool:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)
                return True
            return False

    def publish(self, publication: AtonPublication) -> int:
        """Run every handler. Returns the number that completed without error."""
        with self._lock:
            handlers = list(self._handlers)

        succeeded = 0
        for handler in handlers:
            try:
                handler(publication)
                succeeded += 1
            except Exception as e:
                logger.error(
                    f"❌ Publication handler {getattr(handler, '__qualname__', handler)} failed "
                    f"for {publication.record.id_code}: {e}",
                    exc_info=True,
                    extra={'custom_dimensions': {
                        'id_code': publication.record.id_code,
                        'publication_kind': publication.kind.value,
                        **error_dimensions(e),
                    }}
                )
        return succeeded
