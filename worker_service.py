#!/usr/bin/env python3
"""
AtoN Worker - Process Entry Point.

Builds the pipeline from the environment, starts the change-event
receivers and blocks until SIGTERM/SIGINT. Shutdown order:

    1. Listener detaches (no new upserts)
    2. Event source receivers stop (in-flight messages finish or abandon)
    3. Notification pool drains

Usage:
    python worker_service.py
"""

import sys
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from config import get_config, debug_config
from services.pipeline import AtonPipeline
from util_logger import LoggerFactory, ComponentType, log_exceptions

logger = LoggerFactory.create_logger(ComponentType.WORKER, "WorkerService")


# ============================================================================
# WORKER LIFECYCLE
# ============================================================================

class WorkerLifecycle:
    """
    Shared shutdown event plus SIGTERM/SIGINT handling.

    Usage:
        lifecycle = WorkerLifecycle()
        lifecycle.register_signal_handlers()
        lifecycle.wait()
    """

    def __init__(self):
        self._shutdown_event = threading.Event()
        self._shutdown_initiated = False
        self._shutdown_initiated_at: Optional[datetime] = None
        self._signal_received: Optional[str] = None

    @property
    def shutdown_event(self) -> threading.Event:
        return self._shutdown_event

    @property
    def is_shutting_down(self) -> bool:
        return self._shutdown_initiated

    def register_signal_handlers(self) -> None:
        """
        SIGTERM: sent by the container runtime on stop
        SIGINT: Ctrl+C during local runs
        """
        import signal

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.warning(f"🛑 Received {signal_name} - initiating graceful shutdown")
            self.initiate_shutdown(signal_name)

        signal.signal(signal.SIGTERM, shutdown_handler)
        signal.signal(signal.SIGINT, shutdown_handler)
        logger.info("📡 Signal handlers registered (SIGTERM, SIGINT)")

    def initiate_shutdown(self, reason: str = "manual") -> None:
        if self._shutdown_initiated:
            logger.warning(f"🛑 Shutdown already initiated, ignoring duplicate request: {reason}")
            return

        self._shutdown_initiated = True
        self._shutdown_initiated_at = datetime.now(timezone.utc)
        self._signal_received = reason

        logger.warning("=" * 60)
        logger.warning(f"🛑 GRACEFUL SHUTDOWN INITIATED: {reason}")
        logger.warning(f"   Timestamp: {self._shutdown_initiated_at.isoformat()}")
        logger.warning("=" * 60)
        self._shutdown_event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until shutdown is initiated. False on timeout."""
        return self._shutdown_event.wait(timeout)

    def get_status(self) -> Dict[str, Any]:
        status = {
            "shutdown_initiated": self._shutdown_initiated,
            "shutdown_event_set": self._shutdown_event.is_set(),
        }
        if self._shutdown_initiated:
            status["shutdown_initiated_at"] = self._shutdown_initiated_at.isoformat()
            status["shutdown_reason"] = self._signal_received
        return status


# ============================================================================
# ENTRY POINT
# ============================================================================

@log_exceptions(ComponentType.WORKER, "WorkerService")
def run(lifecycle: WorkerLifecycle) -> None:
    config = get_config()
    LoggerFactory.set_level(config.log_level)
    logger.info("⚙️ Configuration loaded", extra={'custom_dimensions': debug_config()})

    if config.uses_postgres:
        from infrastructure.schema import deploy_schema
        deploy_schema(config.database.connection_string, config.database.app_schema)

    pipeline = AtonPipeline.from_config(config)
    pipeline.start()
    try:
        lifecycle.wait()
    finally:
        pipeline.stop()


def main():
    lifecycle = WorkerLifecycle()
    lifecycle.register_signal_handlers()

    try:
        run(lifecycle)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
