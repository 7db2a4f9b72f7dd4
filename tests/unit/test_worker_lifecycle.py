"""
WorkerLifecycle tests - shutdown event and status.
"""

from worker_service import WorkerLifecycle


class TestWorkerLifecycle:

    def test_wait_times_out_before_shutdown(self):
        lifecycle = WorkerLifecycle()
        assert lifecycle.wait(timeout=0.01) is False
        assert not lifecycle.is_shutting_down
        assert lifecycle.get_status() == {"shutdown_initiated": False, "shutdown_event_set": False}

    def test_initiate_shutdown_releases_wait(self):
        lifecycle = WorkerLifecycle()
        lifecycle.initiate_shutdown("SIGTERM")

        assert lifecycle.wait(timeout=0.01) is True
        status = lifecycle.get_status()
        assert status["shutdown_reason"] == "SIGTERM"
        assert status["shutdown_event_set"]

    def test_duplicate_shutdown_keeps_first_reason(self):
        lifecycle = WorkerLifecycle()
        lifecycle.initiate_shutdown("SIGTERM")
        lifecycle.initiate_shutdown("SIGINT")
        assert lifecycle.get_status()["shutdown_reason"] == "SIGTERM"
