"""Tests for the ServiceMonitor class."""

from queue import Queue

from pyvarmon.models import ServiceReport
from pyvarmon.monitor import ServiceMonitor
from pyvarmon.service import MEMORY, Services


class TestServiceMonitor:
    """Tests for ServiceMonitor class."""

    def test_monitor_creation(self):
        """Test ServiceMonitor can be instantiated."""
        queue: Queue[list[ServiceReport]] = Queue()
        services = Services()
        monitor = ServiceMonitor(services, queue)

        assert monitor.services is services
        assert monitor.poll_rate == 5.0
        assert not monitor.is_running

    def test_monitor_custom_poll_rate(self):
        """Test ServiceMonitor with custom poll rate."""
        queue: Queue[list[ServiceReport]] = Queue()
        monitor = ServiceMonitor(Services(), queue, poll_rate=1.0)

        assert monitor.poll_rate == 1.0

    def test_poll_rate_minimum(self):
        """Test poll rate has a minimum value."""
        queue: Queue[list[ServiceReport]] = Queue()
        monitor = ServiceMonitor(Services(), queue, poll_rate=0.0)
        assert monitor.poll_rate >= 0.1

        monitor.poll_rate = 0.01  # Very small value
        assert monitor.poll_rate >= 0.1  # Should be clamped to minimum

    def test_monitor_start_stop(self):
        """Test ServiceMonitor can be started and stopped."""
        queue: Queue[list[ServiceReport]] = Queue()
        monitor = ServiceMonitor(Services(), queue, poll_rate=0.1)

        assert not monitor.is_running

        monitor.start()
        assert monitor.is_running

        monitor.stop()
        assert not monitor.is_running

    def test_monitor_start_idempotent(self):
        """Test starting an already running monitor is safe."""
        queue: Queue[list[ServiceReport]] = Queue()
        monitor = ServiceMonitor(Services(), queue, poll_rate=0.1)

        monitor.start()
        thread1 = monitor._thread

        monitor.start()  # Should not create a new thread
        thread2 = monitor._thread

        assert thread1 is thread2
        monitor.stop()

    def test_poll_once(self, expvar_server, closed_port, payload):
        """Test a single poll returns one report per service, in order."""
        expvar_server.serve(payload(["/bin/app"], alloc=2048, sys=4096))
        services = Services.from_ports([expvar_server.port, closed_port], timeout=2.0)
        monitor = ServiceMonitor(services, Queue())

        reports = monitor.poll_once()

        assert [r.port for r in reports] == [expvar_server.port, closed_port]
        assert reports[0].status_line == "[R] app"
        assert reports[0].memory == (2,)
        assert reports[1].status_line == f"[ERR] {closed_port} failed"
        assert reports[1].memory == ()

    def test_monitor_collects_data(self, expvar_server, payload):
        """Test ServiceMonitor polls services and queues reports."""
        expvar_server.serve(payload(["/bin/app"], alloc=1024, sys=1024))
        queue: Queue[list[ServiceReport]] = Queue()
        services = Services.from_ports([expvar_server.port], timeout=2.0)
        monitor = ServiceMonitor(services, queue, poll_rate=0.1)

        monitor.start()

        try:
            reports = queue.get(timeout=5.0)
            assert isinstance(reports, list)
            assert isinstance(reports[0], ServiceReport)
            assert reports[0].name == "app"
        finally:
            monitor.stop()

    def test_monitor_history_grows(self, expvar_server, payload):
        """Test each tick appends one memory sample."""
        expvar_server.serve(payload(alloc=1024, sys=1024))
        queue: Queue[list[ServiceReport]] = Queue()
        services = Services.from_ports([expvar_server.port], timeout=2.0)
        monitor = ServiceMonitor(services, queue, poll_rate=0.1)

        monitor.start()

        try:
            first = queue.get(timeout=5.0)
            second = queue.get(timeout=5.0)
            assert len(second[0].memory) == len(first[0].memory) + 1
        finally:
            monitor.stop()

        assert len(services[0].values[MEMORY]) >= 2

    def test_monitor_graceful_error_handling(self, closed_port):
        """Test monitor keeps polling unreachable services."""
        queue: Queue[list[ServiceReport]] = Queue()
        services = Services.from_ports([closed_port], timeout=1.0)
        monitor = ServiceMonitor(services, queue, poll_rate=0.1)

        monitor.start()

        try:
            # Get multiple reports to ensure loop continues
            reports1 = queue.get(timeout=5.0)
            reports2 = queue.get(timeout=5.0)

            assert reports1[0].error is not None
            assert reports2[0].error is not None
        finally:
            monitor.stop()

    def test_monitor_survives_tick_failure(self, caplog):
        """Test an exception inside a tick is logged and the loop goes on."""
        queue: Queue[list[ServiceReport]] = Queue()
        monitor = ServiceMonitor(Services(), queue, poll_rate=0.1)
        calls = []

        def flaky(executor=None):
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("tick exploded")
            return []

        monitor.poll_once = flaky
        monitor.start()

        try:
            assert queue.get(timeout=5.0) == []
        finally:
            monitor.stop()

        assert "poll tick failed" in caplog.text

    def test_daemon_thread(self):
        """Test monitor thread is a daemon thread."""
        queue: Queue[list[ServiceReport]] = Queue()
        monitor = ServiceMonitor(Services(), queue, poll_rate=0.1)

        monitor.start()

        try:
            assert monitor._thread is not None
            assert monitor._thread.daemon is True
            assert monitor._thread.name == "ServiceMonitor"
        finally:
            monitor.stop()
