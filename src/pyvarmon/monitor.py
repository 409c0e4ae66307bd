"""Service polling engine for pyvarmon."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from queue import Queue

from pyvarmon.models import ServiceReport
from pyvarmon.service import Services

logger = logging.getLogger(__name__)


class ServiceMonitor:
    """
    Polls a set of services from a background daemon thread.

    Every tick updates all services in parallel on a worker pool, waits for
    the whole set, then pushes a list of ServiceReport to a thread-safe Queue.
    The monitor thread is the only writer of the services, so updates of a
    single service never overlap.
    """

    def __init__(
        self,
        services: Services,
        update_queue: Queue[list[ServiceReport]],
        poll_rate: float = 5.0,
    ) -> None:
        """
        Initialize the ServiceMonitor.

        Args:
            services: Services to poll. Not to be updated by anyone else
                while the monitor runs.
            update_queue: Thread-safe queue to push reports to.
            poll_rate: How often to poll the services (in seconds). Default 5.0s.
        """
        self._services = services
        self._queue = update_queue
        self._poll_rate = max(0.1, poll_rate)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def services(self) -> Services:
        return self._services

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(0.1, value)  # Minimum 0.1 seconds

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="ServiceMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def poll_once(self, executor: ThreadPoolExecutor | None = None) -> list[ServiceReport]:
        """Update every service once and return their reports."""
        self._services.update(executor)
        return self._services.reports()

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        workers = max(1, len(self._services))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="poll") as pool:
            while not self._stop_event.is_set():
                try:
                    self._queue.put(self.poll_once(pool))
                except Exception:
                    logger.exception("poll tick failed")

                # Wait for poll_rate seconds or until stop is requested
                self._stop_event.wait(timeout=self._poll_rate)
