"""Per-service metrics model for pyvarmon."""

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import Executor, ThreadPoolExecutor, wait

from pyvarmon.expvar import fetch_expvar
from pyvarmon.models import MemStats, ServiceReport, Snapshot
from pyvarmon.stack import DEFAULT_CAPACITY, Stack

logger = logging.getLogger(__name__)

EXPVARS_URL = "/debug/vars"
MEMORY = "memory"


def format_bytes(size: float) -> str:
    """Format bytes as human-readable string."""
    if size < 1024:
        return f"{int(size)}B"
    for unit in ["KB", "MB", "GB", "TB"]:
        size = size / 1024
        if size < 1024:
            return f"{size:.1f}{unit}"
    return f"{size / 1024:.1f}PB"


def base_command(cmdline: list[str]) -> str:
    """Return the executable name (basename of argv[0]) of a command line."""
    if not cmdline:
        return ""
    return cmdline[0].replace("\\", "/").rstrip("/").rsplit("/", 1)[-1] or cmdline[0]


class Service:
    """
    Constantly updating info about a single monitored service.

    Only the port is known on creation, so it doubles as the name until the
    first successful poll resolves the process command line. Instances are
    not safe for concurrent ``update`` calls; callers serialize them.
    """

    def __init__(
        self,
        port: str,
        endpoint: str = EXPVARS_URL,
        timeout: float | None = None,
        capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        self.port = str(port)
        self.name = self.port
        self.cmdline = ""
        self.memstats: MemStats | None = None
        self.err: Exception | None = None
        self.values: dict[str, Stack] = {}
        self._endpoint = endpoint
        self._timeout = timeout
        self._capacity = capacity

    def addr(self) -> str:
        """Return the fully qualified URL of the service's vars endpoint."""
        return f"http://localhost:{self.port}{self._endpoint}"

    def update(self, fetch: Callable[..., Snapshot] = fetch_expvar) -> None:
        """Poll the service once and merge the result into its state."""
        snapshot = fetch(self.addr(), timeout=self._timeout)

        self.err = snapshot.err
        # Overwritten even on failure: no stale readings
        self.memstats = snapshot.memstats

        if not self.cmdline and snapshot.cmdline:
            self.cmdline = " ".join(snapshot.cmdline)
            self.name = base_command(snapshot.cmdline)
            logger.info("port %s resolved to %s", self.port, self.name)

        mem = self.values.get(MEMORY)
        if mem is None:
            mem = self.values[MEMORY] = Stack(self._capacity)
        if self.err is None and self.memstats is not None:
            mem.push(self.memstats.alloc // 1024)

    def status_line(self) -> str:
        """Return the status line with the service name and state."""
        if self.err is not None:
            return f"[ERR] {self.name} failed"
        return f"[R] {self.name}"

    def meminfo(self) -> str:
        """Return the memory info string for the service."""
        if self.err is not None or self.memstats is None:
            return "N/A"
        allocated = format_bytes(self.memstats.alloc)
        sys = format_bytes(self.memstats.sys)
        return f"Alloc/Sys: {allocated} / {sys}"

    def report(self) -> ServiceReport:
        """Build an immutable view of the current state for rendering."""
        mem = self.values.get(MEMORY)
        return ServiceReport(
            port=self.port,
            name=self.name,
            addr=self.addr(),
            cmdline=self.cmdline,
            status_line=self.status_line(),
            meminfo=self.meminfo(),
            error=str(self.err) if self.err is not None else None,
            memory=tuple(mem.values()) if mem is not None else (),
            memory_last=mem.last() if mem is not None else None,
            memory_max=mem.max() if mem is not None else None,
            memstats=self.memstats,
        )

    def __repr__(self) -> str:
        return f"Service(port={self.port!r}, name={self.name!r})"


class Services(list[Service]):
    """Ordered collection of services, refreshed and rendered as a unit."""

    @classmethod
    def from_ports(cls, ports: Iterable[str | int], **kwargs) -> "Services":
        """Create one Service per port, keeping the given order."""
        return cls(Service(str(port), **kwargs) for port in ports)

    def update(self, executor: Executor | None = None) -> None:
        """
        Update every service concurrently and wait for all of them.

        Each service gets its own unit of work, so a slow target only delays
        itself. Pass an executor to reuse worker threads across calls.
        """
        if not self:
            return
        if executor is None:
            with ThreadPoolExecutor(max_workers=len(self)) as pool:
                self._update_on(pool)
        else:
            self._update_on(executor)

    def _update_on(self, executor: Executor) -> None:
        futures = {executor.submit(service.update): service for service in self}
        wait(futures)
        for future, service in futures.items():
            exc = future.exception()
            if exc is not None:
                logger.error("update of %r failed", service, exc_info=exc)

    def reports(self) -> list[ServiceReport]:
        return [service.report() for service in self]

    def status_lines(self) -> list[str]:
        return [service.status_line() for service in self]
