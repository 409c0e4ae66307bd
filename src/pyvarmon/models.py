"""Data models for pyvarmon."""

from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class MemStats:
    """Memory statistics reported by a target process."""

    alloc: int  # Bytes currently allocated
    sys: int  # Bytes obtained from the OS
    heap_alloc: int = 0
    heap_sys: int = 0
    num_gc: int = 0


@dataclass(slots=True)
class Snapshot:
    """Result of a single poll of an introspection endpoint."""

    cmdline: list[str] = field(default_factory=list)
    memstats: MemStats | None = None
    err: Exception | None = None


@dataclass(slots=True, frozen=True)
class ServiceReport:
    """Immutable view of a Service, safe to hand to the UI thread."""

    port: str
    name: str
    addr: str
    cmdline: str
    status_line: str
    meminfo: str
    error: str | None
    memory: tuple[float, ...]  # KB samples, oldest first
    memory_last: float | None = None
    memory_max: float | None = None
    memstats: MemStats | None = None
