"""Fixed-capacity rolling history for pyvarmon metrics."""

DEFAULT_CAPACITY = 1200


class Stack:
    """
    Append-only numeric time series with a fixed capacity.

    Samples live in a preallocated list used as a ring: once the stack is
    full, every push overwrites the oldest sample in place.
    """

    __slots__ = ("_capacity", "_data", "_start", "_size")

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
            raise ValueError(f"stack capacity must be a positive integer, got {capacity!r}")
        self._capacity = capacity
        self._data: list[float] = [0] * capacity
        self._start = 0  # Index of the oldest sample
        self._size = 0

    @property
    def capacity(self) -> int:
        """Maximum number of retained samples."""
        return self._capacity

    @property
    def is_full(self) -> bool:
        return self._size == self._capacity

    def push(self, value: float) -> None:
        """Append a sample, evicting the oldest one when full."""
        if self._size < self._capacity:
            self._data[(self._start + self._size) % self._capacity] = value
            self._size += 1
        else:
            self._data[self._start] = value
            self._start = (self._start + 1) % self._capacity

    def values(self) -> list[float]:
        """Return retained samples, oldest first."""
        end = self._start + self._size
        if end <= self._capacity:
            return self._data[self._start:end]
        return self._data[self._start:] + self._data[: end - self._capacity]

    def last(self) -> float | None:
        """Return the newest sample, or None if the stack is empty."""
        if self._size == 0:
            return None
        return self._data[(self._start + self._size - 1) % self._capacity]

    def max(self) -> float | None:
        """Return the largest retained sample, or None if the stack is empty."""
        if self._size == 0:
            return None
        return max(self.values())

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        return f"Stack(capacity={self._capacity}, size={self._size})"
