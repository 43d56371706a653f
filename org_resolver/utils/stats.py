"""
Thread-safe statistics tracking for shared resolver state.

Provides simple, reusable counters that can be incremented from any thread.
"""

from threading import Lock


class ExecutionStats:
    """
    Thread-safe statistics tracker.

    Example:
        stats = ExecutionStats(total_processed=0, cache_hits=0)
        stats.increment("cache_hits")
    """

    def __init__(self, **initial_values: int):
        """
        Initialize stats with any number of counters.

        Args:
            **initial_values: Initial values for stat counters (default: 0)
        """
        self._lock = Lock()
        self._counters: dict[str, int] = dict(initial_values)

    def increment(self, key: str, amount: int = 1) -> None:
        """Thread-safe increment of a counter."""
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + amount

    def get(self, key: str, default: int = 0) -> int:
        """Get counter value."""
        with self._lock:
            return self._counters.get(key, default)

    def reset(self) -> None:
        """Zero every counter."""
        with self._lock:
            for key in self._counters:
                self._counters[key] = 0

    def to_dict(self) -> dict[str, int]:
        """Get all counters as a dictionary."""
        with self._lock:
            return self._counters.copy()

    def __getitem__(self, key: str) -> int:
        """Allow dict-like access: stats['cache_hits']."""
        return self.get(key)

    def __repr__(self) -> str:
        with self._lock:
            items = ", ".join(f"{k}={v}" for k, v in sorted(self._counters.items()))
            return f"ExecutionStats({items})"


class RollingAverage:
    """Thread-safe running mean of observed values (e.g. processing time in ms)."""

    def __init__(self):
        self._lock = Lock()
        self._count = 0
        self._mean = 0.0

    def add(self, value: float) -> None:
        with self._lock:
            self._count += 1
            self._mean += (value - self._mean) / self._count

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    @property
    def value(self) -> float:
        with self._lock:
            return self._mean

    def reset(self) -> None:
        with self._lock:
            self._count = 0
            self._mean = 0.0
