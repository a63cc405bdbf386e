"""In-process counters and timings.

Cache layers count hits, misses, expiries and refreshes here; every exposed
tool is timed through ``timing_decorator``. ``/health`` reports a snapshot.
"""
from __future__ import annotations
import time, threading
from functools import wraps
from dataclasses import dataclass, field
from collections import defaultdict, deque
from datetime import datetime, UTC
from typing import Dict, Any, Callable, Deque


@dataclass
class TimingSeries:
    samples: Deque[float]
    count: int = 0
    total_ms: float = 0.0
    last_updated: datetime | None = field(default=None)

    def add(self, duration_ms: float) -> None:
        self.samples.append(duration_ms)
        self.count += 1
        self.total_ms += duration_ms
        self.last_updated = datetime.now(UTC)

    def summary(self) -> Dict[str, Any]:
        ordered = sorted(self.samples)
        # percentile over the retained window only
        p95 = ordered[min(len(ordered) - 1, int(len(ordered) * 0.95))] if ordered else 0
        return {
            'count': self.count,
            'total': self.total_ms,
            'min': ordered[0] if ordered else 0,
            'max': ordered[-1] if ordered else 0,
            'avg': self.total_ms / self.count if self.count else 0,
            'p95': p95,
            'last_updated': self.last_updated.isoformat() if self.last_updated else None,
        }


class MetricsCollector:
    def __init__(self, max_samples: int = 1000):
        self._lock = threading.RLock()
        self._max_samples = max_samples
        self._counters: Dict[str, int] = defaultdict(int)
        self._timings: Dict[str, TimingSeries] = {}

    @staticmethod
    def _key(name: str, labels: Dict[str, Any]) -> str:
        if not labels:
            return name
        return name + ''.join(f'|{k}={v}' for k, v in sorted(labels.items()))

    def increment_counter(self, name: str, value: int = 1, **labels) -> None:
        with self._lock:
            self._counters[self._key(name, labels)] += value

    def get_counter(self, name: str, **labels) -> int:
        with self._lock:
            return self._counters.get(self._key(name, labels), 0)

    def counter_total(self, name: str) -> int:
        """Sum of ``name`` across every label combination."""
        with self._lock:
            return sum(v for k, v in self._counters.items() if k == name or k.startswith(name + '|'))

    def record_timing(self, name: str, duration_ms: float, **labels) -> None:
        with self._lock:
            key = self._key(name, labels)
            if key not in self._timings:
                self._timings[key] = TimingSeries(deque(maxlen=self._max_samples))
            self._timings[key].add(duration_ms)

    def hit_ratio(self, prefix: str) -> float | None:
        """Share of ``{prefix}`` lookups served from cache, None before the first lookup."""
        hits = self.counter_total(f'{prefix}.hit')
        lookups = hits + self.counter_total(f'{prefix}.miss') + self.counter_total(f'{prefix}.expired')
        return round(hits / lookups, 3) if lookups else None

    def get_metrics(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'timestamp': datetime.now(UTC).isoformat(),
                'counters': dict(self._counters),
                'summaries': {name: series.summary() for name, series in self._timings.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timings.clear()


_metrics = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    return _metrics


def timing_decorator(metric_name: str, **labels):
    """Count ``{name}_total`` by outcome and time ``{name}_duration`` for an async tool.

    A returned envelope with ``success: False`` counts as an error.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.perf_counter()
            status = "error"
            try:
                res = await func(*args, **kwargs)
                if not isinstance(res, dict) or res.get("success", True):
                    status = "success"
                return res
            finally:
                _metrics.increment_counter(f"{metric_name}_total", status=status, **labels)
                _metrics.record_timing(f"{metric_name}_duration", (time.perf_counter() - start) * 1000, **labels)
        return wrapper
    return decorator
