"""
Palette Sniffer Metrics Collection
In-process metrics collection for monitoring and performance tracking.
"""
import time
from collections import Counter, defaultdict
from threading import Lock
from typing import Any, Dict, List


class MetricsCollector:
    """Simple in-process metrics collector."""

    def __init__(self):
        self._lock = Lock()
        self._counters: Dict[str, int] = Counter()
        self._timings: Dict[str, List[float]] = defaultdict(list)
        self._start_time = time.time()

    def increment(self, name: str, amount: int = 1):
        """Increment a named counter."""
        with self._lock:
            self._counters[name] += amount

    def record_request(self, kind: str, success: bool, duration_ms: float):
        """Record the outcome and latency of an image or URL analysis."""
        with self._lock:
            self._counters[f"{kind}_requests_total"] += 1
            outcome = "succeeded" if success else "failed"
            self._counters[f"{kind}_requests_{outcome}"] += 1
            self._timings[f"{kind}_duration_ms"].append(duration_ms)

    def get_counters(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counters)

    def get_timing_stats(self) -> Dict[str, Dict[str, float]]:
        """Get timing statistics."""
        with self._lock:
            stats = {}
            for operation, timings in self._timings.items():
                if timings:
                    stats[operation] = {
                        "count": len(timings),
                        "mean": sum(timings) / len(timings),
                        "min": min(timings),
                        "max": max(timings),
                        "p50": self._percentile(timings, 50),
                        "p95": self._percentile(timings, 95),
                    }
            return stats

    def success_rate(self, kind: str) -> float:
        """Fraction of successful requests of the given kind (0.0 when none)."""
        with self._lock:
            total = self._counters.get(f"{kind}_requests_total", 0)
            succeeded = self._counters.get(f"{kind}_requests_succeeded", 0)
        return succeeded / total if total else 0.0

    def get_uptime_seconds(self) -> float:
        return time.time() - self._start_time

    def get_summary(self) -> Dict[str, Any]:
        """Get complete metrics summary."""
        return {
            "uptime_seconds": self.get_uptime_seconds(),
            "counters": self.get_counters(),
            "timing_stats": self.get_timing_stats(),
            "success_rate": {
                "url": self.success_rate("url"),
                "image": self.success_rate("image"),
            },
        }

    def reset(self):
        """Reset all metrics (for testing)."""
        with self._lock:
            self._counters.clear()
            self._timings.clear()
            self._start_time = time.time()

    @staticmethod
    def _percentile(data: List[float], percentile: int) -> float:
        if not data:
            return 0.0

        sorted_data = sorted(data)
        k = (len(sorted_data) - 1) * percentile / 100
        f = int(k)
        c = k - f

        if f + 1 < len(sorted_data):
            return sorted_data[f] + c * (sorted_data[f + 1] - sorted_data[f])
        return sorted_data[f]
