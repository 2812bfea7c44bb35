import asyncio
import time
from typing import Any, Dict, Optional
from collections import defaultdict


class MetricsCollector:
    """
    Process-wide counters for DCS API traffic.
    Safe to share between coroutines.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._metrics = self._fresh()

    @staticmethod
    def _fresh() -> Dict[str, Any]:
        return {
            "requests": defaultdict(int),
            "failed_requests": defaultdict(int),
            "request_durations_ms": [],
            "effect_failures": defaultdict(int),
            "startup_time": time.time(),
        }

    async def record_request(
        self, method: str, success: bool, duration_ms: Optional[float] = None
    ):
        async with self._lock:
            self._metrics["requests"][method] += 1
            if not success:
                self._metrics["failed_requests"][method] += 1
            if duration_ms is not None:
                self._metrics["request_durations_ms"].append(duration_ms)

    async def record_effect_failure(self, operation: str):
        async with self._lock:
            self._metrics["effect_failures"][operation] += 1

    async def get_metrics(self) -> Dict[str, Any]:
        async with self._lock:
            durations = self._metrics["request_durations_ms"]
            avg_duration = sum(durations) / len(durations) if durations else 0
            return {
                "requests": dict(self._metrics["requests"]),
                "failed_requests": dict(self._metrics["failed_requests"]),
                "total_requests": sum(self._metrics["requests"].values()),
                "effect_failures": dict(self._metrics["effect_failures"]),
                "avg_request_duration_ms": avg_duration,
                "uptime_sec": time.time() - self._metrics["startup_time"],
            }

    async def reset(self):
        async with self._lock:
            self._metrics = self._fresh()


# Singleton instance for global use
global_metrics_collector = MetricsCollector()
