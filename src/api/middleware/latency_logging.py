"""Request latency logging middleware for performance monitoring."""

import logging
import re
import time
from collections import defaultdict, deque
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

# Thresholds for log levels (in milliseconds). Settlement calls wait on
# PayPal, so "slow" is measured against the provider timeout scale.
SLOW_REQUEST_THRESHOLD_MS = 2000
VERY_SLOW_REQUEST_THRESHOLD_MS = 8000

QUIET_PATHS = ("/health", "/health/ready")

_UUID_PATTERN = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)


def _percentile(sorted_values: list[float], fraction: float) -> float:
    return sorted_values[min(int(len(sorted_values) * fraction), len(sorted_values) - 1)]


class LatencyStats:
    """Rolling window of request latencies."""

    def __init__(self, max_samples: int = 1000) -> None:
        self._samples: deque[tuple[str, float]] = deque(maxlen=max_samples)

    def record(self, path: str, latency_ms: float) -> None:
        """Record a latency sample."""
        self._samples.append((path, latency_ms))

    def get_stats(self) -> dict[str, float]:
        """Aggregate stats across all samples."""
        if not self._samples:
            return {
                "total_requests": 0,
                "avg_latency_ms": 0,
                "p50_latency_ms": 0,
                "p95_latency_ms": 0,
                "p99_latency_ms": 0,
            }

        latencies = sorted(sample[1] for sample in self._samples)
        total = len(latencies)
        return {
            "total_requests": total,
            "avg_latency_ms": round(sum(latencies) / total, 2),
            "p50_latency_ms": round(_percentile(latencies, 0.5), 2),
            "p95_latency_ms": round(_percentile(latencies, 0.95), 2),
            "p99_latency_ms": round(_percentile(latencies, 0.99), 2),
        }

    def get_stats_by_path(self) -> dict[str, dict[str, float]]:
        """Stats grouped by route, with order and notification ids collapsed."""
        by_path: dict[str, list[float]] = defaultdict(list)
        for path, latency in self._samples:
            by_path[normalize_path(path)].append(latency)

        result = {}
        for path, latencies in by_path.items():
            latencies.sort()
            result[path] = {
                "count": len(latencies),
                "avg_ms": round(sum(latencies) / len(latencies), 2),
                "p95_ms": round(_percentile(latencies, 0.95), 2),
            }
        return result

    def clear(self) -> None:
        """Drop all samples."""
        self._samples.clear()


def normalize_path(path: str) -> str:
    """Replace UUIDs in a path with ``{id}``."""
    return _UUID_PATTERN.sub("{id}", path)


# Global stats instance
_latency_stats: LatencyStats | None = None


def get_latency_stats() -> LatencyStats:
    """Get or create the global latency stats instance."""
    global _latency_stats
    if _latency_stats is None:
        _latency_stats = LatencyStats()
    return _latency_stats


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log every request's latency and record it for /health/latency.

    Log level rises with latency and status: info for normal requests,
    warning for 4xx and slow requests, error for 5xx and very slow ones.
    Health check paths are only logged at debug level and are not recorded.

    Args:
        request: The incoming request.
        call_next: The next middleware/handler in the chain.

    Returns:
        Response: The response from the handler.
    """
    start_time = time.perf_counter()
    method = request.method
    path = request.url.path
    is_health_check = path in QUIET_PATHS

    response = None
    error_occurred = False

    try:
        response = await call_next(request)
        return response
    except Exception:
        error_occurred = True
        raise
    finally:
        latency_ms = (time.perf_counter() - start_time) * 1000
        status_code = response.status_code if response else 500

        if not is_health_check:
            get_latency_stats().record(path, latency_ms)

        log_args = (method, path, status_code, latency_ms)
        if is_health_check:
            logger.debug("%s %s - %d - %.2fms", *log_args)
        elif error_occurred or status_code >= 500:
            logger.error("%s %s - %d - %.2fms", *log_args)
        elif latency_ms > VERY_SLOW_REQUEST_THRESHOLD_MS:
            logger.error("VERY SLOW REQUEST: %s %s - %d - %.2fms", *log_args)
        elif latency_ms > SLOW_REQUEST_THRESHOLD_MS:
            logger.warning("SLOW REQUEST: %s %s - %d - %.2fms", *log_args)
        elif status_code >= 400:
            logger.warning("%s %s - %d - %.2fms", *log_args)
        else:
            logger.info("%s %s - %d - %.2fms", *log_args)
