"""
Booking metrics: in-process counters plus Prometheus collectors
"""

import time
import logging
from typing import Dict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
import asyncio

from prometheus_client import Counter, Histogram, REGISTRY

from app.core.exceptions import ConflictError, DeskbookException

logger = logging.getLogger(__name__)


def _get_or_create(factory, name: str, documentation: str, labelnames):
    # Re-importing the module (tests, reload) must not register twice
    existing = REGISTRY._names_to_collectors.get(name)
    if existing is not None:
        return existing
    return factory(name, documentation, labelnames)


BOOKING_OUTCOMES = _get_or_create(
    Counter,
    "deskbook_booking_outcomes_total",
    "Booking operations by outcome",
    ["operation", "outcome"]
)
BOOKING_DURATION = _get_or_create(
    Histogram,
    "deskbook_booking_operation_seconds",
    "Booking operation duration",
    ["operation"]
)


@dataclass
class BookingMetrics:
    """Booking system metrics"""
    created_bookings: int = 0
    conflicted_requests: int = 0
    rejected_requests: int = 0
    cancelled_bookings: int = 0
    failed_requests: int = 0
    rate_limited_requests: int = 0
    booking_times: list = field(default_factory=list)

    def add_booking_time(self, duration: float):
        self.booking_times.append(duration)
        if len(self.booking_times) > 1000:  # Keep only last 1000 for memory
            self.booking_times = self.booking_times[-1000:]

    def get_percentiles(self) -> Dict[str, float]:
        if not self.booking_times:
            return {"p50": 0.0, "p95": 0.0, "p99": 0.0}

        sorted_times = sorted(self.booking_times)
        length = len(sorted_times)
        return {
            "p50": sorted_times[int(length * 0.5)],
            "p95": sorted_times[min(int(length * 0.95), length - 1)],
            "p99": sorted_times[min(int(length * 0.99), length - 1)],
        }

    def to_dict(self) -> Dict:
        percentiles = self.get_percentiles()
        return {
            "created_bookings": self.created_bookings,
            "conflicted_requests": self.conflicted_requests,
            "rejected_requests": self.rejected_requests,
            "cancelled_bookings": self.cancelled_bookings,
            "failed_requests": self.failed_requests,
            "rate_limited_requests": self.rate_limited_requests,
            "percentiles_ms": {key: value * 1000 for key, value in percentiles.items()},
        }


class MetricsCollector:
    """Metrics collector for booking operations"""

    def __init__(self):
        self.metrics = BookingMetrics()
        self.logger = logging.getLogger(__name__)
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def track_booking_operation(self, operation_type: str = "create"):
        """Context manager recording duration and outcome of a booking operation"""
        start_time = time.time()
        try:
            yield
        except ConflictError:
            await self._record(operation_type, "conflict", time.time() - start_time)
            raise
        except DeskbookException:
            await self._record(operation_type, "rejected", time.time() - start_time)
            raise
        except Exception as e:
            await self._record(operation_type, "error", time.time() - start_time)
            self.logger.error(f"Failed {operation_type} operation: {e}")
            raise
        else:
            duration = time.time() - start_time
            await self._record(operation_type, "success", duration)
            if duration > 5.0:  # Log slow operations
                self.logger.warning(f"Slow {operation_type} operation: {duration:.2f}s")

    async def _record(self, operation_type: str, outcome: str, duration: float):
        BOOKING_OUTCOMES.labels(operation=operation_type, outcome=outcome).inc()
        BOOKING_DURATION.labels(operation=operation_type).observe(duration)

        async with self._lock:
            self.metrics.add_booking_time(duration)
            if outcome == "conflict":
                self.metrics.conflicted_requests += 1
            elif outcome == "rejected":
                self.metrics.rejected_requests += 1
            elif outcome == "error":
                self.metrics.failed_requests += 1

    async def record_created(self, count: int):
        async with self._lock:
            self.metrics.created_bookings += count

    async def record_cancelled(self, count: int):
        async with self._lock:
            self.metrics.cancelled_bookings += count

    async def record_rate_limit_hit(self):
        async with self._lock:
            self.metrics.rate_limited_requests += 1

    async def get_metrics(self) -> Dict:
        async with self._lock:
            return self.metrics.to_dict()

    async def reset_metrics(self):
        """Reset all metrics (useful for testing)"""
        async with self._lock:
            self.metrics = BookingMetrics()


metrics_collector = MetricsCollector()
