"""
Stage timer utility.

Lightweight context manager that times the individual steps of a
multi-step operation and emits a Prometheus histogram per step.

Usage:
    timer = StageTimer(operation="create_complaint")

    with timer.stage("classify_priority"):
        priority = await oracle.classify_priority(text)

    with timer.stage("persist"):
        await Complaint.create(...)

    logger.info(f"timings={timer.as_dict()}")  # {"classify_priority": 0.81, "persist": 0.004}
"""

import time
from contextlib import contextmanager

from api.utils.metrics import stage_latency


class StageTimer:
    """Tracks per-stage latencies for a single operation run.

    Stages that raise are still recorded; the exception propagates.
    """

    def __init__(self, operation: str = "unknown") -> None:
        self._timings: dict[str, float] = {}
        self._operation = operation

    @contextmanager
    def stage(self, name: str):
        """Time one stage.

        Args:
            name: Stage identifier (e.g. "classify_priority", "staff_guidance").
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            self._timings[name] = round(elapsed, 4)
            stage_latency.labels(
                operation=self._operation, stage=name
            ).observe(elapsed)

    def as_dict(self) -> dict[str, float]:
        """Return all stage timings as a flat dict."""
        return dict(self._timings)

    @property
    def total_ms(self) -> float:
        """Total time across all stages in milliseconds."""
        return round(sum(self._timings.values()) * 1000, 2)
