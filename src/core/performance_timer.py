"""
Performance measurement utilities for timing pipeline stages.
"""

import time
from typing import Dict, Optional
from contextlib import contextmanager

import structlog

logger = structlog.get_logger(__name__)


class PerformanceTimer:
    """Simple performance timer for measuring processing stages."""

    def __init__(self, stage_name: str):
        self.stage_name = stage_name
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    def start(self) -> "PerformanceTimer":
        """Start timing the stage."""
        self.start_time = time.perf_counter()
        logger.debug("stage_started", stage=self.stage_name)
        return self

    def stop(self) -> float:
        """Stop timing and return duration in seconds."""
        if self.start_time is None:
            raise ValueError("Timer not started")

        self.end_time = time.perf_counter()
        duration = self.end_time - self.start_time
        logger.debug("stage_completed", stage=self.stage_name, duration_ms=round(duration * 1000))
        return duration

    @property
    def duration(self) -> float:
        """Get duration if timing is complete."""
        if self.start_time is None or self.end_time is None:
            raise ValueError("Timing not complete")
        return self.end_time - self.start_time

    @property
    def elapsed_ms(self) -> int:
        """Milliseconds since start, whether or not the timer was stopped."""
        if self.start_time is None:
            raise ValueError("Timer not started")
        end = self.end_time if self.end_time is not None else time.perf_counter()
        return int((end - self.start_time) * 1000)


@contextmanager
def time_stage(stage_name: str):
    """Context manager for timing a code block."""
    timer = PerformanceTimer(stage_name)
    timer.start()
    try:
        yield timer
    finally:
        timer.stop()


class WorkflowTimer:
    """Timer for tracking a whole pipeline run and its stages."""

    def __init__(self, workflow_name: str):
        self.workflow_name = workflow_name
        self.stages: Dict[str, int] = {}
        self._total = PerformanceTimer(workflow_name)

    def start_workflow(self) -> "WorkflowTimer":
        self._total.start()
        return self

    @contextmanager
    def time_stage(self, stage_name: str):
        with time_stage(f"{self.workflow_name}.{stage_name}") as timer:
            yield timer
        self.stages[stage_name] = int(timer.duration * 1000)

    @property
    def elapsed_ms(self) -> int:
        return self._total.elapsed_ms

    def complete_workflow(self) -> int:
        """Stop the overall timer and log a per-stage summary. Returns total milliseconds."""
        self._total.stop()
        total_ms = self._total.elapsed_ms
        logger.info("workflow_completed", workflow=self.workflow_name, duration_ms=total_ms, stages=self.stages)
        return total_ms
