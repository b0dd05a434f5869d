"""Run metrics collection and reporting.

Provides StageTimer for measuring pipeline stage durations, the RunMetrics
record summarising one pipeline run, and log_run_metrics() for emitting it
as a single structured log line.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Literal

logger = logging.getLogger(__name__)

STAGES = ("acquire", "transcribe", "annotate", "score")


@dataclass
class RunMetrics:
    """All metrics collected for a single pipeline run."""

    source_uri: str
    status: Literal["completed", "failed"]
    wall_time_seconds: float
    acquire_duration_seconds: float = 0.0
    transcribe_duration_seconds: float = 0.0
    annotate_duration_seconds: float = 0.0
    score_duration_seconds: float = 0.0
    transcript_fragments: int = 0
    transcript_chars: int = 0
    error_stage: str | None = None
    error_message: str | None = None


class StageTimer:
    """Context manager that records wall-clock duration of a pipeline stage.

    When given a timings dict, the duration is stored under the stage name
    on success, or under "_<stage>_failed" if the block raised.

    Usage:
        timer = StageTimer("transcribe")
        with timer:
            do_work()
        print(timer.duration_seconds)
    """

    def __init__(
        self, stage_name: str, timings: dict[str, float] | None = None
    ) -> None:
        self.stage_name = stage_name
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None
        self.duration_seconds: float = 0.0
        self._timings = timings
        self._mono_start: float = 0.0

    def __enter__(self) -> StageTimer:
        self.start_time = datetime.now(UTC)
        self._mono_start = time.monotonic()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.duration_seconds = time.monotonic() - self._mono_start
        self.end_time = datetime.now(UTC)
        if self._timings is None:
            return
        if exc_type is not None:
            self._timings[f"_{self.stage_name}_failed"] = self.duration_seconds
        else:
            self._timings[self.stage_name] = self.duration_seconds


def failed_stage(stage_timings: dict[str, float]) -> str:
    """Name the stage that failed, given the timings recorded so far."""
    for stage in STAGES:
        if f"_{stage}_failed" in stage_timings:
            return stage
    for stage in STAGES:
        if stage not in stage_timings:
            return stage
    return "unknown"


def build_run_metrics(
    source_uri: str,
    status: Literal["completed", "failed"],
    stage_timings: dict[str, float],
    wall_time: float,
    transcript_fragments: int = 0,
    transcript_chars: int = 0,
    error_stage: str | None = None,
    error_message: str | None = None,
) -> RunMetrics:
    """Build RunMetrics from StageTimer timings. Missing stages report 0.0."""
    return RunMetrics(
        source_uri=source_uri,
        status=status,
        wall_time_seconds=wall_time,
        acquire_duration_seconds=stage_timings.get("acquire", 0.0),
        transcribe_duration_seconds=stage_timings.get("transcribe", 0.0),
        annotate_duration_seconds=stage_timings.get("annotate", 0.0),
        score_duration_seconds=stage_timings.get("score", 0.0),
        transcript_fragments=transcript_fragments,
        transcript_chars=transcript_chars,
        error_stage=error_stage,
        error_message=error_message,
    )


def log_run_metrics(metrics: RunMetrics) -> None:
    """Emit run metrics as one structured log record.

    Args:
        metrics: Populated RunMetrics dataclass.
    """
    logger.info(
        "Run %s for %s in %.2fs",
        metrics.status,
        metrics.source_uri,
        metrics.wall_time_seconds,
        extra={
            "source_uri": metrics.source_uri,
            "stage": metrics.error_stage,
            "duration_seconds": metrics.wall_time_seconds,
            "error": metrics.error_message,
            "metrics": asdict(metrics),
        },
    )
