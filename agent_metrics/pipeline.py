"""run_pipeline() orchestrator for one agent metrics run.

Orchestrates: acquire audio -> transcribe -> annotate -> score. Every stage
waits for its full result. Any failure is logged with the stage it
happened in, reported in the run metrics, and re-raised to the caller.
"""

from __future__ import annotations

import logging
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from agent_metrics.asr.interface import RecognitionEngine, Transcript
from agent_metrics.asr.registry import get_recognition_engine
from agent_metrics.asr.transcriber import Transcriber
from agent_metrics.audio.source import AudioAcquirer, AudioSource
from agent_metrics.config import AppConfig
from agent_metrics.llm.interface import CompletionService
from agent_metrics.llm.prompt_pipeline import PromptPipeline
from agent_metrics.llm.rating import Rating, parse_rating
from agent_metrics.llm.registry import get_completion_service
from agent_metrics.observability.metrics import (
    StageTimer,
    build_run_metrics,
    failed_stage,
    log_run_metrics,
)
from agent_metrics.utils.errors import AgentMetricsError, RatingParseError

logger = logging.getLogger(__name__)

StageOutputCallback = Callable[[str, str], None]


@dataclass
class PipelineResult:
    """Everything one run produced."""

    source: AudioSource
    transcript: Transcript
    annotated_transcription: str
    calculated_metrics: str
    rating: Rating | None = None
    stage_timings: dict[str, float] = field(default_factory=dict)


def _default_engine(config: AppConfig) -> RecognitionEngine:
    return get_recognition_engine(config.speech.provider, language=config.speech.language)


def _default_completion_service(config: AppConfig) -> CompletionService:
    return get_completion_service(
        config.completion.provider,
        api_key=config.completion.api_key,
        base_url=config.completion.base_url,
    )


async def run_pipeline(
    uri: str,
    config: AppConfig,
    acquirer: AudioAcquirer | None = None,
    engine: RecognitionEngine | None = None,
    completion_service: CompletionService | None = None,
    on_output: StageOutputCallback | None = None,
) -> PipelineResult:
    """Turn a source URI into an active-listening rating.

    Args:
        uri: Remote audio/video source.
        config: Application configuration.
        acquirer: Optional AudioAcquirer (creates default if not provided).
        engine: Optional RecognitionEngine (selected from config if not provided).
        completion_service: Optional CompletionService (selected from config
            if not provided).
        on_output: Optional callback receiving (stage, text) as soon as the
            transcribe, annotate and score stages each finish.

    Returns:
        PipelineResult with the transcript, both stage outputs and the
        parsed rating when the score output contains one.

    Raises:
        AgentMetricsError: From whichever stage failed.
    """
    wall_start = time.monotonic()
    stage_timings: dict[str, float] = {}
    transcript: Transcript | None = None

    def emit(stage: str, text: str) -> None:
        if on_output is not None:
            on_output(stage, text)

    try:
        if acquirer is None:
            acquirer = AudioAcquirer()
        if engine is None:
            engine = _default_engine(config)
        if completion_service is None:
            completion_service = _default_completion_service(config)

        prompt_pipeline = PromptPipeline(
            completion_service,
            model=config.completion.model,
            context_window=config.completion.context_window,
            strict_budget=config.completion.strict_budget,
        )

        with tempfile.TemporaryDirectory(prefix="agent-metrics-") as tmp_dir:
            with StageTimer("acquire", stage_timings):
                source = await acquirer.resolve(uri, tmp_dir)

            with StageTimer("transcribe", stage_timings):
                transcriber = Transcriber(
                    engine,
                    timeout=config.speech.timeout_seconds,
                    fail_on_cancel_error=config.speech.fail_on_cancel_error,
                )
                transcript = await transcriber.transcribe(
                    source.local_path, config.speech.credentials
                )
        emit("transcribe", transcript.text)

        with StageTimer("annotate", stage_timings):
            annotated = await prompt_pipeline.annotate(transcript.text)
        emit("annotate", annotated)

        with StageTimer("score", stage_timings):
            calculated = await prompt_pipeline.score(annotated)
        emit("score", calculated)

    except Exception as exc:
        stage = failed_stage(stage_timings)
        if isinstance(exc, AgentMetricsError) and exc.stage:
            stage = exc.stage

        logger.error(
            "Pipeline failed at stage '%s' for %s: %s",
            stage,
            uri,
            exc,
            exc_info=True,
            extra={"source_uri": uri, "stage": stage, "error": str(exc)},
        )
        log_run_metrics(
            build_run_metrics(
                source_uri=uri,
                status="failed",
                stage_timings=stage_timings,
                wall_time=time.monotonic() - wall_start,
                transcript_fragments=len(transcript.segments) if transcript else 0,
                transcript_chars=len(transcript.text) if transcript else 0,
                error_stage=stage,
                error_message=str(exc),
            )
        )
        raise

    rating: Rating | None = None
    try:
        rating = parse_rating(calculated)
    except RatingParseError as exc:
        logger.warning("Could not read a rating from score output: %s", exc)

    log_run_metrics(
        build_run_metrics(
            source_uri=uri,
            status="completed",
            stage_timings=stage_timings,
            wall_time=time.monotonic() - wall_start,
            transcript_fragments=len(transcript.segments),
            transcript_chars=len(transcript.text),
        )
    )

    return PipelineResult(
        source=source,
        transcript=transcript,
        annotated_transcription=annotated,
        calculated_metrics=calculated,
        rating=rating,
        stage_timings=stage_timings,
    )
