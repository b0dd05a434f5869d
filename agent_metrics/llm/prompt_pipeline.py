"""Two-stage budgeted completion pipeline.

Stage 1 (annotate) asks the model to restructure a raw transcript into
speaker turns. Stage 2 (score) rates the agent's active listening from the
annotated text. Each stage is a single request with its own output budget;
failures propagate unchanged and nothing is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from agent_metrics.config import DEFAULT_COMPLETION_MODEL, DEFAULT_CONTEXT_WINDOW
from agent_metrics.llm.budget import compute_max_output_tokens
from agent_metrics.llm.interface import CompletionService, PromptRequest
from agent_metrics.llm.prompts import build_annotate_prompt, build_score_prompt
from agent_metrics.utils.errors import AgentMetricsError

logger = logging.getLogger(__name__)


@dataclass
class PromptPipelineResult:
    """Outputs of both stages, as opaque text."""

    annotated_transcription: str
    calculated_metrics: str


class PromptPipeline:
    """Runs the annotate and score stages against a completion service.

    Args:
        service: Completion backend.
        model: Model id sent with every request.
        context_window: Combined prompt and output budget of the model.
        temperature: Sampling temperature (0.0 for deterministic output).
        strict_budget: Fail with PromptTooLargeError instead of falling back
            to the full window when a prompt overflows it.
    """

    def __init__(
        self,
        service: CompletionService,
        model: str = DEFAULT_COMPLETION_MODEL,
        context_window: int = DEFAULT_CONTEXT_WINDOW,
        temperature: float = 0.0,
        strict_budget: bool = False,
    ) -> None:
        self._service = service
        self._model = model
        self._context_window = context_window
        self._temperature = temperature
        self._strict_budget = strict_budget

    def build_request(self, prompt: str) -> PromptRequest:
        """Wrap a prompt in a request with its computed output budget."""
        return PromptRequest(
            model_id=self._model,
            prompt_text=prompt,
            max_output_tokens=compute_max_output_tokens(
                len(prompt), self._context_window, strict=self._strict_budget
            ),
            temperature=self._temperature,
        )

    async def annotate(self, transcript: str) -> str:
        """Restructure a raw transcript into speaker-tagged turns."""
        return await self._run_stage("annotate", build_annotate_prompt(transcript))

    async def score(self, annotated_transcription: str) -> str:
        """Rate active listening from the annotated transcript."""
        return await self._run_stage("score", build_score_prompt(annotated_transcription))

    async def run(self, transcript: str) -> PromptPipelineResult:
        """Annotate, then score. Stage 2 never runs if stage 1 fails."""
        annotated = await self.annotate(transcript)
        calculated = await self.score(annotated)
        return PromptPipelineResult(
            annotated_transcription=annotated, calculated_metrics=calculated
        )

    async def _run_stage(self, stage: str, prompt: str) -> str:
        try:
            request = self.build_request(prompt)
        except AgentMetricsError as exc:
            exc.stage = exc.stage or stage
            raise

        logger.info(
            "Prompt length: %d, max output tokens: %d",
            len(prompt),
            request.max_output_tokens,
            extra={
                "stage": stage,
                "prompt_length": len(prompt),
                "max_output_tokens": request.max_output_tokens,
            },
        )

        try:
            result = await self._service.complete(request)
        except AgentMetricsError as exc:
            exc.stage = exc.stage or stage
            raise

        logger.info(
            "%s stage returned %d chars", stage, len(result.text), extra={"stage": stage}
        )
        return result.text
