"""Budgeted language-model completion stages."""

from agent_metrics.llm.prompt_pipeline import PromptPipeline
from agent_metrics.llm.registry import get_completion_service

__all__ = ["PromptPipeline", "get_completion_service"]
