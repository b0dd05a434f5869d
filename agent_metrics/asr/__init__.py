"""Continuous speech recognition."""

from agent_metrics.asr.registry import get_recognition_engine
from agent_metrics.asr.transcriber import Transcriber

__all__ = ["Transcriber", "get_recognition_engine"]
