"""Command-line entry point.

Usage: agent-metrics <source-uri>

Prints the raw transcript, the annotated transcript and the rating text to
stdout, each as soon as its stage finishes. Exits 0 when the whole pipeline
completes, 1 on any failure.
"""

import argparse
import asyncio
import logging
import sys

from agent_metrics.config import load_config
from agent_metrics.observability.logger import setup_logging
from agent_metrics.pipeline import run_pipeline
from agent_metrics.utils.errors import AgentMetricsError, ConfigurationError

logger = logging.getLogger(__name__)

STAGE_HEADINGS = {
    "transcribe": "FULL TEXT",
    "annotate": "ANNOTATED TRANSCRIPTION",
    "score": "CALCULATED METRICS",
}


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="agent-metrics",
        description="Rate a call-center agent's active listening from a recording.",
    )
    parser.add_argument("uri", help="URI of the audio or video source")
    return parser.parse_args(argv)


def _print_stage_output(stage: str, text: str) -> None:
    print(f"{STAGE_HEADINGS[stage]}: \n {text}", flush=True)


def main(argv: list[str] | None = None) -> int:
    """Run the pipeline for one source URI and return the exit code."""
    args = _parse_args(argv)

    try:
        config = load_config()
    except ConfigurationError as exc:
        setup_logging()
        logger.error("Invalid configuration: %s", exc, extra={"error": str(exc)})
        return 1

    setup_logging(config.log_level)
    logger.info("Agent metrics starting", extra={"source_uri": args.uri})

    try:
        asyncio.run(run_pipeline(args.uri, config, on_output=_print_stage_output))
    except AgentMetricsError:
        # run_pipeline logs every failure with its stage before re-raising
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
