"""Continuous recognition state machine.

Transcriber turns one local audio file into one ordered Transcript. It
moves Idle -> Running -> Terminated exactly once. Engine events arrive on
background threads and are replayed on the caller's event loop in arrival
order; the first Canceled or SessionStopped event resolves the session and
everything delivered after it is ignored.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from agent_metrics.asr.completion_cell import CompletionCell
from agent_metrics.asr.interface import (
    Canceled,
    NoMatch,
    RecognitionEngine,
    RecognitionEvent,
    Recognized,
    SessionStopped,
    SpeechEnded,
    TerminalEvent,
    Transcript,
)
from agent_metrics.config import SpeechCredentials
from agent_metrics.utils.errors import (
    RecognitionCanceledError,
    RecognitionTimeoutError,
    TranscriberStateError,
)

logger = logging.getLogger(__name__)


class TranscriberState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    TERMINATED = "terminated"


class Transcriber:
    """Drives a single continuous recognition session.

    Args:
        engine: Recognition engine to run the session on.
        timeout: Seconds to wait for a terminal signal. None waits forever.
        fail_on_cancel_error: Raise RecognitionCanceledError when the engine
            cancels with an error. When False (the default) the error is
            logged and the partial transcript is returned.
    """

    def __init__(
        self,
        engine: RecognitionEngine,
        timeout: float | None = None,
        fail_on_cancel_error: bool = False,
    ) -> None:
        self._engine = engine
        self._timeout = timeout
        self._fail_on_cancel_error = fail_on_cancel_error
        self._state = TranscriberState.IDLE
        self._segments: list[Recognized] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._terminal: CompletionCell[TerminalEvent] | None = None

    @property
    def state(self) -> TranscriberState:
        return self._state

    async def transcribe(
        self, audio_path: str, credentials: SpeechCredentials
    ) -> Transcript:
        """Recognize audio_path and return the transcript.

        Blocks until the engine sends a terminal signal, then stops the
        session and returns the fragments received up to that signal.

        Raises:
            TranscriberStateError: If this transcriber was already used.
            RecognitionError: If the engine fails to start.
            RecognitionTimeoutError: If the timeout expires first.
            RecognitionCanceledError: On an engine error, when configured to
                fail on cancellation errors.
        """
        if self._state is not TranscriberState.IDLE:
            raise TranscriberStateError(
                f"Transcriber is {self._state.value}; a transcriber handles one session"
            )

        self._loop = asyncio.get_running_loop()
        self._terminal = CompletionCell(self._loop)
        self._state = TranscriberState.RUNNING
        logger.info("Starting recognition of %s", audio_path, extra={"stage": "transcribe"})

        try:
            await self._engine.start(audio_path, credentials, self._on_event)
            terminal = await asyncio.wait_for(self._terminal.wait(), self._timeout)
        except TimeoutError as exc:
            raise RecognitionTimeoutError(
                f"No terminal recognition signal within {self._timeout}s",
                timeout=self._timeout,
            ) from exc
        finally:
            self._state = TranscriberState.TERMINATED
            await self._stop_engine()

        transcript = Transcript(segments=list(self._segments), terminated_by=terminal)
        logger.info(
            "FULL TEXT: %d fragments, %d chars",
            len(transcript.segments),
            len(transcript.text),
            extra={"stage": "transcribe"},
        )

        if (
            isinstance(terminal, Canceled)
            and terminal.is_error
            and self._fail_on_cancel_error
        ):
            raise RecognitionCanceledError(
                f"Recognition canceled: {terminal.error_code}: {terminal.error_details}",
                reason=terminal.reason.value,
                error_code=terminal.error_code,
                error_details=terminal.error_details,
                partial_transcript=transcript.text,
            )
        return transcript

    async def _stop_engine(self) -> None:
        try:
            await self._engine.stop()
        except Exception as exc:
            logger.warning(
                "Failed to stop recognition session: %s",
                exc,
                exc_info=True,
                extra={"stage": "transcribe", "error": str(exc)},
            )

    def _on_event(self, event: RecognitionEvent) -> None:
        """Engine callback. Safe to call from any thread."""
        if self._terminal is None or self._terminal.done():
            return
        try:
            self._loop.call_soon_threadsafe(self._handle_event, event)
        except RuntimeError:
            logger.debug("Event loop closed, dropping %s", type(event).__name__)

    def _handle_event(self, event: RecognitionEvent) -> None:
        if self._terminal.done():
            logger.debug("Ignoring %s after session end", type(event).__name__)
            return

        if isinstance(event, Recognized):
            self._segments.append(event)
        elif isinstance(event, NoMatch):
            logger.info("NOMATCH: Speech could not be recognized.")
        elif isinstance(event, SpeechEnded):
            logger.info("Speech ended.")
        elif isinstance(event, Canceled):
            self._handle_canceled(event)
        elif isinstance(event, SessionStopped):
            logger.info("Session stopped event.")
            self._terminal.try_set(event)

    def _handle_canceled(self, event: Canceled) -> None:
        logger.warning("CANCELED: Reason=%s", event.reason.value)
        if event.is_error:
            logger.error(
                "CANCELED: ErrorCode=%s ErrorDetails=%s",
                event.error_code,
                event.error_details,
                extra={
                    "stage": "transcribe",
                    "error_code": event.error_code,
                    "error": event.error_details,
                },
            )
        self._terminal.try_set(event)
