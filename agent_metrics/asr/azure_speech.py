"""Azure Speech continuous recognition engine.

Wraps the Azure Speech SDK recognizer and translates its callbacks into
RecognitionEvent values. SDK callbacks fire on SDK-owned threads; blocking
start/stop calls run in a worker thread so the event loop stays free.
"""

from __future__ import annotations

import asyncio
import json
import logging

import azure.cognitiveservices.speech as speechsdk

from agent_metrics.asr.interface import (
    CancellationReason,
    Canceled,
    EventCallback,
    NoMatch,
    RecognitionEngine,
    RecognitionEvent,
    Recognized,
    SessionStopped,
    SpeechEnded,
    WordTiming,
)
from agent_metrics.config import DEFAULT_SPEECH_LANGUAGE, SpeechCredentials
from agent_metrics.utils.errors import RecognitionError

logger = logging.getLogger(__name__)

TICKS_PER_SECOND = 10_000_000  # SDK offsets are in 100ns ticks


def _ticks_to_seconds(ticks: int | None) -> float | None:
    if ticks is None:
        return None
    return ticks / TICKS_PER_SECOND


class AzureSpeechEngine(RecognitionEngine):
    """Azure Speech SDK engine with word-level timestamps.

    Args:
        language: Recognition language (default "en-US").
        word_level_timestamps: Request per-word offsets from the service.
    """

    def __init__(
        self,
        language: str = DEFAULT_SPEECH_LANGUAGE,
        word_level_timestamps: bool = True,
    ) -> None:
        self._language = language
        self._word_level_timestamps = word_level_timestamps
        self._recognizer: speechsdk.SpeechRecognizer | None = None
        self._running = False

    async def start(
        self,
        audio_path: str,
        credentials: SpeechCredentials,
        on_event: EventCallback,
    ) -> None:
        if self._recognizer is not None:
            raise RecognitionError(
                "Engine already has an active session", provider="azure"
            )

        try:
            speech_config = speechsdk.SpeechConfig(
                subscription=credentials.key, region=credentials.region
            )
            speech_config.speech_recognition_language = self._language
            if self._word_level_timestamps:
                speech_config.request_word_level_timestamps()
            audio_config = speechsdk.audio.AudioConfig(filename=audio_path)
            recognizer = speechsdk.SpeechRecognizer(
                speech_config=speech_config, audio_config=audio_config
            )
        except (RuntimeError, ValueError) as exc:
            raise RecognitionError(
                f"Failed to create recognizer: {exc}", provider="azure"
            ) from exc

        self._connect(recognizer, on_event)
        self._recognizer = recognizer

        try:
            await asyncio.to_thread(recognizer.start_continuous_recognition_async().get)
        except RuntimeError as exc:
            raise RecognitionError(
                f"Failed to start continuous recognition: {exc}", provider="azure"
            ) from exc
        self._running = True
        logger.info("Azure continuous recognition started for %s", audio_path)

    async def stop(self) -> None:
        if self._recognizer is None or not self._running:
            return
        self._running = False
        await asyncio.to_thread(self._recognizer.stop_continuous_recognition_async().get)
        logger.info("Azure continuous recognition stopped")

    def _connect(
        self, recognizer: speechsdk.SpeechRecognizer, on_event: EventCallback
    ) -> None:
        def emit(event: RecognitionEvent | None) -> None:
            if event is not None:
                on_event(event)

        recognizer.recognized.connect(lambda evt: emit(self._convert_recognized(evt)))
        recognizer.speech_end_detected.connect(lambda evt: emit(SpeechEnded()))
        recognizer.canceled.connect(lambda evt: emit(self._convert_canceled(evt)))
        recognizer.session_stopped.connect(lambda evt: emit(SessionStopped()))

    def _convert_recognized(self, evt: object) -> RecognitionEvent | None:
        """Map a recognized callback to Recognized or NoMatch."""
        result = evt.result
        if result.reason == speechsdk.ResultReason.RecognizedSpeech:
            return Recognized(
                text=result.text,
                offset_seconds=_ticks_to_seconds(result.offset),
                duration_seconds=_ticks_to_seconds(result.duration),
                words=self._parse_word_timings(result.json),
            )
        if result.reason == speechsdk.ResultReason.NoMatch:
            return NoMatch()
        logger.debug("Ignoring recognized callback with reason %s", result.reason)
        return None

    def _convert_canceled(self, evt: object) -> Canceled:
        details = evt.cancellation_details
        reasons = {
            speechsdk.CancellationReason.Error: CancellationReason.ERROR,
            speechsdk.CancellationReason.EndOfStream: CancellationReason.END_OF_STREAM,
            speechsdk.CancellationReason.CancelledByUser: CancellationReason.CANCELLED_BY_USER,
        }
        reason = reasons.get(details.reason, CancellationReason.ERROR)
        if reason is not CancellationReason.ERROR:
            return Canceled(reason=reason)
        return Canceled(
            reason=reason,
            error_code=details.code.name if details.code is not None else None,
            error_details=details.error_details,
        )

    @staticmethod
    def _parse_word_timings(raw_json: str | None) -> tuple[WordTiming, ...]:
        """Extract word offsets from the detailed JSON result, if present."""
        if not raw_json:
            return ()
        try:
            body = json.loads(raw_json)
        except json.JSONDecodeError:
            return ()

        nbest = body.get("NBest") or []
        if not nbest:
            return ()

        return tuple(
            WordTiming(
                text=word.get("Word", ""),
                offset_seconds=word.get("Offset", 0) / TICKS_PER_SECOND,
                duration_seconds=word.get("Duration", 0) / TICKS_PER_SECOND,
            )
            for word in nbest[0].get("Words", [])
        )
