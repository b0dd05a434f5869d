"""Speech recognition engine interface and event models.

A RecognitionEngine runs a continuous recognition session against a local
audio file and reports progress by calling an event callback, usually from
its own background threads. Concrete engines (e.g. AzureSpeechEngine)
subclass RecognitionEngine and translate vendor callbacks to the event
types defined here.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from agent_metrics.config import SpeechCredentials


class CancellationReason(str, Enum):
    """Why an engine canceled a recognition session."""

    ERROR = "error"
    END_OF_STREAM = "end_of_stream"
    CANCELLED_BY_USER = "cancelled_by_user"


@dataclass(frozen=True)
class WordTiming:
    """Word-level timing metadata. Diagnostic only, never used for ordering."""

    text: str
    offset_seconds: float
    duration_seconds: float


@dataclass(frozen=True)
class Recognized:
    """A fragment of recognized speech."""

    text: str
    offset_seconds: float | None = None
    duration_seconds: float | None = None
    words: tuple[WordTiming, ...] = ()


@dataclass(frozen=True)
class NoMatch:
    """Audio was heard but no speech could be recognized."""


@dataclass(frozen=True)
class SpeechEnded:
    """The engine detected the end of speech. Informational only."""


@dataclass(frozen=True)
class Canceled:
    """The session was canceled. Terminal."""

    reason: CancellationReason
    error_code: str | None = None
    error_details: str | None = None

    @property
    def is_error(self) -> bool:
        return self.reason is CancellationReason.ERROR


@dataclass(frozen=True)
class SessionStopped:
    """The session stopped. Terminal."""


RecognitionEvent = Recognized | NoMatch | SpeechEnded | Canceled | SessionStopped
TerminalEvent = Canceled | SessionStopped

EventCallback = Callable[[RecognitionEvent], None]


@dataclass
class Transcript:
    """Ordered recognized fragments from one recognition session."""

    segments: list[Recognized] = field(default_factory=list)
    terminated_by: TerminalEvent | None = None

    @property
    def text(self) -> str:
        """Each fragment followed by a newline, in arrival order."""
        return "".join(f"{segment.text}\n" for segment in self.segments)

    def __str__(self) -> str:
        return self.text


class RecognitionEngine(ABC):
    """Abstract base class for continuous speech recognition engines.

    Subclasses must implement start() and stop().
    """

    @abstractmethod
    async def start(
        self,
        audio_path: str,
        credentials: SpeechCredentials,
        on_event: EventCallback,
    ) -> None:
        """Start continuous recognition of a local audio file.

        Returns once the session is running. Events are delivered to
        on_event from any thread until a terminal event has been sent.

        Args:
            audio_path: Path to a 16kHz mono 16-bit PCM WAV file.
            credentials: Speech service key and region.
            on_event: Callback receiving every RecognitionEvent.

        Raises:
            RecognitionError: If the session cannot be started.
        """

    @abstractmethod
    async def stop(self) -> None:
        """Stop the recognition session. Safe to call more than once."""
