"""Custom exception hierarchy for the agent metrics pipeline.

All exceptions inherit from AgentMetricsError, enabling targeted handling
at the process boundary while preserving specific failure context.
"""


class AgentMetricsError(Exception):
    """Base exception for all agent metrics errors."""

    def __init__(self, message: str, stage: str | None = None) -> None:
        self.stage = stage
        super().__init__(message)

    def __str__(self) -> str:
        if self.stage:
            return f"[stage={self.stage}] {super().__str__()}"
        return super().__str__()


class ConfigurationError(AgentMetricsError):
    """Raised when a required configuration value is missing or invalid."""

    def __init__(self, message: str, setting: str | None = None) -> None:
        self.setting = setting
        super().__init__(message, stage="config")


class AudioFetchError(AgentMetricsError):
    """Raised when listing or downloading a remote audio stream fails."""

    def __init__(
        self, message: str, stage: str | None = "acquire", uri: str | None = None
    ) -> None:
        self.uri = uri
        super().__init__(message, stage)


class NoSuitableStreamError(AudioFetchError):
    """Raised when a source exposes no audio-only stream."""


class UnsupportedContainerError(AgentMetricsError):
    """Raised when the acquired audio container cannot be decoded."""

    def __init__(
        self,
        message: str,
        stage: str | None = "acquire",
        container: str | None = None,
    ) -> None:
        self.container = container
        super().__init__(message, stage)


class TranscodeError(AgentMetricsError):
    """Raised when ffmpeg transcoding fails."""

    def __init__(
        self,
        message: str,
        stage: str | None = "acquire",
        input_path: str | None = None,
    ) -> None:
        self.input_path = input_path
        super().__init__(message, stage)


class RecognitionError(AgentMetricsError):
    """Raised when the speech recognition engine fails."""

    def __init__(
        self,
        message: str,
        stage: str | None = "transcribe",
        provider: str | None = None,
    ) -> None:
        self.provider = provider
        super().__init__(message, stage)


class RecognitionCanceledError(RecognitionError):
    """Raised when the engine cancels a session with an error.

    Only raised when the transcriber is configured to fail on cancellation
    errors; otherwise the cancellation is logged and the partial transcript
    is returned.
    """

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        error_code: str | None = None,
        error_details: str | None = None,
        partial_transcript: str = "",
    ) -> None:
        self.reason = reason
        self.error_code = error_code
        self.error_details = error_details
        self.partial_transcript = partial_transcript
        super().__init__(message)


class RecognitionTimeoutError(RecognitionError):
    """Raised when no terminal signal arrives within the configured timeout."""

    def __init__(self, message: str, timeout: float | None = None) -> None:
        self.timeout = timeout
        super().__init__(message)


class TranscriberStateError(RecognitionError):
    """Raised when a transcriber is used outside the Idle state."""


class CompletionRequestError(AgentMetricsError):
    """Raised when a completion service call fails."""

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.provider = provider
        self.status_code = status_code
        super().__init__(message, stage)


class PromptTooLargeError(AgentMetricsError):
    """Raised in strict budgeting mode when a prompt exceeds the context window."""

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        prompt_length: int | None = None,
        context_window: int | None = None,
    ) -> None:
        self.prompt_length = prompt_length
        self.context_window = context_window
        super().__init__(message, stage)


class RatingParseError(AgentMetricsError):
    """Raised when score output carries no recognizable rating."""

    def __init__(self, message: str, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__(message, stage="score")
