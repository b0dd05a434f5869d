"""Application configuration loaded from environment variables.

The core components never read the environment themselves. load_config()
builds an AppConfig once at the process boundary and the relevant pieces
are passed into the transcriber, engines and prompt pipeline explicitly.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from agent_metrics.utils.errors import ConfigurationError

ENV_PREFIX = "AGENT_METRICS_"

DEFAULT_SPEECH_PROVIDER = "azure"
DEFAULT_SPEECH_LANGUAGE = "en-US"
DEFAULT_COMPLETION_PROVIDER = "openai"
DEFAULT_COMPLETION_MODEL = "gpt-3.5-turbo-instruct"
DEFAULT_COMPLETION_BASE_URL = "https://api.openai.com/v1"
DEFAULT_CONTEXT_WINDOW = 4097

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class SpeechCredentials:
    """Speech service subscription key and region."""

    key: str
    region: str


@dataclass(frozen=True)
class SpeechSettings:
    """Speech recognition configuration."""

    credentials: SpeechCredentials
    provider: str = DEFAULT_SPEECH_PROVIDER
    language: str = DEFAULT_SPEECH_LANGUAGE
    timeout_seconds: float | None = None
    fail_on_cancel_error: bool = False


@dataclass(frozen=True)
class CompletionSettings:
    """Completion service configuration."""

    api_key: str
    provider: str = DEFAULT_COMPLETION_PROVIDER
    model: str = DEFAULT_COMPLETION_MODEL
    base_url: str = DEFAULT_COMPLETION_BASE_URL
    context_window: int = DEFAULT_CONTEXT_WINDOW
    strict_budget: bool = False


@dataclass(frozen=True)
class AppConfig:
    """Root application configuration."""

    speech: SpeechSettings
    completion: CompletionSettings
    log_level: str = "INFO"


def _require(env: Mapping[str, str], name: str) -> str:
    value = env.get(ENV_PREFIX + name, "").strip()
    if not value:
        raise ConfigurationError(
            f"{ENV_PREFIX}{name} is required", setting=ENV_PREFIX + name
        )
    return value


def _parse_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(ENV_PREFIX + name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"{ENV_PREFIX}{name} must be a boolean, got '{raw}'",
        setting=ENV_PREFIX + name,
    )


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{ENV_PREFIX}{name} must be an integer, got '{raw}'",
            setting=ENV_PREFIX + name,
        ) from exc
    if value <= 0:
        raise ConfigurationError(
            f"{ENV_PREFIX}{name} must be positive, got {value}",
            setting=ENV_PREFIX + name,
        )
    return value


def _parse_timeout(env: Mapping[str, str], name: str) -> float | None:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{ENV_PREFIX}{name} must be a number of seconds, got '{raw}'",
            setting=ENV_PREFIX + name,
        ) from exc
    if value <= 0:
        raise ConfigurationError(
            f"{ENV_PREFIX}{name} must be positive, got {value}",
            setting=ENV_PREFIX + name,
        )
    return value


def load_config(env: Mapping[str, str] | None = None) -> AppConfig:
    """Load configuration from environment variables.

    Args:
        env: Mapping to read from. Defaults to os.environ.

    Returns:
        Populated AppConfig.

    Raises:
        ConfigurationError: If a required value is missing or a value
            cannot be parsed.
    """
    if env is None:
        env = os.environ

    speech = SpeechSettings(
        credentials=SpeechCredentials(
            key=_require(env, "SPEECH_KEY"),
            region=_require(env, "SPEECH_REGION"),
        ),
        provider=env.get(ENV_PREFIX + "SPEECH_PROVIDER", DEFAULT_SPEECH_PROVIDER),
        language=env.get(ENV_PREFIX + "SPEECH_LANGUAGE", DEFAULT_SPEECH_LANGUAGE),
        timeout_seconds=_parse_timeout(env, "RECOGNITION_TIMEOUT"),
        fail_on_cancel_error=_parse_bool(env, "FAIL_ON_CANCEL_ERROR", False),
    )
    completion = CompletionSettings(
        api_key=_require(env, "OPENAI_KEY"),
        provider=env.get(
            ENV_PREFIX + "COMPLETION_PROVIDER", DEFAULT_COMPLETION_PROVIDER
        ),
        model=env.get(ENV_PREFIX + "COMPLETION_MODEL", DEFAULT_COMPLETION_MODEL),
        base_url=env.get(
            ENV_PREFIX + "COMPLETION_BASE_URL", DEFAULT_COMPLETION_BASE_URL
        ),
        context_window=_parse_int(env, "CONTEXT_WINDOW", DEFAULT_CONTEXT_WINDOW),
        strict_budget=_parse_bool(env, "STRICT_BUDGET", False),
    )
    return AppConfig(
        speech=speech,
        completion=completion,
        log_level=env.get(ENV_PREFIX + "LOG_LEVEL", "INFO").upper(),
    )
