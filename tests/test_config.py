"""Tests for environment-driven configuration loading."""

import pytest

from agent_metrics.config import (
    DEFAULT_COMPLETION_MODEL,
    DEFAULT_CONTEXT_WINDOW,
    SpeechCredentials,
    load_config,
)
from agent_metrics.utils.errors import ConfigurationError

REQUIRED = {
    "AGENT_METRICS_SPEECH_KEY": "speech-key",
    "AGENT_METRICS_SPEECH_REGION": "westeurope",
    "AGENT_METRICS_OPENAI_KEY": "openai-key",
}


class TestLoadConfig:
    def test_required_values_and_defaults(self) -> None:
        config = load_config(REQUIRED)

        assert config.speech.credentials == SpeechCredentials("speech-key", "westeurope")
        assert config.speech.provider == "azure"
        assert config.speech.timeout_seconds is None
        assert config.speech.fail_on_cancel_error is False
        assert config.completion.api_key == "openai-key"
        assert config.completion.model == DEFAULT_COMPLETION_MODEL
        assert config.completion.context_window == DEFAULT_CONTEXT_WINDOW
        assert config.completion.strict_budget is False
        assert config.log_level == "INFO"

    @pytest.mark.parametrize("missing", sorted(REQUIRED))
    def test_missing_required_value_raises(self, missing: str) -> None:
        env = {k: v for k, v in REQUIRED.items() if k != missing}
        with pytest.raises(ConfigurationError, match=missing) as exc_info:
            load_config(env)
        assert exc_info.value.setting == missing

    def test_blank_required_value_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            load_config({**REQUIRED, "AGENT_METRICS_OPENAI_KEY": "   "})

    def test_optional_overrides(self) -> None:
        config = load_config(
            {
                **REQUIRED,
                "AGENT_METRICS_COMPLETION_MODEL": "my-model",
                "AGENT_METRICS_CONTEXT_WINDOW": "8192",
                "AGENT_METRICS_STRICT_BUDGET": "true",
                "AGENT_METRICS_RECOGNITION_TIMEOUT": "900",
                "AGENT_METRICS_FAIL_ON_CANCEL_ERROR": "yes",
                "AGENT_METRICS_SPEECH_LANGUAGE": "en-GB",
                "AGENT_METRICS_LOG_LEVEL": "debug",
            }
        )

        assert config.completion.model == "my-model"
        assert config.completion.context_window == 8192
        assert config.completion.strict_budget is True
        assert config.speech.timeout_seconds == 900.0
        assert config.speech.fail_on_cancel_error is True
        assert config.speech.language == "en-GB"
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("AGENT_METRICS_CONTEXT_WINDOW", "lots"),
            ("AGENT_METRICS_CONTEXT_WINDOW", "0"),
            ("AGENT_METRICS_RECOGNITION_TIMEOUT", "-5"),
            ("AGENT_METRICS_STRICT_BUDGET", "maybe"),
        ],
    )
    def test_invalid_values_raise(self, name: str, value: str) -> None:
        with pytest.raises(ConfigurationError, match=name):
            load_config({**REQUIRED, name: value})

    def test_reads_os_environ_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for key, value in REQUIRED.items():
            monkeypatch.setenv(key, value)
        assert load_config().speech.credentials.region == "westeurope"
