"""Recognition engine registry with configuration-driven provider selection.

Maps provider name strings to engine classes. Use get_recognition_engine()
to instantiate an engine by name with engine-specific configuration.
"""

from agent_metrics.asr.azure_speech import AzureSpeechEngine
from agent_metrics.asr.interface import RecognitionEngine
from agent_metrics.utils.errors import RecognitionError

RECOGNITION_ENGINES: dict[str, type[RecognitionEngine]] = {
    "azure": AzureSpeechEngine,
}


def get_recognition_engine(provider: str, **kwargs: object) -> RecognitionEngine:
    """Create a recognition engine instance by provider name.

    Args:
        provider: Provider name (e.g., "azure").
        **kwargs: Engine-specific configuration passed to the constructor.

    Returns:
        An initialized RecognitionEngine instance.

    Raises:
        RecognitionError: If the provider name is not registered.
    """
    engine_cls = RECOGNITION_ENGINES.get(provider)
    if not engine_cls:
        available = ", ".join(sorted(RECOGNITION_ENGINES.keys()))
        raise RecognitionError(
            f"Unknown speech provider: '{provider}'. Available: {available}",
            stage="config",
            provider=provider,
        )
    return engine_cls(**kwargs)
