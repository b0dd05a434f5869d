"""Completion service registry with configuration-driven provider selection."""

from agent_metrics.llm.interface import CompletionService
from agent_metrics.llm.openai_completions import OpenAICompletionService
from agent_metrics.utils.errors import CompletionRequestError

COMPLETION_SERVICES: dict[str, type[CompletionService]] = {
    "openai": OpenAICompletionService,
}


def get_completion_service(provider: str, **kwargs: object) -> CompletionService:
    """Create a completion service instance by provider name.

    Args:
        provider: Provider name (e.g., "openai").
        **kwargs: Service-specific configuration passed to the constructor.

    Raises:
        CompletionRequestError: If the provider name is not registered.
    """
    service_cls = COMPLETION_SERVICES.get(provider)
    if not service_cls:
        available = ", ".join(sorted(COMPLETION_SERVICES.keys()))
        raise CompletionRequestError(
            f"Unknown completion provider: '{provider}'. Available: {available}",
            stage="config",
            provider=provider,
        )
    return service_cls(**kwargs)
