"""Abstract completion service interface.

Concrete implementations (e.g., OpenAICompletionService) subclass
CompletionService and return the single top completion choice.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class PromptRequest:
    """One completion request. max_output_tokens is always computed, never user-supplied."""

    model_id: str
    prompt_text: str
    max_output_tokens: int
    temperature: float = 0.0


@dataclass
class CompletionResult:
    """The top completion choice and the raw provider response."""

    text: str
    raw_response: dict = field(default_factory=dict)


class CompletionService(ABC):
    """Abstract base class for language-model completion backends.

    Subclasses must implement the complete() method.
    """

    @abstractmethod
    async def complete(self, request: PromptRequest) -> CompletionResult:
        """Run one completion request.

        Args:
            request: Model, prompt, output budget and temperature.

        Returns:
            CompletionResult holding the top choice's text.

        Raises:
            CompletionRequestError: If the request fails.
        """
