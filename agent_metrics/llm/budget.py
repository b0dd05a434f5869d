"""Output-token budgeting for completion requests."""

from agent_metrics.config import DEFAULT_CONTEXT_WINDOW
from agent_metrics.utils.errors import PromptTooLargeError


def compute_max_output_tokens(
    prompt_length: int,
    context_window: int = DEFAULT_CONTEXT_WINDOW,
    strict: bool = False,
) -> int:
    """Compute the output budget left in the context window.

    Returns context_window - prompt_length. When the prompt already
    overflows the window the full context_window is returned instead of a
    negative number, unless strict is set, in which case the overflow is
    an error.

    Args:
        prompt_length: Prompt size, measured in characters.
        context_window: Combined prompt and output budget of the model.
        strict: Raise PromptTooLargeError instead of falling back.

    Returns:
        Non-negative max_tokens value for the request.

    Raises:
        ValueError: If prompt_length is negative.
        PromptTooLargeError: On overflow in strict mode.
    """
    if prompt_length < 0:
        raise ValueError(f"prompt_length must be >= 0, got {prompt_length}")

    remaining = context_window - prompt_length
    if remaining >= 0:
        return remaining

    if strict:
        raise PromptTooLargeError(
            f"Prompt of {prompt_length} chars exceeds the {context_window} context window",
            prompt_length=prompt_length,
            context_window=context_window,
        )
    return context_window
