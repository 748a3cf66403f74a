"""LLMClient abstract base class.

Defines the interface every analysis backend must implement. The analyzer
and postmortem generator depend only on this interface, never on a concrete
provider. Swapping OpenAI for Anthropic or a local Ollama model means
constructing a different class through the factory, with zero changes to the
rest of the system.
"""

from abc import ABC, abstractmethod

# Sent as the system turn by chat-style backends.
SYSTEM_PROMPT = "You are an SRE assistant analyzing incidents. Respond with JSON only."


class LLMError(Exception):
    """Raised when a backend answers but the answer carries no usable text."""


class LLMClient(ABC):
    """Abstract base class for all analysis backends.

    The analyzer and postmortem generator receive an LLMClient at
    construction time and call analyze() with a fully rendered prompt. They
    never import or instantiate a concrete provider directly.

    Cancellation is the caller's: every implementation awaits its network
    call, so cancelling the awaiting task cancels the request.

    To add a new provider, subclass LLMClient, implement analyze() and name,
    and register it in llm.factory.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier, e.g. "openai". Used in logs."""
        ...

    @abstractmethod
    async def analyze(self, prompt: str) -> str:
        """Send a prompt to the backend and return its response as plain text.

        Args:
            prompt: The complete prompt. Built by analysis.prompts.

        Returns:
            The model's response as a plain string. Callers never see the
            raw SDK or HTTP response object.

        Raises:
            LLMError: If the backend returned no content.
            Exception: Transport and API errors from the underlying client
                propagate unchanged. Callers wrap them.
        """
        ...
