"""Backend factory.

The one place that turns the LLM_PROVIDER discriminator into a concrete
LLMClient. Everything else receives the result as a plain LLMClient.
"""

import logging

from core.config import ConfigError, LLMSettings
from llm.anthropic import AnthropicClient
from llm.base import LLMClient
from llm.cerebras import CerebrasClient
from llm.ollama import OllamaClient
from llm.openai_client import OpenAIClient
from llm.openrouter import OpenRouterClient

logger = logging.getLogger(__name__)

_HOSTED_CLIENTS: dict[str, type[LLMClient]] = {
    "openai": OpenAIClient,
    "anthropic": AnthropicClient,
    "openrouter": OpenRouterClient,
    "cerebras": CerebrasClient,
}

SUPPORTED_PROVIDERS = (*_HOSTED_CLIENTS, "ollama")


def create_llm_client(settings: LLMSettings) -> LLMClient:
    """Build the backend selected by settings.provider.

    Args:
        settings: LLM section of the loaded Settings.

    Returns:
        A ready LLMClient.

    Raises:
        ConfigError: If the provider is not supported, or a hosted provider
            has no credential in settings or in its environment variable.
    """
    provider = settings.provider_type

    if provider == "ollama":
        client: LLMClient = OllamaClient(
            url=settings.ollama_url,
            model=settings.ollama_model,
            temperature=settings.temperature,
        )
    elif provider in _HOSTED_CLIENTS:
        client_cls = _HOSTED_CLIENTS[provider]
        try:
            client = client_cls(
                model=settings.model,
                api_key=settings.api_key or None,
                temperature=settings.temperature,
                max_tokens=settings.max_tokens,
            )
        except KeyError as exc:
            raise ConfigError(
                f"{provider} API key is required (set {exc.args[0]})"
            ) from exc
    else:
        raise ConfigError(
            f"Unsupported LLM provider '{settings.provider}'. "
            f"Expected one of: {', '.join(SUPPORTED_PROVIDERS)}."
        )

    logger.info("Using LLM provider '%s'.", client.name)
    return client
