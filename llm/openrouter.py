"""OpenRouter LLM client.

OpenRouter is a unified proxy that provides access to models from Anthropic,
Google, Cerebras, and others through a single OpenAI-compatible API and one
API key. Switching models is just changing the model string.

Required environment variable:
    OPENROUTER_API_KEY: Your OpenRouter API key. Add to .env and never commit.
"""

from llm.openai_client import OpenAIClient


class OpenRouterClient(OpenAIClient):
    """LLMClient implementation backed by OpenRouter.

    Example usage:
        analyzer = RCAAnalyzer(OpenRouterClient("anthropic/claude-sonnet-4-6"))
    """

    provider_name = "openrouter"
    base_url = "https://openrouter.ai/api/v1"
    api_key_env = "OPENROUTER_API_KEY"
    default_model = "anthropic/claude-sonnet-4-6"
