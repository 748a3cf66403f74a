"""LLM provider clients."""

from llm.anthropic import AnthropicClient
from llm.base import LLMClient, LLMError
from llm.cerebras import CerebrasClient
from llm.factory import create_llm_client
from llm.ollama import OllamaClient
from llm.openai_client import OpenAIClient
from llm.openrouter import OpenRouterClient

__all__ = [
    "LLMClient",
    "LLMError",
    "OpenAIClient",
    "AnthropicClient",
    "OllamaClient",
    "OpenRouterClient",
    "CerebrasClient",
    "create_llm_client",
]
