"""Cerebras LLM client.

Required environment variable:
    CEREBRAS_API_KEY: Your Cerebras API key. Add to .env and never commit.
"""

from llm.openai_client import OpenAIClient


class CerebrasClient(OpenAIClient):
    """LLMClient implementation backed by Cerebras Inference API."""

    provider_name = "cerebras"
    base_url = "https://api.cerebras.ai/v1"
    api_key_env = "CEREBRAS_API_KEY"
    default_model = "llama-3.3-70b"
