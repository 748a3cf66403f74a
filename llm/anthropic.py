"""Anthropic LLM client.

Talks to the Messages API directly over httpx.

Required environment variable:
    ANTHROPIC_API_KEY: Your Anthropic API key. Add to .env and never commit.
"""

import os

import httpx

from llm.base import LLMClient, LLMError

ANTHROPIC_API_BASE = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"


class AnthropicClient(LLMClient):
    """LLMClient implementation backed by the Anthropic Messages API.

    Attributes:
        model: Anthropic model ID (e.g. "claude-3-5-sonnet-20241022").
        temperature: Sampling temperature.
        max_tokens: Completion token limit. Required by the API.
    """

    default_model = "claude-3-5-sonnet-20241022"

    def __init__(
        self,
        model: str = "",
        api_key: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 1000,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            model: Model ID string. Falls back to default_model when empty.
            api_key: Explicit credential. When None, read ANTHROPIC_API_KEY.
            temperature: Sampling temperature.
            max_tokens: Completion token limit.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport, used by tests.

        Raises:
            KeyError: If no api_key is given and ANTHROPIC_API_KEY is not set.
        """
        self.model = model or self.default_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._api_key = api_key or os.environ["ANTHROPIC_API_KEY"]
        self._timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "anthropic"

    async def analyze(self, prompt: str) -> str:
        """Send a prompt as a single user message and return the first text block.

        Raises:
            httpx.HTTPStatusError: If the API returns a non-2xx response.
            LLMError: If the response has no content blocks.
        """
        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

        async with httpx.AsyncClient(
            base_url=ANTHROPIC_API_BASE,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            resp = await client.post("/messages", json=body)
            resp.raise_for_status()
            data = resp.json()

        for block in data.get("content", []):
            if block.get("type") == "text":
                return block.get("text", "")
        raise LLMError("anthropic: no content in response")
