"""OpenAI LLM client.

Also the base for every OpenAI-compatible hosted API (OpenRouter, Cerebras):
those only differ in base URL, credential variable and provider name.

Required environment variable:
    OPENAI_API_KEY: Your OpenAI API key. Add to .env and never commit.
"""

import os

import openai

from llm.base import SYSTEM_PROMPT, LLMClient, LLMError


class OpenAIClient(LLMClient):
    """LLMClient implementation backed by the OpenAI chat completions API.

    Attributes:
        model: Model identifier passed to the API (e.g. "gpt-4o").
        temperature: Sampling temperature.
        max_tokens: Completion token limit.
        client: The underlying async OpenAI client.
    """

    provider_name = "openai"
    base_url: str | None = None
    api_key_env = "OPENAI_API_KEY"
    default_model = "gpt-4o"

    def __init__(
        self,
        model: str = "",
        api_key: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 1000,
    ):
        """Initialize the client for a specific model.

        Args:
            model: Model ID string. Falls back to default_model when empty.
            api_key: Explicit credential. When None, read from api_key_env.
            temperature: Sampling temperature.
            max_tokens: Completion token limit.

        Raises:
            KeyError: If no api_key is given and api_key_env is not set.
                Fails at construction rather than at the first API call.
        """
        self.model = model or self.default_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = openai.AsyncOpenAI(
            base_url=self.base_url,
            api_key=api_key or os.environ[self.api_key_env],
        )

    @property
    def name(self) -> str:
        return self.provider_name

    async def analyze(self, prompt: str) -> str:
        """Send a prompt to the configured model.

        Raises:
            openai.APIError: If the API returns an error response.
            LLMError: If the response has no choices or no content.
        """
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        if not response.choices or response.choices[0].message.content is None:
            raise LLMError(f"{self.name}: no choices in response")
        return response.choices[0].message.content
