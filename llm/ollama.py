"""Ollama LLM client.

Runs analysis against a local model served by Ollama. No credential needed.
"""

import httpx

from llm.base import LLMClient

DEFAULT_OLLAMA_URL = "http://localhost:11434"


class OllamaClient(LLMClient):
    """LLMClient implementation backed by a local Ollama server.

    Local models are slow on CPU, so the default timeout is generous.

    Attributes:
        url: Ollama base URL, without trailing slash.
        model: Local model tag (e.g. "llama3").
        temperature: Sampling temperature.
    """

    default_model = "llama3"

    def __init__(
        self,
        url: str = "",
        model: str = "",
        temperature: float = 0.1,
        timeout: float = 300.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = (url or DEFAULT_OLLAMA_URL).rstrip("/")
        self.model = model or self.default_model
        self.temperature = temperature
        self._timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "ollama"

    async def analyze(self, prompt: str) -> str:
        """Send a non-streaming generate request and return the response text.

        Raises:
            httpx.HTTPStatusError: If Ollama returns a non-2xx response.
        """
        body = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": self.temperature},
        }

        async with httpx.AsyncClient(
            base_url=self.url, timeout=self._timeout, transport=self._transport,
        ) as client:
            resp = await client.post("/api/generate", json=body)
            resp.raise_for_status()
            return resp.json().get("response", "")
