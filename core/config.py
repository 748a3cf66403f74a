"""Runtime configuration.

Settings are read once from environment variables (and a .env file, if one
exists) by load_settings(). Everything downstream receives typed settings
objects. Nothing reads os.environ after startup except the LLM clients,
which fall back to their own credential variable when no key is passed.

Environment variables:
    LLM_PROVIDER            openai | anthropic | ollama | openrouter | cerebras
    LLM_MODEL               model ID for hosted providers (default: the provider's own)
    LLM_TEMPERATURE         default 0.1
    LLM_MAX_TOKENS          default 1000
    OLLAMA_URL / OLLAMA_MODEL
    PROMETHEUS_URL          required for live metrics
    GITHUB_API_URL / GITHUB_TOKEN
    GITHUB_REPOS            comma-separated service=owner/repo pairs
    TEMPO_URL / TEMPO_ENABLED / TEMPO_SLOW_SPAN_THRESHOLD_MS / TEMPO_SEARCH_LIMIT
    ANALYSIS_METRICS_WINDOW     Go-style duration, default 15m
    ANALYSIS_COMMITS_LOOKBACK   Go-style duration, default 24h
    LOG_LEVEL               default INFO
"""

import os
import re
from datetime import timedelta

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_METRICS_WINDOW = timedelta(minutes=15)
DEFAULT_COMMITS_LOOKBACK = timedelta(hours=24)

# Credential variable per hosted provider. Ollama needs none.
API_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "cerebras": "CEREBRAS_API_KEY",
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {
    "h": "hours",
    "m": "minutes",
    "s": "seconds",
    "ms": "milliseconds",
}


class ConfigError(Exception):
    """Raised at setup time for configuration that cannot work.

    Unsupported provider discriminators and missing credentials end up
    here. Never raised once the pipeline is running.
    """


def parse_duration(value: str, default: timedelta) -> timedelta:
    """Parse a Go-style duration string such as "15m", "24h" or "1h30m".

    Returns default for empty, malformed or zero durations, the way the
    config loader always has.
    """
    text = (value or "").strip()
    if not text:
        return default

    total = timedelta()
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            return default
        amount, unit = match.groups()
        total += timedelta(**{_DURATION_UNITS[unit]: float(amount)})
        pos = match.end()

    if pos != len(text) or total == timedelta():
        return default
    return total


def _parse_repo_map(value: str) -> dict[str, str]:
    repos: dict[str, str] = {}
    for pair in value.split(","):
        service, sep, repo = pair.partition("=")
        if sep and service.strip() and repo.strip():
            repos[service.strip()] = repo.strip()
    return repos


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class LLMSettings(BaseModel):
    """Which analysis backend to build and how to drive it."""

    provider: str = "openai"
    model: str = ""
    temperature: float = 0.1
    max_tokens: int = 1000
    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "llama3"
    api_key: str = ""

    @property
    def provider_type(self) -> str:
        return self.provider.strip().lower()


class PrometheusSettings(BaseModel):
    url: str = ""
    timeout_seconds: float = 30.0


class GitHubSettings(BaseModel):
    api_url: str = "https://api.github.com"
    token: str = ""
    repositories: dict[str, str] = Field(default_factory=dict)

    def repo_for(self, service_name: str) -> str:
        """Map a service to its owner/repo, falling back to the service name."""
        return self.repositories.get(service_name, service_name)


class TempoSettings(BaseModel):
    url: str = ""
    enabled: bool = True
    timeout_seconds: float = 30.0
    slow_span_threshold_ms: int = 500
    search_limit: int = 20

    @property
    def active(self) -> bool:
        return self.enabled and bool(self.url)


class AnalysisSettings(BaseModel):
    metrics_window: timedelta = DEFAULT_METRICS_WINDOW
    commits_lookback: timedelta = DEFAULT_COMMITS_LOOKBACK


class Settings(BaseModel):
    """Root settings object. Built once at startup by load_settings()."""

    log_level: str = "INFO"
    llm: LLMSettings = Field(default_factory=LLMSettings)
    prometheus: PrometheusSettings = Field(default_factory=PrometheusSettings)
    github: GitHubSettings = Field(default_factory=GitHubSettings)
    tempo: TempoSettings = Field(default_factory=TempoSettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)


def load_settings() -> Settings:
    """Build Settings from the environment, loading .env first.

    Invalid numeric values raise ValueError here, at startup. The provider
    discriminator and credentials are validated later by the LLM factory.
    """
    load_dotenv()
    env = os.environ.get

    provider = env("LLM_PROVIDER", "openai").strip().lower()
    api_key_env = API_KEY_ENV.get(provider)

    return Settings(
        log_level=env("LOG_LEVEL", "INFO").upper(),
        llm=LLMSettings(
            provider=provider,
            model=env("LLM_MODEL", ""),
            temperature=float(env("LLM_TEMPERATURE", "0.1")),
            max_tokens=int(env("LLM_MAX_TOKENS", "1000")),
            ollama_url=env("OLLAMA_URL", "http://localhost:11434"),
            ollama_model=env("OLLAMA_MODEL", "llama3"),
            api_key=env(api_key_env, "") if api_key_env else "",
        ),
        prometheus=PrometheusSettings(
            url=env("PROMETHEUS_URL", ""),
            timeout_seconds=parse_duration(
                env("PROMETHEUS_TIMEOUT", ""), timedelta(seconds=30)
            ).total_seconds(),
        ),
        github=GitHubSettings(
            api_url=env("GITHUB_API_URL", "https://api.github.com"),
            token=env("GITHUB_TOKEN", ""),
            repositories=_parse_repo_map(env("GITHUB_REPOS", "")),
        ),
        tempo=TempoSettings(
            url=env("TEMPO_URL", ""),
            enabled=_env_bool("TEMPO_ENABLED", True),
            timeout_seconds=parse_duration(
                env("TEMPO_TIMEOUT", ""), timedelta(seconds=30)
            ).total_seconds(),
            slow_span_threshold_ms=int(env("TEMPO_SLOW_SPAN_THRESHOLD_MS", "500")),
            search_limit=int(env("TEMPO_SEARCH_LIMIT", "20")),
        ),
        analysis=AnalysisSettings(
            metrics_window=parse_duration(
                env("ANALYSIS_METRICS_WINDOW", ""), DEFAULT_METRICS_WINDOW
            ),
            commits_lookback=parse_duration(
                env("ANALYSIS_COMMITS_LOOKBACK", ""), DEFAULT_COMMITS_LOOKBACK
            ),
        ),
    )
