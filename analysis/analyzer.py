"""Root-cause analyzer.

RCAAnalyzer turns an alert, or a full AnalysisContext, into an
AnalysisResult by rendering a prompt and handing it to the injected LLM
backend. One backend call per analysis, no retries.

The backend is asked for JSON (root cause, confidence, next steps) but the
response is stored verbatim as root_cause. Nothing here parses it.
"""

import logging
from datetime import datetime, timezone

from analysis.prompts import build_alert_prompt, build_context_prompt
from llm.base import LLMClient
from schemas.alert import AlertItem
from schemas.context import AnalysisContext
from schemas.result import AnalysisResult

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """Raised when the backend call behind an analysis fails.

    The original exception is chained as __cause__.
    """


class RCAAnalyzer:
    """Runs root-cause analysis through a pluggable LLM backend.

    Attributes:
        llm: The backend every analysis is delegated to.
    """

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    async def analyze(self, alert: AlertItem) -> AnalysisResult:
        """Rapid triage from the alert alone, without fetched context.

        Raises:
            AnalysisError: If the backend call fails.
        """
        prompt = build_alert_prompt(alert)
        narrative = await self._call_backend(prompt, alert.service_name())

        return AnalysisResult(
            service_name=alert.service_name(),
            alert_name=alert.label("alertname"),
            severity=alert.label("severity"),
            summary=alert.annotation("summary"),
            root_cause=narrative,
            analyzed_at=datetime.now(timezone.utc),
        )

    async def analyze_with_context(self, context: AnalysisContext) -> AnalysisResult:
        """Deep analysis over metrics, traces and recent commits.

        Raises:
            AnalysisError: If the backend call fails.
        """
        prompt = build_context_prompt(context)
        narrative = await self._call_backend(prompt, context.service_name)

        return AnalysisResult(
            service_name=context.service_name,
            alert_name=context.alert.name,
            severity=context.alert.severity,
            summary=context.alert.summary,
            root_cause=narrative,
            metrics=context.metrics,
            commits=list(context.recent_commits),
            analyzed_at=datetime.now(timezone.utc),
        )

    async def _call_backend(self, prompt: str, service_name: str) -> str:
        logger.debug(
            "Sending %d-char prompt for '%s' to %s.", len(prompt), service_name, self.llm.name
        )
        try:
            return await self.llm.analyze(prompt)
        except Exception as exc:
            logger.error("LLM analysis for '%s' failed on %s: %s", service_name, self.llm.name, exc)
            raise AnalysisError(f"LLM analysis failed: {exc}") from exc
