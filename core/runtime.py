"""Incident runtime: the top-level alert pipeline.

IncidentRuntime is the single entry point the webhook service and the CLI
share. Each handle_alert() call is independent: it gets its own context,
its own result, and nothing carries over to the next alert.

Pipeline for one alert:
    1. Work out the service from the alert labels (skip if there is none)
    2. Prepare context via ContextOrchestrator, anchored at startsAt
    3. Attach the alert snapshot to the context
    4. Firing   → RCAAnalyzer.analyze_with_context()
       Resolved → PostmortemGenerator.generate(), resolved as of now

Fetch failures in step 2 are logged as warnings and the pipeline carries
on with whatever context it has. Backend failures in step 4 propagate.
"""

import asyncio
import logging

from analysis.analyzer import RCAAnalyzer
from core.config import Settings
from core.orchestrator import ContextOrchestrator
from integrations.github import GitHubClient
from integrations.prometheus import PrometheusClient
from integrations.tempo import TempoClient
from llm.factory import create_llm_client
from postmortem.generator import PostmortemGenerator
from remediation.rules import RemediationEngine
from schemas.alert import AlertItem, AlertManagerPayload
from schemas.result import AnalysisResult, Postmortem

logger = logging.getLogger(__name__)


class IncidentRuntime:
    """Routes alerts to live analysis or postmortem generation.

    Attributes:
        orchestrator: Gathers context for each alert.
        analyzer: Handles firing alerts.
        postmortems: Handles resolved alerts.
    """

    def __init__(
        self,
        orchestrator: ContextOrchestrator,
        analyzer: RCAAnalyzer,
        postmortems: PostmortemGenerator,
    ) -> None:
        self.orchestrator = orchestrator
        self.analyzer = analyzer
        self.postmortems = postmortems

    async def handle_alert(
        self,
        alert: AlertItem,
        event_queue: asyncio.Queue | None = None,
    ) -> AnalysisResult | Postmortem | None:
        """Run the pipeline for one alert.

        Args:
            alert: The alert as received from Alertmanager.
            event_queue: Optional queue forwarded to the orchestrator for
                live fetch events.

        Returns:
            An AnalysisResult for a firing alert, a Postmortem for a
            resolved one, or None if the alert names no service or has an
            unknown status.

        Raises:
            AnalysisError: If live analysis fails.
            PostmortemGenerationError: If the postmortem narrative fails.
        """
        service = alert.service_name()
        if not service:
            logger.warning(
                "Skipping alert '%s': no service label.", alert.label("alertname")
            )
            return None
        if not (alert.is_firing or alert.is_resolved):
            logger.warning("Skipping alert with unknown status '%s'.", alert.status)
            return None

        logger.info(
            "Processing %s alert '%s' for service '%s'.",
            alert.status,
            alert.label("alertname"),
            service,
        )

        context, warning = await self.orchestrator.prepare_context(
            service, alert.starts_at, event_queue
        )
        if warning is not None:
            logger.warning("Partial context for '%s': %s", service, warning)
        context = context.with_alert(alert.to_alert_info())

        if alert.is_resolved:
            return await self.postmortems.generate(context)
        return await self.analyzer.analyze_with_context(context)

    async def handle_payload(
        self, payload: AlertManagerPayload
    ) -> list[AnalysisResult | Postmortem]:
        """Run every alert of a webhook envelope, one after another.

        A failing alert is logged and skipped so the rest still run.
        """
        results: list[AnalysisResult | Postmortem] = []
        for alert in payload.alerts:
            try:
                result = await self.handle_alert(alert)
            except Exception as exc:
                logger.error(
                    "Alert '%s' for '%s' failed: %s",
                    alert.label("alertname"),
                    alert.service_name(),
                    exc,
                )
                continue
            if result is not None:
                results.append(result)

        logger.info(
            "Processed %d/%d alert(s) from group '%s'.",
            len(results),
            len(payload.alerts),
            payload.group_key,
        )
        return results


def build_runtime(settings: Settings) -> IncidentRuntime:
    """Wire the production clients from settings.

    Tracing is only wired when Tempo is enabled and has a URL.

    Raises:
        ConfigError: If the LLM backend cannot be built.
    """
    llm = create_llm_client(settings.llm)

    trace_source = None
    if settings.tempo.active:
        trace_source = TempoClient(
            settings.tempo.url,
            slow_span_threshold_ms=settings.tempo.slow_span_threshold_ms,
            search_limit=settings.tempo.search_limit,
            timeout=settings.tempo.timeout_seconds,
        )
    else:
        logger.info("Tempo not configured; trace context disabled.")

    orchestrator = ContextOrchestrator(
        metrics_source=PrometheusClient(
            settings.prometheus.url, timeout=settings.prometheus.timeout_seconds
        ),
        commit_source=GitHubClient(
            base_url=settings.github.api_url, token=settings.github.token
        ),
        trace_source=trace_source,
        analysis=settings.analysis,
        github=settings.github,
    )

    return IncidentRuntime(
        orchestrator=orchestrator,
        analyzer=RCAAnalyzer(llm),
        postmortems=PostmortemGenerator(llm, RemediationEngine()),
    )
