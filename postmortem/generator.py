"""Postmortem generation for resolved alerts.

Unlike context gathering, this is all-or-nothing: if the backend call fails
no Postmortem is produced at all. A report without a narrative is of no use
to anyone reading it later.
"""

import logging
from datetime import datetime, timedelta, timezone

from analysis.prompts import build_postmortem_prompt, format_duration
from llm.base import LLMClient
from remediation.rules import RemediationEngine
from schemas.context import AnalysisContext
from schemas.result import Postmortem, Suggestion

logger = logging.getLogger(__name__)

# Hard cap on suggestions rendered into the document.
MAX_RENDERED_SUGGESTIONS = 3

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
NO_SUGGESTIONS = "No automated rules matched this incident type."


class PostmortemGenerationError(Exception):
    """Raised when the postmortem narrative could not be produced."""


class PostmortemGenerator:
    """Combines a backend narrative with rule-based suggestions.

    Attributes:
        llm: Backend that writes the narrative.
        rules: Engine that supplies deterministic suggestions.
    """

    def __init__(self, llm: LLMClient, rules: RemediationEngine | None = None) -> None:
        self.llm = llm
        self.rules = rules or RemediationEngine()

    async def generate(
        self, context: AnalysisContext, resolved_at: datetime | None = None
    ) -> Postmortem:
        """Write the postmortem for a resolved incident.

        Args:
            context: Context with the alert snapshot attached.
            resolved_at: When the incident resolved. Defaults to now; pass
                the alert's own resolution time to make the report
                reproducible across retries.

        Raises:
            PostmortemGenerationError: If the backend call fails.
        """
        resolved_at = resolved_at or datetime.now(timezone.utc)
        alert = context.alert
        started = alert.started_at
        duration = resolved_at - started if started is not None else timedelta()

        prompt = build_postmortem_prompt(context, resolved_at)
        try:
            narrative = await self.llm.analyze(prompt)
        except Exception as exc:
            logger.error(
                "Postmortem for '%s' on '%s' failed: %s", alert.name, context.service_name, exc
            )
            raise PostmortemGenerationError(f"postmortem generation failed: {exc}") from exc

        suggestions = self.rules.get_suggestions(alert)
        incident_name = f"Incident: {alert.name} on {context.service_name}"

        postmortem = Postmortem(
            incident_name=incident_name,
            date=resolved_at,
            duration=duration,
            narrative=narrative,
            markdown=render_markdown(incident_name, resolved_at, duration, narrative, suggestions),
            suggestions=suggestions,
        )
        logger.info(
            "Postmortem %s written for '%s' (%s, %d suggestion(s)).",
            postmortem.id,
            incident_name,
            format_duration(duration),
            len(suggestions),
        )
        return postmortem


def render_markdown(
    incident_name: str,
    date: datetime,
    duration: timedelta,
    narrative: str,
    suggestions: list[Suggestion],
) -> str:
    """Assemble the postmortem document.

    Title, date and duration header, the narrative verbatim, then at most
    MAX_RENDERED_SUGGESTIONS suggestions each with its action in a bash block.
    """
    parts = [
        f"# {incident_name}\n",
        f"**Date:** {date.strftime(DATE_FORMAT)}\n",
        f"**Duration:** {format_duration(duration)}\n\n",
        narrative + "\n\n",
        "## Suggested Fixes\n",
    ]

    if not suggestions:
        parts.append(NO_SUGGESTIONS + "\n")
    for suggestion in suggestions[:MAX_RENDERED_SUGGESTIONS]:
        parts.append(f"### {suggestion.title}\n")
        parts.append(f"{suggestion.description}\n\n")
        parts.append(f"```bash\n{suggestion.action}\n```\n\n")

    return "".join(parts)
