"""Result schemas.

AnalysisResult is what the analysis engine hands back for a firing alert.
Suggestion and Postmortem are what the resolution path produces. All three
are built once and never updated afterwards.
"""

import uuid
from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field

from schemas.context import CommitInfo, MetricsSummary

DEFAULT_CONFIDENCE = "medium"


class AnalysisResult(BaseModel):
    """Root-cause analysis for one alert.

    Attributes:
        id: Fresh UUID for every analysis.
        service_name: Service the alert fired for.
        alert_name: The alert's name.
        severity: The alert's severity label.
        summary: The alert's summary annotation.
        root_cause: The backend's narrative, stored verbatim. The backend is
            asked for JSON, but nothing here parses it back out.
        confidence: Always DEFAULT_CONFIDENCE unless a caller sets it.
        next_steps: Empty unless a caller fills it in.
        metrics: Metrics the analysis saw. None for alert-only analysis.
        commits: Commits the analysis saw. Empty for alert-only analysis.
        analyzed_at: When the backend call returned.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    service_name: str
    alert_name: str
    severity: str
    summary: str
    root_cause: str
    confidence: str = DEFAULT_CONFIDENCE
    next_steps: list[str] = Field(default_factory=list)
    metrics: MetricsSummary | None = None
    commits: list[CommitInfo] = Field(default_factory=list)
    analyzed_at: datetime


class Suggestion(BaseModel):
    """A single remediation step produced by the rule engine.

    Attributes:
        title: Short heading, e.g. "Review CPU Limits".
        description: Why this step is relevant.
        action: What to do: a command, a link, or a plain instruction.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    action: str


class Postmortem(BaseModel):
    """Incident report for a resolved alert. Created once, never updated.

    Attributes:
        id: Fresh UUID per generation.
        incident_name: "Incident: <alert> on <service>".
        date: The resolution timestamp the report was generated against.
        duration: Resolution time minus alert start.
        narrative: The backend's raw postmortem text.
        markdown: The rendered document.
        suggestions: Every rule suggestion that matched. The document lists
            at most the first three.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    incident_name: str
    date: datetime
    duration: timedelta
    narrative: str
    markdown: str
    suggestions: list[Suggestion] = Field(default_factory=list)
