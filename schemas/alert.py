"""Alert schemas.

AlertItem and AlertManagerPayload mirror the Prometheus Alertmanager webhook
format. They are what enters the system. AlertInfo is the trimmed, immutable
snapshot of an alert that travels with an AnalysisContext once the pipeline
has started.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# Label keys tried, in order, when working out which service an alert is for.
SERVICE_LABEL_KEYS = ("service_name", "service", "job")


class AlertInfo(BaseModel):
    """Snapshot of an alert taken at ingestion time. Never re-fetched.

    Attributes:
        name: Alert name (the "alertname" label), e.g. "HighLatency".
        severity: Severity label, e.g. "critical". Empty if absent.
        summary: The "summary" annotation. Empty if absent.
        labels: Full label mapping as received.
        started_at: When the alert started firing.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    severity: str = ""
    summary: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    started_at: datetime | None = None


class AlertItem(BaseModel):
    """A single alert from an Alertmanager webhook."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    starts_at: datetime = Field(alias="startsAt")
    ends_at: datetime | None = Field(default=None, alias="endsAt")
    generator_url: str = Field(default="", alias="generatorURL")
    fingerprint: str = ""

    @property
    def is_firing(self) -> bool:
        return self.status == "firing"

    @property
    def is_resolved(self) -> bool:
        return self.status == "resolved"

    def label(self, key: str) -> str:
        return self.labels.get(key, "")

    def annotation(self, key: str) -> str:
        return self.annotations.get(key, "")

    def service_name(self) -> str:
        """Return the impacted service, scanning common label keys.

        Returns an empty string when none of the keys are present.
        """
        for key in SERVICE_LABEL_KEYS:
            if key in self.labels:
                return self.labels[key]
        return ""

    def to_alert_info(self) -> AlertInfo:
        return AlertInfo(
            name=self.label("alertname"),
            severity=self.label("severity"),
            summary=self.annotation("summary"),
            labels=dict(self.labels),
            started_at=self.starts_at,
        )


class AlertManagerPayload(BaseModel):
    """The Alertmanager webhook envelope. Only `alerts` drives processing."""

    model_config = ConfigDict(populate_by_name=True)

    version: str = ""
    group_key: str = Field(default="", alias="groupKey")
    status: str = ""
    receiver: str = ""
    group_labels: dict[str, str] = Field(default_factory=dict, alias="groupLabels")
    common_labels: dict[str, str] = Field(default_factory=dict, alias="commonLabels")
    common_annotations: dict[str, str] = Field(default_factory=dict, alias="commonAnnotations")
    external_url: str = Field(default="", alias="externalURL")
    alerts: list[AlertItem]
