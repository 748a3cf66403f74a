"""Rule-based remediation suggestions.

Each RuleCategory pairs alert-name patterns with the suggestions it
contributes. CATEGORIES is evaluated top to bottom; an alert name may match
several categories and collects the suggestions of each, in table order.
Adding a category means adding a row, nothing else.
"""

import logging
from dataclasses import dataclass

from schemas.alert import AlertInfo
from schemas.result import Suggestion

logger = logging.getLogger(__name__)

# Placeholder filled with the alert's service_name label.
SERVICE_PLACEHOLDER = "{service_name}"


@dataclass(frozen=True)
class RuleCategory:
    """One row of the rule table.

    Attributes:
        name: Category identifier, e.g. "latency".
        patterns: Lowercase substrings; any one matching the lowercased
            alert name triggers the category.
        suggestions: What the category contributes, in order.
    """

    name: str
    patterns: tuple[str, ...]
    suggestions: tuple[Suggestion, ...]

    def matches(self, alert_name: str) -> bool:
        lowered = alert_name.lower()
        return any(pattern in lowered for pattern in self.patterns)


CATEGORIES: tuple[RuleCategory, ...] = (
    RuleCategory(
        name="latency",
        patterns=("highlatency", "latency"),
        suggestions=(
            Suggestion(
                title="Check Database Query Performance",
                description="High latency is often caused by unoptimized queries or missing indexes.",
                action="Review slow query logs in your database provider or check APM traces for bottleneck spans.",
            ),
            Suggestion(
                title="Scale Up Service Replicas",
                description="If CPU/Memory is also high, the service might be underprovisioned for current traffic.",
                action=f"kubectl scale deployment {SERVICE_PLACEHOLDER} --replicas=3",
            ),
        ),
    ),
    RuleCategory(
        name="error_rate",
        patterns=("errorrate", "high_error_rate"),
        suggestions=(
            Suggestion(
                title="Investigate Recent Deployments",
                description="Spikes in error rates strongly correlate with recent code deployments.",
                action="Check GitHub Actions or ArgoCD for recent rollouts to this service.",
            ),
            Suggestion(
                title="Check Downstream Dependencies",
                description="Ensure that upstream endpoints or databases are not rejecting connections or timing out.",
                action="Review error logs in Loki for 'connection refused' or 'timeout' errors.",
            ),
        ),
    ),
    RuleCategory(
        name="cpu",
        patterns=("cpu", "throttling"),
        suggestions=(
            Suggestion(
                title="Review CPU Limits",
                description="The container might be getting heavily throttled by Kubernetes CPU limits.",
                action="Consider increasing the CPU limit in the pod's resources configuration.",
            ),
        ),
    ),
    RuleCategory(
        name="memory",
        patterns=("memory", "oom"),
        suggestions=(
            Suggestion(
                title="Investigate Memory Leaks",
                description="If memory climbs steadily until OOMKilled, there may be a memory leak.",
                action="Capture a heap profile (pprof) and analyze memory allocations.",
            ),
        ),
    ),
)


class RemediationEngine:
    """Maps an alert to an ordered list of suggestions. Pure, no I/O."""

    def __init__(self, categories: tuple[RuleCategory, ...] = CATEGORIES) -> None:
        self.categories = categories

    def matched_categories(self, alert: AlertInfo) -> list[str]:
        return [c.name for c in self.categories if c.matches(alert.name)]

    def get_suggestions(self, alert: AlertInfo) -> list[Suggestion]:
        """Return every suggestion whose category matches the alert name.

        An unmatched alert gets an empty list. The service name used in
        actions comes from the service_name label and is empty if absent.
        """
        service = alert.labels.get("service_name", "")
        suggestions: list[Suggestion] = []
        for category in self.categories:
            if not category.matches(alert.name):
                continue
            for suggestion in category.suggestions:
                suggestions.append(_bind_service(suggestion, service))

        logger.debug(
            "Alert '%s' matched %d suggestion(s).", alert.name, len(suggestions)
        )
        return suggestions


def _bind_service(suggestion: Suggestion, service: str) -> Suggestion:
    if SERVICE_PLACEHOLDER not in suggestion.action:
        return suggestion
    return suggestion.model_copy(
        update={"action": suggestion.action.replace(SERVICE_PLACEHOLDER, service)}
    )
