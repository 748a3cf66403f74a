"""Remediation rule engine tests.

Pure and synchronous: no backend, no I/O.
"""

import pytest

from remediation.rules import CATEGORIES, RemediationEngine, RuleCategory
from schemas.alert import AlertInfo
from schemas.result import Suggestion


def make_alert(name, service="checkout-api"):
    labels = {"alertname": name}
    if service is not None:
        labels["service_name"] = service
    return AlertInfo(name=name, severity="critical", labels=labels)


@pytest.fixture
def engine():
    return RemediationEngine()


class TestMatching:
    def test_high_latency_gets_latency_suggestions(self, engine):
        titles = [s.title for s in engine.get_suggestions(make_alert("HighLatencyAlert"))]
        assert titles == ["Check Database Query Performance", "Scale Up Service Replicas"]

    def test_high_latency_excludes_memory(self, engine):
        titles = [s.title for s in engine.get_suggestions(make_alert("HighLatencyAlert"))]
        assert "Investigate Memory Leaks" not in titles

    def test_oom_gets_only_memory(self, engine):
        suggestions = engine.get_suggestions(make_alert("OOMKilled"))
        assert [s.title for s in suggestions] == ["Investigate Memory Leaks"]

    def test_unknown_alert_returns_empty_list(self, engine):
        assert engine.get_suggestions(make_alert("UnknownXYZ")) == []

    def test_matching_is_case_insensitive(self, engine):
        upper = engine.get_suggestions(make_alert("HIGHLATENCY"))
        lower = engine.get_suggestions(make_alert("highlatency"))
        assert upper == lower
        assert len(upper) == 2

    def test_error_rate_variants(self, engine):
        for name in ("ErrorRateHigh", "high_error_rate_checkout"):
            titles = [s.title for s in engine.get_suggestions(make_alert(name))]
            assert titles == ["Investigate Recent Deployments", "Check Downstream Dependencies"]

    def test_cpu_throttling(self, engine):
        for name in ("HighCPU", "ContainerThrottling"):
            titles = [s.title for s in engine.get_suggestions(make_alert(name))]
            assert titles == ["Review CPU Limits"]


class TestOrdering:
    def test_multiple_categories_follow_table_order(self, engine):
        # Mentions memory before latency, but latency comes first in the table.
        alert = make_alert("MemoryPressureLatency")
        titles = [s.title for s in engine.get_suggestions(alert)]
        assert titles == [
            "Check Database Query Performance",
            "Scale Up Service Replicas",
            "Investigate Memory Leaks",
        ]
        assert engine.matched_categories(alert) == ["latency", "memory"]

    def test_category_table_order(self):
        assert [c.name for c in CATEGORIES] == ["latency", "error_rate", "cpu", "memory"]

    def test_deterministic(self, engine):
        alert = make_alert("HighLatencyCPU")
        assert engine.get_suggestions(alert) == engine.get_suggestions(alert)

    def test_custom_table(self):
        category = RuleCategory(
            name="disk",
            patterns=("disk",),
            suggestions=(Suggestion(title="Free Disk", description="d", action="df -h"),),
        )
        engine = RemediationEngine(categories=(category,))
        assert [s.title for s in engine.get_suggestions(make_alert("DiskFull"))] == ["Free Disk"]
        assert engine.get_suggestions(make_alert("HighLatency")) == []


class TestServiceInterpolation:
    def test_scale_action_names_service(self, engine):
        suggestions = engine.get_suggestions(make_alert("HighLatency", service="payments"))
        assert suggestions[1].action == "kubectl scale deployment payments --replicas=3"

    def test_missing_service_label_leaves_empty_name(self, engine):
        suggestions = engine.get_suggestions(make_alert("HighLatency", service=None))
        assert suggestions[1].action == "kubectl scale deployment  --replicas=3"

    def test_static_actions_unchanged(self, engine):
        suggestions = engine.get_suggestions(make_alert("HighLatency", service="payments"))
        assert "payments" not in suggestions[0].action

    def test_table_not_mutated_by_interpolation(self, engine):
        engine.get_suggestions(make_alert("HighLatency", service="payments"))
        assert "{service_name}" in CATEGORIES[0].suggestions[1].action
