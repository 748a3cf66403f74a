"""RCAAnalyzer tests with stub backends."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from analysis.analyzer import AnalysisError, RCAAnalyzer
from llm.base import LLMClient, LLMError
from schemas.alert import AlertInfo, AlertItem
from schemas.context import AnalysisContext, CommitInfo, MetricsSummary, TimeWindow
from schemas.result import DEFAULT_CONFIDENCE, AnalysisResult

ALERT_TIME = datetime(2026, 3, 14, 10, 30, tzinfo=timezone.utc)
RAW = '{"root_cause": "cache removed", "confidence": "high", "next_steps": []}'


class StubLLM(LLMClient):
    def __init__(self, response=RAW, error=None):
        self.response = response
        self.error = error
        self.calls = 0

    @property
    def name(self) -> str:
        return "stub"

    async def analyze(self, prompt: str) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def alert():
    return AlertItem(
        status="firing",
        labels={"alertname": "HighLatency", "severity": "critical", "service_name": "checkout-api"},
        annotations={"summary": "p99 above 2s"},
        startsAt=ALERT_TIME,
    )


@pytest.fixture
def context():
    return AnalysisContext(
        service_name="checkout-api",
        time_window=TimeWindow(
            start=ALERT_TIME - timedelta(minutes=15), end=ALERT_TIME, duration=timedelta(minutes=15)
        ),
        alert=AlertInfo(name="HighLatency", severity="critical", summary="p99 above 2s"),
        metrics=MetricsSummary(latency_p99=2300.0),
        recent_commits=[CommitInfo(sha="abc1234def", message="Remove cache", author="dana")],
    )


class TestAnalyze:
    async def test_result_fields(self, alert):
        result = await RCAAnalyzer(StubLLM()).analyze(alert)
        assert isinstance(result, AnalysisResult)
        assert result.service_name == "checkout-api"
        assert result.alert_name == "HighLatency"
        assert result.severity == "critical"
        assert result.summary == "p99 above 2s"
        assert result.confidence == DEFAULT_CONFIDENCE
        assert result.next_steps == []
        assert result.metrics is None
        assert result.commits == []

    async def test_raw_response_stored_verbatim(self, alert):
        result = await RCAAnalyzer(StubLLM()).analyze(alert)
        assert result.root_cause == RAW

    async def test_non_json_response_kept_as_is(self, alert):
        result = await RCAAnalyzer(StubLLM(response="I think it's the DB.")).analyze(alert)
        assert result.root_cause == "I think it's the DB."

    async def test_fresh_id_per_call(self, alert):
        analyzer = RCAAnalyzer(StubLLM())
        first = await analyzer.analyze(alert)
        second = await analyzer.analyze(alert)
        assert first.id != second.id
        uuid.UUID(first.id)

    async def test_timestamp_is_utc_now(self, alert):
        before = datetime.now(timezone.utc)
        result = await RCAAnalyzer(StubLLM()).analyze(alert)
        assert before <= result.analyzed_at <= datetime.now(timezone.utc)

    async def test_one_backend_call(self, alert):
        llm = StubLLM()
        await RCAAnalyzer(llm).analyze(alert)
        assert llm.calls == 1

    async def test_backend_error_wrapped(self, alert):
        analyzer = RCAAnalyzer(StubLLM(error=LLMError("no choices")))
        with pytest.raises(AnalysisError, match="LLM analysis failed: no choices") as info:
            await analyzer.analyze(alert)
        assert isinstance(info.value.__cause__, LLMError)


class TestAnalyzeWithContext:
    async def test_result_carries_context_data(self, context):
        result = await RCAAnalyzer(StubLLM()).analyze_with_context(context)
        assert result.service_name == "checkout-api"
        assert result.alert_name == "HighLatency"
        assert result.metrics.latency_p99 == 2300.0
        assert [c.sha for c in result.commits] == ["abc1234def"]
        assert result.root_cause == RAW

    async def test_backend_error_wrapped(self, context):
        analyzer = RCAAnalyzer(StubLLM(error=TimeoutError("deadline exceeded")))
        with pytest.raises(AnalysisError) as info:
            await analyzer.analyze_with_context(context)
        assert isinstance(info.value.__cause__, TimeoutError)

    async def test_no_retry_on_failure(self, context):
        llm = StubLLM(error=TimeoutError("slow"))
        with pytest.raises(AnalysisError):
            await RCAAnalyzer(llm).analyze_with_context(context)
        assert llm.calls == 1
