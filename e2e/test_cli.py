"""CLI and live display tests."""

import pathlib

import pytest
from click.testing import CliRunner

import cli as cli_module
from analysis.analyzer import RCAAnalyzer
from core.config import ConfigError
from core.orchestrator import COMMITS, FETCH_SOURCES, METRICS, ContextOrchestrator
from core.runtime import IncidentRuntime
from display.live import MAX_PANEL_LINES, LiveDisplay
from llm.base import LLMClient
from postmortem.generator import PostmortemGenerator
from schemas.context import TraceContext
from schemas.events import EventType, FetchEvent

FIXTURES = pathlib.Path(__file__).parent.parent / "fixtures"


class StubLLM(LLMClient):
    @property
    def name(self) -> str:
        return "stub"

    async def analyze(self, prompt: str) -> str:
        return "Connection pool exhausted after cache removal."


class StaticMetrics:
    async def latency_p99(self, service, start, end):
        return 2300.0

    async def latency_avg(self, service, start, end):
        return 400.0

    async def error_rate(self, service, start, end):
        return 0.02

    async def rps(self, service, start, end):
        return 100.0

    async def memory_usage(self, service, start, end):
        return 1024.0


class NoCommits:
    async def fetch_commits(self, repo, since):
        return []


class NoTraces:
    async def fetch_trace_summary(self, service, start, end):
        return TraceContext()


@pytest.fixture
def stub_runtime(monkeypatch):
    llm = StubLLM()
    runtime = IncidentRuntime(
        ContextOrchestrator(StaticMetrics(), NoCommits(), NoTraces()),
        RCAAnalyzer(llm),
        PostmortemGenerator(llm),
    )
    monkeypatch.setattr(cli_module, "load_settings", lambda: None)
    monkeypatch.setattr(cli_module, "build_runtime", lambda settings: runtime)
    return runtime


def event(source, event_type, message="", ts=10.0):
    return FetchEvent(source=source, event_type=event_type, message=message, timestamp_ms=ts)


class TestLiveDisplay:
    def test_starts_waiting(self):
        display = LiveDisplay(FETCH_SOURCES)
        assert all(s.status == "waiting" for s in display.states.values())

    def test_lifecycle(self):
        display = LiveDisplay(FETCH_SOURCES)
        display.apply(event(COMMITS, EventType.STARTED, "fetching..."))
        assert display.states[COMMITS].status == "running"

        display.apply(event(COMMITS, EventType.COMPLETE, "3 commits", ts=250.0))
        state = display.states[COMMITS]
        assert state.status == "complete"
        assert state.elapsed_ms == 250.0
        assert state.messages[-1] == "✓ 3 commits"

    def test_error(self):
        display = LiveDisplay(FETCH_SOURCES)
        display.apply(event(METRICS, EventType.ERROR, "[Errno 111] refused"))
        assert display.states[METRICS].status == "error"
        assert display.states[METRICS].messages == ["✗ [Errno 111] refused"]
        display._render()

    def test_unknown_source_ignored(self):
        display = LiveDisplay(FETCH_SOURCES)
        display.apply(event("logs", EventType.STARTED))
        assert "logs" not in display.states

    def test_messages_bounded(self):
        display = LiveDisplay(FETCH_SOURCES)
        for i in range(10):
            display.apply(event(METRICS, EventType.STARTED, f"m{i}"))
        assert len(display.states[METRICS].messages) == MAX_PANEL_LINES


class TestAnalyzeCommand:
    def test_firing_alert(self, stub_runtime):
        result = CliRunner().invoke(
            cli_module.cli, ["analyze", "--no-live", str(FIXTURES / "alert_firing.json")]
        )
        assert result.exit_code == 0, result.output
        assert "Connection pool exhausted" in result.output
        assert "Golden Signals" in result.output

    def test_resolved_alert_prints_postmortem(self, stub_runtime):
        result = CliRunner().invoke(
            cli_module.cli, ["analyze", "--no-live", str(FIXTURES / "alert_resolved.json")]
        )
        assert result.exit_code == 0, result.output
        assert "Incident: HighLatency on checkout-api" in result.output
        assert "Suggested Fixes" in result.output

    def test_live_panels(self, stub_runtime):
        result = CliRunner().invoke(
            cli_module.cli, ["analyze", str(FIXTURES / "alert_firing.json")]
        )
        assert result.exit_code == 0, result.output

    def test_triage_skips_context(self, stub_runtime):
        result = CliRunner().invoke(
            cli_module.cli, ["analyze", "--triage", str(FIXTURES / "alert_firing.json")]
        )
        assert result.exit_code == 0, result.output
        assert "Golden Signals" not in result.output

    def test_invalid_file(self, stub_runtime, tmp_path):
        bad = tmp_path / "alert.json"
        bad.write_text('{"status": "firing"}')
        result = CliRunner().invoke(cli_module.cli, ["analyze", str(bad)])
        assert result.exit_code != 0
        assert "Invalid alert file" in result.output

    def test_config_error(self, monkeypatch):
        def broken(settings):
            raise ConfigError("Unsupported LLM provider 'bard'.")

        monkeypatch.setattr(cli_module, "load_settings", lambda: None)
        monkeypatch.setattr(cli_module, "build_runtime", broken)
        result = CliRunner().invoke(
            cli_module.cli, ["analyze", str(FIXTURES / "alert_firing.json")]
        )
        assert result.exit_code != 0
        assert "Unsupported LLM provider" in result.output
