"""Postmortem generator tests.

Stub backends only: no API keys, no network.
"""

from datetime import datetime, timedelta, timezone

import pytest

from llm.base import LLMClient
from postmortem.generator import (
    MAX_RENDERED_SUGGESTIONS,
    NO_SUGGESTIONS,
    PostmortemGenerationError,
    PostmortemGenerator,
)
from remediation.rules import RemediationEngine
from schemas.alert import AlertInfo
from schemas.context import AnalysisContext, CommitInfo, TimeWindow
from schemas.result import Postmortem, Suggestion

STARTED = datetime(2026, 3, 14, 10, 30, tzinfo=timezone.utc)
RESOLVED = datetime(2026, 3, 14, 11, 12, 30, tzinfo=timezone.utc)


class StubLLM(LLMClient):
    def __init__(self, response="## 1. Summary\nThe cache was removed."):
        self.response = response
        self.prompts: list[str] = []

    @property
    def name(self) -> str:
        return "stub"

    async def analyze(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.response


class FailingLLM(StubLLM):
    async def analyze(self, prompt: str) -> str:
        raise ConnectionError("backend unreachable")


class FixedRules(RemediationEngine):
    def __init__(self, suggestions):
        super().__init__()
        self._fixed = suggestions

    def get_suggestions(self, alert):
        return list(self._fixed)


def make_context(alert_name="HighLatency", commits=None):
    return AnalysisContext(
        service_name="checkout-api",
        time_window=TimeWindow(
            start=STARTED - timedelta(minutes=15), end=STARTED, duration=timedelta(minutes=15)
        ),
        alert=AlertInfo(
            name=alert_name,
            severity="critical",
            summary="p99 above 2s",
            labels={"alertname": alert_name, "service_name": "checkout-api"},
            started_at=STARTED,
        ),
        recent_commits=commits or [],
    )


def make_suggestions(n):
    return [Suggestion(title=f"Fix {i}", description=f"desc {i}", action=f"run {i}") for i in range(n)]


class TestGenerate:
    async def test_returns_postmortem(self):
        pm = await PostmortemGenerator(StubLLM()).generate(make_context(), resolved_at=RESOLVED)
        assert isinstance(pm, Postmortem)
        assert pm.incident_name == "Incident: HighLatency on checkout-api"
        assert pm.date == RESOLVED
        assert pm.duration == timedelta(minutes=42, seconds=30)
        assert pm.narrative == "## 1. Summary\nThe cache was removed."

    async def test_markdown_layout(self):
        pm = await PostmortemGenerator(StubLLM()).generate(make_context(), resolved_at=RESOLVED)
        lines = pm.markdown.splitlines()
        assert lines[0] == "# Incident: HighLatency on checkout-api"
        assert lines[1] == "**Date:** 2026-03-14 11:12:30"
        assert lines[2] == "**Duration:** 42m30s"
        assert "The cache was removed." in pm.markdown
        assert pm.markdown.index("The cache was removed.") < pm.markdown.index("## Suggested Fixes")

    async def test_rule_suggestions_rendered_with_bash_blocks(self):
        pm = await PostmortemGenerator(StubLLM()).generate(make_context(), resolved_at=RESOLVED)
        assert "### Check Database Query Performance" in pm.markdown
        assert "```bash\nkubectl scale deployment checkout-api --replicas=3\n```" in pm.markdown

    async def test_no_matching_rules(self):
        pm = await PostmortemGenerator(StubLLM()).generate(
            make_context(alert_name="UnknownXYZ"), resolved_at=RESOLVED
        )
        assert pm.suggestions == []
        assert NO_SUGGESTIONS in pm.markdown
        assert "###" not in pm.markdown

    async def test_suggestions_capped_in_document_only(self):
        generator = PostmortemGenerator(StubLLM(), FixedRules(make_suggestions(5)))
        pm = await generator.generate(make_context(), resolved_at=RESOLVED)

        assert MAX_RENDERED_SUGGESTIONS == 3
        assert pm.markdown.count("### ") == 3
        assert "### Fix 2" in pm.markdown
        assert "### Fix 3" not in pm.markdown
        assert len(pm.suggestions) == 5

    async def test_prompt_is_postmortem_specific(self):
        llm = StubLLM()
        commits = [CommitInfo(sha="a1b2c3d4e5", message="Remove cache", author="dana")]
        await PostmortemGenerator(llm).generate(make_context(commits=commits), resolved_at=RESOLVED)

        prompt = llm.prompts[0]
        assert "RESOLVED" in prompt
        assert "2026-03-14T10:30:00+00:00" in prompt
        assert "2026-03-14T11:12:30+00:00" in prompt
        assert "42m30s" in prompt
        assert "Commits found during window: 1" in prompt

    async def test_same_resolution_time_gives_same_prompt(self):
        llm = StubLLM()
        generator = PostmortemGenerator(llm)
        await generator.generate(make_context(), resolved_at=RESOLVED)
        await generator.generate(make_context(), resolved_at=RESOLVED)
        assert llm.prompts[0] == llm.prompts[1]

    async def test_each_postmortem_gets_new_id(self):
        generator = PostmortemGenerator(StubLLM())
        first = await generator.generate(make_context(), resolved_at=RESOLVED)
        second = await generator.generate(make_context(), resolved_at=RESOLVED)
        assert first.id != second.id

    async def test_defaults_resolution_to_now(self):
        before = datetime.now(timezone.utc)
        pm = await PostmortemGenerator(StubLLM()).generate(make_context())
        assert pm.date >= before
        assert pm.duration >= before - STARTED

    async def test_postmortem_is_immutable(self):
        pm = await PostmortemGenerator(StubLLM()).generate(make_context(), resolved_at=RESOLVED)
        with pytest.raises(Exception):
            pm.markdown = "edited"


class TestFailure:
    async def test_backend_failure_raises_and_returns_nothing(self):
        generator = PostmortemGenerator(FailingLLM())
        with pytest.raises(PostmortemGenerationError, match="backend unreachable") as info:
            await generator.generate(make_context(), resolved_at=RESOLVED)
        assert isinstance(info.value.__cause__, ConnectionError)
