"""Prompt construction.

Pure functions from alert or context data to prompt text. No clock reads, no
randomness, no I/O beyond loading the templates once at import: the same
input always renders to byte-identical text.

Templates live in analysis/templates/*.txt and are filled with str.format().
"""

import pathlib
from datetime import datetime, timedelta

from schemas.alert import AlertItem
from schemas.context import AnalysisContext, CommitInfo, Span

_PROMPT_DIR = pathlib.Path(__file__).parent / "templates"

ALERT_TEMPLATE = (_PROMPT_DIR / "alert_rca.txt").read_text()
CONTEXT_TEMPLATE = (_PROMPT_DIR / "context_rca.txt").read_text()
POSTMORTEM_TEMPLATE = (_PROMPT_DIR / "postmortem.txt").read_text()

MAX_PROMPT_COMMITS = 10
MAX_PROMPT_SPANS = 10
COMMIT_MESSAGE_LIMIT = 50
SHORT_SHA_LENGTH = 7
ELLIPSIS = "..."
MISSING = "n/a"


def truncate(text: str, max_len: int) -> str:
    """Cut text to max_len characters and mark the cut with ELLIPSIS."""
    if len(text) <= max_len:
        return text
    return text[:max_len] + ELLIPSIS


def format_timestamp(value: datetime | None) -> str:
    return value.isoformat() if value is not None else "unknown"


def format_duration(value: timedelta) -> str:
    """Render a duration the compact way on-call engineers read it: 1h2m3s.

    Sub-second precision is dropped. Negative durations render as 0s.
    """
    total = max(int(value.total_seconds()), 0)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


def _number(value: float | None, unit: str = "", scale: float = 1.0) -> str:
    if value is None:
        return MISSING
    return f"{value * scale:.2f}{unit}"


def format_commits(commits: list[CommitInfo], limit: int = MAX_PROMPT_COMMITS) -> str:
    """Render up to `limit` commits, one per line, newest first.

    Only the subject line of each message is used, cut to
    COMMIT_MESSAGE_LIMIT characters.
    """
    if not commits:
        return "No recent commits found.\n"

    lines = []
    for commit in commits[:limit]:
        subject = commit.message.splitlines()[0] if commit.message else ""
        lines.append(
            f"- {commit.sha[:SHORT_SHA_LENGTH]}: "
            f"{truncate(subject, COMMIT_MESSAGE_LIMIT)} (by {commit.author or 'unknown'})\n"
        )
    return "".join(lines)


def format_spans(spans: list[Span], limit: int = MAX_PROMPT_SPANS) -> str:
    """Render up to `limit` spans as indented blocks. Empty string if none."""
    blocks = []
    for span in spans[:limit]:
        blocks.append(
            f"- Service: {span.service_name}\n"
            f"  Operation: {span.operation_name}\n"
            f"  Duration: {span.duration_ms}ms\n"
            f"  Status: {span.status}\n"
        )
    return "".join(blocks)


def build_alert_prompt(alert: AlertItem) -> str:
    """Prompt for rapid triage from the alert alone."""
    return ALERT_TEMPLATE.format(
        service=alert.service_name(),
        alert_name=alert.label("alertname"),
        severity=alert.label("severity"),
        started=format_timestamp(alert.starts_at),
        summary=alert.annotation("summary"),
    )


def build_context_prompt(context: AnalysisContext) -> str:
    """Prompt for deep analysis over the full context.

    Embeds alert identity, golden signals with baselines, trace counts with
    up to MAX_PROMPT_SPANS slow and error spans, and up to
    MAX_PROMPT_COMMITS commits.
    """
    metrics = context.metrics
    traces = context.traces
    spans = format_spans(traces.slow_spans + traces.error_spans)

    return CONTEXT_TEMPLATE.format(
        service=context.service_name,
        alert_name=context.alert.name,
        severity=context.alert.severity,
        started=format_timestamp(context.alert.started_at),
        summary=context.alert.summary,
        window_start=format_timestamp(context.time_window.start),
        window_end=format_timestamp(context.time_window.end),
        latency_p99=_number(metrics.latency_p99, "ms"),
        latency_avg=_number(metrics.latency_avg, "ms"),
        error_rate=_number(metrics.error_rate, "%", scale=100),
        rps=_number(metrics.rps),
        memory_usage=_number(metrics.memory_usage, "MiB", scale=1 / (1024 * 1024)),
        baseline_latency=_number(metrics.baseline_latency, "ms"),
        baseline_error_rate=_number(metrics.baseline_error_rate, "%", scale=100),
        baseline_rps=_number(metrics.baseline_rps),
        trace_count=traces.trace_count,
        trace_p99=_number(traces.p99_latency, "ms"),
        slow_span_count=len(traces.slow_spans),
        error_span_count=len(traces.error_spans),
        spans=spans + "\n" if spans else "",
        commit_count=len(context.recent_commits),
        commits=format_commits(context.recent_commits),
    )


def build_postmortem_prompt(context: AnalysisContext, resolved_at: datetime) -> str:
    """Prompt for the postmortem narrative.

    Distinct from the live-analysis prompt: it is about a finished incident,
    so it carries resolution time and total duration. Deterministic for a
    given context and resolved_at.
    """
    started = context.alert.started_at
    duration = resolved_at - started if started is not None else timedelta()

    return POSTMORTEM_TEMPLATE.format(
        service=context.service_name,
        alert_name=context.alert.name,
        severity=context.alert.severity,
        started=format_timestamp(started),
        resolved=format_timestamp(resolved_at),
        duration=format_duration(duration),
        summary=context.alert.summary,
        commit_count=len(context.recent_commits),
        commits=format_commits(context.recent_commits),
    )
