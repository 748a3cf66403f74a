"""Fetch event schema.

Events are emitted by the context orchestrator while its fetch tasks run so
the display layer can update its live panels. The orchestrator works the
same whether or not anything is listening to these events.
"""

from enum import Enum

from pydantic import BaseModel


class EventType(str, Enum):
    """The lifecycle stages a fetch task emits events for.

    Extends str so values serialize to plain strings ("started", "complete")
    rather than "EventType.STARTED".
    """

    STARTED = "started"
    COMPLETE = "complete"
    ERROR = "error"


class FetchEvent(BaseModel):
    """A single event emitted during context preparation.

    Attributes:
        source: Fetch task that emitted the event ("metrics", "commits",
            "traces"). Maps to the panel heading in the live display.
        event_type: Lifecycle stage this event represents.
        message: Human-readable description, e.g. "12 commits".
        timestamp_ms: Milliseconds since prepare_context() started.
    """

    source: str
    event_type: EventType
    message: str
    timestamp_ms: float
