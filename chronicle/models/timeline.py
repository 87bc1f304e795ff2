"""
Timeline models: events, lazily attached full details and query results.
"""

from typing import Any

from pydantic import BaseModel, Field


class TimelineEvent(BaseModel):
    """
    A timestamped event in the personal timeline.

    `date` is stored redundantly (UTC calendar date of `timestamp`) so that
    day and range queries can use an index. Large payloads live out of line
    in a FullDetail row referenced by `full_data_key`.
    """

    id: str = Field(..., description="Unique event ID (evt_xxx)")
    timestamp: int = Field(..., description="Event time in epoch milliseconds")
    date: str = Field(..., description="UTC calendar date of timestamp (YYYY-MM-DD)")
    type: str = Field(..., description="Event category, e.g. journal_entry")
    namespace: str | None = Field(default=None, description="Optional grouping label")
    title: str | None = Field(default=None, description="Human-readable summary")
    metadata: dict[str, Any] | None = Field(default=None, description="Lightweight inline data")
    full_data_key: str | None = Field(default=None, description="Key of the attached FullDetail")
    created_at: int = Field(..., description="Creation time (epoch ms)")
    updated_at: int = Field(..., description="Last update time (epoch ms)")


class TimelineEventWithDetails(TimelineEvent):
    """Timeline event with its full detail payload attached (when available)."""

    full_data: dict[str, Any] | None = Field(default=None, description="Expanded payload")


class FullDetail(BaseModel):
    """Out-of-line payload owned by exactly one timeline event."""

    key: str = Field(..., description="Detail key ({type}:{event_id}:full)")
    data: dict[str, Any] = Field(..., description="Full JSON payload")
    created_at: int
    accessed_at: int = Field(..., description="Last read time (epoch ms)")


class TimelineEventInput(BaseModel):
    """Input for storing a timeline event."""

    timestamp: int | float | str = Field(
        ..., description="Epoch milliseconds or ISO 8601 date/time string"
    )
    type: str = Field(..., description="Event type")
    title: str | None = None
    metadata: dict[str, Any] | None = None
    namespace: str | None = None


class TimelineEventUpdate(BaseModel):
    """
    Partial update for a timeline event.

    Only fields explicitly supplied are applied (see `model_fields_set`).
    """

    title: str | None = None
    metadata: dict[str, Any] | None = None
    namespace: str | None = None
    timestamp: int | float | str | None = None


class TimelineQuery(BaseModel):
    """Query for the events of a single day."""

    date: str = Field(..., description="Date in YYYY-MM-DD format")
    type: str | None = Field(default=None, description="Filter by event type")
    limit: int = Field(default=1000, gt=0, description="Maximum number of events")


class TimelineStats(BaseModel):
    """Counts computed over a returned set of events."""

    total: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)


class TimelineResponse(BaseModel):
    """Events plus a per-type breakdown of the returned events."""

    events: list[TimelineEvent] = Field(default_factory=list)
    stats: TimelineStats = Field(default_factory=TimelineStats)

    @classmethod
    def from_events(cls, events: list[TimelineEvent]) -> "TimelineResponse":
        """Build a response, computing stats over exactly these events."""
        by_type: dict[str, int] = {}
        for event in events:
            by_type[event.type] = by_type.get(event.type, 0) + 1
        return cls(events=events, stats=TimelineStats(total=len(events), by_type=by_type))


class TimelineSummary(BaseModel):
    """Aggregate counts for one day, without materializing events."""

    date: str
    total: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
