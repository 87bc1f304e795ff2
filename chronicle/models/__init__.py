"""
Data models for Chronicle.

Three storage domains:
1. Timeline (TimelineEvent, FullDetail) - temporal event log with lazy payloads
2. Entity graph (Entity, EntityVersion, Relation) - versioned named entities
3. Memory (Memory) - namespaced key-value pairs with TTL

Plus engine status models (HealthStatus, DatabaseStats).
"""

from chronicle.models.database import DatabaseStats, HealthChecks, HealthState, HealthStatus
from chronicle.models.entity import (
    Entity,
    EntityInput,
    EntityVersion,
    Relation,
    RelationDirection,
    RelationInput,
)
from chronicle.models.memory import Memory, MemoryInput, MemoryStats
from chronicle.models.timeline import (
    FullDetail,
    TimelineEvent,
    TimelineEventInput,
    TimelineEventUpdate,
    TimelineEventWithDetails,
    TimelineQuery,
    TimelineResponse,
    TimelineStats,
    TimelineSummary,
)

__all__ = [
    # Timeline models
    "TimelineEvent",
    "TimelineEventWithDetails",
    "FullDetail",
    "TimelineEventInput",
    "TimelineEventUpdate",
    "TimelineQuery",
    "TimelineResponse",
    "TimelineStats",
    "TimelineSummary",
    # Entity models
    "Entity",
    "EntityInput",
    "EntityVersion",
    "Relation",
    "RelationInput",
    "RelationDirection",
    # Memory models
    "Memory",
    "MemoryInput",
    "MemoryStats",
    # Engine models
    "HealthStatus",
    "HealthState",
    "HealthChecks",
    "DatabaseStats",
]
