"""
Persistence engine status models.
"""

from enum import Enum

from pydantic import BaseModel, Field


class HealthState(str, Enum):
    """Overall database health."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthChecks(BaseModel):
    """Individual liveness checks."""

    connection: bool = False
    wal_mode: bool = False
    foreign_keys: bool = False
    writable: bool = False


class HealthStatus(BaseModel):
    """Result of a health check."""

    status: HealthState
    checks: HealthChecks = Field(default_factory=HealthChecks)
    error: str | None = None


class DatabaseStats(BaseModel):
    """Row counts and storage settings."""

    event_count: int = 0
    memory_count: int = 0
    entity_count: int = 0
    relation_count: int = 0
    journal_mode: str
    busy_timeout: int
    db_path: str
    db_size: int = Field(default=0, description="page_count * page_size, in bytes")
