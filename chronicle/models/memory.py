"""
Key-value memory models with TTL support.
"""

from typing import Any

from pydantic import BaseModel, Field


class Memory(BaseModel):
    """
    Namespaced key-value memory.

    A memory with `expires_at` in the past is logically absent even while its
    row still exists; only a cleanup sweep removes it physically.
    """

    key: str = Field(..., description="Unique key")
    value: Any = Field(..., description="Any JSON-serializable value")
    namespace: str | None = None
    created_at: int
    updated_at: int
    expires_at: int | None = Field(default=None, description="Absolute expiry (epoch ms)")

    def is_expired(self, now: int) -> bool:
        """Check whether the memory is logically absent at `now`."""
        return self.expires_at is not None and self.expires_at < now


class MemoryInput(BaseModel):
    """Input for storing a memory."""

    key: str
    value: Any = Field(..., description="Value to store (JSON null allowed)")
    namespace: str | None = None
    ttl: int | None = Field(default=None, gt=0, description="Seconds until expiration")


class MemoryStats(BaseModel):
    """Memory table statistics."""

    total: int = 0
    by_namespace: dict[str, int] = Field(default_factory=dict)
    expired: int = Field(default=0, description="Expired but not yet cleaned up")
