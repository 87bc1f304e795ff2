"""
Entity graph models: versioned entities and typed directed relations.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RelationDirection(str, Enum):
    """Which relations of an entity to return."""

    FROM = "from"  # outgoing only
    TO = "to"  # incoming only
    BOTH = "both"


class Entity(BaseModel):
    """
    Named entity (person, project, artist, ...).

    Names are unique across all entities, so either the id or the name
    identifies an entity.
    """

    id: str = Field(..., description="Unique entity ID (ent_xxx)")
    type: str = Field(..., description="Entity category")
    name: str = Field(..., description="Globally unique display name")
    properties: dict[str, Any] = Field(default_factory=dict, description="Current properties")
    created_at: int
    updated_at: int


class EntityVersion(BaseModel):
    """
    Immutable snapshot of an entity's properties.

    Versions of one entity form a gapless sequence 1..N; the latest snapshot
    equals the entity's current properties.
    """

    id: int = Field(..., description="Row id")
    entity_id: str
    version: int = Field(..., ge=1)
    properties: dict[str, Any] = Field(default_factory=dict)
    changed_by: str
    changed_at: int
    change_reason: str | None = None


class Relation(BaseModel):
    """Typed directed edge between two entities."""

    id: str = Field(..., description="Unique relation ID (rel_xxx)")
    from_entity_id: str
    relation_type: str
    to_entity_id: str
    properties: dict[str, Any] | None = None
    created_at: int


class EntityInput(BaseModel):
    """Input for creating an entity."""

    type: str
    name: str
    properties: dict[str, Any] = Field(default_factory=dict)


class RelationInput(BaseModel):
    """
    Input for creating a relation.

    Endpoints may be given as entity ids or names. `from` is a Python keyword,
    so the field is `from_` with alias "from".
    """

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(..., alias="from", description="Source entity id or name")
    relation: str = Field(..., description="Relation type, e.g. worked_on")
    to: str = Field(..., description="Target entity id or name")
    properties: dict[str, Any] | None = None
