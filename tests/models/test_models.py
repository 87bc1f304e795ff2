"""
Tests for data models.

Tests cover:
1. Input model validation
2. Result model helpers
3. Memory expiry rule
"""

import pydantic
import pytest

from chronicle.models import (
    EntityVersion,
    Memory,
    MemoryInput,
    RelationDirection,
    RelationInput,
    TimelineEvent,
    TimelineEventUpdate,
    TimelineQuery,
    TimelineResponse,
)


def make_event(event_id: str, event_type: str) -> TimelineEvent:
    return TimelineEvent(
        id=event_id,
        timestamp=0,
        date="1970-01-01",
        type=event_type,
        created_at=0,
        updated_at=0,
    )


class TestTimelineModels:
    """Test timeline models."""

    def test_query_defaults(self):
        query = TimelineQuery(date="2024-03-15")

        assert query.limit == 1000
        assert query.type is None

    def test_query_limit_must_be_positive(self):
        with pytest.raises(pydantic.ValidationError):
            TimelineQuery(date="2024-03-15", limit=0)

    def test_update_tracks_supplied_fields(self):
        update = TimelineEventUpdate(title=None, namespace="n")

        assert update.model_fields_set == {"title", "namespace"}

    def test_response_from_events(self):
        events = [make_event("evt_1", "a"), make_event("evt_2", "b"), make_event("evt_3", "a")]

        response = TimelineResponse.from_events(events)

        assert response.stats.total == 3
        assert response.stats.by_type == {"a": 2, "b": 1}

    def test_response_from_no_events(self):
        response = TimelineResponse.from_events([])

        assert response.events == []
        assert response.stats.by_type == {}


class TestEntityModels:
    """Test entity graph models."""

    def test_relation_input_alias(self):
        relation = RelationInput.model_validate({"from": "Ada", "relation": "knows", "to": "Bob"})

        assert relation.from_ == "Ada"

    def test_relation_input_field_name(self):
        relation = RelationInput(from_="Ada", relation="knows", to="Bob")

        assert relation.from_ == "Ada"
        assert relation.properties is None

    def test_direction_values(self):
        assert RelationDirection("from") is RelationDirection.FROM
        assert RelationDirection.BOTH == "both"

    def test_version_starts_at_one(self):
        with pytest.raises(pydantic.ValidationError):
            EntityVersion(
                id=1, entity_id="ent_1", version=0, changed_by="system", changed_at=0
            )


class TestMemoryModels:
    """Test memory models."""

    def test_value_required_but_null_allowed(self):
        assert MemoryInput(key="k", value=None).value is None

        with pytest.raises(pydantic.ValidationError):
            MemoryInput(key="k")

    def test_ttl_must_be_positive(self):
        with pytest.raises(pydantic.ValidationError):
            MemoryInput(key="k", value=1, ttl=0)

    def test_is_expired(self):
        memory = Memory(key="k", value=1, created_at=0, updated_at=0, expires_at=1000)

        assert memory.is_expired(999) is False
        assert memory.is_expired(1000) is False
        assert memory.is_expired(1001) is True

    def test_never_expires_without_expiry(self):
        memory = Memory(key="k", value=1, created_at=0, updated_at=0)

        assert memory.is_expired(10**15) is False
