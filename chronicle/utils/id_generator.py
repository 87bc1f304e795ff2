"""
ID generation utilities for Chronicle.

Provides consistent ID generation for all record types:
- Timeline events: evt_xxx
- Entities: ent_xxx
- Relations: rel_xxx
- Full detail keys: {type}:{event_id}:full
"""

from uuid import uuid4


def generate_event_id() -> str:
    """
    Generate unique timeline event ID.

    Returns:
        ID in format "evt_xxx" where xxx is 16 hex characters
    """
    return f"evt_{uuid4().hex[:16]}"


def generate_entity_id() -> str:
    """
    Generate unique Entity ID.

    Returns:
        ID in format "ent_xxx" where xxx is 16 hex characters
    """
    return f"ent_{uuid4().hex[:16]}"


def generate_relation_id() -> str:
    """
    Generate unique Relation ID.

    Returns:
        ID in format "rel_xxx" where xxx is 16 hex characters
    """
    return f"rel_{uuid4().hex[:16]}"


def generate_full_data_key(event_type: str, event_id: str) -> str:
    """
    Derive the full detail key for an event.

    Args:
        event_type: Type of the owning event
        event_id: ID of the owning event

    Returns:
        Key in format "{type}:{event_id}:full"
    """
    return f"{event_type}:{event_id}:full"
