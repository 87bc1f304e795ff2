"""
JSON document codec for the storage boundary.

Property bags (event metadata, entity properties, memory values, full detail
payloads) are stored as opaque serialized text and decoded on read.
"""

import json
from typing import Any

from chronicle.utils.exceptions import ValidationError


def dump_document(value: Any) -> str:
    """
    Serialize a JSON-compatible value.

    Non-ASCII text is kept verbatim so substring searches over the stored
    text match what callers wrote.

    Raises:
        ValidationError: If the value is not JSON-serializable
    """
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Value is not JSON-serializable: {e}") from e


def dump_optional_document(value: Any | None) -> str | None:
    """Serialize a value, keeping None as SQL NULL."""
    return None if value is None else dump_document(value)


def load_document(text: str | None) -> Any:
    """Decode stored JSON text (NULL decodes to None)."""
    if text is None:
        return None
    return json.loads(text)
