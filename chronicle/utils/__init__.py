"""Utility modules for Chronicle."""

from chronicle.utils.documents import dump_document, dump_optional_document, load_document
from chronicle.utils.exceptions import (
    ChronicleError,
    ConfigurationError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from chronicle.utils.id_generator import (
    generate_entity_id,
    generate_event_id,
    generate_full_data_key,
    generate_relation_id,
)
from chronicle.utils.logger import get_logger, setup_logging
from chronicle.utils.patterns import LIKE_ESCAPE, contains_pattern, escape_like, key_pattern
from chronicle.utils.timestamps import (
    date_for_timestamp,
    normalize_timestamp,
    now_ms,
    validate_date,
)
from chronicle.utils.validation import coerce_input, require_text

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # ID Generators
    "generate_event_id",
    "generate_entity_id",
    "generate_relation_id",
    "generate_full_data_key",
    # Exceptions
    "ChronicleError",
    "ValidationError",
    "NotFoundError",
    "StorageError",
    "ConfigurationError",
    # Documents
    "dump_document",
    "dump_optional_document",
    "load_document",
    # Patterns
    "LIKE_ESCAPE",
    "escape_like",
    "contains_pattern",
    "key_pattern",
    # Timestamps
    "now_ms",
    "normalize_timestamp",
    "date_for_timestamp",
    "validate_date",
    # Validation
    "coerce_input",
    "require_text",
]
