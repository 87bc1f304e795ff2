"""
LIKE pattern helpers.

User text never reaches a LIKE clause unescaped. Every pattern built here is
meant to be used together with ``ESCAPE '\\'``.
"""

LIKE_ESCAPE = "\\"


def escape_like(value: str) -> str:
    """Escape the LIKE metacharacters (%, _) and the escape character itself."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_pattern(term: str) -> str:
    """LIKE pattern matching any value that contains ``term`` literally."""
    return f"%{escape_like(term)}%"


def key_pattern(pattern: str) -> str:
    """
    Translate a key pattern to a LIKE pattern.

    ``*`` is the only wildcard ("dev:*" matches every key starting with "dev:");
    every other character, including % and _, matches literally.
    """
    return "%".join(escape_like(part) for part in pattern.split("*"))
