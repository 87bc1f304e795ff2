"""Input coercion shared by the stores."""

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from chronicle.utils.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def coerce_input(model: type[ModelT], data: ModelT | Mapping[str, Any]) -> ModelT:
    """
    Accept either a model instance or a plain mapping.

    Mappings are validated into ``model``; pydantic failures are re-raised as
    Chronicle ValidationError so callers only deal with one error taxonomy.
    """
    if isinstance(data, model):
        return data
    if not isinstance(data, Mapping):
        raise ValidationError(
            f"Expected {model.__name__} or mapping, got {type(data).__name__}"
        )
    try:
        return model.model_validate(dict(data))
    except PydanticValidationError as e:
        details = ", ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(
            f"Invalid {model.__name__}: {details}", {"errors": e.errors()}
        ) from e


def require_text(value: str | None, message: str, context: dict | None = None) -> str:
    """Ensure a required string is present and non-blank."""
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(message, context)
    return value
