"""
Turns raw service-layer payloads into schema objects.

Services accept either a schema instance or a plain dict; dicts are validated
here and failures become ValidationFailedError before anything is written.
"""
from typing import Any, Dict, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from atelier.exceptions import ValidationFailedError

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def flatten_errors(errors) -> List[Dict[str, Any]]:
    """pydantic error list -> [{field, message, type}]"""
    flattened = []
    for error in errors:
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        flattened.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    return flattened


def validate_payload(schema: Type[SchemaT], data) -> SchemaT:
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailedError(
            "Validation failed",
            details={"errors": flatten_errors(exc.errors())},
        ) from exc
