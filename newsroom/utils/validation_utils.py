import uuid
from typing import Any, Dict, Optional

from ..exceptions import InvalidIdentifierError, ValidationError


def validate_entity_id(value: Any) -> str:
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError, AttributeError):
        raise InvalidIdentifierError(value)


def validate_required_fields(fields: Dict[str, Optional[str]]) -> None:
    missing = [name for name, value in fields.items() if not value or not str(value).strip()]
    if missing:
        raise ValidationError(
            "Missing required fields",
            error_code="MISSING_FIELDS",
            details={"fields": missing}
        )
