"""Typed content field values.

Values are stored as JSON blobs; the field template's ``field_type`` decides
which Python shape a value must have when it is written or resolved.
"""

from __future__ import annotations

import json
from typing import Any, Union

from pydantic import StrictBool, StrictFloat, StrictInt, StrictStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from cv_core.errors import ValidationError

_TEXT = TypeAdapter(StrictStr)
_NUMBER = TypeAdapter(Union[StrictInt, StrictFloat])
_BOOLEAN = TypeAdapter(StrictBool)
_LIST = TypeAdapter(list[Any])
_OBJECT = TypeAdapter(dict[str, Any])

FIELD_TYPE_ADAPTERS: dict[str, TypeAdapter[Any]] = {
    "text": _TEXT,
    "textarea": _TEXT,
    "richtext": _TEXT,
    "select": _TEXT,
    "media": _TEXT,
    "number": _NUMBER,
    "boolean": _BOOLEAN,
    "list": _LIST,
    "media_list": _LIST,
    "items": _LIST,
    "linked_items": _LIST,
    "options": _LIST,
    "object": _OBJECT,
}

FIELD_TYPES = tuple(FIELD_TYPE_ADAPTERS)


def check_field_type(field_type: str) -> str:
    if field_type not in FIELD_TYPE_ADAPTERS:
        raise ValidationError(
            f"Unsupported field type {field_type!r}; expected one of {', '.join(FIELD_TYPES)}"
        )
    return field_type


def validate_value(field_key: str, field_type: str, value: Any) -> Any:
    """Return ``value`` coerced to the shape ``field_type`` declares.

    ``None`` stands for "no value" and is accepted for every type.
    """

    if value is None:
        return None
    adapter = FIELD_TYPE_ADAPTERS[check_field_type(field_type)]
    try:
        return adapter.validate_python(value)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid value for field {field_key!r} ({field_type}): {exc.errors()[0]['msg']}"
        ) from exc


def encode_value(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def decode_value(raw: str | None) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Stored field value is not valid JSON: {raw[:40]!r}") from exc
