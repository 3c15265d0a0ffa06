"""
Response normalization.

Turns the raw submitted entries into a Normalized Response: an immutable
mapping keyed by field id whose values are typed the way the Field Catalog
declares them.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Union

from formroute.evaluator import to_number
from formroute.model import Field, FieldType, ResponseEntry

logger = logging.getLogger(__name__)

NormalizedResponse = Mapping[str, Any]


def _entries(raw: Union[Mapping[str, Any], Iterable[ResponseEntry]]) -> Iterable[tuple]:
    if isinstance(raw, Mapping):
        for field_id, value in raw.items():
            # Accept {"f1": {"value": ...}} as well as {"f1": ...}
            if isinstance(value, Mapping) and "value" in value:
                value = value["value"]
            yield field_id, value
    else:
        for entry in raw:
            yield entry.field_id, entry.value


def _option_id(field: Field, raw: Any) -> str:
    text = str(raw)
    if field.option_by_id(text) is not None:
        return text
    # Older responses stored the label instead of the option id.
    by_label = field.option_by_label(text)
    if by_label is not None:
        return by_label.id
    logger.warning("Value %r matches no option of field %s", text, field.id)
    return text


def normalize_value(field: Field, value: Any) -> Any:
    """Type a single raw value according to its field."""
    if value is None:
        return None

    if field.type.is_multi_choice:
        items = value if isinstance(value, (list, tuple)) else [value]
        return tuple(_option_id(field, v) for v in items if v is not None and v != "")

    if field.type.is_single_choice:
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        if value is None or value == "":
            return value
        return _option_id(field, value)

    if field.type is FieldType.NUMBER:
        if isinstance(value, str) and value.strip() != "":
            number = to_number(value)
            if number is None:
                return value
            return int(number) if number.is_integer() else number
        return value

    if isinstance(value, (list, tuple)):
        return tuple(value)
    return value


def normalize_response(
    fields: Iterable[Field],
    raw: Union[Mapping[str, Any], Iterable[ResponseEntry]],
) -> NormalizedResponse:
    """
    Normalize raw response entries against the Field Catalog.

    Args:
        fields: The Field Catalog
        raw: ResponseEntry objects, or a mapping field id -> value

    Returns:
        Read-only mapping field id -> normalized value. Entries for fields
        missing from the catalog are dropped.
    """
    by_id = {f.id: f for f in fields}
    normalized = {}
    for field_id, value in _entries(raw):
        field = by_id.get(field_id)
        if field is None:
            logger.warning("Dropping response for unknown field %s", field_id)
            continue
        normalized[field_id] = normalize_value(field, value)
    return MappingProxyType(normalized)
