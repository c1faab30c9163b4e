"""Schema-driven coercion of Firestore values into column values.

One converter per FieldType; ``coerce_value`` dispatches on the declared
type. Converted values are JSON-serialisable scalars (str, int, float,
bool) or None, ready for a streaming insert.

Policies:
    strict   an unconvertible value raises CoercionError (default)
    lenient  an unconvertible value is logged and loaded as NULL
"""

from __future__ import annotations

import json
import logging
import math
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from firestore_mirror.lib.errors import CoercionError
from firestore_mirror.lib.schema import FieldType, Schema
from firestore_mirror.lib.timestamps import format_timestamp

logger = logging.getLogger(__name__)

__all__ = ["CoercionPolicy", "coerce_value", "coerce_data", "to_json_text"]


class CoercionPolicy(Enum):
    """What to do with a value that does not fit its declared type."""

    STRICT = "strict"
    LENIENT = "lenient"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if _is_number(value):
        return str(value)
    raise TypeError(f"expected a string, got {type(value).__name__}")


def _coerce_number(value: Any) -> Any:
    if _is_number(value):
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"{value} is not a finite number")
        return value
    if isinstance(value, str):
        text = value.strip()
        # int() and float() accept "1_000"
        if "_" in text:
            raise ValueError(f"'{value}' is not a plain number")
        try:
            return int(text)
        except ValueError:
            number = float(text)
            if math.isnan(number) or math.isinf(number):
                raise ValueError(f"'{value}' is not a finite number")
            return number
    raise TypeError(f"expected a number, got {type(value).__name__}")


def _coerce_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise TypeError(f"expected a boolean, got {type(value).__name__}")


def _coerce_timestamp(value: Any) -> str:
    if isinstance(value, (datetime, date, str)):
        return format_timestamp(value)
    raise TypeError(f"expected a timestamp, got {type(value).__name__}")


def _latlng(value: Any) -> Optional[tuple]:
    if isinstance(value, Mapping):
        lat = value.get("latitude", value.get("lat"))
        lng = value.get("longitude", value.get("lng"))
    else:
        lat = getattr(value, "latitude", None)
        lng = getattr(value, "longitude", None)
    if _is_number(lat) and _is_number(lng):
        return float(lat), float(lng)
    return None


def _coerce_geopoint(value: Any) -> str:
    point = _latlng(value)
    if point is None:
        raise TypeError(f"expected a geopoint, got {type(value).__name__}")
    lat, lng = point
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        raise ValueError(f"coordinates out of range: ({lat}, {lng})")
    # WKT puts longitude first
    return f"POINT({lng!r} {lat!r})"


def _coerce_reference(value: Any) -> str:
    if isinstance(value, str) and value.strip("/"):
        return value.strip("/")
    path = getattr(value, "path", None)
    if isinstance(path, str) and path:
        return path
    raise TypeError(f"expected a document reference, got {type(value).__name__}")


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return format_timestamp(value)
    if isinstance(value, bytes):
        return value.hex()
    point = _latlng(value)
    if point is not None:
        return {"latitude": point[0], "longitude": point[1]}
    path = getattr(value, "path", None)
    if isinstance(path, str):
        return path
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def to_json_text(value: Any) -> str:
    """Serialise a nested Firestore value as compact, key-sorted JSON."""
    return json.dumps(value, default=_json_default, sort_keys=True, separators=(",", ":"))


def _coerce_array(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return to_json_text(list(value))
    raise TypeError(f"expected an array, got {type(value).__name__}")


def _coerce_map(value: Any) -> str:
    if isinstance(value, Mapping):
        return to_json_text(dict(value))
    raise TypeError(f"expected a map, got {type(value).__name__}")


CONVERTERS: Dict[FieldType, Callable[[Any], Any]] = {
    FieldType.STRING: _coerce_string,
    FieldType.NUMBER: _coerce_number,
    FieldType.BOOLEAN: _coerce_boolean,
    FieldType.TIMESTAMP: _coerce_timestamp,
    FieldType.GEOPOINT: _coerce_geopoint,
    FieldType.REFERENCE: _coerce_reference,
    FieldType.ARRAY: _coerce_array,
    FieldType.MAP: _coerce_map,
}


def coerce_value(
    value: Any,
    field_type: FieldType,
    *,
    field: Optional[str] = None,
    document_path: Optional[str] = None,
    policy: CoercionPolicy = CoercionPolicy.STRICT,
) -> Any:
    """Convert one raw value to its declared type.

    None passes through as None for every type.

    Raises:
        CoercionError: Under the strict policy, if the value cannot be converted
    """
    if value is None:
        return None

    try:
        return CONVERTERS[field_type](value)
    except (TypeError, ValueError, OverflowError) as e:
        if policy is CoercionPolicy.LENIENT:
            logger.warning(
                "Loading %s.%s as NULL: cannot coerce %r to %s (%s)",
                document_path or "?",
                field or "?",
                value,
                field_type.value,
                e,
            )
            return None
        raise CoercionError(
            f"Cannot coerce value of field '{field}' to {field_type.value}: {e}",
            field=field,
            field_type=field_type.value,
            value=value,
            document_path=document_path,
            cause=e,
        ) from e


def coerce_data(
    raw: Optional[Mapping[str, Any]],
    schema: Schema,
    *,
    document_path: Optional[str] = None,
    policy: CoercionPolicy = CoercionPolicy.STRICT,
) -> Dict[str, Any]:
    """Coerce a document's data to the schema.

    Every declared field is present in the result, in schema order; fields
    missing from the document are None. Undeclared fields are dropped.
    """
    raw = raw or {}
    return {
        definition.name: coerce_value(
            raw.get(definition.name),
            definition.type,
            field=definition.name,
            document_path=document_path,
            policy=policy,
        )
        for definition in schema.fields
    }
