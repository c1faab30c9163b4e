"""Declarative schema model.

A schema lists the document fields that become table columns, each with a
declared type, and optionally names the field that carries the business
timestamp of a record.

Example schema.json:
    {
      "fields": [
        {"name": "total", "type": "number"},
        {"name": "placedAt", "type": "timestamp"}
      ],
      "timestampField": "placedAt"
    }
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from firestore_mirror.lib.errors import SchemaError

__all__ = ["FieldType", "FieldDefinition", "Schema", "parse_schema", "IDENTIFIER_PATTERN"]

# Column names must be valid BigQuery identifiers
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class FieldType(Enum):
    """Declared type of a schema field."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    GEOPOINT = "geopoint"
    REFERENCE = "reference"
    ARRAY = "array"
    MAP = "map"

    @property
    def is_temporal(self) -> bool:
        return self is FieldType.TIMESTAMP


@dataclass(frozen=True)
class FieldDefinition:
    """A single declared field."""

    name: str
    type: FieldType

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "type": self.type.value}


@dataclass(frozen=True)
class Schema:
    """Ordered field list plus the optional designated timestamp field."""

    fields: Tuple[FieldDefinition, ...]
    timestamp_field: Optional[str] = None

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def get(self, name: str) -> Optional[FieldDefinition]:
        for definition in self.fields:
            if definition.name == name:
                return definition
        return None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"fields": [f.to_dict() for f in self.fields]}
        if self.timestamp_field:
            result["timestampField"] = self.timestamp_field
        return result


def _parse_field(raw: Any, index: int) -> FieldDefinition:
    if not isinstance(raw, Mapping):
        raise SchemaError(
            f"Field #{index} must be a mapping with 'name' and 'type'",
            details={"value": repr(raw)},
        )

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise SchemaError(f"Field #{index} is missing a name")
    if not IDENTIFIER_PATTERN.match(name):
        raise SchemaError(
            f"Field name '{name}' is not a valid column name",
            field=name,
            suggestion="Use letters, digits and underscores, starting with a letter or underscore.",
        )

    type_str = raw.get("type")
    if not isinstance(type_str, str):
        raise SchemaError(f"Field '{name}' is missing a type", field=name)
    try:
        field_type = FieldType(type_str.strip().lower())
    except ValueError:
        valid = ", ".join(t.value for t in FieldType)
        raise SchemaError(
            f"Invalid type '{type_str}' for field '{name}'. Valid options: {valid}",
            field=name,
        ) from None

    return FieldDefinition(name=name, type=field_type)


def parse_schema(definition: Any, *, source: Optional[str] = None) -> Schema:
    """Parse a schema definition document into a Schema.

    Args:
        definition: Parsed JSON/YAML document
        source: Where the definition came from (for error messages)

    Returns:
        Schema instance

    Raises:
        SchemaError: If the definition is malformed, a field name repeats,
            or the timestamp field reference is dangling
    """
    if not isinstance(definition, Mapping):
        raise SchemaError("Schema definition must be a mapping", source=source)

    raw_fields = definition.get("fields")
    if not isinstance(raw_fields, list):
        raise SchemaError("Schema definition requires a 'fields' list", source=source)

    fields = []
    seen = set()
    for index, raw in enumerate(raw_fields):
        field_def = _parse_field(raw, index)
        if field_def.name in seen:
            raise SchemaError(
                f"Duplicate field name '{field_def.name}'",
                field=field_def.name,
                source=source,
            )
        seen.add(field_def.name)
        fields.append(field_def)

    timestamp_field = definition.get("timestampField", definition.get("timestamp_field"))
    if timestamp_field is not None:
        if not isinstance(timestamp_field, str) or not timestamp_field:
            raise SchemaError("timestampField must be a field name", source=source)
        if timestamp_field not in seen:
            raise SchemaError(
                f"timestampField '{timestamp_field}' does not name a declared field",
                field=timestamp_field,
                source=source,
            )
        declared = next(f for f in fields if f.name == timestamp_field)
        if not declared.type.is_temporal:
            raise SchemaError(
                f"timestampField '{timestamp_field}' must have type 'timestamp', "
                f"not '{declared.type.value}'",
                field=timestamp_field,
                source=source,
            )

    return Schema(fields=tuple(fields), timestamp_field=timestamp_field)
