"""Row assembly: one warehouse row per document.

Destination column layout:
    <identity fields...>, id, operation, timestamp, <schema fields...>
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from firestore_mirror.lib.coercion import CoercionPolicy, coerce_data
from firestore_mirror.lib.errors import SchemaError
from firestore_mirror.lib.paths import CollectionPathPattern, IdentityField, extract_identity
from firestore_mirror.lib.schema import Schema
from firestore_mirror.lib.snapshot import DocumentSnapshot
from firestore_mirror.lib.timestamps import resolve_timestamp

__all__ = [
    "ChangeType",
    "Row",
    "ID_COLUMN",
    "OPERATION_COLUMN",
    "TIMESTAMP_COLUMN",
    "assemble_row",
    "build_row",
    "destination_columns",
]

ID_COLUMN = "id"
OPERATION_COLUMN = "operation"
TIMESTAMP_COLUMN = "timestamp"


class ChangeType(Enum):
    """Nature of the change a row represents."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class Row:
    identity_fields: Tuple[IdentityField, ...]
    document_id: str
    change_type: ChangeType
    timestamp: str
    data: Mapping[str, Any]

    def to_record(self) -> Dict[str, Any]:
        """Flatten into a column -> value mapping for the destination."""
        record: Dict[str, Any] = {f.name: f.value for f in self.identity_fields}
        record[ID_COLUMN] = self.document_id
        record[OPERATION_COLUMN] = self.change_type.value
        record[TIMESTAMP_COLUMN] = self.timestamp
        record.update(self.data)
        return record


def assemble_row(
    id_fields: Sequence[IdentityField],
    document_id: str,
    change_type: ChangeType,
    timestamp: str,
    data: Mapping[str, Any],
) -> Row:
    """Build an immutable Row from already-coerced data."""
    return Row(
        identity_fields=tuple(id_fields),
        document_id=document_id,
        change_type=change_type,
        timestamp=timestamp,
        data=MappingProxyType(dict(data)),
    )


def build_row(
    snapshot: DocumentSnapshot,
    pattern: CollectionPathPattern,
    schema: Schema,
    import_timestamp: datetime,
    policy: CoercionPolicy = CoercionPolicy.STRICT,
) -> Row:
    """Transform one document into an INSERT row.

    Raises:
        CoercionError: If a value cannot be converted (strict policy)
        PathMismatchError: If the document path does not fit the pattern
    """
    data = coerce_data(snapshot.data, schema, document_path=snapshot.path, policy=policy)
    identity = extract_identity(pattern, snapshot)
    timestamp = resolve_timestamp(
        data,
        schema.timestamp_field,
        import_timestamp,
        update_time=snapshot.update_time,
        create_time=snapshot.create_time,
    )
    return assemble_row(identity.id_fields, identity.id, ChangeType.INSERT, timestamp, data)


def destination_columns(schema: Schema, id_field_names: Sequence[str]) -> List[str]:
    """Ordered destination column names.

    Raises:
        SchemaError: If an identity field or schema field collides with
            another column
    """
    columns = list(id_field_names) + [ID_COLUMN, OPERATION_COLUMN, TIMESTAMP_COLUMN]
    columns.extend(schema.field_names)

    seen = set()
    for name in columns:
        key = name.lower()
        if key in seen:
            raise SchemaError(
                f"Column '{name}' is defined more than once",
                field=name,
                suggestion=(
                    f"Rename the schema field or path wildcard; '{ID_COLUMN}', "
                    f"'{OPERATION_COLUMN}' and '{TIMESTAMP_COLUMN}' are reserved."
                ),
            )
        seen.add(key)
    return columns
