"""Tests for row assembly."""

from datetime import datetime, timezone

import pytest

from firestore_mirror.lib.coercion import CoercionPolicy
from firestore_mirror.lib.errors import CoercionError, PathMismatchError, SchemaError
from firestore_mirror.lib.paths import IdentityField, parse_collection_path
from firestore_mirror.lib.rows import ChangeType, assemble_row, build_row, destination_columns
from firestore_mirror.lib.schema import parse_schema
from firestore_mirror.lib.snapshot import DocumentSnapshot


class TestAssembleRow:
    """Tests for assemble_row and Row."""

    def test_fields(self):
        row = assemble_row(
            [IdentityField("userId", "u1")],
            "o42",
            ChangeType.INSERT,
            "2024-01-01T00:00:00Z",
            {"total": 10},
        )
        assert row.identity_fields == (IdentityField("userId", "u1"),)
        assert row.document_id == "o42"
        assert row.change_type is ChangeType.INSERT
        assert row.timestamp == "2024-01-01T00:00:00Z"
        assert row.data == {"total": 10}

    def test_row_is_immutable(self):
        source = {"total": 10}
        row = assemble_row([], "o1", ChangeType.INSERT, "2024-01-01T00:00:00Z", source)
        source["total"] = 99
        assert row.data["total"] == 10
        with pytest.raises(TypeError):
            row.data["total"] = 5
        with pytest.raises(AttributeError):
            row.document_id = "other"

    def test_to_record_column_order(self):
        row = assemble_row(
            [IdentityField("orgId", "o"), IdentityField("userId", "u")],
            "d1",
            ChangeType.INSERT,
            "2024-01-01T00:00:00Z",
            {"total": 1, "placedAt": None},
        )
        record = row.to_record()
        assert list(record) == ["orgId", "userId", "id", "operation", "timestamp", "total", "placedAt"]
        assert record["operation"] == "INSERT"
        assert record["placedAt"] is None


class TestBuildRow:
    """Tests for build_row."""

    def test_schema_timestamp(self, orders_schema, orders_pattern, import_time):
        snapshot = DocumentSnapshot(
            path="users/u1/orders/o42",
            data={"total": 10, "placedAt": "2024-01-01T00:00:00Z"},
            update_time=datetime(2024, 3, 3, tzinfo=timezone.utc),
        )
        row = build_row(snapshot, orders_pattern, orders_schema, import_time)
        assert row.identity_fields == (IdentityField("userId", "u1"),)
        assert row.document_id == "o42"
        assert row.change_type is ChangeType.INSERT
        assert row.timestamp == "2024-01-01T00:00:00Z"
        assert dict(row.data) == {"total": 10, "placedAt": "2024-01-01T00:00:00Z"}

    def test_missing_fields_are_null(self, orders_schema, orders_pattern, import_time):
        snapshot = DocumentSnapshot(path="users/u1/orders/o42", data={})
        row = build_row(snapshot, orders_pattern, orders_schema, import_time)
        assert dict(row.data) == {"total": None, "placedAt": None}
        assert row.timestamp == "2025-01-15T10:30:00Z"

    def test_create_time_fallback(self, orders_schema, orders_pattern, import_time):
        snapshot = DocumentSnapshot(
            path="users/u1/orders/o42",
            data={"total": 3},
            create_time=datetime(2023, 5, 5, tzinfo=timezone.utc),
        )
        row = build_row(snapshot, orders_pattern, orders_schema, import_time)
        assert row.timestamp == "2023-05-05T00:00:00Z"

    def test_strict_coercion_failure(self, orders_schema, orders_pattern, import_time):
        snapshot = DocumentSnapshot(path="users/u1/orders/o42", data={"total": "ten"})
        with pytest.raises(CoercionError):
            build_row(snapshot, orders_pattern, orders_schema, import_time)

    def test_lenient_coercion(self, orders_schema, orders_pattern, import_time):
        snapshot = DocumentSnapshot(
            path="users/u1/orders/o42",
            data={"total": "ten", "placedAt": "garbage"},
        )
        row = build_row(
            snapshot, orders_pattern, orders_schema, import_time, CoercionPolicy.LENIENT
        )
        assert dict(row.data) == {"total": None, "placedAt": None}
        # Unusable schema timestamp falls through to the run timestamp
        assert row.timestamp == "2025-01-15T10:30:00Z"

    def test_path_mismatch(self, orders_schema, orders_pattern, import_time):
        snapshot = DocumentSnapshot(path="orders/o42", data={})
        with pytest.raises(PathMismatchError):
            build_row(snapshot, orders_pattern, orders_schema, import_time)


class TestDestinationColumns:
    """Tests for destination_columns."""

    def test_layout(self, orders_schema):
        assert destination_columns(orders_schema, ["userId"]) == [
            "userId",
            "id",
            "operation",
            "timestamp",
            "total",
            "placedAt",
        ]

    @pytest.mark.parametrize("name", ["id", "operation", "timestamp", "Timestamp"])
    def test_reserved_field_names(self, name):
        schema = parse_schema({"fields": [{"name": name, "type": "string"}]})
        with pytest.raises(SchemaError, match="defined more than once"):
            destination_columns(schema, [])

    def test_wildcard_collides_with_field(self, orders_schema):
        pattern = parse_collection_path("shops/{total}/orders")
        with pytest.raises(SchemaError):
            destination_columns(orders_schema, pattern.id_field_names)
