"""Pytest configuration and fixtures."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from firestore_mirror.lib.paths import parse_collection_path  # noqa: E402
from firestore_mirror.lib.schema import parse_schema  # noqa: E402

IMPORT_TIME = datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch, tmp_path):
    """Keep FIRESTORE_MIRROR_* variables and .env files out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("FIRESTORE_MIRROR_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def orders_schema():
    """Schema with a number field and a designated timestamp field."""
    return parse_schema(
        {
            "fields": [
                {"name": "total", "type": "number"},
                {"name": "placedAt", "type": "timestamp"},
            ],
            "timestampField": "placedAt",
        }
    )


@pytest.fixture
def orders_pattern():
    return parse_collection_path("users/{userId}/orders")


@pytest.fixture
def import_time():
    """Fixed run timestamp."""
    return IMPORT_TIME


@pytest.fixture
def orders_inputs():
    return {
        "project_id": "demo-project",
        "collection_path": "users/{userId}/orders",
        "dataset_id": "firestore_export",
        "table_id": "orders",
    }


class RecordingProvisioner:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def ensure_table(self, dataset_id, table_id, schema, id_field_names):
        self.calls.append((dataset_id, table_id, schema, list(id_field_names)))
        if self.error:
            raise self.error


class StaticSource:
    def __init__(self, documents=None, error=None):
        self.documents = list(documents or [])
        self.error = error
        self.calls = []

    def fetch(self, pattern, timeout=None):
        self.calls.append((str(pattern), timeout))
        if self.error:
            raise self.error
        return list(self.documents)


class RecordingWriter:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def insert_rows(self, dataset_id, table_id, rows, timeout=None):
        self.calls.append((dataset_id, table_id, list(rows), timeout))
        if self.error:
            raise self.error


@pytest.fixture
def provisioner():
    return RecordingProvisioner()


@pytest.fixture
def writer():
    return RecordingWriter()


@pytest.fixture
def make_source():
    """Factory for a document source returning fixed snapshots."""

    def factory(documents=None, error=None):
        return StaticSource(documents, error)

    return factory


@pytest.fixture
def make_provisioner():
    return RecordingProvisioner


@pytest.fixture
def make_writer():
    return RecordingWriter
