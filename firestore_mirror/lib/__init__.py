"""Firestore mirror library modules.

Schema-driven transformation of Firestore documents into BigQuery rows,
plus the collaborators that read from Firestore and write to BigQuery.
"""

from firestore_mirror.lib.coercion import CoercionPolicy, coerce_data, coerce_value
from firestore_mirror.lib.config_loader import load_import_config, load_schema
from firestore_mirror.lib.errors import (
    CoercionError,
    DeadlineExceededError,
    FetchError,
    InputValidationError,
    MirrorError,
    PathMismatchError,
    PatternError,
    ProvisioningError,
    SchemaError,
    WriteError,
)
from firestore_mirror.lib.paths import (
    CollectionPathPattern,
    IdentityField,
    IdentityResult,
    extract_identity,
    parse_collection_path,
)
from firestore_mirror.lib.pipeline import (
    ImportPipeline,
    ImportResult,
    ImportState,
    create_pipeline,
)
from firestore_mirror.lib.rows import ChangeType, Row, assemble_row, build_row
from firestore_mirror.lib.schema import FieldDefinition, FieldType, Schema, parse_schema
from firestore_mirror.lib.settings import ImportInputs, ImportSettings, build_inputs
from firestore_mirror.lib.snapshot import DocumentSnapshot
from firestore_mirror.lib.timestamps import format_timestamp, resolve_timestamp

__all__ = [
    # Errors
    "CoercionError",
    "DeadlineExceededError",
    "FetchError",
    "InputValidationError",
    "MirrorError",
    "PathMismatchError",
    "PatternError",
    "ProvisioningError",
    "SchemaError",
    "WriteError",
    # Schema
    "FieldDefinition",
    "FieldType",
    "Schema",
    "parse_schema",
    "load_schema",
    # Paths
    "CollectionPathPattern",
    "IdentityField",
    "IdentityResult",
    "extract_identity",
    "parse_collection_path",
    # Rows
    "ChangeType",
    "CoercionPolicy",
    "DocumentSnapshot",
    "Row",
    "assemble_row",
    "build_row",
    "coerce_data",
    "coerce_value",
    "format_timestamp",
    "resolve_timestamp",
    # Pipeline
    "ImportInputs",
    "ImportPipeline",
    "ImportResult",
    "ImportSettings",
    "ImportState",
    "build_inputs",
    "create_pipeline",
    "load_import_config",
]
