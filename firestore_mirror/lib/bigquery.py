"""BigQuery destination: table provisioning and the batch insert."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import bigquery

from firestore_mirror.lib.errors import ProvisioningError, WriteError
from firestore_mirror.lib.rows import (
    ID_COLUMN,
    OPERATION_COLUMN,
    TIMESTAMP_COLUMN,
    Row,
    destination_columns,
)
from firestore_mirror.lib.schema import FieldType, Schema

logger = logging.getLogger(__name__)

# Credential failures are GoogleAuthError, not GoogleAPIError
GOOGLE_CLIENT_ERRORS = (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)

__all__ = [
    "TableProvisioner",
    "BatchWriter",
    "BigQueryTableProvisioner",
    "BigQueryBatchWriter",
    "BIGQUERY_TYPES",
    "build_table_schema",
    "create_bigquery_client",
]

# Arrays and maps are loaded as JSON text
BIGQUERY_TYPES: Dict[FieldType, str] = {
    FieldType.STRING: "STRING",
    FieldType.NUMBER: "FLOAT64",
    FieldType.BOOLEAN: "BOOL",
    FieldType.TIMESTAMP: "TIMESTAMP",
    FieldType.GEOPOINT: "GEOGRAPHY",
    FieldType.REFERENCE: "STRING",
    FieldType.ARRAY: "STRING",
    FieldType.MAP: "STRING",
}


class TableProvisioner(Protocol):
    def ensure_table(
        self,
        dataset_id: str,
        table_id: str,
        schema: Schema,
        id_field_names: Sequence[str],
    ) -> None:
        ...


class BatchWriter(Protocol):
    def insert_rows(
        self,
        dataset_id: str,
        table_id: str,
        rows: Sequence[Row],
        timeout: Optional[float] = None,
    ) -> None:
        ...


def create_bigquery_client(project_id: str) -> Any:
    """Create a BigQuery client using application default credentials.

    Raises:
        ProvisioningError: If no usable credentials are found
    """
    try:
        return bigquery.Client(project=project_id)
    except GOOGLE_CLIENT_ERRORS as e:
        raise ProvisioningError(
            f"Cannot create a BigQuery client for project {project_id}",
            cause=e,
        ) from e


def build_table_schema(schema: Schema, id_field_names: Sequence[str]) -> List[bigquery.SchemaField]:
    """Map the import schema to BigQuery columns, in destination order."""
    # Raises SchemaError on column name collisions
    destination_columns(schema, id_field_names)

    columns = [
        bigquery.SchemaField(name, "STRING", mode="REQUIRED", description="Parent document id")
        for name in id_field_names
    ]
    columns.append(
        bigquery.SchemaField(ID_COLUMN, "STRING", mode="REQUIRED", description="Document id")
    )
    columns.append(
        bigquery.SchemaField(OPERATION_COLUMN, "STRING", mode="REQUIRED", description="Change type")
    )
    columns.append(
        bigquery.SchemaField(TIMESTAMP_COLUMN, "TIMESTAMP", mode="REQUIRED", description="Event time")
    )
    columns.extend(
        bigquery.SchemaField(f.name, BIGQUERY_TYPES[f.type], mode="NULLABLE")
        for f in schema.fields
    )
    return columns


class BigQueryTableProvisioner:
    """Creates the dataset and table when they do not exist yet."""

    def __init__(self, client: Any):
        self.client = client

    def ensure_table(
        self,
        dataset_id: str,
        table_id: str,
        schema: Schema,
        id_field_names: Sequence[str],
    ) -> None:
        """Ensure a matching destination table exists.

        Idempotent: an existing dataset or table is left untouched.

        Raises:
            ProvisioningError: If BigQuery rejects the dataset or table creation
        """
        columns = build_table_schema(schema, id_field_names)
        table_ref = f"{self.client.project}.{dataset_id}.{table_id}"

        try:
            self.client.create_dataset(f"{self.client.project}.{dataset_id}", exists_ok=True)
            table = bigquery.Table(table_ref, schema=columns)
            table.time_partitioning = bigquery.TimePartitioning(
                type_=bigquery.TimePartitioningType.DAY,
                field=TIMESTAMP_COLUMN,
            )
            self.client.create_table(table, exists_ok=True)
        except GOOGLE_CLIENT_ERRORS as e:
            raise ProvisioningError(
                f"Failed to ensure table {table_ref}",
                dataset_id=dataset_id,
                table_id=table_id,
                cause=e,
            ) from e

        logger.info("Ensured table %s (%d columns)", table_ref, len(columns))


class BigQueryBatchWriter:
    """Issues a single streaming insert for all rows."""

    def __init__(self, client: Any):
        self.client = client

    def insert_rows(
        self,
        dataset_id: str,
        table_id: str,
        rows: Sequence[Row],
        timeout: Optional[float] = None,
    ) -> None:
        """Insert all rows in one request.

        Raises:
            WriteError: If the request fails or any row is rejected
        """
        table_ref = f"{self.client.project}.{dataset_id}.{table_id}"
        records = [row.to_record() for row in rows]
        kwargs = {"timeout": timeout} if timeout is not None else {}

        try:
            errors = self.client.insert_rows_json(table_ref, records, **kwargs)
        except GOOGLE_CLIENT_ERRORS as e:
            raise WriteError(
                f"Batch insert into {table_ref} failed",
                dataset_id=dataset_id,
                table_id=table_id,
                cause=e,
            ) from e

        if errors:
            raise WriteError(
                f"Batch insert into {table_ref} rejected {len(errors)} of {len(records)} rows",
                dataset_id=dataset_id,
                table_id=table_id,
                row_errors=list(errors),
            )

        logger.info("Inserted %d rows into %s", len(records), table_ref)
