"""Local Parquet destination.

Stands in for BigQuery when an output directory is given: the "table" is
``<output_dir>/<dataset_id>/<table_id>.parquet`` with a ``_schema.json``
sidecar describing the columns.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import pandas as pd

from firestore_mirror.lib.bigquery import BIGQUERY_TYPES
from firestore_mirror.lib.errors import ProvisioningError, WriteError
from firestore_mirror.lib.rows import TIMESTAMP_COLUMN, Row, destination_columns
from firestore_mirror.lib.schema import FieldType, Schema

logger = logging.getLogger(__name__)

__all__ = ["LocalTableProvisioner", "ParquetBatchWriter", "table_path"]

SCHEMA_SIDECAR = "_schema.json"


def table_path(output_dir: Union[str, Path], dataset_id: str, table_id: str) -> Path:
    return Path(output_dir) / dataset_id / f"{table_id}.parquet"


class LocalTableProvisioner:
    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)

    def ensure_table(
        self,
        dataset_id: str,
        table_id: str,
        schema: Schema,
        id_field_names: Sequence[str],
    ) -> None:
        columns = destination_columns(schema, id_field_names)
        dataset_dir = self.output_dir / dataset_id
        try:
            dataset_dir.mkdir(parents=True, exist_ok=True)
            sidecar = {
                "table": table_id,
                "columns": columns,
                "identity_fields": list(id_field_names),
                "types": {f.name: BIGQUERY_TYPES[f.type] for f in schema.fields},
                "timestamp_field": schema.timestamp_field,
            }
            (dataset_dir / SCHEMA_SIDECAR).write_text(json.dumps(sidecar, indent=2), encoding="utf-8")
        except OSError as e:
            raise ProvisioningError(
                f"Cannot prepare output directory {dataset_dir}",
                dataset_id=dataset_id,
                table_id=table_id,
                cause=e,
            ) from e
        logger.info("Prepared local table %s", table_path(self.output_dir, dataset_id, table_id))


class ParquetBatchWriter:
    """Writes all rows to one Parquet file, replacing any previous file."""

    def __init__(self, output_dir: Union[str, Path], schema: Schema, id_field_names: Sequence[str]):
        self.output_dir = Path(output_dir)
        self.schema = schema
        self.id_field_names = list(id_field_names)

    def insert_rows(
        self,
        dataset_id: str,
        table_id: str,
        rows: Sequence[Row],
        timeout: Optional[float] = None,
    ) -> None:
        target = table_path(self.output_dir, dataset_id, table_id)
        columns = destination_columns(self.schema, self.id_field_names)
        df = pd.DataFrame([row.to_record() for row in rows], columns=columns)
        df[TIMESTAMP_COLUMN] = pd.to_datetime(df[TIMESTAMP_COLUMN], utc=True, format="ISO8601")
        for definition in self.schema.fields:
            if definition.type is FieldType.TIMESTAMP:
                df[definition.name] = pd.to_datetime(df[definition.name], utc=True, format="ISO8601")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            df.to_parquet(target, engine="pyarrow", index=False)
        except (OSError, TypeError, ValueError) as e:
            raise WriteError(
                f"Failed to write {target}",
                dataset_id=dataset_id,
                table_id=table_id,
                cause=e,
            ) from e
        logger.info("Wrote %d rows to %s", len(df), target)
