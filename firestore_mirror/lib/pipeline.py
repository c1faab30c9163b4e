"""Bulk import pipeline.

Runs one linear pass:

    IDLE -> INPUTS_VALIDATED -> TABLE_ENSURED -> DOCUMENTS_FETCHED
         -> ROWS_ASSEMBLED -> INSERTED -> DONE

Any error aborts the run (state FAILED) and propagates to the caller.
Nothing is retried and nothing counts as imported unless the single batch
insert succeeds.

Example:
    pipeline = ImportPipeline(
        schema=load_schema("schema.json"),
        provisioner=BigQueryTableProvisioner(bq_client),
        source=FirestoreDocumentSource(fs_client),
        writer=BigQueryBatchWriter(bq_client),
    )
    result = pipeline.run(inputs)
    print(result.row_count)
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from firestore_mirror.lib.bigquery import (
    BatchWriter,
    BigQueryBatchWriter,
    BigQueryTableProvisioner,
    TableProvisioner,
    create_bigquery_client,
)
from firestore_mirror.lib.coercion import CoercionPolicy
from firestore_mirror.lib.errors import DeadlineExceededError
from firestore_mirror.lib.firestore import (
    DocumentSource,
    FirestoreDocumentSource,
    create_firestore_client,
)
from firestore_mirror.lib.local import LocalTableProvisioner, ParquetBatchWriter
from firestore_mirror.lib.metrics import RunMetrics
from firestore_mirror.lib.paths import CollectionPathPattern, parse_collection_path
from firestore_mirror.lib.rows import Row, build_row, destination_columns
from firestore_mirror.lib.schema import Schema
from firestore_mirror.lib.settings import ImportInputs, build_inputs
from firestore_mirror.lib.snapshot import DocumentSnapshot
from firestore_mirror.lib.timestamps import format_timestamp

logger = logging.getLogger(__name__)

__all__ = ["ImportState", "ImportResult", "ImportPipeline", "create_pipeline"]


class ImportState(Enum):
    IDLE = "idle"
    INPUTS_VALIDATED = "inputs_validated"
    TABLE_ENSURED = "table_ensured"
    DOCUMENTS_FETCHED = "documents_fetched"
    ROWS_ASSEMBLED = "rows_assembled"
    INSERTED = "inserted"
    DONE = "done"
    FAILED = "failed"


_ORDER = [
    ImportState.IDLE,
    ImportState.INPUTS_VALIDATED,
    ImportState.TABLE_ENSURED,
    ImportState.DOCUMENTS_FETCHED,
    ImportState.ROWS_ASSEMBLED,
    ImportState.INSERTED,
    ImportState.DONE,
]


@dataclass(frozen=True)
class ImportResult:
    """Outcome of a successful run."""

    row_count: int
    import_timestamp: str
    state: ImportState
    elapsed_seconds: float
    batch_written: bool
    phases: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_count": self.row_count,
            "import_timestamp": self.import_timestamp,
            "state": self.state.value,
            "elapsed_seconds": self.elapsed_seconds,
            "batch_written": self.batch_written,
            "phases": dict(self.phases),
        }


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ImportPipeline:
    """One-time bulk import of a document collection into a table.

    A pipeline instance runs once; create a new one for another run.

    Args:
        schema: Parsed schema shared by every row build
        provisioner: Ensures the destination table exists
        source: Fetches all documents for the collection pattern
        writer: Performs the single batch insert
        policy: Coercion policy for unconvertible values
        workers: Threads used for row assembly (1 = sequential)
        deadline_seconds: Optional overall deadline for the run
        clock: Wall clock used once to capture the run timestamp
        monotonic: Clock used for deadlines and phase timings
    """

    def __init__(
        self,
        schema: Schema,
        provisioner: TableProvisioner,
        source: DocumentSource,
        writer: BatchWriter,
        *,
        policy: CoercionPolicy = CoercionPolicy.STRICT,
        workers: int = 1,
        deadline_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = _utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.schema = schema
        self.provisioner = provisioner
        self.source = source
        self.writer = writer
        self.policy = policy
        self.workers = workers
        self.deadline_seconds = deadline_seconds
        self._clock = clock
        self._monotonic = monotonic
        self._state = ImportState.IDLE
        self._started_at: Optional[float] = None

    @property
    def state(self) -> ImportState:
        return self._state

    def _advance(self, new_state: ImportState) -> None:
        current = _ORDER.index(self._state)
        target = _ORDER.index(new_state)
        if target != current + 1:
            raise RuntimeError(f"Invalid transition {self._state.value} -> {new_state.value}")
        logger.debug("Import state %s -> %s", self._state.value, new_state.value)
        self._state = new_state

    def _remaining(self, stage: str) -> Optional[float]:
        """Seconds left before the deadline; raises once it has passed."""
        if self.deadline_seconds is None or self._started_at is None:
            return None
        remaining = self.deadline_seconds - (self._monotonic() - self._started_at)
        if remaining <= 0:
            raise DeadlineExceededError(
                f"Import exceeded its {self.deadline_seconds}s deadline during {stage}",
                stage=stage,
                deadline_seconds=self.deadline_seconds,
            )
        return remaining

    def _assemble(
        self,
        documents: List[DocumentSnapshot],
        pattern: CollectionPathPattern,
        import_timestamp: datetime,
    ) -> List[Row]:
        def build(snapshot: DocumentSnapshot) -> Row:
            return build_row(snapshot, pattern, self.schema, import_timestamp, self.policy)

        if self.workers > 1 and len(documents) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                return list(executor.map(build, documents))
        return [build(snapshot) for snapshot in documents]

    def run(self, inputs: Union[ImportInputs, Mapping[str, Any]]) -> ImportResult:
        """Execute the import.

        Args:
            inputs: Validated ImportInputs, or raw values to validate

        Returns:
            ImportResult with the number of rows imported

        Raises:
            MirrorError: Any stage failure; the run is aborted
        """
        if self._state is not ImportState.IDLE:
            raise RuntimeError("ImportPipeline instances can only run once")

        # Captured once; every row falls back to this same value
        import_timestamp = self._clock()
        self._started_at = self._monotonic()
        metrics = RunMetrics(clock=self._monotonic)

        try:
            with metrics.time_phase("validate"):
                if not isinstance(inputs, ImportInputs):
                    inputs = build_inputs(dict(inputs))
                pattern = parse_collection_path(inputs.collection_path)
                id_field_names = list(pattern.id_field_names)
                destination_columns(self.schema, id_field_names)
            self._advance(ImportState.INPUTS_VALIDATED)

            logger.info(
                "Mirroring data from Firestore collection %s to BigQuery dataset %s, table %s",
                pattern,
                inputs.dataset_id,
                inputs.table_id,
            )

            self._remaining("ensure_table")
            with metrics.time_phase("ensure_table"):
                self.provisioner.ensure_table(
                    inputs.dataset_id, inputs.table_id, self.schema, id_field_names
                )
            self._advance(ImportState.TABLE_ENSURED)

            timeout = self._remaining("fetch")
            with metrics.time_phase("fetch"):
                documents = self.source.fetch(pattern, timeout=timeout)
            self._advance(ImportState.DOCUMENTS_FETCHED)
            metrics.count("documents_fetched", len(documents))

            self._remaining("assemble")
            with metrics.time_phase("assemble"):
                rows = self._assemble(documents, pattern, import_timestamp)
            self._advance(ImportState.ROWS_ASSEMBLED)

            timeout = self._remaining("insert")
            batch_written = False
            with metrics.time_phase("insert"):
                if rows:
                    self.writer.insert_rows(inputs.dataset_id, inputs.table_id, rows, timeout=timeout)
                    batch_written = True
                else:
                    logger.info("No documents found under %s; skipping batch insert", pattern)
            self._advance(ImportState.INSERTED)
            metrics.count("rows_imported", len(rows))

        except Exception as e:
            self._state = ImportState.FAILED
            logger.error(
                "Import failed after %.2fs: %s",
                metrics.elapsed,
                getattr(e, "message", str(e)),
            )
            raise

        self._advance(ImportState.DONE)
        logger.info(
            "Import finished: %d rows in %.2fs",
            len(rows),
            metrics.elapsed,
            extra=metrics.to_log_dict(),
        )

        return ImportResult(
            row_count=len(rows),
            import_timestamp=format_timestamp(import_timestamp),
            state=self._state,
            elapsed_seconds=round(metrics.elapsed, 3),
            batch_written=batch_written,
            phases=metrics.phase_seconds(),
        )


def create_pipeline(
    inputs: ImportInputs,
    schema: Schema,
    *,
    policy: CoercionPolicy = CoercionPolicy.STRICT,
    workers: int = 1,
    deadline_seconds: Optional[float] = None,
    output_dir: Optional[str] = None,
) -> ImportPipeline:
    """Wire an ImportPipeline to Firestore and BigQuery (or local Parquet).

    Raises:
        PatternError: If the collection path is malformed
    """
    pattern = parse_collection_path(inputs.collection_path)
    source = FirestoreDocumentSource(create_firestore_client(inputs.project_id))

    provisioner: TableProvisioner
    writer: BatchWriter
    if output_dir:
        provisioner = LocalTableProvisioner(output_dir)
        writer = ParquetBatchWriter(output_dir, schema, pattern.id_field_names)
    else:
        client = create_bigquery_client(inputs.project_id)
        provisioner = BigQueryTableProvisioner(client)
        writer = BigQueryBatchWriter(client)

    return ImportPipeline(
        schema,
        provisioner,
        source,
        writer,
        policy=policy,
        workers=workers,
        deadline_seconds=deadline_seconds,
    )
