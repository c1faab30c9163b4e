"""CLI entry point for a one-time Firestore to BigQuery import.

Usage:
    python -m firestore_mirror
    python -m firestore_mirror --project my-app --collection-path users/{userId}/orders \\
        --dataset firestore_export --table orders --schema schema.json
    python -m firestore_mirror --config import.yaml --non-interactive
    python -m firestore_mirror --config import.yaml --output-dir ./export

Missing identifiers are prompted for unless --non-interactive is given.
Settings precedence: flags, then --config file, then FIRESTORE_MIRROR_*
environment variables (and .env).
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from firestore_mirror import __version__
from firestore_mirror.lib.coercion import CoercionPolicy
from firestore_mirror.lib.config_loader import load_import_config, load_schema
from firestore_mirror.lib.errors import InputValidationError, MirrorError
from firestore_mirror.lib.logging import setup_logging
from firestore_mirror.lib.pipeline import create_pipeline
from firestore_mirror.lib.settings import ImportSettings
from firestore_mirror.prompts import collect_inputs

logger = logging.getLogger(__name__)

BANNER = "-" * 57

# argparse dest -> ImportSettings field
FLAG_TO_SETTING = {
    "project": "project_id",
    "collection_path": "collection_path",
    "dataset": "dataset_id",
    "table": "table_id",
    "schema": "schema_path",
    "coercion": "coercion_policy",
    "workers": "workers",
    "deadline": "deadline_seconds",
    "output_dir": "output_dir",
    "log_file": "log_file",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="firestore-mirror-import",
        description="Import every document of a Firestore collection into a BigQuery table.",
    )
    parser.add_argument("--project", help="Firebase project ID")
    parser.add_argument(
        "--collection-path",
        help="Collection to mirror, e.g. users/{userId}/orders",
    )
    parser.add_argument("--dataset", help="BigQuery dataset ID (created if missing)")
    parser.add_argument("--table", help="BigQuery table ID (created if missing)")
    parser.add_argument("--schema", help="Schema definition file (JSON or YAML)")
    parser.add_argument("--config", help="Import config file (JSON or YAML)")
    parser.add_argument(
        "--coercion",
        choices=[p.value for p in CoercionPolicy],
        help="How to handle values that do not match their schema type",
    )
    parser.add_argument("--workers", type=int, help="Threads used to build rows")
    parser.add_argument("--deadline", type=float, help="Abort if the run takes longer (seconds)")
    parser.add_argument("--output-dir", help="Write a local Parquet file instead of BigQuery")
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Fail instead of prompting for missing values",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--json-logs", action="store_true", help="Log as JSON lines")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_settings(args: argparse.Namespace) -> ImportSettings:
    """Merge flags over the config file over the environment.

    Raises:
        InputValidationError: If the config file or a setting is invalid
    """
    overrides: Dict[str, Any] = {}
    if args.config:
        overrides.update(load_import_config(args.config))

    for dest, setting in FLAG_TO_SETTING.items():
        value = getattr(args, dest, None)
        if value is not None:
            overrides[setting] = value

    try:
        return ImportSettings(**overrides)
    except ValidationError as e:
        issues = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        raise InputValidationError("Invalid settings", issues=issues) from None


def main(argv: Optional[List[str]] = None) -> int:
    """Run the import; returns the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args)
        setup_logging(
            verbose=args.verbose,
            json_format=args.json_logs or settings.log_format == "json",
            log_file=settings.log_file,
            level=settings.log_level,
        )

        schema = load_schema(settings.schema_path)
        inputs = collect_inputs(settings.input_values(), interactive=not args.non_interactive)

        pipeline = create_pipeline(
            inputs,
            schema,
            policy=settings.coercion_policy,
            workers=settings.workers,
            deadline_seconds=settings.deadline_seconds,
            output_dir=settings.output_dir,
        )
        result = pipeline.run(inputs)
    except MirrorError as e:
        logger.debug("Import aborted", exc_info=True)
        print(str(e), file=sys.stderr)
        print(BANNER)
        return 1
    except (KeyboardInterrupt, EOFError):
        print("\nImport cancelled", file=sys.stderr)
        return 130

    print(BANNER)
    print(f"Finished mirroring {result.row_count} Firestore rows to BigQuery")
    print(BANNER)
    return 0


if __name__ == "__main__":
    sys.exit(main())
