"""Loading of schema definitions and import config files.

Both accept JSON or YAML. Import config files may reference environment
variables (``${VAR}`` or ``$VAR``); a .env file next to the working
directory is loaded first.

Example import config (import.yaml):
    project_id: ${FIREBASE_PROJECT}
    collection_path: users/{userId}/orders
    dataset_id: firestore_export
    table_id: orders
    schema_path: ./orders_schema.yaml
    coercion_policy: lenient
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from firestore_mirror.lib.errors import InputValidationError, SchemaError
from firestore_mirror.lib.schema import Schema, parse_schema

logger = logging.getLogger(__name__)

__all__ = ["load_schema", "load_import_config", "expand_env", "read_document"]

ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")

KNOWN_CONFIG_KEYS = {
    "project_id",
    "collection_path",
    "dataset_id",
    "table_id",
    "schema_path",
    "coercion_policy",
    "workers",
    "deadline_seconds",
    "output_dir",
    "log_level",
    "log_format",
    "log_file",
}


def read_document(path: Union[str, Path]) -> Any:
    """Parse a JSON or YAML file by extension.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the content cannot be parsed
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(str(e)) from e


def load_schema(path: Union[str, Path]) -> Schema:
    """Load and parse a schema definition file.

    Raises:
        SchemaError: If the file is missing, unparseable or invalid
    """
    try:
        definition = read_document(path)
    except FileNotFoundError:
        raise SchemaError(
            f"Schema file not found: {path}",
            source=str(path),
            suggestion="Pass --schema or set FIRESTORE_MIRROR_SCHEMA_PATH.",
        ) from None
    except (OSError, ValueError) as e:
        raise SchemaError(f"Cannot read schema file: {e}", source=str(path), cause=e) from e

    schema = parse_schema(definition, source=str(path))
    logger.debug("Loaded schema from %s with %d fields", path, len(schema.fields))
    return schema


def expand_env(value: Any) -> Any:
    """Recursively expand environment variables in strings.

    Unset variables are left as written.
    """
    if isinstance(value, str):

        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1) or match.group(2)
            return os.environ.get(var_name, match.group(0))

        return ENV_VAR_PATTERN.sub(replacer, value)
    if isinstance(value, dict):
        return {key: expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    return value


def load_import_config(
    path: Union[str, Path],
    *,
    env_file: Optional[Union[str, Path]] = None,
) -> Dict[str, Any]:
    """Load an import config file into a settings override dict.

    Relative ``schema_path`` and ``output_dir`` values are resolved against
    the config file's directory.

    Raises:
        InputValidationError: If the file is missing, unparseable, not a
            mapping, or has unknown keys
    """
    load_dotenv(dotenv_path=env_file)
    path = Path(path)

    try:
        raw = read_document(path)
    except (OSError, ValueError) as e:
        raise InputValidationError(f"Cannot read import config {path}: {e}", cause=e) from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise InputValidationError(f"Import config {path} must be a mapping")

    unknown = sorted(set(raw) - KNOWN_CONFIG_KEYS)
    if unknown:
        raise InputValidationError(
            f"Unknown keys in import config {path}",
            issues=[f"{key}: not a recognised option" for key in unknown],
        )

    config = expand_env(raw)
    for key in ("schema_path", "output_dir"):
        value = config.get(key)
        if isinstance(value, str) and value.startswith(("./", "../")):
            config[key] = str(path.parent / value)

    logger.debug("Loaded import config from %s: %s", path, sorted(config))
    return config
