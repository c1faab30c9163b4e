"""Configuration models for import runs.

``ImportSettings`` collects run options from FIRESTORE_MIRROR_* environment
variables and a local .env file; ``ImportInputs`` validates the four
identifiers an import needs before anything touches the network.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from firestore_mirror.lib.coercion import CoercionPolicy
from firestore_mirror.lib.errors import InputValidationError

__all__ = [
    "ImportInputs",
    "ImportSettings",
    "BIGQUERY_VALID_CHARACTERS",
    "FIRESTORE_VALID_CHARACTERS",
    "validate_identifier",
    "build_inputs",
]

BIGQUERY_VALID_CHARACTERS = re.compile(r"^[a-zA-Z0-9_]+$")
FIRESTORE_VALID_CHARACTERS = re.compile(r"^[^/]+$")

INPUT_LABELS = {
    "project_id": "project ID",
    "collection_path": "collection path",
    "dataset_id": "dataset",
    "table_id": "table",
}


def validate_identifier(value: Optional[str], field: str) -> Optional[str]:
    """Check one input value; return an error message, or None if valid.

    Collection paths are checked segment by segment so sub-collection
    paths such as ``users/{userId}/orders`` are allowed.
    """
    label = INPUT_LABELS.get(field, field)
    if value is None or not value.strip():
        return f"Please supply a {label}"

    if field == "collection_path":
        segments = value.strip().strip("/").split("/")
        if not all(s.strip() and FIRESTORE_VALID_CHARACTERS.match(s) for s in segments):
            return f"The {label} must not contain empty segments"
    elif field == "project_id":
        if not FIRESTORE_VALID_CHARACTERS.match(value):
            return f"The {label} must not contain '/'"
    elif not BIGQUERY_VALID_CHARACTERS.match(value):
        return f"The {label} must only contain letters, numbers or underscores"
    return None


class ImportInputs(BaseModel):
    """The four validated identifiers of an import run."""

    model_config = ConfigDict(frozen=True)

    project_id: str = Field(..., description="Firebase / GCP project id")
    collection_path: str = Field(..., description="Collection path, may contain {wildcards}")
    dataset_id: str = Field(..., description="Destination BigQuery dataset id")
    table_id: str = Field(..., description="Destination BigQuery table id")

    @field_validator("project_id", "collection_path", "dataset_id", "table_id", mode="before")
    @classmethod
    def strip_value(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("project_id", "collection_path", "dataset_id", "table_id")
    @classmethod
    def check_name_safety(cls, v: str, info: ValidationInfo) -> str:
        problem = validate_identifier(v, info.field_name)
        if problem:
            raise ValueError(problem)
        return v


def build_inputs(values: Dict[str, Any]) -> ImportInputs:
    """Validate raw values into ImportInputs.

    Raises:
        InputValidationError: Listing every invalid or missing value
    """
    try:
        return ImportInputs(**values)
    except ValidationError as e:
        issues = []
        for err in e.errors():
            location = ".".join(str(part) for part in err.get("loc", ())) or "input"
            message = err.get("msg", "invalid value").removeprefix("Value error, ")
            issues.append(f"{location}: {message}")
        raise InputValidationError("Invalid import inputs", issues=issues) from None


class ImportSettings(BaseSettings):
    """Environment-based run settings.

    Example:
        >>> # FIRESTORE_MIRROR_PROJECT_ID=my-project
        >>> # FIRESTORE_MIRROR_COERCION_POLICY=lenient
        >>> settings = ImportSettings()
        >>> settings.coercion_policy
        <CoercionPolicy.LENIENT: 'lenient'>
    """

    project_id: Optional[str] = Field(default=None, description="Firebase project id")
    collection_path: Optional[str] = Field(default=None, description="Collection path to mirror")
    dataset_id: Optional[str] = Field(default=None, description="BigQuery dataset id")
    table_id: Optional[str] = Field(default=None, description="BigQuery table id")
    schema_path: str = Field(default="schema.json", description="Schema definition file")
    coercion_policy: CoercionPolicy = Field(
        default=CoercionPolicy.STRICT, description="strict or lenient"
    )
    workers: int = Field(default=1, ge=1, le=64, description="Row assembly threads")
    deadline_seconds: Optional[float] = Field(
        default=None, gt=0, description="Overall run deadline"
    )
    output_dir: Optional[str] = Field(
        default=None, description="Write Parquet here instead of BigQuery"
    )
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Log format: 'json' or 'console'")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    model_config = SettingsConfigDict(
        env_prefix="FIRESTORE_MIRROR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        valid_formats = ["json", "console"]
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {valid_formats}")
        return v.lower()

    def input_values(self) -> Dict[str, Optional[str]]:
        return {
            "project_id": self.project_id,
            "collection_path": self.collection_path,
            "dataset_id": self.dataset_id,
            "table_id": self.table_id,
        }
