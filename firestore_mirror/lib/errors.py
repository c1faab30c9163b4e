"""Structured exception hierarchy for Firestore mirror imports.

Every failure mode of an import run has its own exception type, carrying
enough context (details, suggestion) to diagnose the problem from the
log output alone. None of these are recovered locally: any of them aborts
the run.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

__all__ = [
    "MirrorError",
    "InputValidationError",
    "PatternError",
    "PathMismatchError",
    "SchemaError",
    "CoercionError",
    "ProvisioningError",
    "FetchError",
    "WriteError",
    "DeadlineExceededError",
]


class MirrorError(Exception):
    """Base exception for all import errors.

    Provides structured error information for debugging.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.message = message
        self.details = dict(details or {})
        self.suggestion = suggestion
        self.cause = cause

        if cause is not None:
            self.details.setdefault("cause", str(cause))
            self.details.setdefault("cause_type", type(cause).__name__)

        parts = [message]

        if self.details:
            detail_lines = [f"  {k}: {v}" for k, v in self.details.items()]
            parts.append("\nDetails:")
            parts.extend(detail_lines)

        if suggestion:
            parts.append(f"\nSuggestion: {suggestion}")

        super().__init__("\n".join(parts) if len(parts) > 1 else message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class InputValidationError(MirrorError):
    """A collected input value is missing or unsafe for its target system."""

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Any = None,
        issues: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value
        self.issues = issues or []

        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        if self.issues:
            issue_lines = "\n".join(f"  - {issue}" for issue in self.issues)
            message = f"{message}\n\nIssues found:\n{issue_lines}"

        super().__init__(message, details=details, **kwargs)


class PatternError(MirrorError):
    """A collection path pattern is empty or malformed."""

    def __init__(
        self,
        message: str,
        *,
        pattern: Optional[str] = None,
        segment: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.pattern = pattern
        self.segment = segment

        details = kwargs.pop("details", {})
        if pattern is not None:
            details["pattern"] = pattern
        if segment is not None:
            details["segment"] = segment

        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = (
                "Use a collection path like 'users/{userId}/orders': literal "
                "collection ids separated by '/', with {name} placeholders "
                "for parent document ids."
            )

        super().__init__(message, details=details, suggestion=suggestion, **kwargs)


class PathMismatchError(MirrorError):
    """A concrete document path does not line up with the collection pattern."""

    def __init__(
        self,
        message: str,
        *,
        pattern: Optional[str] = None,
        path: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.pattern = pattern
        self.path = path

        details = kwargs.pop("details", {})
        if pattern is not None:
            details["pattern"] = pattern
        if path is not None:
            details["document_path"] = path

        super().__init__(message, details=details, **kwargs)


class SchemaError(MirrorError):
    """The schema definition is malformed or inconsistent."""

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        source: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.source = source

        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if source:
            details["source"] = source

        super().__init__(message, details=details, **kwargs)


class CoercionError(MirrorError):
    """A document value cannot be converted to its declared schema type."""

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        field_type: Optional[str] = None,
        value: Any = None,
        document_path: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.field_type = field_type
        self.value = value
        self.document_path = document_path

        details = kwargs.pop("details", {})
        if document_path:
            details["document_path"] = document_path
        if field:
            details["field"] = field
        if field_type:
            details["declared_type"] = field_type
        if value is not None:
            details["value"] = repr(value)
            details["value_type"] = type(value).__name__

        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = (
                "Fix the document or the schema type, or re-run with "
                "--coercion lenient to load unconvertible values as NULL."
            )

        super().__init__(message, details=details, suggestion=suggestion, **kwargs)


class ProvisioningError(MirrorError):
    """The destination table could not be ensured."""

    def __init__(
        self,
        message: str,
        *,
        dataset_id: Optional[str] = None,
        table_id: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.dataset_id = dataset_id
        self.table_id = table_id

        details = kwargs.pop("details", {})
        if dataset_id:
            details["dataset_id"] = dataset_id
        if table_id:
            details["table_id"] = table_id

        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = (
                "Check that the project exists and that the credentials have "
                "BigQuery dataset and table create permissions."
            )

        super().__init__(message, details=details, suggestion=suggestion, **kwargs)


class FetchError(MirrorError):
    """The document source was unreachable or returned a partial read."""

    def __init__(
        self,
        message: str,
        *,
        collection_path: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.collection_path = collection_path

        details = kwargs.pop("details", {})
        if collection_path:
            details["collection_path"] = collection_path

        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = (
                "Check the project id and that the credentials can read "
                "Firestore (GOOGLE_APPLICATION_CREDENTIALS)."
            )

        super().__init__(message, details=details, suggestion=suggestion, **kwargs)


class WriteError(MirrorError):
    """The batch insert was rejected."""

    def __init__(
        self,
        message: str,
        *,
        dataset_id: Optional[str] = None,
        table_id: Optional[str] = None,
        row_errors: Optional[List[Any]] = None,
        **kwargs: Any,
    ) -> None:
        self.dataset_id = dataset_id
        self.table_id = table_id
        self.row_errors = row_errors or []

        details = kwargs.pop("details", {})
        if dataset_id:
            details["dataset_id"] = dataset_id
        if table_id:
            details["table_id"] = table_id
        if self.row_errors:
            details["rejected_rows"] = len(self.row_errors)
            details["first_error"] = self.row_errors[0]

        super().__init__(message, details=details, **kwargs)


class DeadlineExceededError(MirrorError):
    """The run did not finish within its overall deadline."""

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[str] = None,
        deadline_seconds: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        self.stage = stage
        self.deadline_seconds = deadline_seconds

        details = kwargs.pop("details", {})
        if stage:
            details["stage"] = stage
        if deadline_seconds is not None:
            details["deadline_seconds"] = deadline_seconds

        super().__init__(message, details=details, **kwargs)
