"""Interactive collection of import inputs.

Values already supplied (flags, config file, environment) are validated and
kept; anything missing is asked for on the terminal, re-asking until the
answer passes the same name-safety checks used by ImportInputs.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional

from firestore_mirror.lib.errors import InputValidationError
from firestore_mirror.lib.settings import ImportInputs, build_inputs, validate_identifier

QUESTIONS = [
    ("project_id", "What is your Firebase project ID?"),
    ("collection_path", "What is the path of the collection you would like to mirror?"),
    (
        "dataset_id",
        "What is the ID of the BigQuery dataset that you would like to use? "
        "(The dataset will be created if it doesn't already exist)",
    ),
    (
        "table_id",
        "What is the ID of the BigQuery table that you would like to use? "
        "(The table will be created if it doesn't already exist)",
    ),
]


def prompt(
    message: str,
    field: str,
    *,
    ask: Optional[Callable[[str], str]] = None,
    echo: Optional[Callable[[str], None]] = None,
) -> str:
    """Ask until the answer is valid for the given field."""
    ask = ask or input
    echo = echo or print
    while True:
        answer = ask(f"{message} ").strip()
        problem = validate_identifier(answer, field)
        if problem is None:
            return answer
        echo(f"  {problem}")


def collect_inputs(
    supplied: Optional[Mapping[str, Any]] = None,
    *,
    interactive: bool = True,
    ask: Optional[Callable[[str], str]] = None,
    echo: Optional[Callable[[str], None]] = None,
) -> ImportInputs:
    """Gather the four import identifiers.

    Args:
        supplied: Values already known; None or blank entries are prompted for
        interactive: When False, missing values are an error instead of a prompt
        ask: Line reader (defaults to input())
        echo: Message writer (defaults to print())

    Raises:
        InputValidationError: If a supplied value is invalid, or a value is
            missing in non-interactive mode
    """
    values: Dict[str, Any] = {}
    supplied = supplied or {}

    for field, message in QUESTIONS:
        value = supplied.get(field)
        if isinstance(value, str) and value.strip():
            values[field] = value
        elif interactive:
            values[field] = prompt(message, field, ask=ask, echo=echo)
        else:
            values[field] = None

    missing = [field for field, value in values.items() if value is None]
    if missing:
        raise InputValidationError(
            "Missing required inputs",
            issues=[f"{field}: {validate_identifier(None, field)}" for field in missing],
            suggestion="Pass them as flags, in --config, or as FIRESTORE_MIRROR_* variables.",
        )

    return build_inputs(values)
