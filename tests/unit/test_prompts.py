"""Tests for interactive input collection."""

import pytest

from firestore_mirror.lib.errors import InputValidationError
from firestore_mirror.prompts import QUESTIONS, collect_inputs, prompt


def scripted(*answers):
    """Line reader returning the given answers in order, recording prompts."""
    remaining = list(answers)
    asked = []

    def ask(message):
        asked.append(message)
        return remaining.pop(0)

    ask.asked = asked
    return ask


class TestPrompt:
    """Tests for prompt."""

    def test_reasks_until_valid(self):
        ask = scripted("", "bad-name", " orders ")
        echoed = []
        answer = prompt("Table?", "table_id", ask=ask, echo=echoed.append)
        assert answer == "orders"
        assert len(ask.asked) == 3
        assert echoed == [
            "  Please supply a table",
            "  The table must only contain letters, numbers or underscores",
        ]


class TestCollectInputs:
    """Tests for collect_inputs."""

    def test_prompts_in_order(self):
        ask = scripted("demo-project", "users/{userId}/orders", "firestore_export", "orders")
        inputs = collect_inputs(ask=ask, echo=lambda _: None)
        assert inputs.project_id == "demo-project"
        assert inputs.collection_path == "users/{userId}/orders"
        assert [m.strip() for m in ask.asked] == [message for _, message in QUESTIONS]

    def test_supplied_values_not_prompted(self, orders_inputs):
        orders_inputs["table_id"] = None
        ask = scripted("orders_copy")
        inputs = collect_inputs(orders_inputs, ask=ask, echo=lambda _: None)
        assert inputs.table_id == "orders_copy"
        assert len(ask.asked) == 1

    def test_blank_supplied_value_is_prompted(self, orders_inputs):
        orders_inputs["dataset_id"] = "  "
        ask = scripted("other_dataset")
        assert collect_inputs(orders_inputs, ask=ask).dataset_id == "other_dataset"

    def test_non_interactive_complete(self, orders_inputs):
        inputs = collect_inputs(orders_inputs, interactive=False)
        assert inputs.dataset_id == "firestore_export"

    def test_non_interactive_missing(self):
        with pytest.raises(InputValidationError, match="Missing required inputs") as exc_info:
            collect_inputs({"project_id": "demo"}, interactive=False)
        assert len(exc_info.value.issues) == 3
        assert exc_info.value.suggestion

    def test_invalid_supplied_value(self, orders_inputs):
        orders_inputs["dataset_id"] = "bad-name"
        with pytest.raises(InputValidationError):
            collect_inputs(orders_inputs, interactive=False)
