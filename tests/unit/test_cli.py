"""Tests for the command line entry point."""

import json

import pytest
from google.auth import exceptions as auth_exceptions

import firestore_mirror.__main__ as cli
import firestore_mirror.lib.firestore as firestore_module
from firestore_mirror.lib.errors import FetchError
from firestore_mirror.lib.pipeline import ImportPipeline
from firestore_mirror.lib.snapshot import DocumentSnapshot

FLAGS = [
    "--project",
    "demo-project",
    "--collection-path",
    "users/{userId}/orders",
    "--dataset",
    "firestore_export",
    "--table",
    "orders",
]


@pytest.fixture
def schema_file(tmp_path):
    path = tmp_path / "schema.json"
    path.write_text(
        json.dumps(
            {
                "fields": [
                    {"name": "total", "type": "number"},
                    {"name": "placedAt", "type": "timestamp"},
                ],
                "timestampField": "placedAt",
            }
        )
    )
    return path


@pytest.fixture
def wired(monkeypatch, provisioner, writer, make_source):
    """Replace the cloud wiring with in-memory collaborators."""
    state = {"source": make_source([]), "calls": []}

    def fake_create_pipeline(inputs, schema, **kwargs):
        state["calls"].append((inputs, kwargs))
        return ImportPipeline(
            schema,
            provisioner,
            state["source"],
            writer,
            policy=kwargs["policy"],
            workers=kwargs["workers"],
            deadline_seconds=kwargs["deadline_seconds"],
        )

    monkeypatch.setattr(cli, "create_pipeline", fake_create_pipeline)
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)
    return state


class TestMain:
    """Tests for main()."""

    def test_success_banner(self, wired, schema_file, writer, capsys):
        wired["source"].documents = [
            DocumentSnapshot(path="users/u1/orders/o1", data={"total": 1}),
            DocumentSnapshot(path="users/u2/orders/o2", data={"total": 2}),
        ]

        exit_code = cli.main(FLAGS + ["--schema", str(schema_file), "--non-interactive"])

        assert exit_code == 0
        out = capsys.readouterr().out.splitlines()
        assert out == [
            "-" * 57,
            "Finished mirroring 2 Firestore rows to BigQuery",
            "-" * 57,
        ]
        assert len(writer.calls) == 1

    def test_default_schema_path(self, wired, schema_file, capsys):
        # schema.json in the working directory is picked up without --schema
        assert cli.main(FLAGS + ["--non-interactive"]) == 0
        assert "Finished mirroring 0 Firestore rows" in capsys.readouterr().out

    def test_options_forwarded(self, wired, schema_file):
        cli.main(
            FLAGS
            + ["--coercion", "lenient", "--workers", "3", "--deadline", "60", "--non-interactive"]
        )
        inputs, kwargs = wired["calls"][0]
        assert inputs.table_id == "orders"
        assert kwargs["policy"].value == "lenient"
        assert kwargs["workers"] == 3
        assert kwargs["deadline_seconds"] == 60.0
        assert kwargs["output_dir"] is None

    def test_missing_inputs_non_interactive(self, wired, schema_file, capsys):
        exit_code = cli.main(["--project", "demo-project", "--non-interactive"])
        assert exit_code == 1
        assert "Missing required inputs" in capsys.readouterr().err
        assert wired["calls"] == []

    def test_missing_schema(self, wired, capsys):
        exit_code = cli.main(FLAGS + ["--schema", "absent.json", "--non-interactive"])
        assert exit_code == 1
        assert "Schema file not found" in capsys.readouterr().err

    def test_stage_failure(self, wired, schema_file, writer, make_source, capsys):
        wired["source"] = make_source(error=FetchError("Firestore unavailable"))
        exit_code = cli.main(FLAGS + ["--non-interactive"])
        assert exit_code == 1
        assert "Firestore unavailable" in capsys.readouterr().err
        assert writer.calls == []

    def test_prompts_for_missing_values(self, wired, schema_file, monkeypatch):
        answers = iter(["firestore_export", "orders"])
        monkeypatch.setattr("builtins.input", lambda _: next(answers))
        exit_code = cli.main(
            ["--project", "demo-project", "--collection-path", "users/{userId}/orders"]
        )
        assert exit_code == 0
        inputs, _ = wired["calls"][0]
        assert (inputs.dataset_id, inputs.table_id) == ("firestore_export", "orders")

    def test_interrupted_prompt(self, wired, schema_file, monkeypatch):
        def interrupted(_):
            raise KeyboardInterrupt

        monkeypatch.setattr("builtins.input", interrupted)
        assert cli.main([]) == 130

    def test_config_file(self, wired, schema_file, tmp_path):
        config = tmp_path / "import.yaml"
        config.write_text(
            "project_id: demo-project\n"
            "collection_path: users/{userId}/orders\n"
            "dataset_id: firestore_export\n"
            "table_id: from_config\n"
            "workers: 2\n"
        )
        assert cli.main(["--config", str(config), "--non-interactive"]) == 0
        inputs, kwargs = wired["calls"][0]
        assert inputs.table_id == "from_config"
        assert kwargs["workers"] == 2

    def test_flags_override_config(self, wired, schema_file, tmp_path):
        config = tmp_path / "import.yaml"
        config.write_text("table_id: from_config\n")
        cli.main(FLAGS + ["--config", str(config), "--non-interactive"])
        inputs, _ = wired["calls"][0]
        assert inputs.table_id == "orders"

    def test_environment_settings(self, wired, schema_file, monkeypatch):
        monkeypatch.setenv("FIRESTORE_MIRROR_PROJECT_ID", "env-project")
        monkeypatch.setenv("FIRESTORE_MIRROR_COLLECTION_PATH", "users/{userId}/orders")
        monkeypatch.setenv("FIRESTORE_MIRROR_DATASET_ID", "env_dataset")
        monkeypatch.setenv("FIRESTORE_MIRROR_TABLE_ID", "env_table")
        assert cli.main(["--non-interactive"]) == 0
        inputs, _ = wired["calls"][0]
        assert inputs.project_id == "env-project"
        assert inputs.table_id == "env_table"

    def test_invalid_setting(self, wired, schema_file, capsys):
        exit_code = cli.main(FLAGS + ["--workers", "0", "--non-interactive"])
        assert exit_code == 1
        assert "Invalid settings" in capsys.readouterr().err


def test_missing_credentials(monkeypatch, schema_file, capsys):
    def no_credentials(project):
        raise auth_exceptions.DefaultCredentialsError("no credentials")

    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)
    monkeypatch.setattr(firestore_module.firestore, "Client", no_credentials)

    exit_code = cli.main(FLAGS + ["--non-interactive"])

    assert exit_code == 1
    assert "Cannot create a Firestore client for project demo-project" in capsys.readouterr().err


def test_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--version"])
    assert exc_info.value.code == 0
    assert "0.1.0" in capsys.readouterr().out
