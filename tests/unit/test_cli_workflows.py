from typer.testing import CliRunner

from durastep.cli import app
from durastep.exceptions import StorageFailureError
from durastep.persistence import SQLiteStepLedger


def _db_url(tmp_path) -> str:
    return f"sqlite://{tmp_path / 'durable.db'}"


def _seed(tmp_path) -> None:
    ledger = SQLiteStepLedger(tmp_path / "durable.db")
    ledger.insert_in_progress("wf-1", "step-1")
    ledger.mark_completed("wf-1", "step-1", '"EMP-001"')
    ledger.insert_in_progress("wf-1", "step-2")
    ledger.insert_in_progress("wf-2", "step-1")
    ledger.close()


def test_workflow_list_command(tmp_path, monkeypatch):
    monkeypatch.setenv("DURASTEP_CONFIG", str(tmp_path / "missing.yaml"))
    _seed(tmp_path)

    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "list", "--database-url", _db_url(tmp_path)])
    assert result.exit_code == 0, f"Command failed: {result.output}"
    assert "wf-1\t1/2 completed" in result.output
    assert "wf-2\t0/1 completed" in result.output


def test_workflow_list_empty(tmp_path, monkeypatch):
    monkeypatch.setenv("DURASTEP_CONFIG", str(tmp_path / "missing.yaml"))
    SQLiteStepLedger(tmp_path / "durable.db").close()

    result = CliRunner().invoke(app, ["workflow", "list", "--database-url", _db_url(tmp_path)])
    assert result.exit_code == 0
    assert "No workflows found" in result.output


def test_workflow_show_command_and_missing(tmp_path, monkeypatch):
    monkeypatch.setenv("DURASTEP_CONFIG", str(tmp_path / "missing.yaml"))
    _seed(tmp_path)
    runner = CliRunner()

    result = runner.invoke(app, ["workflow", "show", "wf-1", "--database-url", _db_url(tmp_path)])
    assert result.exit_code == 0, f"Command failed: {result.output}"
    assert "step-1: COMPLETED" in result.output
    assert '"EMP-001"' in result.output
    assert "step-2: IN_PROGRESS" in result.output

    missing = runner.invoke(app, ["workflow", "show", "nope", "--database-url", _db_url(tmp_path)])
    assert missing.exit_code == 1
    assert "Workflow not found" in missing.output


def test_run_command_completes_then_replays(tmp_path, monkeypatch):
    monkeypatch.setenv("DURASTEP_CONFIG", str(tmp_path / "missing.yaml"))
    runner = CliRunner()
    args = ["run", "--workflow-id", "wf-cli", "--database-url", _db_url(tmp_path)]

    first = runner.invoke(app, args)
    assert first.exit_code == 0, f"Command failed: {first.output}"
    assert "4 step(s) executed" in first.output
    assert "orientation_status: ORIENTATION-SCHEDULED" in first.output

    second = runner.invoke(app, args)
    assert second.exit_code == 0, f"Command failed: {second.output}"
    assert "0 step(s) executed" in second.output
    assert "employee_id: EMP-001" in second.output


def test_run_command_reports_step_in_progress(tmp_path, monkeypatch):
    monkeypatch.setenv("DURASTEP_CONFIG", str(tmp_path / "missing.yaml"))
    ledger = SQLiteStepLedger(tmp_path / "durable.db")
    ledger.insert_in_progress("wf-cli", "step-1")
    ledger.close()

    result = CliRunner().invoke(
        app, ["run", "--workflow-id", "wf-cli", "--database-url", _db_url(tmp_path)]
    )
    assert result.exit_code == 1
    assert "currently in progress" in result.output


def test_inspection_does_not_create_missing_ledger(tmp_path, monkeypatch):
    monkeypatch.setenv("DURASTEP_CONFIG", str(tmp_path / "missing.yaml"))
    runner = CliRunner()

    listed = runner.invoke(app, ["workflow", "list", "--database-url", _db_url(tmp_path)])
    assert listed.exit_code == 1
    assert "No step ledger at" in listed.output

    shown = runner.invoke(app, ["workflow", "show", "wf-1", "--database-url", _db_url(tmp_path)])
    assert shown.exit_code == 1
    assert "No step ledger at" in shown.output

    assert not (tmp_path / "durable.db").exists()


def test_run_command_reports_unopenable_ledger(tmp_path, monkeypatch):
    monkeypatch.setenv("DURASTEP_CONFIG", str(tmp_path / "missing.yaml"))

    result = CliRunner().invoke(
        app, ["run", "--database-url", f"sqlite://{tmp_path / 'nodir' / 'x.db'}"]
    )
    assert result.exit_code == 1
    assert "Cannot open step ledger" in result.output
    assert not isinstance(result.exception, StorageFailureError)


def test_commands_report_unsupported_database_url(tmp_path, monkeypatch):
    monkeypatch.setenv("DURASTEP_CONFIG", str(tmp_path / "missing.yaml"))
    runner = CliRunner()

    for args in (["run"], ["workflow", "list"], ["workflow", "show", "wf-1"]):
        result = runner.invoke(app, args + ["--database-url", "postgres://localhost/db"])
        assert result.exit_code == 1, f"{args} exited {result.exit_code}: {result.output}"
        assert "Unsupported database backend" in result.output
