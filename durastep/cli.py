"""Command line interface for running and inspecting durable workflows."""

from __future__ import annotations

import logging
import os
import threading
from datetime import datetime, timezone
from typing import Optional

import typer

from durastep import DurastepError, ExecutionContext, StepLedger, get_ledger
from durastep.config import DurastepConfig, load_config
from durastep.logging import configure_logging
from durastep.workflows import run_onboarding

logger = logging.getLogger(__name__)

CRASH_EXIT_CODE = 3

app = typer.Typer(help="CLI for durastep workflows")

workflow_app = typer.Typer(help="Commands for inspecting recorded workflows")

app.add_typer(workflow_app, name="workflow")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, help="Logging level (defaults to the configured log_level)"
    ),
) -> None:
    """durastep CLI entry point."""
    configure_logging(log_level or load_config().log_level)


def _simulate_crash(reason: str) -> None:
    logger.warning(f"Simulating crash: {reason}")
    logging.shutdown()
    os._exit(CRASH_EXIT_CODE)


def _open_ledger(
    database_url: Optional[str],
    config: Optional[DurastepConfig] = None,
    create: bool = True,
) -> StepLedger:
    try:
        return get_ledger(database_url, config=config, create=create)
    except (DurastepError, ValueError) as e:
        typer.secho(f"Cannot open step ledger: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


def _format_ts(updated_at: Optional[int]) -> str:
    if updated_at is None:
        return "-"
    return datetime.fromtimestamp(updated_at / 1000, tz=timezone.utc).isoformat(
        timespec="milliseconds"
    )


@app.command("run")
def run(
    workflow_id: str = typer.Option("wf-001", help="Stable identity of the workflow run"),
    database_url: Optional[str] = typer.Option(
        None, help="Ledger URL, e.g. sqlite://durable.db (defaults to configuration)"
    ),
    crash_after: Optional[int] = typer.Option(
        None,
        min=1,
        help="Kill the process right after this many steps are executed and persisted",
    ),
    prompt: bool = typer.Option(
        False, help="Ask before starting; answering 'exit' simulates a crash"
    ),
) -> None:
    """
    Run the sample onboarding workflow with crash-resilient steps.

    Steps that completed in an earlier run with the same workflow id are
    replayed from the ledger instead of executing again.

    Example:
        durastep run --crash-after 1   # dies after the first step
        durastep run                   # resumes, skipping step-1
    """
    config = load_config()
    ledger = _open_ledger(database_url, config=config)

    executed = 0
    executed_lock = threading.Lock()

    def on_step_completed(step_id: str) -> None:
        nonlocal executed
        with executed_lock:
            executed += 1
            count = executed
        if crash_after is not None and count >= crash_after:
            _simulate_crash(f"after {step_id} of {workflow_id}")

    ctx = ExecutionContext(
        workflow_id,
        ledger,
        zombie_timeout=config.execution.zombie_timeout,
        on_step_completed=on_step_completed,
    )

    if prompt:
        answer = typer.prompt(
            "Type 'exit' to simulate a crash, or press Enter to continue",
            default="",
            show_default=False,
        )
        if answer.strip().lower() == "exit":
            _simulate_crash("requested at prompt")

    try:
        result = run_onboarding(ctx)
    except DurastepError as e:
        typer.secho(f"Workflow {workflow_id} failed: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    finally:
        ledger.close()

    typer.echo(f"Workflow {workflow_id} completed ({executed} step(s) executed)")
    for name, value in result.model_dump().items():
        typer.echo(f"  {name}: {value}")
    typer.echo("You can re-run this command to resume the workflow if interrupted.")


@workflow_app.command("list")
def workflow_list(
    database_url: Optional[str] = typer.Option(None, help="Ledger URL"),
) -> None:
    """
    List all workflow ids recorded in the ledger.

    Returns:
        Tab-separated workflow id, completed/total steps and last update,
        or "No workflows found"
    """
    ledger = _open_ledger(database_url, create=False)
    try:
        workflows = ledger.list_workflows()
    except DurastepError as e:
        typer.secho(f"Cannot read step ledger: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    finally:
        ledger.close()
    if not workflows:
        typer.echo("No workflows found")
        return
    for wf in workflows:
        typer.echo(
            f"{wf.workflow_id}\t{wf.completed_steps}/{wf.total_steps} completed"
            f"\t{_format_ts(wf.last_updated_at)}"
        )


@workflow_app.command("show")
def workflow_show(
    workflow_id: str,
    database_url: Optional[str] = typer.Option(None, help="Ledger URL"),
) -> None:
    """
    Show the step records of one workflow.

    Args:
        workflow_id: Workflow id to inspect (get from 'workflow list')
    """
    ledger = _open_ledger(database_url, create=False)
    try:
        steps = ledger.list_steps(workflow_id)
    except DurastepError as e:
        typer.secho(f"Cannot read step ledger: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    finally:
        ledger.close()
    if not steps:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)
    typer.echo(f"Workflow {workflow_id}: {len(steps)} step(s)")
    for step in steps:
        typer.echo(
            f"- {step.step_id}: {step.status.value} ({_format_ts(step.updated_at)})"
            + (f" -> {step.output}" if step.output is not None else "")
        )


if __name__ == "__main__":
    app()
