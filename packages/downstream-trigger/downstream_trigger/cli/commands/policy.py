"""CLI — Trigger policy inspection commands."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
import yaml
from rich.console import Console
from rich.table import Table

from downstream_trigger.config import get_settings
from downstream_trigger.exceptions import ConfigurationError
from downstream_trigger.triggers.migration import load_policy
from downstream_trigger.triggers.models import Result, Strategy, TriggerPolicy
from downstream_trigger.triggers.strategy import evaluate

app = typer.Typer(help="Validate and explain downstream trigger policies.")
console = Console()


def _read_triggers(path: Path) -> dict[str, Any]:
    """Read ``{owner: config}`` from *path*, optionally nested under ``triggers:``."""
    with path.open() as f:
        data = yaml.safe_load(f) or {}
    if isinstance(data, dict) and "triggers" in data:
        data = data["triggers"]
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping of project name to trigger config")
    return data


@app.command("validate")
def validate(
    path: Path = typer.Argument(help="YAML file mapping upstream project names to trigger configs."),
) -> None:
    """Migrate and validate every trigger policy in a file.

    Fields a policy omits are filled from the ``defaults`` settings block.
    """
    defaults = get_settings().defaults
    try:
        triggers = _read_triggers(path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(1)

    table = Table(title="Trigger Policies")
    table.add_column("Upstream", style="cyan")
    table.add_column("Downstream")
    table.add_column("Condition")
    table.add_column("Change gate")
    table.add_column("Matrix")

    failures = 0
    for owner, raw in triggers.items():
        if not isinstance(raw, dict):
            failures += 1
            table.add_row(str(owner), "[red]invalid[/red]", "trigger config must be a mapping", "-", "-")
            continue
        try:
            policy = load_policy(raw, defaults=defaults)
        except ConfigurationError as exc:
            failures += 1
            table.add_row(str(owner), "[red]invalid[/red]", exc.message, "-", "-")
            continue
        table.add_row(
            str(owner),
            policy.child_projects_value,
            f"{policy.strategy.display_name} {policy.threshold.value}",
            _change_gate(policy),
            policy.matrix_mode.value,
        )

    console.print(table)
    if failures:
        console.print(f"[red]{failures} invalid trigger polic{'y' if failures == 1 else 'ies'}[/red]")
        raise typer.Exit(1)


def _change_gate(policy: TriggerPolicy) -> str:
    if policy.only_if_local_changes:
        return "local changes"
    if policy.only_if_downstream_changes:
        return "downstream SCM changes"
    return "none"


@app.command("strategies")
def strategies() -> None:
    """Print the threshold strategy truth table."""
    for strategy in Strategy:
        table = Table(title=f"{strategy.value} ({strategy.display_name})")
        table.add_column("threshold \\ actual", style="cyan")
        for actual in Result:
            table.add_column(actual.value)
        for threshold in Result:
            table.add_row(
                threshold.value,
                *("[green]trigger[/green]" if evaluate(strategy, threshold, actual) else "-" for actual in Result),
            )
        console.print(table)
