"""Downstream Trigger CLI — Entry point.

Usage:
    downstream-trigger [--config FILE] [--log-level LEVEL] policy validate <triggers.yaml>
    downstream-trigger policy strategies
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from downstream_trigger.cli.commands import policy
from downstream_trigger.config import Settings, get_settings, override_settings
from downstream_trigger.logging import configure_logging

app = typer.Typer(
    name="downstream-trigger",
    help="Downstream Trigger — cascading build trigger policies for CI jobs.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

console = Console()

app.add_typer(policy.app, name="policy")


@app.callback()
def main_callback(
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    log_level: Annotated[
        str | None, typer.Option("--log-level", help="Override the configured log level.")
    ] = None,
) -> None:
    if config is not None:
        override_settings(Settings.load(config_file=config))
    settings = get_settings()

    configure_logging(
        level=log_level or settings.logging.level,
        format=settings.logging.format,
        log_file=str(settings.logging.file) if settings.logging.file else None,
    )


if __name__ == "__main__":
    app()
