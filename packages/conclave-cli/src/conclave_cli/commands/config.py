"""Configuration display."""
from __future__ import annotations

import dataclasses
from pathlib import Path

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

console = Console()


def config_command(
    show_global: bool = typer.Option(
        False,
        "--global",
        "-g",
        help="Show the global config file only",
    ),
) -> None:
    """View the merged configuration."""
    from conclave_core.config import ConclaveConfig

    if show_global:
        path = Path.home() / ".conclave" / "config.toml"
        if not path.exists():
            console.print("[yellow]~/.conclave/config.toml not found.[/yellow]")
            raise typer.Exit(1)
        console.print("[bold]~/.conclave/config.toml:[/bold]")
        console.print(Syntax(path.read_text(), "toml", theme="monokai"))
        return

    config = ConclaveConfig.load()

    table = Table(
        title=f"Configuration: {config.project_name}",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Section", style="bold")
    table.add_column("Key")
    table.add_column("Value")

    for section in dataclasses.fields(config):
        value = getattr(config, section.name)
        if not dataclasses.is_dataclass(value):
            continue
        for item in dataclasses.fields(value):
            table.add_row(section.name, item.name, repr(getattr(value, item.name)))

    console.print(table)
