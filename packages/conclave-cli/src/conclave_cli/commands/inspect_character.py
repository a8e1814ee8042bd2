"""Character inspection: bootstrap a runtime and show what it wired up."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from conclave_runtime.runtime import AgentRuntime

console = Console()


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "-"


def _render(runtime: AgentRuntime) -> None:
    character = runtime.character
    console.print(Panel(
        "\n".join([
            f"[bold]Name:[/bold]     {character.name}",
            f"[bold]Agent ID:[/bold] {runtime.agent_id}",
            f"[bold]Bio:[/bold]      {character.bio or '-'}",
        ]),
        title=f"Character: {character.name}",
        border_style="cyan",
    ))

    plugins = Table(title="Plugins", header_style="bold cyan")
    plugins.add_column("Name", style="bold")
    plugins.add_column("Description")
    for plugin in runtime.plugins:
        plugins.add_row(plugin.name, plugin.description or "-")
    console.print(plugins)

    actions = Table(title="Actions", header_style="bold cyan")
    actions.add_column("Name", style="bold")
    actions.add_column("Similes")
    actions.add_column("Description")
    for action in runtime.actions:
        actions.add_row(
            action.name,
            ", ".join(action.similes) or "-",
            action.description or "-",
        )
    console.print(actions)

    providers = Table(title="Providers", header_style="bold cyan")
    providers.add_column("Name", style="bold")
    providers.add_column("Position", justify="right")
    providers.add_column("Private", justify="center")
    providers.add_column("Dynamic", justify="center")
    for provider in sorted(runtime.providers, key=lambda p: p.position):
        providers.add_row(
            provider.name,
            str(provider.position),
            _yes_no(provider.private),
            _yes_no(provider.dynamic),
        )
    console.print(providers)

    evaluators = Table(title="Evaluators", header_style="bold cyan")
    evaluators.add_column("Name", style="bold")
    evaluators.add_column("Always run", justify="center")
    evaluators.add_column("Description")
    for evaluator in runtime.evaluators:
        evaluators.add_row(
            evaluator.name,
            _yes_no(evaluator.always_run),
            evaluator.description or "-",
        )
    console.print(evaluators)

    console.print(
        f"[bold]Model types:[/bold]  {', '.join(runtime.models.model_types()) or '-'}"
    )
    console.print(
        f"[bold]Services:[/bold]     {', '.join(runtime.services.all()) or '-'}"
    )
    console.print(
        f"[bold]Task workers:[/bold] {', '.join(runtime.task_workers.names()) or '-'}"
    )


async def _inspect(runtime: AgentRuntime) -> None:
    try:
        await runtime.initialize()
        _render(runtime)
    finally:
        await runtime.stop()


def inspect_command(
    character_file: Path = typer.Argument(
        ..., help="Character definition (.toml or .json)"
    ),
    plugin: list[str] = typer.Option(
        [],
        "--plugin",
        "-p",
        help="Extra plugin to load, as module or module:attr",
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file (defaults to layered project config)",
    ),
) -> None:
    """Initialize an agent from a character file and show its wiring."""
    from conclave_core.character import load_character
    from conclave_core.config import ConclaveConfig
    from conclave_core.errors import ConclaveError
    from conclave_core.logging import setup_logging
    from conclave_runtime.builder import RuntimeBuilder
    from conclave_runtime.plugins import load_plugins

    config = (
        ConclaveConfig.from_toml(config_path)
        if config_path is not None
        else ConclaveConfig.load()
    )
    setup_logging(config.logging.level, json_output=config.logging.json)

    try:
        character = load_character(character_file)
        extra = load_plugins(plugin)
        runtime = RuntimeBuilder(config).build(character, plugins=extra)
        asyncio.run(_inspect(runtime))
    except (ConclaveError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc
