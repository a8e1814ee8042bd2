from __future__ import annotations

import typer

from conclave_cli.commands.config import config_command
from conclave_cli.commands.inspect_character import inspect_command

app = typer.Typer(
    name="conclave",
    help="Conclave agent runtime",
    no_args_is_help=True,
)

app.command("inspect")(inspect_command)
app.command("config")(config_command)


@app.command()
def version() -> None:
    """Show the Conclave version."""
    from conclave_core import __version__
    from rich.console import Console
    Console().print(f"conclave {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
