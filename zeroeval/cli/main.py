"""
ZeroEval command-line interface.

    zeroeval setup                 store credentials in ~/.zeroeval/config.yaml
    zeroeval run script.py [args]  run a script with tracing initialised
    zeroeval models                list the models the proxy or gateway serve
"""

import runpy
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

import zeroeval
from zeroeval.config import DEFAULT_API_URL, read_config_file, write_config_file
from zeroeval.exceptions import ZeroEvalError
from zeroeval.gateway import list_models

console = Console()


@click.group()
@click.version_option(version=zeroeval.__version__)
def cli():
    """ZeroEval - tracing, signals and A/B testing for LLM apps."""


@cli.command()
def setup():
    """Interactively capture API credentials."""
    current = read_config_file()

    console.print("[bold blue]ZeroEval setup[/bold blue]")
    console.print("Create an API key in your workspace settings, then paste it below.")

    api_key = click.prompt(
        "API key",
        default=current.get("api_key", ""),
        hide_input=True,
        show_default=False,
    )
    api_url = click.prompt("API URL", default=current.get("api_url", DEFAULT_API_URL))
    workspace_id = click.prompt(
        "Workspace ID (optional)",
        default=current.get("workspace_id", ""),
        show_default=False,
    )

    path = write_config_file(
        {"api_key": api_key, "api_url": api_url, "workspace_id": workspace_id}
    )
    console.print(f"[green]Configuration saved to {path}[/green]")


@cli.command(context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@click.argument("script", type=click.Path(exists=True, dir_okay=False))
@click.argument("script_args", nargs=-1, type=click.UNPROCESSED)
def run(script, script_args):
    """Run SCRIPT with tracing auto-initialised."""
    zeroeval.init()

    script_path = str(Path(script).resolve())
    sys.argv = [script_path, *script_args]
    sys.path.insert(0, str(Path(script_path).parent))

    exit_code = 0
    try:
        runpy.run_path(script_path, run_name="__main__")
    except SystemExit as exc:
        if exc.code is None:
            exit_code = 0
        elif isinstance(exc.code, int):
            exit_code = exc.code
        else:
            console.print(str(exc.code))
            exit_code = 1
    finally:
        zeroeval.shutdown()

    sys.exit(exit_code)


@cli.command()
@click.option(
    "--surface",
    type=click.Choice(["proxy", "v1"]),
    default="proxy",
    show_default=True,
    help="List models served by the A/B proxy or the v1 gateway",
)
def models(surface):
    """List available models."""
    zeroeval.init(setup_integrations=False)
    try:
        data = list_models(surface)
    except ZeroEvalError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    table = Table(title=f"Models ({surface})")
    table.add_column("Model", style="cyan")
    table.add_column("Owned by", style="green")
    for model in data:
        table.add_row(model.get("id", ""), model.get("owned_by", ""))
    console.print(table)


def main():
    cli()


if __name__ == "__main__":
    main()
