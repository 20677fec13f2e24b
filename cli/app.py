from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_hello, render_users


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the IoT ingest service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("submit")
def submit_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to a JSON submission."),
) -> None:
    """Send a device submission to the service."""
    state = _get_state(ctx)
    typer.echo(f"Submitting {file} to {state.config.base_url} ...")
    reply = state.client.submit(file)
    typer.secho(reply, fg=typer.colors.GREEN)


@app.command("users")
def users_command(
    ctx: typer.Context,
    export_format: str = typer.Option(
        "json",
        "--format",
        "-f",
        help="Export format: json or csv.",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        dir_okay=False,
        help="Write the export to this file instead of printing it.",
    ),
) -> None:
    """Export the users table."""
    state = _get_state(ctx)
    response = state.client.export_users(export_format)

    if output is not None:
        output.write_bytes(response.content)
        typer.secho(f"Saved {export_format} export to {output}", fg=typer.colors.GREEN)
        return

    if export_format == "json":
        render_users(response.json())
    else:
        typer.echo(response.text, nl=False)


@app.command("hello")
def hello_command(ctx: typer.Context) -> None:
    """Call the demo greeting endpoint."""
    state = _get_state(ctx)
    render_hello(state.client.hello())
