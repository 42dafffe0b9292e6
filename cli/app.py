from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from cli.client import GatewayClient
from cli.config import CLIConfig, load_config
from cli.render import render_events
from datastore.mock_realtime_db import MockRealtimeDatabase
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: GatewayClient


app = typer.Typer(
    help="Run and exercise the sensor gateway.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Gateway base URL (defaults to GATEWAY_URL env or http://localhost:8080).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the gateway to respond.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = GatewayClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, "--host", help="Interface to bind."),
    port: Optional[int] = typer.Option(None, "--port", help="Port to listen on."),
) -> None:
    """Run the gateway's HTTP listener and sensor publisher."""
    settings = get_settings()
    bind_host = host or settings.listen_host
    bind_port = port or settings.listen_port
    typer.echo(f"HTTP server listening on {bind_host}:{bind_port}")
    uvicorn.run("app.main:app", host=bind_host, port=bind_port, log_config=None)


@app.command("send-token")
def send_token_command(
    ctx: typer.Context,
    token: str = typer.Argument(..., help="Google identity token to exchange."),
) -> None:
    """Submit an identity token to a running gateway."""
    state = _get_state(ctx)
    typer.echo(f"Sending credential to {state.config.base_url} ...")
    reply = state.client.send_token(token)
    typer.secho(reply.rstrip("\n"), fg=typer.colors.GREEN)


@app.command("events")
def events_command(
    uid: str = typer.Argument(..., help="User id whose events should be listed."),
    db_path: Optional[Path] = typer.Option(
        None,
        "--db-path",
        dir_okay=False,
        help="Mock database file (defaults to MOCK_DATABASE_PERSISTENCE_PATH).",
    ),
) -> None:
    """List sensor events recorded by the mock database."""
    settings = get_settings()
    path = db_path or (
        Path(settings.database_persistence_path)
        if settings.database_persistence_path
        else None
    )
    if path is None or not path.exists():
        typer.secho("No mock database file found.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    database = MockRealtimeDatabase(name=settings.database_name, persistence_path=path)
    render_events(uid, database.get(f"sensorevents/{uid}"))
