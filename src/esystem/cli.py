from __future__ import annotations

import asyncio
import json
import os

import typer
import uvicorn

from esystem.config import get_settings
from esystem.peers import ServiceRegistry
from esystem.service_errors import RemoteServiceError, ServiceTransportError

app = typer.Typer(help="E-System inter-service toolkit")


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Host interface to bind"),
    port: int | None = typer.Option(None, help="Port to bind"),
    reload: bool | None = typer.Option(None, help="Enable auto-reload (development only)"),
    log_level: str | None = typer.Option(None, help="Log level for the server"),
) -> None:
    settings = get_settings()
    uvicorn.run(
        "esystem.api:create_app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload if reload is not None else settings.reload,
        log_level=log_level or settings.log_level,
        factory=True,
    )


@app.command()
def call(
    peer: str = typer.Argument(..., help="Peer service name (auth, user, course, ...)"),
    path: str = typer.Argument(..., help="Path relative to the peer's base URL"),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method"),
    data: str | None = typer.Option(None, "--data", "-d", help="JSON request body"),
    token: str | None = typer.Option(
        None, help="Bearer token to send (defaults to $ESYSTEM_TOKEN)"
    ),
) -> None:
    """Call a configured peer and print its response envelope."""
    settings = get_settings()
    registry = ServiceRegistry.from_settings(settings)
    if peer not in registry:
        typer.echo(f"Unknown peer '{peer}'. Known peers: {', '.join(registry.names())}", err=True)
        raise typer.Exit(2)

    body = None
    if data is not None:
        try:
            body = json.loads(data)
        except ValueError as exc:
            typer.echo(f"--data is not valid JSON: {exc}", err=True)
            raise typer.Exit(2)
        if not isinstance(body, (dict, list)):
            typer.echo("--data must be a JSON object or array", err=True)
            raise typer.Exit(2)

    client = registry.get(peer)
    bearer = token or os.getenv("ESYSTEM_TOKEN")

    try:
        envelope = asyncio.run(client.request(method, path, token=bearer, body=body))
    except RemoteServiceError as exc:
        typer.echo(json.dumps(exc.envelope or {"message": exc.detail}, indent=2))
        typer.echo(f"{exc.service_name} answered {exc.remote_status_code}: {exc.detail}", err=True)
        raise typer.Exit(1)
    except ServiceTransportError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1)

    typer.echo(json.dumps(envelope.to_json_dict(), indent=2))
