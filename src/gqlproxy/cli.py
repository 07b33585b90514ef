"""
gqlproxy CLI.

Commands for serving and inspecting gateway instances.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.table import Table

from gqlproxy._version import get_version

if TYPE_CHECKING:
    from gqlproxy.instances import GatewayInstance

app = typer.Typer(
    help="GraphQL gateway for external REST/JSON APIs.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def _resolve_instance(name: str) -> GatewayInstance:
    from gqlproxy.instances import get_instance

    try:
        return get_instance(name)
    except KeyError as e:
        err_console.print(f"[red]{e.args[0]}[/red]")
        raise typer.Exit(code=1)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"gqlproxy {get_version()}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version"),
    ] = False,
) -> None:
    """GraphQL gateway for external REST/JSON APIs."""


@app.command("serve")
def serve_command(
    instance: Annotated[str, typer.Argument(help="Gateway instance to serve (pokemon, chat)")],
    host: Annotated[str, typer.Option("--host", help="Host to bind to")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Port to bind to")] = 8787,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Log level (defaults to GQLPROXY_LOG_LEVEL or INFO)"),
    ] = None,
    graphiql: Annotated[
        bool, typer.Option("--graphiql/--no-graphiql", help="Serve the GraphiQL IDE")
    ] = True,
) -> None:
    """
    Serve a gateway instance over HTTP.

    Examples:
        gqlproxy serve pokemon
        gqlproxy serve chat --port 8080 --log-level debug
    """
    import uvicorn

    from gqlproxy.config import get_settings
    from gqlproxy.graphql.integration import create_app
    from gqlproxy.logging import setup_logging

    gateway = _resolve_instance(instance)
    settings = get_settings()
    level = (log_level or settings.log_level).upper()

    setup_logging(level=level, log_dir=settings.log_dir, secrets=settings.secret_values())

    console.print(f"[green]Serving {gateway.title} gateway[/green] on http://{host}:{port}/graphql")
    if gateway.name == "chat" and not settings.secret_values():
        console.print("[yellow]DEEPSEEK_API_KEY is not set; chat mutations will fail[/yellow]")

    uvicorn.run(
        create_app(gateway, settings, enable_graphiql=graphiql),
        host=host,
        port=port,
        log_level=level.lower(),
    )


@app.command("schema")
def schema_command(
    instance: Annotated[str, typer.Argument(help="Gateway instance (pokemon, chat)")],
) -> None:
    """Print the GraphQL SDL of a gateway instance."""
    from gqlproxy.graphql.integration import print_schema

    typer.echo(print_schema(_resolve_instance(instance)))


@app.command("sample-query")
def sample_query_command(
    instance: Annotated[str, typer.Argument(help="Gateway instance (pokemon, chat)")],
) -> None:
    """Print the sample document pre-populated in the GraphiQL console."""
    typer.echo(_resolve_instance(instance).default_query)


@app.command("instances")
def instances_command(
    as_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """List available gateway instances."""
    from gqlproxy.instances import INSTANCES

    rows = [
        {
            "name": name,
            "title": gateway.title,
            "mode": "read/write" if gateway.mutation is not None else "read-only",
            "cors": gateway.cors is not None,
        }
        for name, gateway in sorted(INSTANCES.items())
    ]

    if as_json:
        console.print_json(json.dumps(rows))
        return

    table = Table(title="Gateway instances")
    table.add_column("Name")
    table.add_column("Upstream")
    table.add_column("Mode")
    table.add_column("CORS")
    for row in rows:
        table.add_row(row["name"], row["title"], row["mode"], "yes" if row["cors"] else "no")
    console.print(table)


def main() -> None:
    app()
