"""Main CLI entry point for callrelay.

Usage:
    callrelay serve --port 3000
    callrelay linear-teams
    callrelay send-webhook payload.json --url https://example.com/webhook/fathom
    callrelay config-check
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Optional

import httpx
import typer
from rich.console import Console
from rich.table import Table

from callrelay.config import CallrelayConfig, load_config
from callrelay.fathom import sign_body
from callrelay.linear import IssueBackendError, LinearClient
from callrelay.logging import setup_logging

app = typer.Typer(
    name="callrelay",
    help="callrelay: call recordings to Linear issues with Slack approval",
    no_args_is_help=True,
)

console = Console()

# Global config holder, set by the callback
_config: CallrelayConfig | None = None


def get_config() -> CallrelayConfig:
    """Get the configuration loaded by the CLI callback.

    Raises:
        RuntimeError: If the callback has not run
    """
    if _config is None:
        raise RuntimeError("Configuration not loaded. Run through the callrelay CLI.")
    return _config


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", "-h", help="Host to bind to (default from config)"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Port to bind to (default from config)"),
    ] = None,
) -> None:
    """Start the webhook server."""
    import uvicorn

    from callrelay.web.app import ConfigurationError, create_app

    config = get_config()
    host = host or config.web.host
    port = port or config.web.port

    console.print("[bold cyan]Starting callrelay[/bold cyan]")
    console.print(f"[dim]Host:[/dim] {host}")
    console.print(f"[dim]Port:[/dim] {port}")
    console.print(f"[dim]Environment:[/dim] {config.web.environment}")
    console.print()

    try:
        app_instance = create_app(config)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)

    uvicorn.run(app_instance, host=host, port=port, log_level="info")


@app.command("linear-teams")
def linear_teams() -> None:
    """List Linear teams visible to the configured API key."""
    config = get_config()
    if not config.linear.api_key:
        console.print("[red]linear.api_key is not configured[/red]")
        raise typer.Exit(code=1)

    async def _list_teams() -> list[dict]:
        client = LinearClient(config.linear)
        try:
            return await client.list_teams()
        finally:
            await client.close()

    try:
        teams = asyncio.run(_list_teams())
    except IssueBackendError as e:
        console.print(f"[red]Failed to list teams:[/red] {e}")
        raise typer.Exit(code=1)

    if not teams:
        console.print("[yellow]No teams found[/yellow]")
        return

    table = Table(title="Linear Teams")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Key", style="green")
    table.add_column("Name")
    for team in teams:
        table.add_row(team.get("id", ""), team.get("key", ""), team.get("name", ""))
    console.print(table)
    console.print("\n[dim]Set CALLRELAY_LINEAR__TEAM_ID to the ID of the target team.[/dim]")


@app.command("send-webhook")
def send_webhook(
    payload_file: Annotated[
        Path,
        typer.Argument(help="JSON webhook payload", exists=True, dir_okay=False, readable=True),
    ],
    url: Annotated[
        Optional[str],
        typer.Option("--url", "-u", help="Webhook URL (default: local server)"),
    ] = None,
) -> None:
    """Sign a payload with the configured secret and POST it to a server."""
    config = get_config()
    secret = config.fathom.webhook_secret
    if not secret:
        console.print("[red]fathom.webhook_secret is not configured[/red]")
        raise typer.Exit(code=1)

    body = payload_file.read_bytes()
    try:
        json.loads(body)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in payload file:[/red] {e}")
        raise typer.Exit(code=1)

    target = url or f"http://localhost:{config.web.port}/webhook/fathom"
    console.print(f"[dim]Sending {len(body)} bytes to[/dim] {target}")

    try:
        response = httpx.post(
            target,
            content=body,
            headers={"Content-Type": "application/json", "webhook-signature": sign_body(secret, body)},
            timeout=120.0,
        )
    except httpx.HTTPError as e:
        console.print(f"[red]Request failed:[/red] {e}")
        raise typer.Exit(code=1)

    style = "green" if response.is_success else "red"
    console.print(f"[{style}]HTTP {response.status_code}[/{style}]")
    console.print(response.text)
    if not response.is_success:
        raise typer.Exit(code=1)


@app.command("config-check")
def config_check() -> None:
    """Report required settings that are missing."""
    config = get_config()
    missing = config.missing_required()

    console.print(f"[dim]Environment:[/dim] {config.web.environment}")
    console.print(f"[dim]Store backend:[/dim] {config.store.backend}")
    console.print(f"[dim]Slack review:[/dim] {'enabled' if config.slack.enabled else 'disabled'}")

    if not missing:
        console.print("[green]All required settings are present[/green]")
        return

    console.print("[yellow]Missing required settings:[/yellow]")
    for name in missing:
        console.print(f"  - {name}")
    raise typer.Exit(code=1)


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Load configuration and set up logging."""
    global _config

    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1)

    if verbose:
        config.logging.level = "DEBUG"
    setup_logging(config.logging)
    _config = config

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]")


if __name__ == "__main__":
    app()
