"""CLI entry point for chatrelay.

Commands:
    chatrelay run         — Start the relay on the configured transport
    chatrelay classify    — Show how a message would be triaged
    chatrelay format      — Format AI output from stdin for WhatsApp
    chatrelay reset-auth  — Delete stored transport credentials
"""

from __future__ import annotations

import asyncio
import importlib
import logging
import shutil
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler

from chatrelay import __version__

if TYPE_CHECKING:
    from chatrelay.config import Settings
    from chatrelay.transport.base import Transport

console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load_transport(settings: Settings) -> Transport:
    """Create the configured transport."""
    if settings.transport.kind == "console":
        from chatrelay.transport.console import ConsoleTransport

        return ConsoleTransport(console=console)

    target = settings.transport.factory
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        console.print(
            "[red]✗[/red] Transport factory not set."
            " Set CHATRELAY_TRANSPORT__FACTORY to 'package.module:callable'."
        )
        sys.exit(1)
    factory = getattr(importlib.import_module(module_name), attr)
    transport: Transport = factory(settings.transport)
    return transport


@click.group()
@click.version_option(__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("-c", "--config", type=click.Path(exists=True), help="Config file path")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: str | None) -> None:
    """chatrelay — cheap triage in front of an AI chat service."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else None


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the relay and serve until interrupted."""
    from chatrelay.app import RelayApp
    from chatrelay.config import load_settings
    from chatrelay.transport.console import ConsoleTransport

    settings = load_settings(ctx.obj.get("config_path"))

    console.print(f"[green]✓[/green] chatrelay {__version__}")
    console.print(f"  transport: {settings.transport.kind}")
    console.print(f"  ai:        {settings.ai.provider} ({settings.ai.endpoint_url})")
    console.print(f"  cache ttl: {settings.cache.ttl_seconds:.0f}s")

    async def _run() -> None:
        transport = _load_transport(settings)
        app = RelayApp.from_settings(settings, transport)
        until = None
        if isinstance(transport, ConsoleTransport):
            until = transport.finished.wait()
        await app.run(until=until)

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Relay stopped.[/yellow]")


@cli.command()
@click.argument("text")
def classify(text: str) -> None:
    """Show tier, instant reply and cache key for TEXT."""
    from chatrelay.relay.cache import cache_key
    from chatrelay.relay.classifier import classify as classify_text

    result = classify_text(text)
    console.print(f"[bold]tier:[/bold] {result.tier.value}")
    if result.instant_reply:
        console.print(f"[bold]instant reply:[/bold] {result.instant_reply}")
    key = cache_key(text)
    console.print(f"[bold]cache key:[/bold] {key or '—'}")


@cli.command("format")
def format_cmd() -> None:
    """Format AI output read from stdin."""
    from chatrelay.relay.formatter import extract_directive, format_output

    raw = sys.stdin.read()
    text, url = extract_directive(raw)
    click.echo(format_output(text))
    if url:
        console.print(f"[cyan]attachment:[/cyan] {url}")


@cli.command("reset-auth")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def reset_auth(ctx: click.Context, yes: bool) -> None:
    """Delete stored transport credentials to force re-pairing."""
    from chatrelay.config import load_settings

    settings = load_settings(ctx.obj.get("config_path"))
    auth_dir = settings.transport.auth_dir

    if not auth_dir.exists():
        console.print(f"[yellow]No credentials at {auth_dir}[/yellow]")
        return

    if not yes and not click.confirm(f"Delete {auth_dir}?"):
        console.print("Cancelled.")
        return

    shutil.rmtree(auth_dir)
    console.print(f"[green]✓[/green] Removed {auth_dir}. Restart the relay to pair again.")


if __name__ == "__main__":
    cli()
