"""CLI commands for portalbus.

Small diagnostics around the client: token and path derivation, a live
RemoteDesktop probe, and the effective configuration.
"""

import asyncio
import json

import typer
from rich.console import Console
from rich.table import Table

from portalbus import __version__
from portalbus.cli.logging_utils import configure_stderr, ensure_rotating_log_file
from portalbus.config.access import get_config
from portalbus.config.loader import convert_to_camel, get_config_path
from portalbus.request.handle_token import HandleToken, HandleTokenGenerator
from portalbus.request.paths import predict_path
from portalbus.utils.exceptions import PortalError

app = typer.Typer(
    name="portalbus",
    help="portalbus - XDG desktop portal client",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Inspect configuration")
app.add_typer(config_app, name="config")

console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
    log_file: bool = typer.Option(False, "--log-file", help="Also log to ~/.portalbus/logs"),
) -> None:
    configure_stderr(verbose)
    if log_file:
        ensure_rotating_log_file("cli", level="DEBUG" if verbose else "INFO")


@app.command()
def version() -> None:
    """Show the portalbus version."""
    console.print(f"portalbus v{__version__}")


@app.command()
def token(count: int = typer.Option(1, "--count", "-n", min=1, help="How many tokens")) -> None:
    """Print fresh handle tokens."""
    cfg = get_config()
    generator = HandleTokenGenerator(prefix=cfg.tokens.prefix, random_length=cfg.tokens.random_length)
    for _ in range(count):
        console.print(generator.next_token())


@app.command()
def path(
    sender: str = typer.Argument(..., help="Unique bus name, e.g. :1.42"),
    handle_token: str = typer.Argument(..., help="Handle token"),
) -> None:
    """Print the request path the portal is expected to use."""
    try:
        parsed = HandleToken.parse(handle_token)
    except PortalError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    console.print(predict_path(sender, parsed, base=get_config().portal.object_path))


@app.command()
def devices() -> None:
    """Query the RemoteDesktop portal on the session bus."""
    from portalbus.desktop.remote_desktop import RemoteDesktopProxy
    from portalbus.portal import PortalClient

    async def _probe() -> tuple[str, int, str]:
        async with await PortalClient.connect(get_config()) as client:
            proxy = RemoteDesktopProxy(client)
            ver = await proxy.version()
            types = await proxy.available_device_types()
            names = ", ".join(t.name.lower() for t in type(types) if t in types) or "none"
            return client.transport.unique_name, ver, names

    try:
        unique_name, ver, names = asyncio.run(_probe())
    except PortalError as e:
        console.print(f"[red]Error [{e.code}]:[/red] {e.message}")
        raise typer.Exit(1)

    table = Table(title="RemoteDesktop portal")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Bus name", unique_name)
    table.add_row("Interface version", str(ver))
    table.add_row("Device types", names)
    console.print(table)


@config_app.command("show")
def config_show() -> None:
    """Print the effective configuration (file + PORTALBUS_* env)."""
    console.print(f"[dim]{get_config_path()}[/dim]")
    console.print(json.dumps(convert_to_camel(get_config().model_dump()), indent=2))


if __name__ == "__main__":
    app()
