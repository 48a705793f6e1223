"""Backpack client CLI.

Commands:
    bpxc operations     - List the operation catalog
    bpxc keygen         - Generate a new Ed25519 API key pair
    bpxc verify-keys    - Check that configured keys form a valid pair
    bpxc call           - Call one operation and print the JSON result
"""

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any

import httpx
import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from bpxc import __version__
from bpxc.auth.creds import BackpackCredentials, resolve_creds, save_creds
from bpxc.auth.keys import KeyPair, generate_keypair
from bpxc.config import get_settings
from bpxc.errors import BackpackError, ExchangeApiError
from bpxc.exchange.client import BackpackClient
from bpxc.exchange.normalize import coerce_scalar
from bpxc.exchange.registry import build_registry
from bpxc.logging import setup_logging

app = typer.Typer(
    name="bpxc",
    help="Backpack Exchange signed REST client",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        rprint(f"bpxc v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    _version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-V", help="Enable verbose logging"),
    ] = False,
) -> None:
    """Backpack Exchange signed REST client."""
    log_level = "DEBUG" if verbose else get_settings().log_level
    setup_logging(level=log_level)


def parse_param(raw: str) -> tuple[str, Any]:
    """Parse a ``key=value`` option into a typed pair.

    Numeric values become numbers and ``true``/``false`` become booleans.
    """
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise typer.BadParameter(f"Expected key=value, got {raw!r}")
    if value in ("true", "false"):
        return key, value == "true"
    return key, coerce_scalar(value)


# =============================================================================
# Operations Command
# =============================================================================


@app.command()
def operations() -> None:
    """List every instruction with its method, URL and auth requirement."""
    registry = build_registry(get_settings().base_url)

    table = Table(title="Backpack Operations")
    table.add_column("Instruction", style="cyan")
    table.add_column("Method", style="magenta")
    table.add_column("Auth", style="yellow")
    table.add_column("URL", style="green")

    for descriptor in registry:
        table.add_row(
            descriptor.name,
            descriptor.method.value,
            "signed" if descriptor.auth_required else "public",
            descriptor.url,
        )

    console.print(table)


# =============================================================================
# Key Commands
# =============================================================================


@app.command()
def keygen(
    save: Annotated[
        bool,
        typer.Option("--save", help="Store the new pair in the credentials file"),
    ] = False,
    creds_dir: Annotated[
        Path | None,
        typer.Option("--creds-dir", help="Credentials directory (default ~/.bpxc)"),
    ] = None,
) -> None:
    """Generate a new Ed25519 key pair (base64).

    The public key must be registered with the exchange before use.
    """
    private_b64, public_b64 = generate_keypair()

    if save:
        path = save_creds(
            BackpackCredentials(private_key=private_b64, public_key=public_b64),
            creds_dir=creds_dir,
        )
        console.print(f"[green]✓ Saved key pair to {path}[/green]")
        console.print(f"Public key: {public_b64}")
        return

    console.print(f"Private key: {private_b64}")
    console.print(f"Public key:  {public_b64}")


@app.command("verify-keys")
def verify_keys(
    creds_dir: Annotated[
        Path | None,
        typer.Option("--creds-dir", help="Credentials directory (default ~/.bpxc)"),
    ] = None,
) -> None:
    """Check that the configured private and public key belong together."""
    try:
        creds = resolve_creds(creds_dir)
        KeyPair.from_base64(creds.private_key, creds.public_key)
    except BackpackError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1) from e

    console.print(f"[green]✓ Key pair valid[/green] (API key {creds.masked_api_key()})")


# =============================================================================
# Call Command
# =============================================================================


async def _call(instruction: str, params: dict[str, Any], creds_dir: Path | None) -> Any:
    settings = get_settings()
    registry = build_registry(settings.base_url)
    descriptor = registry.require(instruction)

    private_key = public_key = None
    window = None
    if descriptor.auth_required:
        creds = resolve_creds(creds_dir)
        private_key, public_key, window = creds.private_key, creds.public_key, creds.window_ms

    async with BackpackClient(
        private_key,
        public_key,
        settings=settings,
        registry=registry,
        window=window,
    ) as client:
        return await client.api(instruction, params)


@app.command()
def call(
    instruction: Annotated[str, typer.Argument(help="Instruction name, e.g. balanceQuery")],
    param: Annotated[
        list[str] | None,
        typer.Option("--param", "-p", help="Request parameter as key=value (repeatable)"),
    ] = None,
    creds_dir: Annotated[
        Path | None,
        typer.Option("--creds-dir", help="Credentials directory (default ~/.bpxc)"),
    ] = None,
) -> None:
    """Call one operation and print the normalized result.

    Example:
        bpxc call ticker -p symbol=SOL_USDC
        bpxc call orderQueryAll -p symbol=SOL_USDC
    """
    params = dict(parse_param(p) for p in param or [])

    try:
        result = asyncio.run(_call(instruction, params, creds_dir))
    except ExchangeApiError as e:
        codes = ", ".join(e.codes) or "unknown"
        console.print(f"[red]Exchange rejected {instruction}: {codes}[/red]")
        raise typer.Exit(1) from e
    except BackpackError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    if isinstance(result, httpx.Response):
        console.print(result.text)
    elif isinstance(result, str):
        console.print(result)
    else:
        console.print_json(json.dumps(result))


if __name__ == "__main__":
    app()
