"""Doctor command for environment diagnostics."""

from __future__ import annotations

import httpx
import typer
from rich.console import Console
from rich.table import Table

from adapters.trust import TrustResolver
from cli.ui_components import print_banner
from core.config import SecurdenSettings, is_valid_server_url, load_settings, write_user_env_vars
from core.certificates import is_valid_pem_file
from core.errors import ConfigurationError
from core.interfaces.transport import TrustMode

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def _check_http(settings: SecurdenSettings) -> tuple[TrustMode, bool, str]:
    resolved = TrustResolver(settings).resolve()
    try:
        with resolved.client as client:
            response = client.get(settings.server_url)
        return resolved.mode, True, f"HTTP {response.status_code}"
    except httpx.HTTPError as exc:
        return resolved.mode, False, str(exc)


@app.command()
def run(ctx: typer.Context) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    print_banner(_console)

    table = Table(title="securden-bridge Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    overrides = ctx.obj or {}
    try:
        settings = load_settings(**overrides)
    except ConfigurationError as exc:
        table.add_row("Configuration", "FAIL", str(exc))
        _console.print(table)
        raise typer.Exit(code=2) from exc

    # Config
    table.add_row(
        "Server URL",
        "OK" if is_valid_server_url(settings.server_url) else "FAIL",
        settings.server_url,
    )
    table.add_row("Auth token", "OK" if settings.token else "FAIL", "set" if settings.token else "empty")
    if not settings.certificate:
        table.add_row("Certificate", "AUTO", "Fetched from the server on each request")
    elif is_valid_pem_file(settings.certificate):
        table.add_row("Certificate", "OK", settings.certificate)
    else:
        table.add_row("Certificate", "FAIL", f"{settings.certificate} is not a readable PEM certificate")

    # Connectivity (best-effort)
    mode, ok_http, detail_http = _check_http(settings)
    table.add_row("TLS trust mode", "OK" if mode is not TrustMode.INSECURE else "WARN", mode.value)
    table.add_row("HTTP connectivity", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if mode is TrustMode.INSECURE:
        _console.print(
            "\n[yellow]Note:[/yellow] Requests will run without TLS verification. "
            "Set SECURDEN_CERTIFICATE to an absolute path of the server's PEM certificate."
        )


@app.command(name="setup")
def setup() -> None:
    """Interactive connection setup (stores config in the user config .env)."""

    server_url = typer.prompt("Server URL (e.g. https://company.securden.com:5959)").strip()
    if not is_valid_server_url(server_url):
        raise typer.BadParameter("The provided server URL is not valid.")
    authtoken = typer.prompt("API auth token", hide_input=True, confirmation_prompt=False).strip()
    certificate = typer.prompt("Certificate path (blank = fetch from server)", default="", show_default=False).strip()

    if not authtoken:
        raise typer.BadParameter("authtoken is required")
    if certificate and not is_valid_pem_file(certificate):
        raise typer.BadParameter("The provided certificate is not valid or file not exists.")

    env_path = write_user_env_vars(
        {
            "SECURDEN_SERVER_URL": server_url,
            "SECURDEN_AUTHTOKEN": authtoken,
            "SECURDEN_CERTIFICATE": certificate,
        }
    )

    _console.print(f"[green]Saved connection config to:[/green] {env_path}")
