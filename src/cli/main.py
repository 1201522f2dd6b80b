"""CLI principal (Typer).

Cada comando ejecuta una operación de `SecurdenOperations` y muestra el
record (tabla Rich o JSON). Los fallos se muestran como warning
`"<status> - <mensaje>"` y salen con código 1; una configuración inválida
sale con código 2 antes de hacer ningún request.
"""

from __future__ import annotations

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from cli import doctor
from cli.ui_components import (
    build_account_tables,
    build_accounts_table,
    build_failure_panel,
    build_fields_table,
)
from core.config import load_settings
from core.domain.models import (
    AccountQuery,
    AddAccountRequest,
    DeleteAccountsRequest,
    EditAccountRequest,
    OperationResult,
)
from core.errors import ConfigurationError
from core.services.operations import SecurdenOperations

app = typer.Typer(no_args_is_help=True, help="Manage Securden accounts and credentials.")
app.add_typer(doctor.app, name="doctor")

_console = Console()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    server_url: Optional[str] = typer.Option(None, "--server-url", help="Overrides SECURDEN_SERVER_URL."),
    authtoken: Optional[str] = typer.Option(None, "--authtoken", help="Overrides SECURDEN_AUTHTOKEN."),
    certificate: Optional[str] = typer.Option(None, "--certificate", help="Overrides SECURDEN_CERTIFICATE."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    configure_logging(verbose)
    ctx.obj = {"server_url": server_url, "authtoken": authtoken, "certificate": certificate}


def _operations(ctx: typer.Context) -> SecurdenOperations:
    overrides = ctx.obj or {}
    try:
        settings = load_settings(**overrides)
    except ConfigurationError as exc:
        _console.print(f"[red]Invalid configuration:[/red] {exc}")
        raise typer.Exit(code=2) from exc
    return SecurdenOperations(settings)


def _check(result: OperationResult, *, accept_zero: bool = False) -> None:
    if not result.succeeded(accept_zero=accept_zero):
        _console.print(build_failure_panel(result.status_code, result.message))
        raise typer.Exit(code=1)


@app.command()
def account(
    ctx: typer.Context,
    account_id: Optional[int] = typer.Option(None, "--account-id"),
    account_name: Optional[str] = typer.Option(None, "--account-name"),
    account_title: Optional[str] = typer.Option(None, "--account-title"),
    account_type: Optional[str] = typer.Option(None, "--account-type"),
    key_field: Optional[str] = typer.Option(None, "--key-field", help="Field exposed as key_value."),
    as_json: bool = typer.Option(False, "--json", help="Print the record as JSON."),
) -> None:
    """Retrieve one account's details."""

    query = AccountQuery(
        account_id=account_id,
        account_name=account_name,
        account_title=account_title,
        account_type=account_type,
        key_field=key_field,
    )
    result = _operations(ctx).get_account(query)
    _check(result)
    if as_json:
        _console.print_json(result.record.model_dump_json())
        return
    for table in build_account_tables(result.record):
        _console.print(table)


@app.command()
def accounts(
    ctx: typer.Context,
    account_ids: list[int] = typer.Option(..., "--id", help="Account ID (repeatable)."),
    as_json: bool = typer.Option(False, "--json"),
) -> None:
    """Retrieve several accounts keyed by ID."""

    result = _operations(ctx).get_accounts(list(account_ids))
    _check(result)
    if as_json:
        _console.print_json(result.record.model_dump_json())
        return
    _console.print(build_accounts_table(result.record.accounts))


@app.command()
def passwords(
    ctx: typer.Context,
    account_ids: list[str] = typer.Option(..., "--id", help="Account ID (repeatable)."),
    reveal: bool = typer.Option(False, "--reveal", help="Show the passwords instead of masking them."),
    as_json: bool = typer.Option(False, "--json"),
) -> None:
    """Retrieve passwords for several accounts."""

    result = _operations(ctx).get_passwords(list(account_ids))
    _check(result)
    values = result.record.passwords
    if not reveal:
        values = {k: "********" for k in values}
    if as_json:
        _console.print_json(data=values)
        return
    _console.print(build_fields_table("Passwords", values))


@app.command(name="add-account")
def add_account(
    ctx: typer.Context,
    account_title: str = typer.Option(..., "--account-title"),
    account_name: str = typer.Option(..., "--account-name"),
    account_type: str = typer.Option(..., "--account-type"),
    password: Optional[str] = typer.Option(None, "--password"),
    personal_account: Optional[bool] = typer.Option(None, "--personal-account/--shared-account"),
    ipaddress: Optional[str] = typer.Option(None, "--ipaddress"),
    folder_id: Optional[int] = typer.Option(None, "--folder-id"),
    notes: Optional[str] = typer.Option(None, "--notes"),
    tags: Optional[str] = typer.Option(None, "--tags"),
    account_expiration_date: Optional[str] = typer.Option(None, "--account-expiration-date"),
    distinguished_name: Optional[str] = typer.Option(None, "--distinguished-name"),
    account_alias: Optional[str] = typer.Option(None, "--account-alias"),
    domain_name: Optional[str] = typer.Option(None, "--domain-name"),
) -> None:
    """Create an account."""

    request = AddAccountRequest(
        account_title=account_title,
        account_name=account_name,
        account_type=account_type,
        password=password,
        personal_account=personal_account,
        ipaddress=ipaddress,
        folder_id=folder_id,
        notes=notes,
        tags=tags,
        account_expiration_date=account_expiration_date,
        distinguished_name=distinguished_name,
        account_alias=account_alias,
        domain_name=domain_name,
    )
    result = _operations(ctx).add_account(request)
    _check(result, accept_zero=True)
    _console.print(build_fields_table("Account created", result.record.model_dump()))


@app.command(name="edit-account")
def edit_account(
    ctx: typer.Context,
    account_id: int = typer.Option(..., "--account-id"),
    account_title: Optional[str] = typer.Option(None, "--account-title"),
    account_name: Optional[str] = typer.Option(None, "--account-name"),
    account_type: Optional[str] = typer.Option(None, "--account-type"),
    ipaddress: Optional[str] = typer.Option(None, "--ipaddress"),
    notes: Optional[str] = typer.Option(None, "--notes"),
    tags: Optional[str] = typer.Option(None, "--tags"),
    personal_account: Optional[bool] = typer.Option(None, "--personal-account/--shared-account"),
    folder_id: Optional[int] = typer.Option(None, "--folder-id"),
    overwrite_additional_fields: Optional[bool] = typer.Option(
        None, "--overwrite-additional-fields/--keep-additional-fields"
    ),
    account_expiration_date: Optional[str] = typer.Option(None, "--account-expiration-date"),
    distinguished_name: Optional[str] = typer.Option(None, "--distinguished-name"),
    account_alias: Optional[str] = typer.Option(None, "--account-alias"),
    domain_name: Optional[str] = typer.Option(None, "--domain-name"),
) -> None:
    """Edit an existing account."""

    request = EditAccountRequest(
        account_id=account_id,
        account_title=account_title,
        account_name=account_name,
        account_type=account_type,
        ipaddress=ipaddress,
        notes=notes,
        tags=tags,
        personal_account=personal_account,
        folder_id=folder_id,
        overwrite_additional_fields=overwrite_additional_fields,
        account_expiration_date=account_expiration_date,
        distinguished_name=distinguished_name,
        account_alias=account_alias,
        domain_name=domain_name,
    )
    result = _operations(ctx).edit_account(request)
    _check(result, accept_zero=True)
    _console.print(build_fields_table("Account updated", result.record.model_dump()))


@app.command(name="delete-accounts")
def delete_accounts(
    ctx: typer.Context,
    account_ids: list[int] = typer.Option(..., "--id", help="Account ID (repeatable)."),
    reason: Optional[str] = typer.Option(None, "--reason"),
    delete_permanently: bool = typer.Option(False, "--delete-permanently"),
) -> None:
    """Delete accounts (moved to trash unless --delete-permanently)."""

    request = DeleteAccountsRequest(
        account_ids=list(account_ids),
        reason=reason,
        delete_permanently=delete_permanently,
    )
    result = _operations(ctx).delete_accounts(request)
    _check(result, accept_zero=True)
    _console.print(
        build_fields_table(
            "Accounts deleted",
            {
                "message": result.record.message,
                "deleted_accounts": ", ".join(str(i) for i in result.record.deleted_accounts),
            },
        )
    )


def run() -> None:
    app()
