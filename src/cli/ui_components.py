"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from typing import Mapping

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import AccountRecord


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida (solo en modo interactivo)."""

    title = Text("securden-bridge", style="bold cyan")
    subtitle = Text("Accounts • Passwords • Securden API", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_fields_table(title: str, fields: Mapping[str, object]) -> Table:
    table = Table(title=title)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    for key in sorted(fields):
        table.add_row(key, str(fields[key]))
    return table


def build_account_tables(record: AccountRecord) -> list[Table]:
    """Tabla principal con los escalares y una tabla por objeto anidado."""

    fields: dict[str, object] = dict(record.fields)
    if record.key_field:
        fields[f"key_value ({record.key_field})"] = record.key_value or ""
    tables = [build_fields_table("Account", fields)]
    for name in sorted(record.account):
        tables.append(build_fields_table(f"account.{name}", record.account[name]))
    return tables


def build_accounts_table(accounts: Mapping[str, Mapping[str, str]]) -> Table:
    """Una fila por cuenta; columnas = unión de campos."""

    columns = sorted({key for entry in accounts.values() for key in entry})
    table = Table(title="Accounts")
    table.add_column("ID", style="cyan", no_wrap=True)
    for column in columns:
        table.add_column(column, style="white")
    for account_id in sorted(accounts):
        entry = accounts[account_id]
        table.add_row(account_id, *(entry.get(column, "") for column in columns))
    return table


def build_failure_panel(status_code: int, message: str) -> Panel:
    body = Text(f"{status_code} - {message}")
    return Panel(body, title=Text("Warning", style="bold yellow"), border_style="yellow")
