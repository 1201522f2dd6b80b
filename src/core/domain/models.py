"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Validación estricta y documentación autocontenida (Field) sin acoplar el
  Core a librerías de I/O.
- Serialización estable de los records normalizados (CLI `--json`, tests).

Nota:
- Los modelos `*Request`/`AccountQuery` describen lo que el host (la capa de
  schema) pasa a cada operación; los `*Record` lo que lee de vuelta.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class ErrorDetail(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: Any = Field(default=None, description="Código de error del servidor (int o str).")
    message: str = Field(default="", description="Mensaje de error del servidor.")


class ResponseEnvelope(BaseModel):
    """Status + mensaje extraídos de cualquier respuesta."""

    status_code: int = Field(..., description="Status reportado en el body (0 = no reportado).")
    message: str = Field(default="", description="Mensaje legible para el usuario.")
    error: ErrorDetail | None = Field(
        default=None,
        description="Error estructurado si el servidor usa el dialecto `{error:{code,message}}`.",
    )


# --- Entradas (lo que selecciona la capa de schema) -------------------------


class AccountQuery(BaseModel):
    account_id: int | None = Field(default=None, description="Unique identifier of the account.")
    account_name: str | None = Field(default=None, description="The name associated with the account.")
    account_title: str | None = Field(default=None, description="Title or designation of the account.")
    account_type: str | None = Field(default=None, description="Type or category of the account.")
    key_field: str | None = Field(
        default=None,
        description="Campo concreto a exponer como `key_value` (p.ej. `password`).",
    )


class AddAccountRequest(BaseModel):
    account_title: str | None = None
    account_name: str | None = None
    account_type: str | None = None
    password: str | None = None
    personal_account: bool | None = None
    ipaddress: str | None = None
    folder_id: int | None = None
    notes: str | None = None
    tags: str | None = None
    account_expiration_date: str | None = None
    distinguished_name: str | None = None
    account_alias: str | None = None
    domain_name: str | None = None


class EditAccountRequest(BaseModel):
    account_id: int | None = None
    account_title: str | None = None
    account_name: str | None = None
    account_type: str | None = None
    ipaddress: str | None = None
    notes: str | None = None
    tags: str | None = None
    personal_account: bool | None = None
    folder_id: int | None = None
    overwrite_additional_fields: bool | None = None
    account_expiration_date: str | None = None
    distinguished_name: str | None = None
    account_alias: str | None = None
    domain_name: str | None = None


class DeleteAccountsRequest(BaseModel):
    account_ids: list[int | None] = Field(default_factory=list)
    reason: str | None = None
    delete_permanently: bool | None = None


# --- Records normalizados ----------------------------------------------------


class AccountRecord(BaseModel):
    """Una cuenta aplanada.

    `fields` contiene todo escalar del nivel superior como string; `account`
    contiene cada objeto anidado como mapa `str -> str`.
    """

    fields: dict[str, str] = Field(default_factory=dict)
    account: dict[str, dict[str, str]] = Field(default_factory=dict)
    key_field: str | None = None
    key_value: str | None = None


class AccountsRecord(BaseModel):
    accounts: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="account_id -> (campo -> valor).",
    )


class PasswordsRecord(BaseModel):
    passwords: dict[str, str] = Field(default_factory=dict, description="account_id -> password.")


class AddAccountRecord(BaseModel):
    id: int | None = None
    message: str = ""


class EditAccountRecord(BaseModel):
    message: str = ""


class DeleteAccountsRecord(BaseModel):
    message: str = ""
    deleted_accounts: list[int] = Field(default_factory=list)


RecordT = TypeVar("RecordT", bound=BaseModel)


class OperationResult(BaseModel, Generic[RecordT]):
    """Resultado de una operación de la fachada: `(record, status, message)`.

    Un fallo lleva el record vacío de su tipo, status distinto de 200 y un
    mensaje legible.
    """

    record: RecordT
    status_code: int
    message: str

    def succeeded(self, *, accept_zero: bool = False) -> bool:
        if accept_zero and self.status_code == 0:
            return True
        return self.status_code == 200
