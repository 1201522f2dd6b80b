"""Fachada de operaciones contra la API de Securden.

Cada operación es lineal: ensamblar parámetros -> request (Trust Resolver +
Request Builder) -> normalizar -> `OperationResult(record, status, message)`.

Los errores nunca se propagan: cualquier `BridgeError` se devuelve como
status 500 con el mensaje subyacente, y los errores del servidor se devuelven
tal cual con su status. No hay reintentos de errores de negocio.
"""

from __future__ import annotations

import logging
import re
from typing import TypeVar

from pydantic import BaseModel

from adapters.http_client import send_request
from adapters.trust import TrustResolver
from core.config import DEFAULT_API_VERSION, SecurdenSettings
from core.domain.models import (
    AccountQuery,
    AccountRecord,
    AccountsRecord,
    AddAccountRecord,
    AddAccountRequest,
    DeleteAccountsRecord,
    DeleteAccountsRequest,
    EditAccountRecord,
    EditAccountRequest,
    OperationResult,
    PasswordsRecord,
)
from core.domain.params import ACCOUNT_IDS_KEY, ParameterBag
from core.errors import BridgeError
from core.interfaces.transport import ClientResolver
from core.services.normalizer import (
    FETCH_POLICY,
    LISTING_POLICY,
    MUTATION_POLICY,
    PASSWORDS_POLICY,
    SUCCESS_MESSAGE,
    Normalized,
    PayloadError,
    Shape,
    StatusPolicy,
    extract_payload,
    normalize,
)

logger = logging.getLogger(__name__)

GET_ACCOUNT_PATH = "/secretsmanagement/get_account"
GET_ACCOUNTS_PATH = "/secretsmanagement/get_accounts"
GET_PASSWORDS_PATH = "/api/get_multiple_accounts_passwords"
ADD_ACCOUNT_PATH = "/api/add_account"
EDIT_ACCOUNT_PATH = "/api/edit_account"
DELETE_ACCOUNTS_PATH = "/api/delete_accounts"

UNSUPPORTED_FEATURE_STATUS = 410

ACCOUNT_ID_PATTERN = re.compile(r"-?[0-9]+")

RecordT = TypeVar("RecordT", bound=BaseModel)


def _failure(record_type: type[RecordT], status_code: int, message: str) -> OperationResult[RecordT]:
    return OperationResult[record_type](record=record_type(), status_code=status_code, message=message)


def parse_account_id(raw: str) -> int:
    """Identificador en decimal estricto: sin espacios, signo `+` ni `_`."""

    text = str(raw)
    if not ACCOUNT_ID_PATTERN.fullmatch(text):
        raise ValueError(f"invalid literal for account ID: {text!r}")
    return int(text)


class SecurdenOperations:
    """Operaciones de cuentas y credenciales.

    `settings` es la configuración inmutable del proceso; `resolver` decide el
    transporte TLS de cada llamada (por defecto `TrustResolver`).
    """

    def __init__(self, settings: SecurdenSettings, resolver: ClientResolver | None = None) -> None:
        self._settings = settings
        self._resolver = resolver or TrustResolver(settings)

    @property
    def settings(self) -> SecurdenSettings:
        return self._settings

    def _call(
        self,
        params: ParameterBag,
        path: str,
        method: str,
        *,
        shape: Shape,
        policy: StatusPolicy,
    ) -> Normalized | str:
        """Envía y normaliza; devuelve el mensaje de error si falla el envío."""

        try:
            body = send_request(self._resolver, self._settings, params, path, method)
        except BridgeError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            return f"Error in API call: {exc}"
        return normalize(body, shape, policy)

    def get_account(self, query: AccountQuery) -> OperationResult[AccountRecord]:
        params = ParameterBag()
        if query.account_id:
            params.set_int("account_id", query.account_id)
        params.set_str("account_name", query.account_name)
        params.set_str("account_title", query.account_title)
        params.set_str("account_type", query.account_type)
        params.set_str("key_field", query.key_field)

        result = self._call(params, GET_ACCOUNT_PATH, "GET", shape=Shape.SINGLE, policy=FETCH_POLICY)
        if isinstance(result, str):
            return _failure(AccountRecord, 500, result)
        if not result.ok:
            return _failure(AccountRecord, result.status_code, result.message)

        record = AccountRecord(fields=result.fields, account=result.nested)
        if query.key_field:
            record.key_field = query.key_field
            record.key_value = result.fields.get(query.key_field)
        return OperationResult[AccountRecord](
            record=record, status_code=result.status_code, message=SUCCESS_MESSAGE
        )

    def get_accounts(self, account_ids: list[int | None]) -> OperationResult[AccountsRecord]:
        params = ParameterBag()
        params.set_int_list(ACCOUNT_IDS_KEY, account_ids)

        result = self._call(params, GET_ACCOUNTS_PATH, "POST", shape=Shape.MULTI, policy=LISTING_POLICY)
        if isinstance(result, str):
            return _failure(AccountsRecord, 500, result)
        if not result.ok:
            return _failure(AccountsRecord, result.status_code, result.message)
        return OperationResult[AccountsRecord](
            record=AccountsRecord(accounts=result.records), status_code=200, message=SUCCESS_MESSAGE
        )

    def get_passwords(self, account_ids: list[str]) -> OperationResult[PasswordsRecord]:
        if self._settings.api_version != DEFAULT_API_VERSION:
            return _failure(PasswordsRecord, UNSUPPORTED_FEATURE_STATUS, "The feature is no more supported")

        ids: list[int | None] = []
        for raw in account_ids:
            try:
                ids.append(parse_account_id(raw))
            except ValueError as exc:
                return _failure(PasswordsRecord, 400, f"Invalid account ID format: {exc}")

        params = ParameterBag()
        params.set_int_list(ACCOUNT_IDS_KEY, ids)

        result = self._call(params, GET_PASSWORDS_PATH, "POST", shape=Shape.ENVELOPE, policy=PASSWORDS_POLICY)
        if isinstance(result, str):
            return _failure(PasswordsRecord, 500, result)
        if not result.ok:
            return _failure(PasswordsRecord, result.status_code, result.message)

        try:
            passwords = extract_payload(result.tree, "passwords")
        except PayloadError as exc:
            return _failure(PasswordsRecord, 500, str(exc))
        return OperationResult[PasswordsRecord](
            record=PasswordsRecord(passwords=passwords), status_code=result.status_code, message=SUCCESS_MESSAGE
        )

    def add_account(self, request: AddAccountRequest) -> OperationResult[AddAccountRecord]:
        params = ParameterBag()
        params.set_str("account_name", request.account_name)
        params.set_str("account_title", request.account_title)
        params.set_str("account_type", request.account_type)
        params.set_str("ipaddress", request.ipaddress)
        params.set_str("notes", request.notes)
        params.set_str("tags", request.tags)
        params.set_bool("personal_account", request.personal_account)
        params.set_int("folder_id", request.folder_id)
        params.set_str("password", request.password)
        params.set_str("account_expiration_date", request.account_expiration_date)
        params.set_str("distinguished_name", request.distinguished_name)
        params.set_str("account_alias", request.account_alias)
        params.set_str("domain_name", request.domain_name)

        result = self._call(params, ADD_ACCOUNT_PATH, "POST", shape=Shape.ENVELOPE, policy=MUTATION_POLICY)
        if isinstance(result, str):
            return _failure(AddAccountRecord, 500, result)
        if not result.ok:
            return _failure(AddAccountRecord, result.status_code, result.message)

        message = extract_payload(result.tree, "message")
        record = AddAccountRecord(id=extract_payload(result.tree, "created_id"), message=message)
        return OperationResult[AddAccountRecord](record=record, status_code=200, message=message)

    def edit_account(self, request: EditAccountRequest) -> OperationResult[EditAccountRecord]:
        params = ParameterBag()
        params.set_int("account_id", request.account_id)
        params.set_str("account_title", request.account_title)
        params.set_str("account_name", request.account_name)
        params.set_str("account_type", request.account_type)
        params.set_str("ipaddress", request.ipaddress)
        params.set_str("notes", request.notes)
        params.set_str("tags", request.tags)
        params.set_bool("personal_account", request.personal_account)
        params.set_int("folder_id", request.folder_id)
        params.set_bool("overwrite_additional_fields", request.overwrite_additional_fields)
        params.set_str("account_expiration_date", request.account_expiration_date)
        params.set_str("distinguished_name", request.distinguished_name)
        params.set_str("account_alias", request.account_alias)
        params.set_str("domain_name", request.domain_name)

        result = self._call(params, EDIT_ACCOUNT_PATH, "PUT", shape=Shape.ENVELOPE, policy=MUTATION_POLICY)
        if isinstance(result, str):
            return _failure(EditAccountRecord, 500, result)
        if not result.ok:
            return _failure(EditAccountRecord, result.status_code, result.message)

        message = extract_payload(result.tree, "message")
        return OperationResult[EditAccountRecord](
            record=EditAccountRecord(message=message), status_code=200, message=message
        )

    def delete_accounts(self, request: DeleteAccountsRequest) -> OperationResult[DeleteAccountsRecord]:
        params = ParameterBag()
        params.set_int_list(ACCOUNT_IDS_KEY, request.account_ids)
        params.set_str("reason", request.reason)
        if request.delete_permanently:
            params.set_bool("delete_permanently", True)

        result = self._call(params, DELETE_ACCOUNTS_PATH, "DELETE", shape=Shape.ENVELOPE, policy=MUTATION_POLICY)
        if isinstance(result, str):
            return _failure(DeleteAccountsRecord, 500, result)
        if not result.ok:
            return _failure(DeleteAccountsRecord, result.status_code, result.message)

        message = extract_payload(result.tree, "message")
        record = DeleteAccountsRecord(
            message=message, deleted_accounts=extract_payload(result.tree, "deleted_ids")
        )
        return OperationResult[DeleteAccountsRecord](record=record, status_code=200, message=message)
