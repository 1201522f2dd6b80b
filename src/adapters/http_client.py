"""Request Builder sobre httpx.

Por qué un wrapper:
- Estandariza headers (token, User-Agent), codificación de parámetros por
  método y el reintento único sin verificación TLS.
- Facilita testeo: el cliente sale de un `ClientResolver` sustituible.

Codificación:
- GET/DELETE: query string. Strings vacíos se omiten, enteros en decimal,
  booleanos `true`/`false`, listas de enteros como claves repetidas.
- POST/PUT/PATCH: body JSON con `Content-Type: application/json`; las listas
  de identificadores se desenvuelven a enteros planos sin entradas nulas.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from core.config import SecurdenSettings
from core.domain.params import BoolParam, IntListParam, IntParam, ParameterBag, ParamValue, StrParam
from core.errors import BridgeTransportError, RequestBuildError, SerializationError
from core.interfaces.transport import ClientResolver

logger = logging.getLogger(__name__)

AUTH_HEADER = "authtoken"

QUERY_METHODS = frozenset({"GET", "DELETE"})
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def render_query(params: ParameterBag) -> list[tuple[str, str]]:
    """Parámetros como pares de query string, ordenados por clave."""

    pairs: list[tuple[str, str]] = []
    for key in params.keys():
        pairs.extend((key, text) for text in _query_values(params.get(key)))
    return pairs


def _query_values(param: ParamValue | None) -> list[str]:
    if param is None:
        return []
    if isinstance(param, StrParam):
        return [param.value] if param.value else []
    if isinstance(param, IntParam):
        return [] if param.value is None else [str(param.value)]
    if isinstance(param, BoolParam):
        return [] if param.value is None else ["true" if param.value else "false"]
    if isinstance(param, IntListParam):
        return [str(v) for v in param.known()]
    raise TypeError(f"unsupported parameter type: {type(param).__name__}")


def render_json(params: ParameterBag) -> dict[str, Any]:
    """Parámetros como objeto JSON (listas de ids desenvueltas)."""

    body: dict[str, Any] = {}
    for key, param in params.items():
        if isinstance(param, IntListParam):
            body[key] = param.known()
        elif isinstance(param, (StrParam, IntParam, BoolParam)):
            body[key] = param.value
        else:
            raise TypeError(f"unsupported parameter type: {type(param).__name__}")
    return body


def build_request(
    client: httpx.Client,
    settings: SecurdenSettings,
    params: ParameterBag,
    path: str,
    method: str,
) -> httpx.Request:
    """Construye el request final sobre `settings.server_url + path`."""

    method = method.upper()
    try:
        url = httpx.URL(settings.server_url + path)
    except httpx.InvalidURL as exc:
        raise RequestBuildError(f"failed to parse URL: {exc}") from exc

    headers = {
        AUTH_HEADER: settings.token,
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }

    if method in QUERY_METHODS:
        return client.build_request(method, url, params=render_query(params), headers=headers)

    if method in BODY_METHODS:
        try:
            content = json.dumps(render_json(params)).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"failed to serialize request body: {exc}") from exc
        headers["Content-Type"] = "application/json"
        return client.build_request(method, url, content=content, headers=headers)

    raise RequestBuildError(f"unsupported HTTP method: {method}")


def send_request(
    resolver: ClientResolver,
    settings: SecurdenSettings,
    params: ParameterBag,
    path: str,
    method: str,
) -> bytes:
    """Envía el request y devuelve el body crudo.

    Si el envío falla a nivel de transporte con un cliente que verificaba
    TLS, se reintenta una vez sin verificación antes de propagar el error.
    """

    logger.debug("%s %s params=%s", method.upper(), path, params.keys())
    resolved = resolver.resolve()
    with resolved.client as client:
        request = build_request(client, settings, params, path, method)
        try:
            response = client.send(request)
            return response.read()
        except httpx.TransportError as exc:
            if not resolved.mode.verifies:
                raise BridgeTransportError(f"request failed: {exc}") from exc
            logger.warning(
                "Request to %s failed with %s transport (%s); retrying without TLS verification",
                path,
                resolved.mode.value,
                exc,
            )

    with resolver.insecure() as client:
        request = build_request(client, settings, params, path, method)
        try:
            response = client.send(request)
            return response.read()
        except httpx.TransportError as exc:
            raise BridgeTransportError(f"request failed even with insecure client: {exc}") from exc
