"""Response Normalizer.

Decodifica en dos etapas:
1. body crudo -> árbol JSON genérico (dict/list/escalares);
2. aplanado/stringify con reglas declarativas.

El servidor reporta errores en dos dialectos: `{"error": {"code", "message"}}`
y `{"message": ...}` plano. `MESSAGE_RULES` los recorre en orden; un dialecto
nuevo es una entrada más en la tabla.

Los valores numéricos se convierten a texto decimal y pierden la distinción
int/float (`17` y `17.0` dan `"17"`).
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from core.domain.models import ErrorDetail, ResponseEnvelope

INVALID_STATUS_MESSAGE = "missing or invalid status code"
UNKNOWN_ERROR_MESSAGE = "unknown error"
SUCCESS_MESSAGE = "Success"

ENVELOPE_KEYS = frozenset({"status_code"})


@dataclass(frozen=True)
class MessageRule:
    """Ruta dentro del body donde un dialecto deja su mensaje."""

    dialect: str
    path: tuple[str, ...]


MESSAGE_RULES: tuple[MessageRule, ...] = (
    MessageRule("nested_error", ("error", "message")),
    MessageRule("flat_message", ("message",)),
)


class Shape(str, Enum):
    SINGLE = "single"
    MULTI = "multi"
    ENVELOPE = "envelope"


@dataclass(frozen=True)
class StatusPolicy:
    """Cómo interpreta un endpoint el `status_code` del body.

    - `requires_status`: si falta, la respuesta es inválida (500); si no, se
      asume 0 ("no reportado").
    - `accept_zero`: 0 cuenta como éxito (mutaciones).
    """

    requires_status: bool = True
    accept_zero: bool = False

    def is_success(self, status: int) -> bool:
        return status == 200 or (self.accept_zero and status == 0)


FETCH_POLICY = StatusPolicy(requires_status=True, accept_zero=False)
LISTING_POLICY = StatusPolicy(requires_status=False, accept_zero=True)
PASSWORDS_POLICY = StatusPolicy(requires_status=False, accept_zero=False)
MUTATION_POLICY = StatusPolicy(requires_status=False, accept_zero=True)


@dataclass
class Normalized:
    """Resultado de `normalize`.

    Solo uno de `fields`/`records` se rellena según la forma pedida, y solo
    si la respuesta fue exitosa.
    """

    envelope: ResponseEnvelope
    ok: bool
    tree: dict[str, Any] = field(default_factory=dict)
    fields: dict[str, str] = field(default_factory=dict)
    nested: dict[str, dict[str, str]] = field(default_factory=dict)
    records: dict[str, dict[str, str]] = field(default_factory=dict)

    @property
    def status_code(self) -> int:
        return self.envelope.status_code

    @property
    def message(self) -> str:
        return self.envelope.message


class BodyDecodeError(ValueError):
    pass


def decode_body(raw_body: bytes | str) -> dict[str, Any]:
    """Primera etapa: JSON -> objeto genérico."""

    try:
        tree = json.loads(raw_body)
    except (TypeError, ValueError) as exc:
        raise BodyDecodeError(f"Error parsing response JSON: {exc}") from exc
    if not isinstance(tree, dict):
        raise BodyDecodeError(
            f"Error parsing response JSON: expected an object, got {type(tree).__name__}"
        )
    return tree


def stringify(value: Any) -> str:
    """Texto de un escalar JSON (`null` -> cadena vacía)."""

    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def read_status(tree: dict[str, Any], policy: StatusPolicy) -> int | None:
    """Status del body; `None` si falta o no es numérico (según la política)."""

    if "status_code" not in tree:
        return None if policy.requires_status else 0
    raw = tree["status_code"]
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    if isinstance(raw, float) and not (math.isfinite(raw) and raw.is_integer()):
        return None
    return int(raw)


def _lookup(tree: dict[str, Any], path: tuple[str, ...]) -> Any:
    node: Any = tree
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def extract_message(tree: dict[str, Any], default: str = UNKNOWN_ERROR_MESSAGE) -> str:
    for rule in MESSAGE_RULES:
        value = _lookup(tree, rule.path)
        if isinstance(value, str):
            return value
    return default


def extract_error(tree: dict[str, Any]) -> ErrorDetail | None:
    error = tree.get("error")
    if not isinstance(error, dict):
        return None
    message = error.get("message")
    return ErrorDetail(code=error.get("code"), message=message if isinstance(message, str) else "")


def flatten_single(tree: dict[str, Any]) -> tuple[dict[str, str], dict[str, dict[str, str]]]:
    """Aplana un record: escalares a `fields`, objetos anidados a `nested`."""

    fields: dict[str, str] = {}
    nested: dict[str, dict[str, str]] = {}
    for key, value in tree.items():
        if key in ENVELOPE_KEYS:
            continue
        if isinstance(value, dict):
            nested[key] = {k: stringify(v) for k, v in value.items()}
        else:
            fields[key] = stringify(value)
    return fields, nested


def flatten_multi(tree: dict[str, Any]) -> dict[str, dict[str, str]]:
    """Aplana `id -> objeto`; entradas que no son objeto se ignoran."""

    return {
        key: {k: stringify(v) for k, v in value.items()}
        for key, value in tree.items()
        if isinstance(value, dict)
    }


class PayloadError(ValueError):
    pass


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _as_int_list(value: Any) -> list[int]:
    if not isinstance(value, list):
        return []
    return [i for i in (_as_int(v) for v in value) if i is not None]


def _as_string_map(value: Any) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise PayloadError(f"expected an object, got {type(value).__name__}")
    return {str(k): stringify(v) for k, v in value.items()}


@dataclass(frozen=True)
class PayloadRule:
    """Clave del body y conversión de un dato de respuesta de mutación/listado."""

    key: str
    convert: Callable[[Any], Any]


PAYLOAD_RULES: dict[str, PayloadRule] = {
    "message": PayloadRule("message", _as_text),
    "created_id": PayloadRule("ID", _as_int),
    "deleted_ids": PayloadRule("IDs deleted successfully", _as_int_list),
    "passwords": PayloadRule("passwords", _as_string_map),
}


def extract_payload(tree: dict[str, Any], name: str) -> Any:
    """Aplica la regla `name` de `PAYLOAD_RULES` sobre el body.

    Lanza `PayloadError` si el valor no tiene la forma esperada.
    """

    rule = PAYLOAD_RULES[name]
    try:
        return rule.convert(tree.get(rule.key))
    except PayloadError as exc:
        raise PayloadError(f"Failed to parse response: `{rule.key}`: {exc}") from exc


def normalize(
    raw_body: bytes | str,
    shape: Shape = Shape.SINGLE,
    policy: StatusPolicy = FETCH_POLICY,
) -> Normalized:
    """Normaliza un body crudo.

    Nunca lanza: los errores de parseo se devuelven como status 500.
    """

    try:
        tree = decode_body(raw_body)
    except BodyDecodeError as exc:
        return Normalized(ResponseEnvelope(status_code=500, message=str(exc)), ok=False)

    status = read_status(tree, policy)
    if status is None:
        return Normalized(
            ResponseEnvelope(status_code=500, message=INVALID_STATUS_MESSAGE),
            ok=False,
            tree=tree,
        )

    error = extract_error(tree)
    if not policy.is_success(status):
        envelope = ResponseEnvelope(status_code=status, message=extract_message(tree), error=error)
        return Normalized(envelope, ok=False, tree=tree)

    message = tree.get("message")
    envelope = ResponseEnvelope(
        status_code=status,
        message=message if isinstance(message, str) else SUCCESS_MESSAGE,
        error=error,
    )
    result = Normalized(envelope, ok=True, tree=tree)
    if shape is Shape.SINGLE:
        result.fields, result.nested = flatten_single(tree)
    elif shape is Shape.MULTI:
        result.records = flatten_multi(tree)
    return result
