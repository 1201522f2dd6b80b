"""Configuración de conexión con el servidor Securden.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Se construye una sola vez y se pasa de forma explícita a cada operación;
  el modelo es inmutable (`frozen`).
"""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path
from urllib.parse import urlsplit

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.certificates import is_valid_pem_file
from core.errors import ConfigurationError

DEFAULT_API_VERSION = "1.0.0"

_HOSTNAME_RE = re.compile(
    r"^(localhost|([a-zA-Z0-9-]+\.)+[a-zA-Z]{2,}|(\d{1,3}\.){3}\d{1,3})$"
)


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "securden-bridge"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "securden-bridge"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "securden-bridge"
    return Path.home() / ".config" / "securden-bridge"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        try:
            existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))
        except OSError:
            existing = {}

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# securden-bridge user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


def is_valid_server_url(value: str) -> bool:
    """Valida la URL base del servidor.

    Reglas:
    - esquema http o https y host presente;
    - el path no puede terminar en `/`;
    - puerto explícito entre 1 y 65535;
    - host `localhost`, un FQDN con TLD alfabético o una IPv4.
    """

    try:
        parsed = urlsplit(value)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    if parsed.path.endswith("/"):
        return False

    host, sep, port_str = parsed.netloc.rpartition("@")[2].partition(":")
    if not sep or not host or not port_str:
        return False
    if not port_str.isdigit():
        return False
    port = int(port_str)
    if port < 1 or port > 65535:
        return False
    return bool(_HOSTNAME_RE.match(host))


class SecurdenSettings(BaseSettings):
    """Configuración de conexión (escrita una vez, leída en cada request).

    - `server_url`: p.ej. `https://company.securden.com:5959`.
    - `authtoken`: token de la API, se envía tal cual en cada request.
    - `certificate`: ruta a un PEM del servidor; vacío = obtenerlo del
      propio servidor.
    """

    model_config = SettingsConfigDict(
        env_prefix="SECURDEN_",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    server_url: str = Field(
        ...,
        description="Securden Server URL. Example: https://company.securden.com:5959",
    )
    authtoken: SecretStr = Field(
        ...,
        description="Securden API Authentication Token.",
    )
    certificate: str = Field(
        default="",
        description="Ruta absoluta al certificado PEM del servidor (opcional).",
    )
    api_version: str = Field(
        default=DEFAULT_API_VERSION,
        min_length=1,
        description="Versión de la API/plugin; algunas operaciones dependen de ella.",
    )
    pinned_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout de los clientes con certificado fijado (segundos).",
    )
    probe_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout de la conexión TLS que obtiene el certificado del servidor.",
    )
    user_agent: str = Field(
        default=f"securden-bridge/{DEFAULT_API_VERSION}",
        min_length=1,
        description="User-Agent de las peticiones.",
    )

    @field_validator("server_url")
    @classmethod
    def _check_server_url(cls, value: str) -> str:
        value = value.strip()
        if not is_valid_server_url(value):
            raise ValueError("The provided server URL is not valid.")
        return value

    @field_validator("certificate")
    @classmethod
    def _check_certificate(cls, value: str) -> str:
        value = (value or "").strip()
        if value.lower() == "none":
            return ""
        if value and not is_valid_pem_file(value):
            raise ValueError("The provided certificate is not valid or file not exists.")
        return value

    @property
    def token(self) -> str:
        return self.authtoken.get_secret_value()

    @property
    def uses_tls(self) -> bool:
        return urlsplit(self.server_url).scheme == "https"


def load_settings(**overrides: object) -> SecurdenSettings:
    """Construye `SecurdenSettings` traduciendo errores de validación.

    Los overrides con valor `None` se ignoran para que los flags de la CLI no
    pisen las variables de entorno.
    """

    values = {k: v for k, v in overrides.items() if v is not None}
    try:
        return SecurdenSettings(**values)
    except ValidationError as exc:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(messages) from exc
