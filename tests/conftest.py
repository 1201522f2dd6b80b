"""Fixtures compartidas.

- Certificados autofirmados generados en memoria con `cryptography`.
- `settings_factory`: configuración aislada del entorno y de ficheros `.env`.
- `MockResolver`: `ClientResolver` sobre `httpx.MockTransport`.
"""

from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from core.config import SecurdenSettings
from core.interfaces.transport import ResolvedClient, TrustMode

Handler = Callable[[httpx.Request], httpx.Response]


def issue_certificate(common_name: str = "localhost") -> tuple[ec.EllipticCurvePrivateKey, x509.Certificate]:
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.SubjectAlternativeName([x509.DNSName(common_name)]), critical=False)
        .sign(key, hashes.SHA256())
    )
    return key, cert


def make_certificate(common_name: str = "localhost") -> x509.Certificate:
    return issue_certificate(common_name)[1]


@pytest.fixture
def certificate() -> x509.Certificate:
    return make_certificate()


@pytest.fixture
def pem_path(tmp_path: Path, certificate: x509.Certificate) -> Path:
    path = tmp_path / "securden.pem"
    path.write_bytes(certificate.public_bytes(serialization.Encoding.PEM))
    return path


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for var in ("SECURDEN_SERVER_URL", "SECURDEN_AUTHTOKEN", "SECURDEN_CERTIFICATE", "SECURDEN_API_VERSION"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


@pytest.fixture
def settings_factory() -> Callable[..., SecurdenSettings]:
    def factory(**overrides: Any) -> SecurdenSettings:
        values: dict[str, Any] = {
            "server_url": "http://localhost:5959",
            "authtoken": "token-123",
        }
        values.update(overrides)
        return SecurdenSettings(_env_file=None, **values)

    return factory


def json_response(payload: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode("utf-8"),
        headers={"content-type": "application/json"},
    )


class MockResolver:
    """Resolver de test: registra requests y permite simular fallos TLS."""

    def __init__(
        self,
        handler: Handler,
        *,
        mode: TrustMode = TrustMode.PLAIN,
        insecure_handler: Handler | None = None,
    ) -> None:
        self.mode = mode
        self.requests: list[httpx.Request] = []
        self.insecure_requests: list[httpx.Request] = []
        self._handler = handler
        self._insecure_handler = insecure_handler or handler

    def resolve(self) -> ResolvedClient:
        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self._handler(request)

        return ResolvedClient(httpx.Client(transport=httpx.MockTransport(record)), self.mode)

    def insecure(self) -> httpx.Client:
        def record(request: httpx.Request) -> httpx.Response:
            self.insecure_requests.append(request)
            return self._insecure_handler(request)

        return httpx.Client(transport=httpx.MockTransport(record))


def refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)
