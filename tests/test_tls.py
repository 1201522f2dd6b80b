"""Handshakes reales contra un servidor HTTPS local con certificado autofirmado."""

from __future__ import annotations

import json
import logging
import socket
import ssl
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Iterator

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization

from adapters.trust import TrustResolver, fetch_server_certificate
from core.domain.models import AccountQuery
from core.errors import CertificateError
from core.interfaces.transport import TrustMode
from core.services.operations import SecurdenOperations

from conftest import issue_certificate, make_certificate


class _AccountHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:
        if self.path.startswith("/secretsmanagement/get_account") and self.headers.get("authtoken") == "token-123":
            payload = {"status_code": 200, "account_name": "svc1"}
        else:
            payload = {"status_code": 401, "message": "unauthorized"}
        body = json.dumps(payload).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:
        pass


class LocalTLSServer:
    def __init__(self, port: int, certificate: x509.Certificate) -> None:
        self.port = port
        self.certificate = certificate

    @property
    def url(self) -> str:
        return f"https://localhost:{self.port}"


@pytest.fixture
def tls_server(tmp_path: Path) -> Iterator[LocalTLSServer]:
    key, cert = issue_certificate("localhost")
    cert_file = tmp_path / "server.crt"
    key_file = tmp_path / "server.key"
    cert_file.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_file.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(cert_file, key_file)

    server = ThreadingHTTPServer(("127.0.0.1", 0), _AccountHandler)
    server.socket = context.wrap_socket(server.socket, server_side=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield LocalTLSServer(server.server_address[1], cert)
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


def _write_pem(path: Path, cert: x509.Certificate) -> str:
    path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    return str(path)


def test_probe_reads_served_certificate(tls_server: LocalTLSServer) -> None:
    fetched = fetch_server_certificate(tls_server.url, timeout=5)
    assert fetched.fingerprint(hashes.SHA256()) == tls_server.certificate.fingerprint(hashes.SHA256())


def test_probe_against_closed_port_raises() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]

    with pytest.raises(CertificateError, match="failed to connect"):
        fetch_server_certificate(f"https://127.0.0.1:{port}", timeout=2)


def test_fetched_certificate_verifies_handshake(
    tls_server: LocalTLSServer, settings_factory, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING)
    settings = settings_factory(server_url=tls_server.url)
    resolver = TrustResolver(settings)

    resolved = resolver.resolve()
    resolved.client.close()
    assert resolved.mode is TrustMode.FETCHED

    result = SecurdenOperations(settings, resolver).get_account(AccountQuery(account_name="svc1"))

    assert (result.status_code, result.record.fields) == (200, {"account_name": "svc1"})
    assert "retrying" not in caplog.text


def test_pinned_certificate_verifies_handshake(
    tls_server: LocalTLSServer, settings_factory, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING)
    pinned = _write_pem(tmp_path / "pinned.pem", tls_server.certificate)
    settings = settings_factory(server_url=tls_server.url, certificate=pinned)

    result = SecurdenOperations(settings).get_account(AccountQuery(account_name="svc1"))

    assert result.status_code == 200
    assert result.record.fields["account_name"] == "svc1"
    assert "retrying" not in caplog.text


def test_pinned_mismatch_fails_handshake_then_retries_insecure(
    tls_server: LocalTLSServer, settings_factory, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING)
    other = _write_pem(tmp_path / "other.pem", make_certificate("localhost"))
    settings = settings_factory(server_url=tls_server.url, certificate=other)

    result = SecurdenOperations(settings).get_account(AccountQuery(account_name="svc1"))

    assert result.status_code == 200
    assert "retrying without TLS verification" in caplog.text
