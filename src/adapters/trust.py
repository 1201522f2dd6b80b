"""Trust Resolver: decide cómo verificar TLS contra el servidor.

Tabla de decisión (una vez por llamada):
1. URL no `https` -> cliente por defecto, sin manejo de certificados.
2. Sin certificado configurado -> se abre una conexión TLS sin verificar
   solo para leer el certificado hoja; si se obtiene, el cliente confía
   exactamente en él; si no, cliente sin verificación.
3. Ruta absoluta -> se lee el PEM; si parsea, el cliente confía exactamente
   en él; si no, cliente sin verificación.
4. Cualquier otra cosa (ruta relativa) -> cliente sin verificación.

Los clientes con certificado llevan timeout fijo; el resto no tiene timeout.
"""

from __future__ import annotations

import logging
import os
import ssl
from typing import Callable
from urllib.parse import urlsplit

import httpx
from cryptography import x509

from core.certificates import certificate_to_pem, load_pem_certificate
from core.config import SecurdenSettings
from core.errors import CertificateError
from core.interfaces.transport import ResolvedClient, TrustMode

logger = logging.getLogger(__name__)

DEFAULT_TLS_PORT = 5959

CertificateFetcher = Callable[[str, float], x509.Certificate]


def fetch_server_certificate(server_url: str, timeout: float = 10.0) -> x509.Certificate:
    """Obtiene el certificado hoja del servidor sin verificarlo.

    La conexión de sondeo es independiente de la del request y se cierra al
    terminar. Lanza `CertificateError` si no hay conexión o certificado.
    """

    parsed = urlsplit(server_url)
    host = parsed.hostname
    if not host:
        raise CertificateError(f"invalid URL: {server_url!r}")
    try:
        port = parsed.port or DEFAULT_TLS_PORT
    except ValueError as exc:
        raise CertificateError(f"invalid URL: {exc}") from exc

    try:
        pem = ssl.get_server_certificate((host, port), timeout=timeout)
    except (OSError, ssl.SSLError) as exc:
        raise CertificateError(f"failed to connect: {exc}") from exc
    if not pem:
        raise CertificateError("no certificates found")

    try:
        return x509.load_pem_x509_certificate(pem.encode("ascii"))
    except ValueError as exc:
        raise CertificateError(f"failed to parse certificate: {exc}") from exc


def build_pinned_context(cert: x509.Certificate) -> ssl.SSLContext:
    """Contexto SSL que confía solo en `cert` (aunque sea hoja o autofirmado)."""

    context = ssl.create_default_context(cadata=certificate_to_pem(cert))
    context.verify_flags |= ssl.VERIFY_X509_PARTIAL_CHAIN
    context.verify_flags &= ~ssl.VERIFY_X509_STRICT
    return context


class TrustResolver:
    """Implementación por defecto de `ClientResolver`.

    `transport` permite inyectar un `httpx.BaseTransport` (tests); en ese caso
    la decisión TLS se sigue tomando y reportando, pero el tráfico pasa por el
    transporte inyectado.
    """

    def __init__(
        self,
        settings: SecurdenSettings,
        *,
        transport: httpx.BaseTransport | None = None,
        certificate_fetcher: CertificateFetcher | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._fetch = certificate_fetcher or fetch_server_certificate

    def resolve(self) -> ResolvedClient:
        settings = self._settings
        if not settings.uses_tls:
            return ResolvedClient(self._client(verify=True, timeout=None), TrustMode.PLAIN)

        cert_ref = settings.certificate
        if not cert_ref:
            try:
                cert = self._fetch(settings.server_url, settings.probe_timeout_seconds)
            except CertificateError as exc:
                logger.warning("Could not fetch server certificate, TLS verification disabled: %s", exc)
                return ResolvedClient(self.insecure(), TrustMode.INSECURE)
            return ResolvedClient(self._pinned(cert), TrustMode.FETCHED)

        if os.path.isabs(cert_ref):
            try:
                cert = load_pem_certificate(cert_ref)
            except CertificateError as exc:
                logger.warning("Certificate %s unusable, TLS verification disabled: %s", cert_ref, exc)
                return ResolvedClient(self.insecure(), TrustMode.INSECURE)
            return ResolvedClient(self._pinned(cert), TrustMode.PINNED)

        logger.warning("Certificate path %s is not absolute, TLS verification disabled", cert_ref)
        return ResolvedClient(self.insecure(), TrustMode.INSECURE)

    def insecure(self) -> httpx.Client:
        return self._client(verify=False, timeout=None)

    def _pinned(self, cert: x509.Certificate) -> httpx.Client:
        return self._client(
            verify=build_pinned_context(cert),
            timeout=self._settings.pinned_timeout_seconds,
        )

    def _client(self, *, verify: ssl.SSLContext | bool, timeout: float | None) -> httpx.Client:
        return httpx.Client(
            verify=verify,
            timeout=httpx.Timeout(timeout),
            transport=self._transport,
        )
