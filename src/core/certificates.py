"""Lectura de certificados PEM.

Vive en `core/` porque lo usan tanto la validación de configuración como el
Trust Resolver (adapters) y no hace I/O de red.
"""

from __future__ import annotations

from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from core.errors import CertificateError


def load_pem_certificate(path: str | Path) -> x509.Certificate:
    """Lee `path` y devuelve el primer certificado X.509 del PEM.

    Lanza `CertificateError` si el fichero no existe, es un directorio, no
    contiene un bloque PEM o el bloque no es un certificado.
    """

    file_path = Path(path)
    try:
        data = file_path.read_bytes()
    except OSError as exc:
        raise CertificateError(f"failed to read file: {exc}") from exc

    try:
        return x509.load_pem_x509_certificate(data)
    except ValueError as exc:
        raise CertificateError(f"failed to parse certificate: {exc}") from exc


def certificate_to_pem(cert: x509.Certificate) -> str:
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")


def is_valid_pem_file(path: str | None) -> bool:
    """True si `path` apunta a un fichero PEM con un certificado parseable.

    Vacío o `none` (cualquier capitalización) cuentan como ausentes.
    """

    if not path or path.strip().lower() == "none":
        return False
    try:
        load_pem_certificate(path)
    except CertificateError:
        return False
    return True
