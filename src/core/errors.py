"""Errores del bridge.

Los adaptadores (TLS/HTTP) lanzan estas excepciones; la fachada de
operaciones las convierte en un `OperationResult` con status 500 para que la
CLI (o cualquier host) las presente como warnings.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base de todos los errores del bridge."""


class ConfigurationError(BridgeError):
    """Server URL o certificado inválidos al construir la configuración."""


class CertificateError(BridgeError):
    """No se pudo leer, decodificar o parsear un certificado PEM."""


class RequestBuildError(BridgeError):
    """La URL final no se pudo construir (base URL + path)."""


class SerializationError(BridgeError):
    """Fallo al serializar el body JSON de salida."""


class BridgeTransportError(BridgeError):
    """Fallo de conexión/TLS tras agotar el reintento inseguro."""
