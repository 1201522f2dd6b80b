"""Contrato del proveedor de clientes HTTP.

Por qué Protocol:
- La fachada solo necesita "un cliente para esta llamada" y "un cliente sin
  verificación para el reintento"; cómo se decide la confianza TLS es cosa
  del adaptador (`adapters.trust.TrustResolver`).
- Los tests sustituyen el resolver por uno basado en `httpx.MockTransport`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

import httpx


class TrustMode(str, Enum):
    """Estrategia TLS elegida para una llamada."""

    PLAIN = "plain"
    FETCHED = "fetched"
    PINNED = "pinned"
    INSECURE = "insecure"

    @property
    def verifies(self) -> bool:
        return self in (TrustMode.FETCHED, TrustMode.PINNED)


@dataclass
class ResolvedClient:
    client: httpx.Client
    mode: TrustMode


@runtime_checkable
class ClientResolver(Protocol):
    def resolve(self) -> ResolvedClient:
        """Decide la estrategia TLS y devuelve un cliente listo para usar."""

        ...

    def insecure(self) -> httpx.Client:
        """Cliente sin verificación TLS para el reintento único."""

        ...
