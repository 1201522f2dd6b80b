"""Modelos y entidades del dominio.

Por qué:
- Aquí viven las estructuras de datos puras (Pydantic v2 y dataclasses).
- El dominio no conoce HTTP, TLS ni CLI: solo parámetros, records y sobres
  de respuesta.
"""
