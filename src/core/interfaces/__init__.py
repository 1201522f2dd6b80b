"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan adaptadores concretos.
- Permite invertir dependencias: la fachada depende de abstracciones y los
  tests pueden inyectar transportes simulados.
"""
