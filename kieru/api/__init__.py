# --------------------------------------------------------------
# File: __init__.py
# Description: Capa de red y flujos de creación y recuperación de secretos.
# --------------------------------------------------------------
"""Inicializa el paquete `kieru.api` y documenta sus módulos principales."""

__all__ = [
    "confirmation",
    "coordinator",
    "creation",
    "retrieval",
    "services",
]
