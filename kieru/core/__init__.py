# --------------------------------------------------------------
# File: __init__.py
# Description: Exposición pública de utilidades criptográficas del paquete core.
# --------------------------------------------------------------
"""Inicializa el paquete `kieru.core` y documenta sus módulos principales."""

__all__ = [
    "auth",
    "config",
    "creation_policy",
    "crypto_sym",
    "errors",
    "links",
    "models",
    "storage",
]
