# --------------------------------------------------------------
# File: __init__.py
# Description: Paquete raíz del cliente Kieru de secretos efímeros.
# --------------------------------------------------------------
"""Cliente Kieru: cifrado en el dispositivo y recuperación de secretos efímeros."""

__all__ = ["api", "core"]

__version__ = "0.3.0"
