# --------------------------------------------------------------
# File: errors.py
# Description: Taxonomía de errores del cifrado, la red y los flujos de secretos.
# --------------------------------------------------------------
"""Excepciones y motivos de fallo compartidos por las capas core y api."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional


class FailureReason(str, Enum):
    """Motivos por los que una recuperación de secreto no puede continuar."""

    INVALID_LINK = "INVALID_LINK"
    NOT_FOUND = "NOT_FOUND"
    INACTIVE = "INACTIVE"
    VIEWS_EXHAUSTED = "VIEWS_EXHAUSTED"
    INCORRECT_PASSWORD = "INCORRECT_PASSWORD"
    ACCESS_DENIED = "ACCESS_DENIED"
    DECRYPTION_FAILED = "DECRYPTION_FAILED"
    NETWORK_ERROR = "NETWORK_ERROR"

    @property
    def message(self) -> str:
        """Texto orientado al usuario para el motivo."""

        return FAILURE_MESSAGES[self]


FAILURE_MESSAGES = {
    FailureReason.INVALID_LINK: (
        "Introduce un enlace completo y válido (p. ej. https://kieru.com/view/...#...)."
    ),
    FailureReason.NOT_FOUND: "El secreto no es válido o ha sido eliminado.",
    FailureReason.INACTIVE: "Este secreto ya no está activo.",
    FailureReason.VIEWS_EXHAUSTED: "Se agotaron las visualizaciones. No es posible verlo.",
    FailureReason.INCORRECT_PASSWORD: "Contraseña incorrecta.",
    FailureReason.ACCESS_DENIED: "Acceso denegado.",
    FailureReason.DECRYPTION_FAILED: (
        "No se pudo descifrar el secreto. Es posible que la clave no sea válida."
    ),
    FailureReason.NETWORK_ERROR: "No se pudo contactar con el servidor. Inténtalo de nuevo.",
}


class KieruError(Exception):
    """Raíz de todas las excepciones propias del cliente."""


class InvalidLinkError(KieruError):
    """El enlace pegado o recibido no contiene identificador y clave."""


class EncryptionError(KieruError):
    """No se pudo cifrar el contenido (clave mal formada o contenido inválido)."""


class DecryptionError(KieruError):
    """Fallo de descifrado.

    Clave mal formada, etiqueta de autenticación inválida o contenido que no es
    un payload se notifican siempre con la misma excepción y el mismo mensaje.
    """

    def __init__(self) -> None:
        super().__init__("No se pudo descifrar el contenido.")


class CreationError(KieruError):
    """La creación del secreto fue rechazada antes o después del envío."""

    def __init__(self, message: str, reasons: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.reasons: List[str] = list(reasons or [])


class InvalidTransitionError(KieruError):
    """Se pidió una acción que el estado actual de la sesión no admite."""


class RequestAborted(KieruError):
    """La llamada fue cancelada por el coordinador; no es un error de aplicación."""


class RequestError(KieruError):
    """Fallo de una llamada HTTP que sí debe tratar quien la invoca."""


class NetworkError(RequestError):
    """Fallo de transporte (DNS, conexión, timeout)."""


class ApiError(RequestError):
    """El servidor respondió con un estado distinto de 2xx."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"API Error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class ResponseParseError(RequestError):
    """La respuesta no tiene la forma esperada por el contrato HTTP."""
