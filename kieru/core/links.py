# --------------------------------------------------------------
# File: links.py
# Description: Construcción y análisis de enlaces con la clave en el fragmento.
# --------------------------------------------------------------
"""Codificación de los enlaces `origin/view/{secretId}#{key}`."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote, urlsplit

from kieru.core.errors import InvalidLinkError

VIEW_PATH = "view"


@dataclass(frozen=True)
class SecretLink:
    """Identificador del secreto y clave de descifrado extraídos de un enlace."""

    secret_id: str
    key: str

    def __repr__(self) -> str:
        return f"SecretLink(secret_id={self.secret_id!r}, key=<oculta>)"

    @classmethod
    def from_parts(cls, secret_id: str, key: str) -> "SecretLink":
        """Valida el par recibido al abrir un enlace directo."""

        secret_id = (secret_id or "").strip()
        key = (key or "").strip().lstrip("#")
        if not secret_id or not key:
            raise InvalidLinkError("El enlace no contiene identificador o clave.")
        return cls(secret_id=secret_id, key=key)


def parse_link(raw: str) -> SecretLink:
    """Extrae identificador y clave de un enlace pegado a mano.

    El identificador es el último segmento de la ruta y la clave el fragmento.

    Args:
        raw (str): URL absoluta completa.

    Returns:
        SecretLink: Par identificador/clave.

    Raises:
        InvalidLinkError: Si el texto no es una URL absoluta o le falta alguna parte.

    """

    text = (raw or "").strip()
    if not text:
        raise InvalidLinkError("Enlace vacío.")
    try:
        parts = urlsplit(text)
    except ValueError as exc:
        raise InvalidLinkError("Formato de enlace inválido.") from exc
    if not parts.scheme or not parts.netloc:
        raise InvalidLinkError("El enlace debe ser una URL absoluta.")
    secret_id = parts.path.split("/")[-1]
    return SecretLink.from_parts(secret_id, parts.fragment)


def build_link(origin: str, secret_id: str, key: str) -> str:
    """Compone el enlace compartible; la clave sólo viaja en el fragmento."""

    return f"{origin.rstrip('/')}/{VIEW_PATH}/{quote(secret_id, safe='')}#{key}"
