# --------------------------------------------------------------
# File: auth.py
# Description: Almacén de la credencial de sesión que acompaña a cada petición.
# --------------------------------------------------------------
"""Credencial de autenticación ambiental, inyectada en el coordinador de peticiones."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Dict, Optional

from kieru.core.storage import load_db, save_db

logger = logging.getLogger(__name__)


class SessionStore:
    """Guarda el token de sesión del backend.

    Con `path` el token se persiste en un JSON con escritura atómica; sin él
    sólo vive en memoria (útil para pruebas y para visitantes anónimos).
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self._path = path
        self._token: Optional[str] = None
        if path:
            db = load_db(path)
            self._token = db.get("session", {}).get("auth_token") or None

    @property
    def token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: str) -> None:
        """Registra un nuevo token de sesión y lo persiste si procede."""

        if not token:
            raise ValueError("El token de sesión no puede estar vacío.")
        self._token = token
        self._persist({"auth_token": token, "updated_at": datetime.now(UTC).isoformat()})
        logger.info("Token de sesión actualizado")

    def clear(self) -> None:
        """Elimina el token en memoria y en disco."""

        self._token = None
        self._persist({})
        logger.info("Sesión cerrada")

    def _persist(self, session: Dict[str, Any]) -> None:
        if not self._path:
            return
        db = load_db(self._path)
        db["session"] = session
        save_db(db, self._path)
