# --------------------------------------------------------------
# File: confirmation.py
# Description: Puerto de confirmación usado ante peticiones duplicadas.
# --------------------------------------------------------------
"""Implementaciones del puerto que pregunta si sustituir una petición en curso."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, runtime_checkable

from kieru.core import config

logger = logging.getLogger(__name__)

DUPLICATE_REQUEST_PROMPT = "Ya hay una petición similar en curso. ¿Iniciar una nueva en su lugar?"


@runtime_checkable
class ConfirmationPort(Protocol):
    """Capacidad que cada host (CLI, servidor, UI) aporta para confirmar acciones."""

    async def confirm(self, message: str) -> bool:
        """Devuelve `True` para continuar y `False` para abortar."""
        ...


class StaticConfirmation:
    """Responde siempre lo mismo; útil en hosts sin interacción."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer

    async def confirm(self, message: str) -> bool:
        return self.answer


class TimeoutConfirmation:
    """Envuelve otro puerto y rechaza si no contesta a tiempo."""

    def __init__(self, inner: ConfirmationPort, timeout: float = config.CONFIRM_TIMEOUT) -> None:
        self.inner = inner
        self.timeout = timeout

    async def confirm(self, message: str) -> bool:
        try:
            return await asyncio.wait_for(self.inner.confirm(message), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.info("Confirmación sin respuesta tras %.0fs; se rechaza", self.timeout)
            return False
