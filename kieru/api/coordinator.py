# --------------------------------------------------------------
# File: coordinator.py
# Description: Coordinador de peticiones HTTP con deduplicación y cancelación.
# --------------------------------------------------------------
"""Ejecuta llamadas al API detectando duplicados por clave lógica.

Dos llamadas son "la misma petición" sólo si coinciden `request_id`, URL y
parámetros normalizados. Ante un duplicado en curso la política `SILENT`
cancela la anterior sin preguntar y `CONFIRMED` consulta el
:class:`~kieru.api.confirmation.ConfirmationPort`. Quien lanzó una llamada
cancelada recibe :class:`~kieru.core.errors.RequestAborted`, nunca un error
genérico.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

import httpx

from kieru.api.confirmation import DUPLICATE_REQUEST_PROMPT, ConfirmationPort, StaticConfirmation
from kieru.core import config
from kieru.core.auth import SessionStore
from kieru.core.errors import ApiError, NetworkError, RequestAborted, ResponseParseError

logger = logging.getLogger(__name__)


class DuplicatePolicy(str, Enum):
    """Cómo resolver una petición idéntica que ya está en curso."""

    SILENT = "silent"
    CONFIRMED = "confirmed"


@dataclass
class InFlightRequest:
    """Entrada de la tabla de peticiones en curso."""

    key: str
    task: "asyncio.Task[Any]"
    aborted: bool = field(default=False)


def serialize_query_params(params: Optional[Mapping[str, Any]]) -> str:
    """Normaliza y serializa parámetros de consulta.

    `None` y cadenas vacías se descartan, las cadenas se recortan, los números
    finitos y booleanos se convierten a texto y el resto se codifica en JSON
    salvo `{}` y `[]`.

    Args:
        params (Optional[Mapping[str, Any]]): Parámetros de la petición.

    Returns:
        str: Cadena `clave=valor&...` en orden de inserción.

    """

    pairs = []
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, str):
            trimmed = value.strip()
            if trimmed:
                pairs.append((key, trimmed))
            continue
        if isinstance(value, bool):
            pairs.append((key, "true" if value else "false"))
            continue
        if isinstance(value, (int, float)):
            if math.isfinite(value):
                pairs.append((key, str(value)))
            continue
        try:
            serialized = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError):
            logger.warning("No se pudo serializar el parámetro %r", key)
            continue
        if serialized not in ("{}", "[]"):
            pairs.append((key, serialized))
    return urlencode(pairs)


def build_request_key(request_id: Optional[str], url: str, serialized_params: str) -> str:
    """Identidad lógica de una petición: `(request_id, url, parámetros)`."""

    return f"{request_id or ''}::{url}::{serialized_params}"


def _safe_path(url: str) -> str:
    # La consulta del endpoint de acceso puede llevar la contraseña.
    return url.split("?", 1)[0]


class RequestCoordinator:
    """Servicio inyectable que ejecuta y deduplica las llamadas al API.

    Args:
        base_url (str): Raíz del API (`/secrets/...`, `/auth/...` cuelgan de ella).
        session_store (Optional[SessionStore]): Origen del token Bearer.
        confirmation (Optional[ConfirmationPort]): Puerto para la política
            `CONFIRMED`; por defecto acepta siempre.
        transport (Optional[httpx.AsyncBaseTransport]): Transporte httpx
            alternativo (p. ej. `httpx.MockTransport` en pruebas).
        timeout (float): Timeout de cada llamada en segundos.
    """

    def __init__(
        self,
        base_url: str = config.API_BASE_URL,
        *,
        session_store: Optional[SessionStore] = None,
        confirmation: Optional[ConfirmationPort] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = config.REQUEST_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session_store = session_store if session_store is not None else SessionStore()
        self.confirmation = confirmation if confirmation is not None else StaticConfirmation(True)
        self._transport = transport
        self._timeout = timeout
        self._in_flight: Dict[str, InFlightRequest] = {}

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def is_in_flight(self, key: str) -> bool:
        return key in self._in_flight

    async def execute(
        self,
        request_id: Optional[str],
        url: str,
        *,
        method: str = "GET",
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        on_duplicate: DuplicatePolicy = DuplicatePolicy.CONFIRMED,
    ) -> Any:
        """Ejecuta una llamada y devuelve el JSON de la respuesta.

        Args:
            request_id (Optional[str]): Identificador lógico de la operación.
            url (str): Ruta relativa a `base_url`.
            method (str): Verbo HTTP; en `POST` los parámetros van en el cuerpo.
            params (Optional[Mapping[str, Any]]): Parámetros o cuerpo JSON.
            headers (Optional[Mapping[str, str]]): Cabeceras adicionales.
            on_duplicate (DuplicatePolicy): Política ante un duplicado en curso.

        Returns:
            Any: Cuerpo JSON decodificado.

        Raises:
            RequestAborted: Si esta llamada fue cancelada o se decidió no lanzarla.
            NetworkError: Ante fallos de transporte.
            ApiError: Si el servidor responde con un estado distinto de 2xx.
            ResponseParseError: Si el cuerpo no es JSON.

        """

        method = method.upper()
        serialized = serialize_query_params(params)
        key = build_request_key(request_id, url, serialized)

        if key in self._in_flight:
            if on_duplicate is DuplicatePolicy.CONFIRMED and not await self._confirm_duplicate():
                logger.info("Petición duplicada %s descartada por el usuario", request_id)
                raise RequestAborted("Se mantuvo la petición que ya estaba en curso.")
            # Tras la confirmación la entrada pudo haber terminado o cambiado.
            self.abort(key)

        task = asyncio.create_task(self._send(method, url, serialized, params, headers))
        entry = InFlightRequest(key=key, task=task)
        self._in_flight[key] = entry
        try:
            return await task
        except asyncio.CancelledError:
            if entry.aborted:
                logger.debug("Petición %s %s abortada", method, _safe_path(url))
                raise RequestAborted("La petición fue sustituida por otra idéntica.") from None
            raise
        finally:
            if self._in_flight.get(key) is entry:
                del self._in_flight[key]

    def abort(self, key: str) -> bool:
        """Cancela la llamada en curso con esa clave lógica, si la hay."""

        entry = self._in_flight.pop(key, None)
        if entry is None:
            return False
        entry.aborted = True
        entry.task.cancel()
        return True

    def abort_all(self) -> int:
        """Cancela todas las llamadas en curso y devuelve cuántas eran."""

        keys = list(self._in_flight)
        for key in keys:
            self.abort(key)
        return len(keys)

    async def _confirm_duplicate(self) -> bool:
        try:
            return bool(await self.confirmation.confirm(DUPLICATE_REQUEST_PROMPT))
        except Exception:
            logger.warning("Falló la confirmación de petición duplicada; se continúa", exc_info=True)
            return True

    async def _send(
        self,
        method: str,
        url: str,
        serialized: str,
        params: Optional[Mapping[str, Any]],
        headers: Optional[Mapping[str, str]],
    ) -> Any:
        request_headers = {"Content-Type": "application/json", **(headers or {})}
        token = self.session_store.token
        if token:
            request_headers["Authorization"] = f"Bearer {token}"

        target = url
        body = None
        if method == "POST":
            body = dict(params) if params is not None else None
        elif serialized:
            target = f"{url}?{serialized}"

        async with httpx.AsyncClient(
            base_url=self.base_url, transport=self._transport, timeout=self._timeout
        ) as client:
            try:
                response = await client.request(method, target, headers=request_headers, json=body)
            except httpx.TransportError as exc:
                logger.warning("Fallo de red en %s %s: %s", method, _safe_path(url), exc)
                raise NetworkError(str(exc)) from exc

        logger.debug("%s %s -> %s", method, _safe_path(url), response.status_code)
        if not response.is_success:
            raise ApiError(response.status_code, response.text)
        try:
            return response.json()
        except ValueError as exc:
            raise ResponseParseError("La respuesta del servidor no es JSON.") from exc
