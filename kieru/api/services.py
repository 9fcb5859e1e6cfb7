# --------------------------------------------------------------
# File: services.py
# Description: Servicios del contrato HTTP de secretos, sesión y límites de plan.
# --------------------------------------------------------------
"""Funciones de la capa de servicios: cada respuesta se valida antes de usarse."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from pydantic import ValidationError

from kieru.api.confirmation import StaticConfirmation
from kieru.api.coordinator import DuplicatePolicy, RequestCoordinator
from kieru.core import config
from kieru.core.auth import SessionStore
from kieru.core.creation_policy import PlanLimits
from kieru.core.errors import ApiError, RequestError, ResponseParseError
from kieru.core.models import (
    AccessGrant,
    CreateSecretRequest,
    CreateSecretResponse,
    SecretAccessPolicy,
)

logger = logging.getLogger(__name__)

VALIDATE_PATH = "/secrets/validate"
ACCESS_PATH = "/secrets/access/{secret_id}"
CREATE_PATH = "/secrets/create"
LOGIN_PATH = "/auth/login"
LOGOUT_PATH = "/auth/logout"
CHAR_LIMITS_PATH = "/assets/charLimits"
FILE_SIZE_LIMITS_PATH = "/assets/fileSizeLimits"


def _as_dict(response: Any) -> Dict[str, Any]:
    """Comprueba que la respuesta sea un objeto JSON."""

    if not isinstance(response, dict):
        raise ResponseParseError("Se esperaba un objeto JSON.")
    return response


def default_api(session_path: Optional[str] = config.SESSION_PATH) -> "SecretsApi":
    """Construye la pila por defecto leyendo la configuración de entorno."""

    coordinator = RequestCoordinator(
        config.API_BASE_URL,
        session_store=SessionStore(session_path),
        confirmation=StaticConfirmation(True),
    )
    return SecretsApi(coordinator)


class SecretsApi:
    """Fachada tipada sobre el :class:`RequestCoordinator`.

    Args:
        coordinator (RequestCoordinator): Coordinador compartido por la sesión.
    """

    def __init__(self, coordinator: RequestCoordinator) -> None:
        self.coordinator = coordinator

    async def validate_secret(self, secret_id: str) -> Optional[SecretAccessPolicy]:
        """Consulta la política de acceso de un secreto.

        Args:
            secret_id (str): Identificador del secreto.

        Returns:
            Optional[SecretAccessPolicy]: Política si el servidor la reconoce;
            ``None`` si responde sin éxito o con un estado 4xx/5xx.

        Raises:
            NetworkError: Ante fallos de transporte.
            ResponseParseError: Si la respuesta no sigue el contrato.
            RequestAborted: Si la llamada fue sustituida.

        """

        try:
            response = await self.coordinator.execute(
                "VALIDATE_SECRET",
                VALIDATE_PATH,
                params={"id": secret_id},
                on_duplicate=DuplicatePolicy.SILENT,
            )
        except ApiError as exc:
            logger.info("Validación rechazada con estado %s", exc.status_code)
            return None

        data = _as_dict(response)
        if not data.get("isSuccess"):
            return None
        try:
            return SecretAccessPolicy.model_validate(data)
        except ValidationError as exc:
            raise ResponseParseError("Respuesta de validación incompleta.") from exc

    async def access_secret(self, secret_id: str, password: Optional[str] = None) -> Optional[AccessGrant]:
        """Solicita el sobre cifrado; es la comprobación autoritativa del servidor.

        Args:
            secret_id (str): Identificador del secreto.
            password (Optional[str]): Contraseña introducida, si la hay.

        Returns:
            Optional[AccessGrant]: Sobre y metadatos; ``None`` si el acceso fue
            rechazado (estado distinto de 2xx, ``isSuccess`` falso o sin contenido).

        """

        url = ACCESS_PATH.format(secret_id=quote(secret_id, safe=""))
        if password:
            url += f"?password={quote(password, safe='')}"

        try:
            response = await self.coordinator.execute(
                "ACCESS_SECRET",
                url,
                method="POST",
                params={},
                on_duplicate=DuplicatePolicy.SILENT,
            )
        except ApiError as exc:
            logger.info("Acceso rechazado con estado %s", exc.status_code)
            return None

        data = _as_dict(response)
        if not data.get("isSuccess") or not data.get("content"):
            return None
        try:
            return AccessGrant.model_validate(data)
        except ValidationError as exc:
            raise ResponseParseError("Respuesta de acceso incompleta.") from exc

    async def create_secret(self, request: CreateSecretRequest) -> CreateSecretResponse:
        """Envía el sobre y los ajustes no secretos al endpoint de creación."""

        response = await self.coordinator.execute(
            "CREATE_SECRET",
            CREATE_PATH,
            method="POST",
            params=request.to_body(),
            on_duplicate=DuplicatePolicy.CONFIRMED,
        )
        try:
            return CreateSecretResponse.model_validate(_as_dict(response))
        except ValidationError as exc:
            raise ResponseParseError("Respuesta de creación inválida.") from exc

    async def backend_login(self, provider_token: str) -> str:
        """Canjea el token del proveedor de identidad por un token de sesión.

        Args:
            provider_token (str): Token emitido por el proveedor de identidad.

        Returns:
            str: Token de sesión, ya guardado en el almacén del coordinador.

        """

        response = _as_dict(
            await self.coordinator.execute(
                "BACKEND_LOGIN",
                LOGIN_PATH,
                method="POST",
                params={"firebaseToken": provider_token},
            )
        )
        token = response.get("token")
        if not response.get("isSuccess", True) or not isinstance(token, str) or not token:
            raise ResponseParseError("El inicio de sesión no devolvió un token.")
        self.coordinator.session_store.set_token(token)
        return token

    async def logout(self) -> None:
        """Cierra la sesión en el servidor; el token local se borra siempre."""

        try:
            await self.coordinator.execute("BACKEND_LOGOUT", LOGOUT_PATH, method="POST")
        finally:
            self.coordinator.session_store.clear()

    async def fetch_plan_limits(self, base: Optional[PlanLimits] = None) -> PlanLimits:
        """Obtiene los límites por plan; si falla se mantienen los conocidos."""

        limits = base or PlanLimits()
        try:
            chars = _as_dict(
                await self.coordinator.execute("FETCH_CHAR_LIMITS", CHAR_LIMITS_PATH)
            )
            files = _as_dict(
                await self.coordinator.execute("FETCH_FILE_SIZE_LIMITS", FILE_SIZE_LIMITS_PATH)
            )
        except RequestError:
            logger.warning("No se pudieron cargar los límites del plan", exc_info=True)
            return limits
        char_limits = chars.get("charLimits")
        file_limits = files.get("fileLimit")
        try:
            return limits.merged(
                char_limits if isinstance(char_limits, dict) else None,
                file_limits if isinstance(file_limits, dict) else None,
            )
        except ValidationError:
            logger.warning("Límites de plan con formato inesperado; se ignoran")
            return limits
