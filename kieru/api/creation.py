# --------------------------------------------------------------
# File: creation.py
# Description: Flujo lineal de creación: validar, cifrar, enviar y construir el enlace.
# --------------------------------------------------------------
"""Creación de secretos en el dispositivo de quien los comparte."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from kieru.api.services import SecretsApi
from kieru.core import config, crypto_sym
from kieru.core.creation_policy import PlanLimits, PlanTier, check_creation_request
from kieru.core.errors import CreationError
from kieru.core.links import build_link
from kieru.core.models import CreateSecretRequest, ImagePayload, SecretSettings, TextPayload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreatedSecret:
    """Resultado de una creación satisfactoria."""

    secret_id: str
    key: str = field(repr=False)
    link: str = field(repr=False)


async def create_secret(
    api: SecretsApi,
    payload: Union[TextPayload, ImagePayload],
    *,
    secret_name: str,
    settings: Optional[SecretSettings] = None,
    plan: PlanTier = PlanTier.UNDEFINED,
    limits: Optional[PlanLimits] = None,
    origin: str = config.APP_ORIGIN,
) -> CreatedSecret:
    """Cifra el contenido, lo registra en el servidor y devuelve el enlace.

    Args:
        api (SecretsApi): Servicios HTTP.
        payload (TextPayload | ImagePayload): Contenido en claro.
        secret_name (str): Nombre visible del secreto.
        settings (Optional[SecretSettings]): Opciones avanzadas; si es ``None``
            sólo se envían sobre, nombre y tipo.
        plan (PlanTier): Plan de quien crea el secreto.
        limits (Optional[PlanLimits]): Límites vigentes por plan.
        origin (str): Origen con el que se construye el enlace.

    Returns:
        CreatedSecret: Identificador, clave y enlace `origin/view/{id}#{clave}`.

    Raises:
        CreationError: Si el contenido no cumple la política o el servidor no
            devuelve un identificador.
        RequestError: Errores de red o del API, sin reintentos.
        RequestAborted: Si se decidió mantener una creación ya en curso.

    """

    ok, reasons = check_creation_request(
        payload, secret_name=secret_name, settings=settings, plan=plan, limits=limits
    )
    if not ok:
        raise CreationError("El secreto no cumple los requisitos:\n- " + "\n- ".join(reasons), reasons)

    key = crypto_sym.generate_key()
    envelope = crypto_sym.encrypt(payload, key)

    request = CreateSecretRequest(
        encrypted_payload=envelope,
        secret_name=secret_name.strip(),
        type=payload.type.upper(),
    )
    if settings is not None:
        request.expires_at = settings.expires_at
        request.password = (settings.password or "").strip() or None
        request.max_views = settings.max_views
        request.view_time_seconds = settings.view_time_seconds
        request.show_time_bomb = settings.show_time_bomb

    response = await api.create_secret(request)
    if not response.is_success or not response.secret_id:
        raise CreationError("Respuesta inválida del servidor.")

    logger.info("Secreto %s creado (%s)", response.secret_id, request.type)
    return CreatedSecret(
        secret_id=response.secret_id,
        key=key,
        link=build_link(origin, response.secret_id, key),
    )
