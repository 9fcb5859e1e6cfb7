# --------------------------------------------------------------
# File: creation_policy.py
# Description: Reglas de validación de secretos antes de cifrarlos y límites por plan.
# --------------------------------------------------------------
"""Utilidades para comprobar un secreto nuevo frente a los límites de su plan."""

from __future__ import annotations

import binascii
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from kieru.core.models import ImagePayload, SecretSettings, TextPayload

MAX_NAME_LENGTH = 30
MIN_EXPIRY = timedelta(hours=1)
DEFAULT_EXPIRY = timedelta(hours=24)

MIB = 1024 * 1024


class PlanTier(str, Enum):
    """Planes de suscripción reconocidos por el servidor."""

    ANONYMOUS = "ANONYMOUS"
    EXPLORER = "EXPLORER"
    CHALLENGER = "CHALLENGER"
    DOMINATOR = "DOMINATOR"
    UNDEFINED = "UNDEFINED"


DEFAULT_CHAR_LIMITS: Dict[str, int] = {
    PlanTier.ANONYMOUS.value: 500,
    PlanTier.EXPLORER.value: 750,
    PlanTier.CHALLENGER.value: 1000,
    PlanTier.DOMINATOR.value: 1500,
    PlanTier.UNDEFINED.value: 500,
}

DEFAULT_FILE_SIZE_LIMITS: Dict[str, int] = {
    PlanTier.ANONYMOUS.value: 1 * MIB,
    PlanTier.EXPLORER.value: int(1.5 * MIB),
    PlanTier.CHALLENGER.value: 2 * MIB,
    PlanTier.DOMINATOR.value: 5 * MIB,
    PlanTier.UNDEFINED.value: 1 * MIB,
}

NO_IMAGE_TIERS = {PlanTier.ANONYMOUS, PlanTier.UNDEFINED}


class PlanLimits(BaseModel):
    """Límites de tamaño por plan; los valores del servidor sustituyen a los por defecto."""

    char_limits: Dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_CHAR_LIMITS))
    file_size_limits: Dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_FILE_SIZE_LIMITS)
    )

    def char_limit(self, plan: PlanTier) -> int:
        return self.char_limits.get(plan.value, DEFAULT_CHAR_LIMITS[PlanTier.UNDEFINED.value])

    def file_size_limit(self, plan: PlanTier) -> int:
        return self.file_size_limits.get(
            plan.value, DEFAULT_FILE_SIZE_LIMITS[PlanTier.UNDEFINED.value]
        )

    def merged(
        self,
        char_limits: Optional[Dict[str, int]] = None,
        file_size_limits: Optional[Dict[str, int]] = None,
    ) -> "PlanLimits":
        """Devuelve una copia con los valores recibidos aplicados clave a clave."""

        return PlanLimits(
            char_limits={**self.char_limits, **(char_limits or {})},
            file_size_limits={**self.file_size_limits, **(file_size_limits or {})},
        )


def can_upload_images(plan: PlanTier) -> bool:
    """Las imágenes requieren un plan de pago."""

    return plan not in NO_IMAGE_TIERS


def default_expiry(now: Optional[datetime] = None) -> datetime:
    """Caducidad propuesta por defecto: 24 horas desde ahora."""

    return (now or datetime.now().astimezone()) + DEFAULT_EXPIRY


def _image_size(payload: ImagePayload) -> Optional[int]:
    try:
        return len(payload.raw_bytes())
    except (ValueError, binascii.Error):
        return None


def check_creation_request(
    payload: Union[TextPayload, ImagePayload],
    *,
    secret_name: str,
    settings: Optional[SecretSettings] = None,
    plan: PlanTier = PlanTier.UNDEFINED,
    limits: Optional[PlanLimits] = None,
    now: Optional[datetime] = None,
) -> Tuple[bool, List[str]]:
    """Evalúa un secreto nuevo y devuelve cumplimiento y motivos de rechazo.

    Args:
        payload (TextPayload | ImagePayload): Contenido que se va a cifrar.
        secret_name (str): Nombre visible del secreto.
        settings (Optional[SecretSettings]): Opciones avanzadas, si se usan.
        plan (PlanTier): Plan de quien crea el secreto.
        limits (Optional[PlanLimits]): Límites vigentes; por defecto los locales.
        now (Optional[datetime]): Instante de referencia para la caducidad.

    Returns:
        Tuple[bool, List[str]]: Resultado de validación y motivos de rechazo.

    """

    limits = limits or PlanLimits()
    reasons: List[str] = []

    name = (secret_name or "").strip()
    if not name:
        reasons.append("Ponle un nombre al secreto.")
    elif len(name) > MAX_NAME_LENGTH:
        reasons.append(f"El nombre admite como máximo {MAX_NAME_LENGTH} caracteres.")

    if isinstance(payload, TextPayload):
        if not payload.body.strip():
            reasons.append("Escribe algún texto.")
        elif len(payload.body) > limits.char_limit(plan):
            reasons.append(f"El texto supera el límite de {limits.char_limit(plan)} caracteres.")
    else:
        size_limit = limits.file_size_limit(plan)
        size = _image_size(payload)
        if not can_upload_images(plan):
            reasons.append("Mejora al plan EXPLORER para subir imágenes.")
        elif size is None or size == 0:
            reasons.append("Adjunta una imagen válida.")
        elif size > size_limit:
            reasons.append(f"Imagen demasiado grande (máximo {size_limit / MIB:g} MB).")

    if settings is not None:
        if settings.max_views < 1:
            reasons.append("Permite al menos una visualización.")
        if settings.view_time_seconds is not None and settings.view_time_seconds < 1:
            reasons.append("El tiempo de visualización debe ser de al menos 1 segundo.")
        if settings.expires_at is not None:
            reference = now or datetime.now().astimezone()
            if reference.tzinfo is None:
                reference = reference.astimezone()
            expires_at = settings.expires_at
            if expires_at.tzinfo is None:
                expires_at = expires_at.astimezone()
            if expires_at < reference + MIN_EXPIRY:
                reasons.append("La caducidad debe ser al menos una hora posterior a ahora.")

    return not reasons, reasons
