# --------------------------------------------------------------
# File: test_creation_policy.py
# Description: Pruebas de las reglas de creación y de los límites por plan.
# --------------------------------------------------------------

from datetime import datetime, timedelta, timezone

import pytest

from kieru.core.creation_policy import (
    MIB,
    PlanLimits,
    PlanTier,
    can_upload_images,
    check_creation_request,
    default_expiry,
)
from kieru.core.models import ImagePayload, SecretSettings, TextPayload

NOW = datetime(2025, 10, 26, 12, 0, tzinfo=timezone.utc)


def test_policy_accepts_simple_text():
    """Un texto corto con nombre cumple la política.

    Returns:
        None: Las aserciones revisan el resultado y los motivos.
    """
    ok, reasons = check_creation_request(TextPayload(body="hola"), secret_name="nota", now=NOW)
    assert ok
    assert not reasons


@pytest.mark.parametrize(
    "name",
    [
        "",  # sin nombre
        "   ",  # sólo espacios
        "x" * 31,  # más de 30 caracteres
    ],
)
def test_policy_rejects_bad_name(name):
    """Comprueba que nombres vacíos o demasiado largos sean rechazados.

    Args:
        name (str): Nombre candidato proporcionado por el parámetro parametrizado.

    Returns:
        None: Se espera rechazo con al menos un motivo.
    """
    ok, reasons = check_creation_request(TextPayload(body="hola"), secret_name=name, now=NOW)
    assert not ok
    assert reasons


def test_policy_applies_char_limit_per_plan():
    """El límite de caracteres depende del plan.

    Returns:
        None: 600 caracteres superan ANONYMOUS pero no EXPLORER.
    """
    payload = TextPayload(body="a" * 600)
    ok_anon, _ = check_creation_request(payload, secret_name="n", plan=PlanTier.ANONYMOUS, now=NOW)
    ok_explorer, _ = check_creation_request(payload, secret_name="n", plan=PlanTier.EXPLORER, now=NOW)
    assert not ok_anon
    assert ok_explorer


def test_policy_uses_server_limits():
    """Los límites recibidos del servidor sustituyen a los locales.

    Returns:
        None: Con un límite de 10 caracteres el texto se rechaza.
    """
    limits = PlanLimits().merged(char_limits={"DOMINATOR": 10})
    ok, reasons = check_creation_request(
        TextPayload(body="a" * 11), secret_name="n", plan=PlanTier.DOMINATOR, limits=limits, now=NOW
    )
    assert not ok
    assert "10" in reasons[0]


def test_images_require_paid_plan():
    """Las imágenes sólo se admiten en planes de pago.

    Returns:
        None: ANONYMOUS rechaza y EXPLORER acepta.
    """
    image = ImagePayload.from_bytes(b"\x89PNG....", "a.png", "image/png")
    assert not can_upload_images(PlanTier.ANONYMOUS)
    assert not check_creation_request(image, secret_name="n", plan=PlanTier.ANONYMOUS, now=NOW)[0]
    assert check_creation_request(image, secret_name="n", plan=PlanTier.EXPLORER, now=NOW)[0]


def test_image_size_limit():
    """Una imagen mayor que el límite del plan se rechaza.

    Returns:
        None: 2 MiB supera el límite de EXPLORER (1,5 MiB).
    """
    image = ImagePayload.from_bytes(b"\0" * (2 * MIB), "a.png", "image/png")
    ok, reasons = check_creation_request(image, secret_name="n", plan=PlanTier.EXPLORER, now=NOW)
    assert not ok
    assert "1.5" in reasons[0]


def test_settings_validation():
    """Opciones fuera de rango producen un motivo por cada problema.

    Returns:
        None: Se esperan tres motivos.
    """
    settings = SecretSettings(max_views=0, view_time_seconds=0, expires_at=NOW + timedelta(minutes=30))
    ok, reasons = check_creation_request(
        TextPayload(body="hola"), secret_name="n", settings=settings, now=NOW
    )
    assert not ok
    assert len(reasons) == 3


def test_default_expiry_passes_policy():
    """La caducidad por defecto (24 h) cumple el mínimo de una hora.

    Returns:
        None: La política acepta las opciones.
    """
    settings = SecretSettings(expires_at=default_expiry(NOW))
    ok, _ = check_creation_request(TextPayload(body="hola"), secret_name="n", settings=settings, now=NOW)
    assert ok
