# --------------------------------------------------------------
# File: test_creation.py
# Description: Pruebas del flujo de creación y de los servicios de límites de plan.
# --------------------------------------------------------------

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from kieru.api.coordinator import RequestCoordinator
from kieru.api.creation import create_secret
from kieru.api.retrieval import RetrievalState, SecretRetrieval
from kieru.api.services import SecretsApi
from kieru.core.creation_policy import PlanLimits, PlanTier
from kieru.core.crypto_sym import decrypt
from kieru.core.errors import CreationError, FailureReason
from kieru.core.links import parse_link
from kieru.core.models import SecretSettings, TextPayload

ORIGIN = "https://kieru.com"


def _api_with(handler) -> SecretsApi:
    return SecretsApi(RequestCoordinator("http://kieru.test/api", transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_create_builds_link_and_never_sends_key(api, server):
    """El enlace lleva la clave en el fragmento y el cuerpo enviado no la contiene.

    Args:
        api (SecretsApi): Servicios conectados al servidor simulado.
        server (FakeSecretServer): Servidor simulado.

    Returns:
        None: Se revisan enlace, cuerpo y sobre almacenado.
    """
    payload = TextPayload(body="hola")
    created = await create_secret(api, payload, secret_name=" nota ", origin=ORIGIN)

    assert created.link == f"{ORIGIN}/view/{created.secret_id}#{created.key}"
    assert parse_link(created.link).key == created.key
    assert len(created.key) == 43
    assert created.key not in repr(created)

    body = json.loads(server.requests[-1].content)
    assert set(body) == {"encryptedPayload", "secretName", "type"}
    assert body["secretName"] == "nota"
    assert body["type"] == "TEXT"
    assert created.key not in server.requests[-1].content.decode("utf-8")
    assert decrypt(server.secrets[created.secret_id]["encryptedPayload"], created.key) == payload


@pytest.mark.asyncio
async def test_create_sends_settings(api, server):
    """Las opciones avanzadas viajan con alias camelCase y la contraseña recortada.

    Args:
        api (SecretsApi): Servicios conectados al servidor simulado.
        server (FakeSecretServer): Servidor simulado.

    Returns:
        None: Se compara el cuerpo recibido.
    """
    expires = datetime.now(timezone.utc) + timedelta(days=2)
    settings = SecretSettings(
        max_views=3, password="  clave  ", expires_at=expires, view_time_seconds=30, show_time_bomb=False
    )
    await create_secret(api, TextPayload(body="hola"), secret_name="n", settings=settings, origin=ORIGIN)

    body = json.loads(server.requests[-1].content)
    assert body["maxViews"] == 3
    assert body["password"] == "clave"
    assert body["viewTimeSeconds"] == 30
    assert body["showTimeBomb"] is False
    assert body["expiresAt"] == int(expires.timestamp() * 1000)


@pytest.mark.asyncio
async def test_create_rejected_by_policy_sends_nothing(api, server):
    """Si la política falla se lanza CreationError con motivos y no hay petición.

    Args:
        api (SecretsApi): Servicios conectados al servidor simulado.
        server (FakeSecretServer): Servidor simulado.

    Returns:
        None: Se comprueban motivos y ausencia de tráfico.
    """
    with pytest.raises(CreationError) as excinfo:
        await create_secret(api, TextPayload(body="a" * 600), secret_name="", plan=PlanTier.ANONYMOUS)
    assert len(excinfo.value.reasons) == 2
    assert server.requests == []


@pytest.mark.asyncio
async def test_create_without_secret_id_fails():
    """Una respuesta sin identificador se considera un fallo de creación.

    Returns:
        None: Se espera CreationError.
    """
    api = _api_with(lambda request: httpx.Response(200, json={"isSuccess": False}))
    with pytest.raises(CreationError):
        await create_secret(api, TextPayload(body="hola"), secret_name="n")


@pytest.mark.asyncio
async def test_single_view_secret_is_exhausted_on_second_access(api, server):
    """Con una única visualización, el segundo acceso se rechaza en la validación.

    Args:
        api (SecretsApi): Servicios conectados al servidor simulado.
        server (FakeSecretServer): Servidor simulado.

    Returns:
        None: La segunda recuperación termina en VIEWS_EXHAUSTED.
    """
    settings = SecretSettings(max_views=1, view_time_seconds=None)
    created = await create_secret(api, TextPayload(body="una vez"), secret_name="n", settings=settings)

    first = SecretRetrieval(api)
    await first.open_pasted_url(created.link)
    assert first.state is RetrievalState.VIEWING
    first.burn()

    second = SecretRetrieval(api)
    await second.open_pasted_url(created.link)
    assert second.state is RetrievalState.FAILED
    assert second.failure is FailureReason.VIEWS_EXHAUSTED


@pytest.mark.asyncio
async def test_fetch_plan_limits_merges_server_values(api):
    """Los límites del servidor se combinan con los locales.

    Args:
        api (SecretsApi): Servicios conectados al servidor simulado.

    Returns:
        None: Se revisan valores sustituidos y conservados.
    """
    limits = await api.fetch_plan_limits()
    assert limits.char_limit(PlanTier.EXPLORER) == 900
    assert limits.char_limit(PlanTier.ANONYMOUS) == 500
    assert limits.file_size_limit(PlanTier.DOMINATOR) == 10 * 1024 * 1024


@pytest.mark.asyncio
async def test_fetch_plan_limits_keeps_defaults_on_error():
    """Si el servidor falla se mantienen los límites conocidos.

    Returns:
        None: Se devuelve la base sin cambios.
    """
    api = _api_with(lambda request: httpx.Response(503, text="mantenimiento"))
    base = PlanLimits()
    assert await api.fetch_plan_limits(base) == base
