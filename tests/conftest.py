# --------------------------------------------------------------
# File: conftest.py
# Description: Fixtures compartidas: almacenamiento aislado y servidor simulado.
# --------------------------------------------------------------

import importlib
import json
from typing import Any, Dict, Iterator, List, Optional

import httpx
import pytest

from kieru.api.coordinator import RequestCoordinator
from kieru.api.services import SecretsApi
from kieru.core import crypto_sym
from kieru.core.auth import SessionStore

BASE_URL = "http://kieru.test/api"


@pytest.fixture(autouse=True)
def _isolate_storage(tmp_path, monkeypatch) -> Iterator[None]:
    """Aísla STORAGE_PATH y recarga kieru.core.config para cada prueba.

    Args:
        tmp_path (Path): Carpeta temporal proporcionada por pytest.
        monkeypatch (pytest.MonkeyPatch): Fixture para ajustar variables de entorno.

    Returns:
        Iterator[None]: Control del fixture autouse durante la ejecución de cada test.
    """
    data_dir = tmp_path / "_data"
    data_dir.mkdir()
    monkeypatch.setenv("STORAGE_PATH", str(data_dir))

    import kieru.core.config as config_module

    importlib.reload(config_module)

    yield
    # tmp_path se limpia automáticamente por pytest


class FakeSecretServer:
    """Servidor en memoria que aplica la política de acceso como lo haría el real."""

    def __init__(self) -> None:
        self.secrets: Dict[str, Dict[str, Any]] = {}
        self.requests: List[httpx.Request] = []
        self.issued_token = "session-token-1"
        self._next_id = 1

    def add_secret(
        self,
        payload,
        *,
        password: Optional[str] = None,
        max_views: int = 1,
        view_time_seconds: Optional[int] = None,
        show_time_bomb: bool = False,
        active: bool = True,
        name: str = "prueba",
    ):
        """Cifra el payload con una clave nueva y lo registra; devuelve (id, clave)."""

        key = crypto_sym.generate_key()
        secret_id = self._store(
            {
                "encryptedPayload": crypto_sym.encrypt(payload, key),
                "secretName": name,
                "type": payload.type.upper(),
                "password": password,
                "maxViews": max_views,
                "viewTimeSeconds": view_time_seconds,
                "showTimeBomb": show_time_bomb,
            }
        )
        self.secrets[secret_id]["active"] = active
        return secret_id, key

    def _store(self, body: Dict[str, Any]) -> str:
        secret_id = f"sec{self._next_id}"
        self._next_id += 1
        record = dict(body)
        record.setdefault("maxViews", 1)
        record.setdefault("viewTimeSeconds", None)
        record.setdefault("showTimeBomb", False)
        record.setdefault("password", None)
        record["views"] = 0
        record["active"] = True
        self.secrets[secret_id] = record
        return secret_id

    def views_left(self, secret_id: str) -> int:
        record = self.secrets[secret_id]
        return (record["maxViews"] or 1) - record["views"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/secrets/validate"):
            record = self.secrets.get(request.url.params.get("id", ""))
            if record is None:
                return httpx.Response(200, json={"isSuccess": False})
            return httpx.Response(
                200,
                json={
                    "isSuccess": True,
                    "isActive": record["active"],
                    "isPasswordProtected": bool(record["password"]),
                    "secretName": record["secretName"],
                    "viewsLeft": self.views_left(request.url.params["id"]),
                },
            )

        if "/secrets/access/" in path:
            secret_id = path.rsplit("/", 1)[-1]
            record = self.secrets.get(secret_id)
            if record is None:
                return httpx.Response(404, json={"isSuccess": False})
            if not record["active"] or self.views_left(secret_id) <= 0:
                return httpx.Response(403, json={"isSuccess": False})
            if record["password"] and request.url.params.get("password") != record["password"]:
                return httpx.Response(403, json={"isSuccess": False})
            record["views"] += 1
            return httpx.Response(
                200,
                json={
                    "isSuccess": True,
                    "content": record["encryptedPayload"],
                    "type": record["type"],
                    "showTimeBomb": record["showTimeBomb"],
                    "viewTimeSeconds": record["viewTimeSeconds"],
                    "expiresAt": record.get("expiresAt"),
                },
            )

        if path.endswith("/secrets/create"):
            secret_id = self._store(json.loads(request.content))
            return httpx.Response(200, json={"isSuccess": True, "secretId": secret_id})

        if path.endswith("/auth/login"):
            return httpx.Response(200, json={"isSuccess": True, "token": self.issued_token})

        if path.endswith("/auth/logout"):
            return httpx.Response(200, json={"isSuccess": True})

        if path.endswith("/assets/charLimits"):
            return httpx.Response(200, json={"charLimits": {"EXPLORER": 900}})

        if path.endswith("/assets/fileSizeLimits"):
            return httpx.Response(200, json={"fileLimit": {"DOMINATOR": 10 * 1024 * 1024}})

        return httpx.Response(404, json={"isSuccess": False})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def server() -> FakeSecretServer:
    """Servidor simulado vacío para cada prueba."""
    return FakeSecretServer()


@pytest.fixture
def session_store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def coordinator(server, session_store) -> RequestCoordinator:
    """Coordinador conectado al servidor simulado mediante `httpx.MockTransport`."""
    return RequestCoordinator(BASE_URL, session_store=session_store, transport=server.transport())


@pytest.fixture
def api(coordinator) -> SecretsApi:
    return SecretsApi(coordinator)
