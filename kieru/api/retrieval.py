# --------------------------------------------------------------
# File: retrieval.py
# Description: Máquina de estados que recupera, descifra y quema un secreto.
# --------------------------------------------------------------
"""Orquestador del lado de quien recibe el enlace.

Flujo: enlace → validación → (contraseña) → acceso → descifrado → visualización
→ quemado, con un estado `FAILED` absorbente. Cada ejecución del flujo lleva un
número de época: cualquier respuesta que llegue después de un reinicio, un
cierre o un estado terminal se descarta sin aplicarse.

La clave de descifrado sólo se lee del fragmento del enlace y nunca se pasa a
la capa de red; el servidor es quien hace cumplir visitas y caducidad, la
validación previa sólo evita peticiones inútiles.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Union

from kieru.api.services import SecretsApi
from kieru.core import crypto_sym
from kieru.core.errors import (
    DecryptionError,
    FailureReason,
    InvalidLinkError,
    InvalidTransitionError,
    RequestAborted,
    RequestError,
)
from kieru.core.links import SecretLink, parse_link
from kieru.core.models import ImagePayload, SecretAccessPolicy, TextPayload

logger = logging.getLogger(__name__)


class RetrievalState(str, Enum):
    """Estados del flujo de recuperación."""

    IDLE = "IDLE"
    PARSING_LINK = "PARSING_LINK"
    VALIDATING = "VALIDATING"
    PASSWORD_REQUIRED = "PASSWORD_REQUIRED"
    FETCHING = "FETCHING"
    DECRYPTING = "DECRYPTING"
    VIEWING = "VIEWING"
    BURNED = "BURNED"
    FAILED = "FAILED"


TERMINAL_STATES = frozenset({RetrievalState.BURNED, RetrievalState.FAILED})

StateListener = Callable[[RetrievalState, "SecretRetrieval"], None]


@dataclass
class RetrievalSession:
    """Datos de trabajo de una recuperación concreta."""

    secret_id: str
    decryption_key: Optional[str] = field(default=None, repr=False)
    password: Optional[str] = field(default=None, repr=False)
    policy: Optional[SecretAccessPolicy] = None
    encrypted_envelope: Optional[str] = field(default=None, repr=False)
    content_type: Optional[str] = None
    show_time_bomb: bool = False
    view_time_seconds: Optional[int] = None
    expires_at: Optional[datetime] = None
    decrypted_payload: Optional[Union[TextPayload, ImagePayload]] = field(default=None, repr=False)
    remaining_view_seconds: Optional[int] = None
    obscured: bool = False
    manual_burn: bool = False

    def wipe(self) -> None:
        """Suelta clave, contraseña, sobre y claro."""

        self.decryption_key = None
        self.password = None
        self.encrypted_envelope = None
        self.decrypted_payload = None


def format_countdown(seconds: int) -> str:
    """Formatea la cuenta atrás como `H:MM:SS`, `M:SS` o `Ns`."""

    seconds = max(0, int(seconds))
    if seconds >= 3600:
        hours, rest = divmod(seconds, 3600)
        mins, secs = divmod(rest, 60)
        return f"{hours}:{mins:02d}:{secs:02d}"
    if seconds >= 60:
        mins, secs = divmod(seconds, 60)
        return f"{mins}:{secs:02d}"
    return f"{seconds}s"


class SecretRetrieval:
    """Máquina de estados de recuperación de un secreto.

    Args:
        api (SecretsApi): Servicios HTTP (inyectados).
        auto_countdown (bool): Si es ``True`` la cuenta atrás corre en una tarea
            asyncio; si es ``False`` el host llama a :meth:`tick`.
        tick_interval (float): Segundos reales entre ticks de la tarea.
    """

    def __init__(self, api: SecretsApi, *, auto_countdown: bool = True, tick_interval: float = 1.0) -> None:
        self.api = api
        self.auto_countdown = auto_countdown
        self.tick_interval = tick_interval
        self.state = RetrievalState.IDLE
        self.session: Optional[RetrievalSession] = None
        self.failure: Optional[FailureReason] = None
        self.notice: Optional[FailureReason] = None
        self._epoch = 0
        self._countdown: Optional[asyncio.Task] = None
        self._listeners: List[StateListener] = []

    # -- observación -------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Registra un oyente de transiciones y devuelve la función para darlo de baja."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def message(self) -> Optional[str]:
        """Mensaje para la UI: el motivo del fallo o el aviso de contraseña incorrecta."""

        reason = self.failure or self.notice
        return reason.message if reason else None

    @property
    def payload(self) -> Optional[Union[TextPayload, ImagePayload]]:
        return self.session.decrypted_payload if self.session else None

    @property
    def remaining_seconds(self) -> Optional[int]:
        return self.session.remaining_view_seconds if self.session else None

    @property
    def obscured(self) -> bool:
        return bool(self.session and self.session.obscured)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    # -- entradas ----------------------------------------------------------

    async def open_link(self, secret_id: str, key: str) -> RetrievalState:
        """Arranca el flujo con el par recibido al abrir un enlace directo."""

        epoch = self._restart()
        self._set_state(RetrievalState.PARSING_LINK)
        try:
            link = SecretLink.from_parts(secret_id, key)
        except InvalidLinkError:
            self._fail(FailureReason.INVALID_LINK)
            return self.state
        return await self._begin(epoch, link)

    async def open_pasted_url(self, raw: str) -> RetrievalState:
        """Arranca el flujo a partir de un enlace completo pegado a mano."""

        epoch = self._restart()
        self._set_state(RetrievalState.PARSING_LINK)
        try:
            link = parse_link(raw)
        except InvalidLinkError:
            self._fail(FailureReason.INVALID_LINK)
            return self.state
        return await self._begin(epoch, link)

    async def submit_password(self, password: str) -> RetrievalState:
        """Envía la contraseña introducida; sólo válido en `PASSWORD_REQUIRED`.

        Raises:
            InvalidTransitionError: Si la sesión no está esperando contraseña.

        """

        if self.state is not RetrievalState.PASSWORD_REQUIRED or self.session is None:
            raise InvalidTransitionError(f"No se espera contraseña en el estado {self.state.value}.")
        self.session.password = password or None
        await self._fetch(self._epoch)
        return self.state

    def burn(self, *, manual: bool = True) -> bool:
        """Quema la sesión en visualización; devuelve ``False`` si ya no aplica."""

        if self.state is not RetrievalState.VIEWING or self.session is None:
            return False
        self.session.manual_burn = manual
        if not manual:
            self.session.remaining_view_seconds = 0
        self._stop_countdown()
        self.session.wipe()
        logger.info("Secreto %s quemado (%s)", self.session.secret_id, "manual" if manual else "tiempo agotado")
        self._set_state(RetrievalState.BURNED)
        return True

    def tick(self, seconds: int = 1) -> bool:
        """Avanza la cuenta atrás; devuelve ``True`` si este tick quemó el secreto."""

        session = self.session
        if self.state is not RetrievalState.VIEWING or session is None:
            return False
        if session.remaining_view_seconds is None:
            return False
        session.remaining_view_seconds = max(0, session.remaining_view_seconds - int(seconds))
        if session.remaining_view_seconds == 0:
            return self.burn(manual=False)
        return False

    def note_attention_lost(self) -> None:
        """La ventana perdió el foco: se oculta el contenido sin tocar la cuenta atrás."""

        self._set_obscured(True)

    def note_activity(self) -> None:
        """Actividad de puntero o teclado durante la visualización: se oculta el contenido."""

        self._set_obscured(True)

    def note_focus_gained(self) -> None:
        self._set_obscured(False)

    def reveal(self) -> None:
        """Petición explícita de volver a mostrar el contenido."""

        self._set_obscured(False)

    def close(self) -> None:
        """Abandona la sesión: descarta respuestas pendientes y suelta los datos."""

        self._restart()
        self._set_state(RetrievalState.IDLE)

    # -- pasos internos ----------------------------------------------------

    async def _begin(self, epoch: int, link: SecretLink) -> RetrievalState:
        self.session = RetrievalSession(secret_id=link.secret_id, decryption_key=link.key)
        await self._validate(epoch)
        return self.state

    async def _validate(self, epoch: int) -> None:
        session = self.session
        self._set_state(RetrievalState.VALIDATING)
        try:
            policy = await self.api.validate_secret(session.secret_id)
        except RequestAborted:
            logger.debug("Validación de %s abortada; se ignora", session.secret_id)
            return
        except RequestError as exc:
            if self._is_current(epoch, RetrievalState.VALIDATING):
                logger.warning("Error validando %s: %s", session.secret_id, exc)
                self._fail(FailureReason.NETWORK_ERROR)
            return

        if not self._is_current(epoch, RetrievalState.VALIDATING):
            logger.debug("Respuesta de validación obsoleta descartada")
            return

        if policy is None:
            self._fail(FailureReason.NOT_FOUND)
            return
        session.policy = policy
        if not policy.is_active:
            self._fail(FailureReason.INACTIVE)
        elif policy.views_left <= 0:
            self._fail(FailureReason.VIEWS_EXHAUSTED)
        elif policy.is_password_protected:
            self._set_state(RetrievalState.PASSWORD_REQUIRED)
        else:
            session.password = None
            await self._fetch(epoch)

    async def _fetch(self, epoch: int) -> None:
        session = self.session
        password = session.password
        self._set_state(RetrievalState.FETCHING)
        try:
            grant = await self.api.access_secret(session.secret_id, password)
        except RequestAborted:
            logger.debug("Acceso a %s abortado; se ignora", session.secret_id)
            return
        except RequestError as exc:
            if self._is_current(epoch, RetrievalState.FETCHING):
                logger.warning("Error accediendo a %s: %s", session.secret_id, exc)
                self._fail(FailureReason.NETWORK_ERROR)
            return

        if not self._is_current(epoch, RetrievalState.FETCHING):
            logger.debug("Respuesta de acceso obsoleta descartada")
            return

        if grant is None:
            if password:
                session.password = None
                self.notice = FailureReason.INCORRECT_PASSWORD
                self._set_state(RetrievalState.PASSWORD_REQUIRED)
            else:
                self._fail(FailureReason.ACCESS_DENIED)
            return

        self.notice = None
        session.encrypted_envelope = grant.content
        session.content_type = grant.type
        session.show_time_bomb = grant.show_time_bomb
        session.view_time_seconds = grant.view_time_seconds
        session.expires_at = grant.expires_at
        self._decrypt(epoch)

    def _decrypt(self, epoch: int) -> None:
        session = self.session
        self._set_state(RetrievalState.DECRYPTING)
        try:
            payload = crypto_sym.decrypt(session.encrypted_envelope, session.decryption_key)
        except DecryptionError:
            self._fail(FailureReason.DECRYPTION_FAILED)
            return

        session.encrypted_envelope = None
        session.decrypted_payload = payload
        if session.view_time_seconds and session.view_time_seconds > 0:
            session.remaining_view_seconds = session.view_time_seconds
        self._set_state(RetrievalState.VIEWING)
        if session.remaining_view_seconds is not None and self.auto_countdown:
            self._countdown = asyncio.create_task(self._run_countdown(epoch))

    async def _run_countdown(self, epoch: int) -> None:
        while self._epoch == epoch and self.state is RetrievalState.VIEWING:
            await asyncio.sleep(self.tick_interval)
            if self._epoch != epoch:
                return
            self.tick(1)

    # -- utilidades --------------------------------------------------------

    def _is_current(self, epoch: int, expected: RetrievalState) -> bool:
        return epoch == self._epoch and self.state is expected

    def _restart(self) -> int:
        self._epoch += 1
        self._stop_countdown()
        if self.session is not None:
            self.session.wipe()
        self.session = None
        self.failure = None
        self.notice = None
        return self._epoch

    def _fail(self, reason: FailureReason) -> None:
        logger.info("Recuperación fallida: %s", reason.value)
        self._stop_countdown()
        if self.session is not None:
            self.session.wipe()
        self.failure = reason
        self._set_state(RetrievalState.FAILED)

    def _stop_countdown(self) -> None:
        task, self._countdown = self._countdown, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()

    def _set_obscured(self, value: bool) -> None:
        if self.state is RetrievalState.VIEWING and self.session is not None:
            self.session.obscured = value

    def _set_state(self, state: RetrievalState) -> None:
        self.state = state
        for listener in list(self._listeners):
            listener(state, self)
