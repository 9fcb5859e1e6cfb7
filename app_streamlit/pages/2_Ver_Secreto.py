# --------------------------------------------------------------
# File: 2_Ver_Secreto.py
# Description: Abre un enlace pegado, pide contraseña si hace falta y muestra el secreto.
# --------------------------------------------------------------

import asyncio
import time

import streamlit as st

from kieru.api.retrieval import RetrievalState, SecretRetrieval, format_countdown
from kieru.api.services import default_api
from kieru.core.models import ImagePayload

st.title("👁️ Ver secreto")

# La cuenta atrás la avanza esta página en cada recarga (no hay bucle asyncio persistente).
if "retrieval" not in st.session_state:
    st.session_state["retrieval"] = SecretRetrieval(default_api(), auto_countdown=False)
retrieval: SecretRetrieval = st.session_state["retrieval"]


def _advance_countdown() -> None:
    """Descuenta los segundos enteros transcurridos desde el último tick."""

    last = st.session_state.get("last_tick")
    now = time.monotonic()
    if last is None:
        st.session_state["last_tick"] = now
        return
    elapsed = int(now - last)
    if elapsed:
        st.session_state["last_tick"] = last + elapsed
        retrieval.tick(elapsed)


state = retrieval.state

if state in (RetrievalState.IDLE, RetrievalState.FAILED, RetrievalState.BURNED):
    if state is RetrievalState.FAILED:
        st.error(retrieval.message)
    elif state is RetrievalState.BURNED:
        manual = retrieval.session is not None and retrieval.session.manual_burn
        st.warning(
            "Este mensaje se ha quemado y ya no es accesible."
            if manual
            else "Este mensaje se ha autodestruido y ya no es accesible."
        )
    raw = st.text_input("Pega el enlace completo", placeholder="https://kieru.com/view/...#...")
    if st.button("Revelar") and raw.strip():
        st.session_state.pop("last_tick", None)
        asyncio.run(retrieval.open_pasted_url(raw))
        st.rerun()

elif state is RetrievalState.PASSWORD_REQUIRED:
    policy = retrieval.session.policy if retrieval.session else None
    if policy is not None and policy.secret_name:
        st.subheader(policy.secret_name)
    if retrieval.message:
        st.error(retrieval.message)
    password = st.text_input("Contraseña", type="password")
    if st.button("Desbloquear"):
        asyncio.run(retrieval.submit_password(password))
        st.rerun()

elif state is RetrievalState.VIEWING:
    _advance_countdown()
    if retrieval.state is RetrievalState.VIEWING:
        remaining = retrieval.remaining_seconds
        session = retrieval.session
        if remaining is not None and session.show_time_bomb:
            st.metric("Tiempo restante", format_countdown(remaining))

        if retrieval.obscured:
            st.info("🛡️ Modo seguro activo")
            if st.button("Revelar secreto"):
                retrieval.reveal()
                st.rerun()
        else:
            payload = retrieval.payload
            if isinstance(payload, ImagePayload):
                st.image(payload.raw_bytes(), caption=payload.filename)
            else:
                st.text(payload.body)
            if st.button("Ocultar"):
                retrieval.note_attention_lost()
                st.rerun()

        if st.button("🔥 Quemar secreto"):
            retrieval.burn()
            st.rerun()

        if remaining is not None:
            time.sleep(1)
            st.rerun()
    else:
        st.rerun()

else:
    st.info("Procesando…")
