# --------------------------------------------------------------
# File: 1_Crear_Secreto.py
# Description: Formulario de creación: cifra en local y muestra el enlace compartible.
# --------------------------------------------------------------

import asyncio
from datetime import datetime

import streamlit as st

from kieru.api.creation import create_secret
from kieru.api.services import default_api
from kieru.core.creation_policy import MAX_NAME_LENGTH, PlanLimits, PlanTier, can_upload_images, default_expiry
from kieru.core.errors import CreationError, RequestAborted, RequestError
from kieru.core.models import ImagePayload, SecretSettings, TextPayload

st.title("✍️ Crear secreto")

api = default_api()

# Carga una única vez los límites del plan; si fallan se usan los locales.
if "plan_limits" not in st.session_state:
    st.session_state["plan_limits"] = asyncio.run(api.fetch_plan_limits())
limits: PlanLimits = st.session_state["plan_limits"]

plan = PlanTier(st.session_state.get("plan", PlanTier.ANONYMOUS.value))
st.caption(f"Plan: **{plan.value}** · límite de texto {limits.char_limit(plan)} caracteres")

# Resultado de la creación anterior.
link = st.session_state.get("created_link")
if link:
    st.success("Secreto creado. Comparte este enlace; la clave va tras el `#`.")
    st.code(link, language="text")
    if st.button("Crear otro"):
        st.session_state.pop("created_link", None)
        st.rerun()
    st.stop()

content_type = st.radio("Tipo de contenido", ["Texto", "Imagen"], horizontal=True)
secret_name = st.text_input("Nombre del secreto", max_chars=MAX_NAME_LENGTH)

payload = None
if content_type == "Texto":
    text = st.text_area("Texto", max_chars=limits.char_limit(plan))
    payload = TextPayload(body=text)
elif not can_upload_images(plan):
    st.warning("Mejora al plan EXPLORER para subir imágenes.")
else:
    upload = st.file_uploader("Imagen", type=["png", "jpg", "jpeg", "gif", "webp"])
    if upload is not None:
        payload = ImagePayload.from_bytes(upload.read(), upload.name, upload.type or "application/octet-stream")

settings = None
with st.expander("Más opciones"):
    use_settings = st.checkbox("Aplicar estas opciones")
    max_views = st.number_input("Visualizaciones máximas", min_value=1, value=1, step=1)
    view_time = st.number_input("Segundos de visualización", min_value=1, value=60, step=1)
    show_time_bomb = st.checkbox("Mostrar la cuenta atrás", value=True)
    expiry = default_expiry()
    expiry_date = st.date_input("Caduca el día", value=expiry.date())
    expiry_time = st.time_input("a las", value=expiry.time().replace(second=0, microsecond=0))
    password = st.text_input("Contraseña (opcional)", type="password")
    if use_settings:
        settings = SecretSettings(
            max_views=int(max_views),
            view_time_seconds=int(view_time),
            show_time_bomb=show_time_bomb,
            expires_at=datetime.combine(expiry_date, expiry_time).astimezone(),
            password=password or None,
        )

if st.button("🔒 Cifrar y crear enlace", disabled=payload is None):
    try:
        created = asyncio.run(
            create_secret(api, payload, secret_name=secret_name, settings=settings, plan=plan, limits=limits)
        )
    except CreationError as exc:
        st.error(str(exc))
    except RequestAborted:
        st.info("Ya había una creación en curso.")
    except RequestError as exc:
        st.error(f"No se pudo crear el secreto: {exc}")
    else:
        st.session_state["created_link"] = created.link
        st.rerun()
