# --------------------------------------------------------------
# File: 3_Sesion.py
# Description: Inicia o cierra la sesión del backend y elige el plan con el que crear.
# --------------------------------------------------------------

import asyncio

import streamlit as st

from kieru.api.services import default_api
from kieru.core.creation_policy import PlanTier
from kieru.core.errors import RequestError

# Presenta el título general de la página.
st.title("👤 Sesión")

api = default_api()
store = api.coordinator.session_store

if store.token:
    st.success("Sesión iniciada: el token se adjunta a cada petición.")
    if st.button("Cerrar sesión"):
        try:
            asyncio.run(api.logout())
        except RequestError as exc:
            st.warning(f"El servidor no confirmó el cierre: {exc}")
        st.rerun()
else:
    provider_token = st.text_input("Token del proveedor de identidad", type="password")
    if st.button("Iniciar sesión", disabled=not provider_token):
        try:
            asyncio.run(api.backend_login(provider_token))
        except RequestError as exc:
            st.error(f"No se pudo iniciar sesión: {exc}")
        else:
            st.rerun()

# El plan sólo decide los límites que se comprueban en local; el servidor manda.
tiers = [tier.value for tier in PlanTier]
current = st.session_state.get("plan", PlanTier.ANONYMOUS.value)
st.session_state["plan"] = st.selectbox("Plan", tiers, index=tiers.index(current))
