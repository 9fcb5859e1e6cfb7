# --------------------------------------------------------------
# File: Home.py
# Description: Define la página principal de Streamlit con el resumen del flujo.
# --------------------------------------------------------------

import streamlit as st

from kieru.core.config import configure_logging

configure_logging()

# Configura los metadatos de la página principal de la aplicación.
st.set_page_config(page_title="Kieru", page_icon="🔥", layout="centered")

# Presenta el nombre del producto y su propósito general.
st.title("🔥 Kieru")
st.write(
    "Comparte textos e imágenes cifrados en tu dispositivo con AES-GCM. "
    "La clave viaja sólo en el fragmento del enlace y el servidor nunca la ve."
)
st.info("Ve a **Crear secreto** para generar un enlace o a **Ver secreto** para abrir uno.")
