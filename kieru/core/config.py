# --------------------------------------------------------------
# File: config.py
# Description: Parámetros de entorno y configuración de logging del cliente.
# --------------------------------------------------------------
import logging
import os

from dotenv import load_dotenv

load_dotenv()

API_BASE_URL = os.getenv("KIERU_API_URL", "http://localhost:8080/api")
APP_ORIGIN = os.getenv("KIERU_APP_ORIGIN", "https://kieru.com")
REQUEST_TIMEOUT = float(os.getenv("KIERU_REQUEST_TIMEOUT", "30"))
CONFIRM_TIMEOUT = float(os.getenv("KIERU_CONFIRM_TIMEOUT", "60"))
DATA_DIR = os.getenv("STORAGE_PATH", "./_data")
SESSION_PATH = os.path.join(DATA_DIR, "session.json")
LOG_LEVEL = os.getenv("KIERU_LOG_LEVEL", "INFO")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Configura el logging raíz para los hosts (Streamlit, scripts)."""

    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # httpx registra cada URL a nivel INFO y la de acceso puede llevar la contraseña.
    logging.getLogger("httpx").setLevel(logging.WARNING)
