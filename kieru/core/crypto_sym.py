# --------------------------------------------------------------
# File: crypto_sym.py
# Description: Primitivas AES-GCM y cifrado de sobres para los secretos compartidos.
# --------------------------------------------------------------
"""Rutinas de cifrado simétrico para proteger el contenido en el dispositivo."""

import base64
import binascii
import logging
import os
from typing import Optional, Tuple, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import ValidationError

from kieru.core.errors import DecryptionError, EncryptionError
from kieru.core.models import (
    NONCE_SIZE,
    TAG_SIZE,
    EnvelopeParts,
    ImagePayload,
    TextPayload,
    payload_from_json,
    payload_to_json,
)

logger = logging.getLogger(__name__)

KEY_SIZE = 32


def _b64u(data: bytes) -> str:
    """Codifica datos binarios en Base64 URL-safe sin relleno."""

    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _unb64u(value: str) -> bytes:
    """Decodifica datos codificados en Base64 URL-safe gestionando el relleno."""

    pad = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + pad)


def _key_bytes(key: str) -> bytes:
    """Convierte la clave del fragmento en 32 bytes o lanza `ValueError`."""

    if not isinstance(key, str) or not key:
        raise ValueError("clave vacía")
    raw = _unb64u(key)
    if len(raw) != KEY_SIZE:
        raise ValueError(f"longitud de clave {len(raw)} bytes")
    return raw


def aes_gcm_encrypt_with_key(
    key: bytes, plaintext: bytes, aad: Optional[bytes] = None
) -> Tuple[bytes, bytes, bytes]:
    """Cifra datos con AES-GCM utilizando una clave proporcionada.

    Args:
        key (bytes): Clave simétrica de 128, 192 o 256 bits.
        plaintext (bytes): Datos a cifrar.
        aad (Optional[bytes]): Datos autenticados adicionales.

    Returns:
        Tuple[bytes, bytes, bytes]: Ciphertext sin etiqueta, nonce y tag.

    """

    nonce = os.urandom(NONCE_SIZE)
    aes = AESGCM(key)
    ct_full = aes.encrypt(nonce, plaintext, aad)
    tag = ct_full[-TAG_SIZE:]
    ciphertext = ct_full[:-TAG_SIZE]
    return ciphertext, nonce, tag


def aes_gcm_decrypt_with_key(
    key: bytes, nonce: bytes, ciphertext: bytes, tag: bytes, aad: Optional[bytes] = None
) -> bytes:
    """Descifra datos con AES-GCM utilizando la clave simétrica proporcionada.

    Args:
        key (bytes): Clave simétrica que protege los datos.
        nonce (bytes): Vector de inicialización de 96 bits.
        ciphertext (bytes): Datos cifrados sin etiqueta.
        tag (bytes): Etiqueta de autenticación de 128 bits.
        aad (Optional[bytes]): Datos autenticados adicionales.

    Returns:
        bytes: Mensaje original en claro.

    """

    aes = AESGCM(key)
    return aes.decrypt(nonce, ciphertext + tag, aad)


def generate_key() -> str:
    """Genera una clave AES-256 aleatoria lista para el fragmento del enlace.

    Returns:
        str: 32 bytes aleatorios en Base64 URL-safe sin relleno (43 caracteres).

    """

    return _b64u(os.urandom(KEY_SIZE))


def encrypt(payload: Union[TextPayload, ImagePayload], key: str) -> str:
    """Serializa y cifra un payload produciendo el sobre que se sube al servidor.

    Cada llamada usa un nonce aleatorio nuevo, por lo que cifrar dos veces el
    mismo contenido con la misma clave produce sobres distintos.

    Args:
        payload (TextPayload | ImagePayload): Contenido a proteger.
        key (str): Clave generada con :func:`generate_key`.

    Returns:
        str: `base64(nonce || ciphertext || tag)`.

    Raises:
        EncryptionError: Si la clave está mal formada.

    """

    try:
        raw_key = _key_bytes(key)
    except (ValueError, binascii.Error) as exc:
        raise EncryptionError("Clave de cifrado mal formada.") from exc

    plaintext = payload_to_json(payload).encode("utf-8")
    ciphertext, nonce, tag = aes_gcm_encrypt_with_key(raw_key, plaintext)
    return EnvelopeParts(nonce=nonce, ciphertext=ciphertext, tag=tag).to_envelope()


def decrypt(envelope: str, key: str) -> Union[TextPayload, ImagePayload]:
    """Autentica, descifra y deserializa un sobre.

    Args:
        envelope (str): Sobre recibido del servidor.
        key (str): Clave leída del fragmento del enlace.

    Returns:
        TextPayload | ImagePayload: Contenido original.

    Raises:
        DecryptionError: Ante clave mal formada, sobre manipulado, clave
        incorrecta o contenido que no es un payload; siempre el mismo error.

    """

    try:
        raw_key = _key_bytes(key)
    except (ValueError, binascii.Error):
        logger.debug("Descifrado rechazado: clave mal formada")
        raise DecryptionError() from None

    try:
        parts = EnvelopeParts.from_envelope(envelope)
        plaintext = aes_gcm_decrypt_with_key(raw_key, parts.nonce, parts.ciphertext, parts.tag)
    except (ValueError, TypeError):
        logger.debug("Descifrado rechazado: sobre mal codificado")
        raise DecryptionError() from None
    except InvalidTag:
        logger.debug("Descifrado rechazado: etiqueta de autenticación inválida")
        raise DecryptionError() from None

    try:
        return payload_from_json(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, ValidationError):
        logger.debug("Descifrado rechazado: el claro no es un payload")
        raise DecryptionError() from None
    finally:
        del plaintext
