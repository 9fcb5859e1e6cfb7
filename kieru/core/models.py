# --------------------------------------------------------------
# File: models.py
# Description: Modelos de datos comunes de contenido, política y contrato HTTP.
# --------------------------------------------------------------
"""Modelos Pydantic que encapsulan payloads cifrables y respuestas del servidor."""

import base64
import json
from datetime import datetime
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_serializer

NONCE_SIZE = 12
TAG_SIZE = 16


class WireModel(BaseModel):
    """Base de los modelos que viajan en JSON con nombres camelCase."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class EnvelopeParts(BaseModel):
    """Representa un sobre AES-GCM descompuesto.

    Attributes:
        nonce (bytes): Vector de inicialización de 96 bits.
        ciphertext (bytes): Datos cifrados sin etiqueta.
        tag (bytes): Etiqueta de autenticación de 128 bits.

    """

    nonce: bytes
    ciphertext: bytes
    tag: bytes

    def to_envelope(self) -> str:
        """Serializa como `base64(nonce || ciphertext || tag)`."""

        return base64.b64encode(self.nonce + self.ciphertext + self.tag).decode("ascii")

    @classmethod
    def from_envelope(cls, envelope: str) -> "EnvelopeParts":
        """Decodifica un sobre en base64 y separa nonce, ciphertext y tag.

        Args:
            envelope (str): Sobre cifrado en base64 estándar.

        Returns:
            EnvelopeParts: Partes del sobre.

        Raises:
            ValueError: Si el base64 no es válido o el sobre es demasiado corto.

        """

        combined = base64.b64decode(envelope, validate=True)
        if len(combined) < NONCE_SIZE + TAG_SIZE:
            raise ValueError("sobre demasiado corto")
        return cls(
            nonce=combined[:NONCE_SIZE],
            ciphertext=combined[NONCE_SIZE:-TAG_SIZE],
            tag=combined[-TAG_SIZE:],
        )


class TextPayload(WireModel):
    """Secreto de texto plano."""

    type: Literal["text"] = "text"
    body: str = Field(alias="data")


class ImagePayload(WireModel):
    """Secreto de imagen transportado en base64 (o como data URL)."""

    type: Literal["image"] = "image"
    bytes_base64: str = Field(alias="data")
    filename: str = Field(alias="name")
    mime_type: str = Field(alias="mimeType")

    @classmethod
    def from_bytes(cls, data: bytes, filename: str, mime_type: str) -> "ImagePayload":
        """Construye el payload a partir de los bytes de la imagen."""

        return cls(
            bytes_base64=base64.b64encode(data).decode("ascii"),
            filename=filename,
            mime_type=mime_type,
        )

    def raw_bytes(self) -> bytes:
        """Devuelve los bytes de la imagen aceptando base64 simple o data URL."""

        value = self.bytes_base64
        if value.startswith("data:") and "," in value:
            value = value.split(",", 1)[1]
        return base64.b64decode(value)


ContentPayload = Annotated[Union[TextPayload, ImagePayload], Field(discriminator="type")]

PAYLOAD_ADAPTER: TypeAdapter = TypeAdapter(ContentPayload)


def payload_to_json(payload: Union[TextPayload, ImagePayload]) -> str:
    """Serializa un payload de forma canónica antes de cifrarlo.

    Args:
        payload (TextPayload | ImagePayload): Contenido a serializar.

    Returns:
        str: JSON con claves ordenadas y sin espacios.

    """

    return json.dumps(
        payload.model_dump(by_alias=True),
        separators=(",", ":"),
        sort_keys=True,
        ensure_ascii=False,
    )


def payload_from_json(text: str) -> Union[TextPayload, ImagePayload]:
    """Reconstruye un payload validando su forma; lanza `ValidationError` si no encaja."""

    return PAYLOAD_ADAPTER.validate_json(text)


class SecretAccessPolicy(WireModel):
    """Política de acceso declarada por el servidor (sólo lectura en el cliente)."""

    is_password_protected: bool = Field(alias="isPasswordProtected")
    is_active: bool = Field(alias="isActive")
    views_left: int = Field(alias="viewsLeft")
    max_views: Optional[int] = Field(default=None, alias="maxViews")
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")
    view_time_seconds: Optional[int] = Field(default=None, alias="viewTimeSeconds")
    show_time_bomb: bool = Field(default=False, alias="showTimeBomb")
    secret_name: Optional[str] = Field(default=None, alias="secretName")


class AccessGrant(WireModel):
    """Respuesta satisfactoria del endpoint de acceso."""

    content: str = Field(min_length=1)
    type: Optional[str] = None
    show_time_bomb: bool = Field(default=False, alias="showTimeBomb")
    view_time_seconds: Optional[int] = Field(default=None, alias="viewTimeSeconds")
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")


class SecretSettings(WireModel):
    """Opciones elegidas por quien crea el secreto."""

    max_views: int = Field(default=1, alias="maxViews")
    password: Optional[str] = None
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")
    view_time_seconds: Optional[int] = Field(default=60, alias="viewTimeSeconds")
    show_time_bomb: bool = Field(default=True, alias="showTimeBomb")


class CreateSecretRequest(WireModel):
    """Cuerpo de `POST /secrets/create`; nunca contiene la clave."""

    encrypted_payload: str = Field(alias="encryptedPayload")
    secret_name: str = Field(alias="secretName")
    type: str
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")
    password: Optional[str] = None
    max_views: Optional[int] = Field(default=None, alias="maxViews")
    view_time_seconds: Optional[int] = Field(default=None, alias="viewTimeSeconds")
    show_time_bomb: Optional[bool] = Field(default=None, alias="showTimeBomb")

    @field_serializer("expires_at")
    def _expires_at_millis(self, value: Optional[datetime]) -> Optional[int]:
        if value is None:
            return None
        return int(value.timestamp() * 1000)

    def to_body(self) -> Dict[str, Any]:
        """Devuelve el cuerpo JSON con alias camelCase y sin campos vacíos."""

        return self.model_dump(by_alias=True, exclude_none=True)


class CreateSecretResponse(WireModel):
    """Respuesta de creación."""

    is_success: bool = Field(alias="isSuccess")
    secret_id: Optional[str] = Field(default=None, alias="secretId")
