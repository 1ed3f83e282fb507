"""Modelo de dominio para datos de dispositivos.

Variante etiquetada: cada clase fija su ``category`` a nivel de clase, de modo
que la categoría no cambia una vez construido el valor.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar


class Category(str, Enum):
    """Categoría de mensaje, en orden de precedencia."""
    SETTINGS = "settings"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


# Orden fijo de clasificación: gana la primera palabra clave encontrada.
CATEGORY_ORDER: tuple[Category, ...] = (
    Category.SETTINGS,
    Category.IMAGE,
    Category.VIDEO,
    Category.AUDIO,
)


@dataclass(frozen=True)
class DeviceData:
    """Dato recibido de un dispositivo.

    - device_id: último segmento del topic
    - payload: bytes crudos del mensaje, sin modificar
    """
    category: ClassVar[Category]

    device_id: str
    payload: bytes


@dataclass(frozen=True)
class SettingsData(DeviceData):
    category: ClassVar[Category] = Category.SETTINGS


@dataclass(frozen=True)
class ImageData(DeviceData):
    category: ClassVar[Category] = Category.IMAGE


@dataclass(frozen=True)
class VideoData(DeviceData):
    category: ClassVar[Category] = Category.VIDEO


@dataclass(frozen=True)
class AudioData(DeviceData):
    category: ClassVar[Category] = Category.AUDIO


VARIANTS: dict[Category, type[DeviceData]] = {
    Category.SETTINGS: SettingsData,
    Category.IMAGE: ImageData,
    Category.VIDEO: VideoData,
    Category.AUDIO: AudioData,
}
