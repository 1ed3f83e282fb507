"""Decodificador de payloads: bytes crudos → variante DeviceData."""

from __future__ import annotations

from typing import Union

from ..domain.device_data import VARIANTS, Category, DeviceData
from ...errors import UnrecognizedCategory


def decode_payload(category: Union[Category, str], device_id: str, payload: bytes) -> DeviceData:
    """Construye la variante correspondiente a ``category``.

    No valida el contenido: la forma del JSON de settings la comprueba el
    dispatcher y el frame de imagen se decodifica más adelante.
    """
    try:
        variant = VARIANTS[Category(category)]
    except (KeyError, ValueError):
        raise UnrecognizedCategory(f"unsupported category: {category!r}") from None

    if isinstance(payload, str):
        payload = payload.encode("utf-8")

    return variant(device_id=device_id, payload=bytes(payload))
