"""Dispatcher - enruta cada DeviceData a su manejo por categoría.

- settings: alta de Device si el serial no existe (si existe, solo log)
- image: cadena device → mapping → user, escritura verificada y alta de Image
- video/audio: reservados, no hacen nada
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from ..decoding.image_frame import decode_frame
from ..domain.device_data import AudioData, DeviceData, ImageData, SettingsData, VideoData
from ..domain.records import DeviceRecord, ImageRecord, UserRecord
from ...errors import LookupNotFound, PersistenceFailure, UnrecognizedCategory
from ...infrastructure.persistence.repositories import Repositories
from ...infrastructure.storage.image_store import ImageStore

logger = logging.getLogger(__name__)


class DeviceSettingsPayload(BaseModel):
    """Campos del JSON de settings que se copian al Device."""
    model_config = ConfigDict(extra="ignore")

    model: Optional[str] = None
    firmware: Optional[str] = None


def parse_settings_payload(payload: bytes) -> DeviceSettingsPayload:
    """Parsea el JSON de settings; claves sin distinguir mayúsculas.

    Un campo con tipo incorrecto se descarta (y se loguea); el resto se
    conserva.

    Raises:
        ValueError: JSON inválido o no es un objeto
    """
    data = json.loads(payload.decode("utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"settings payload must be a JSON object, got {type(data).__name__}")
    normalized: Dict[str, Any] = {str(k).lower(): v for k, v in data.items()}
    try:
        return DeviceSettingsPayload.model_validate(normalized)
    except ValidationError as e:
        rejected = {err["loc"][0] for err in e.errors() if err["loc"]}
        for err in e.errors():
            logger.warning(
                "[DISPATCH] Ignoring settings field %s: %s",
                ".".join(map(str, err["loc"])), err["msg"],
            )
        valid = {k: v for k, v in normalized.items() if k not in rejected}
        return DeviceSettingsPayload.model_validate(valid)


class Dispatcher:
    """Aplica la lógica de cada categoría contra persistencia y caché."""

    def __init__(self, repositories: Repositories, image_store: ImageStore):
        self._repos = repositories
        self._store = image_store

    def dispatch(self, data: DeviceData) -> None:
        """Procesa un DeviceData.

        Raises:
            MessageError: cualquier fallo del mensaje (el caller lo descarta)
        """
        if isinstance(data, SettingsData):
            self._handle_settings(data)
        elif isinstance(data, ImageData):
            self._handle_image(data)
        elif isinstance(data, (VideoData, AudioData)):
            logger.debug("[DISPATCH] %s from %s ignored", data.category.value, data.device_id)
        else:
            raise UnrecognizedCategory(f"no handler for {type(data).__name__}")

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def _handle_settings(self, data: SettingsData) -> None:
        try:
            device = self._repos.devices.load_by_field(data.device_id)
        except LookupNotFound:
            device = None

        if device is not None:
            # Un settings repetido no actualiza el Device existente.
            logger.info(
                "[DISPATCH] Settings for known device %s (id=%d): %s",
                data.device_id, device.id, data.payload.decode("utf-8", errors="replace"),
            )
            return

        record = DeviceRecord(serial=data.device_id, active=1)
        try:
            fields = parse_settings_payload(data.payload)
        except (ValueError, ValidationError) as e:
            logger.warning("[DISPATCH] Invalid settings JSON from %s: %s", data.device_id, e)
        else:
            if fields.model is not None:
                record.model = fields.model
            if fields.firmware is not None:
                record.firmware = fields.firmware

        self._repos.devices.create(record)
        logger.info("[DISPATCH] Device created: serial=%s id=%d", record.serial, record.id)

    # ------------------------------------------------------------------
    # Image
    # ------------------------------------------------------------------

    def resolve_owner(self, serial: str) -> tuple[DeviceRecord, UserRecord]:
        """Cadena device (serial) → mapping (device_id) → user (id)."""
        device = self._repos.devices.load_by_field(serial)
        mapping = self._repos.device_user_mappings.load_by_field(device.id)
        user = self._repos.users.load(mapping.user_id)
        return device, user

    def _handle_image(self, data: ImageData) -> None:
        device, user = self.resolve_owner(data.device_id)
        frame = decode_frame(data.payload)
        path = self._store.write(user.username, frame)

        record = ImageRecord(user_id=user.id, device_id=device.id, path=str(path))
        try:
            self._repos.images.create(record)
        except PersistenceFailure:
            _discard(path)
            raise

        logger.info(
            "[DISPATCH] Image stored: device=%s user=%s path=%s",
            data.device_id, user.username, path,
        )


def _discard(path: Path) -> None:
    try:
        os.unlink(path)
    except OSError as e:
        logger.warning("[DISPATCH] Could not remove orphan image %s: %s", path, e)
