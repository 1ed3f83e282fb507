"""Identificador de cliente MQTT del gateway.

Orden: fichero identificador → número de serie (dmidecode) → MAC → ``id_failure``.
"""

from __future__ import annotations

import logging
import subprocess
import uuid
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

DMIDECODE = "/usr/sbin/dmidecode"
FALLBACK_CLIENT_ID = "id_failure"


def read_identifier_file(path: Union[str, Path]) -> Optional[str]:
    try:
        content = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("[ID] Identifier file %s not usable: %s", path, e)
        return None
    for line in content.splitlines():
        if line.strip():
            return line.strip()
    return None


def read_hardware_serial(command: str = DMIDECODE) -> Optional[str]:
    """Número de serie según ``dmidecode -t system``."""
    try:
        result = subprocess.run(
            [command, "-t", "system"],
            capture_output=True,
            text=True,
            timeout=5,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("[ID] dmidecode not usable: %s", e)
        return None

    for line in result.stdout.splitlines():
        if "Serial Number" in line:
            serial = line.split(":")[-1].strip()
            return serial or None
    return None


def read_mac_address() -> Optional[str]:
    node = uuid.getnode()
    # bit multicast activo: uuid generó un número aleatorio, no una MAC real
    if (node >> 40) & 0x01:
        return None
    return ":".join(f"{(node >> shift) & 0xFF:02x}" for shift in range(40, -1, -8))


def determine_client_id(identifier_path: Union[str, Path]) -> str:
    for source, value in (
        ("identifier file", lambda: read_identifier_file(identifier_path)),
        ("hardware serial", read_hardware_serial),
        ("mac address", read_mac_address),
    ):
        client_id = value()
        if client_id:
            logger.info("[ID] Client id from %s: %s", source, client_id)
            return client_id

    logger.warning("[ID] Could not determine client id, using %s", FALLBACK_CLIENT_ID)
    return FALLBACK_CLIENT_ID
