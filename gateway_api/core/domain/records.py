"""Registros persistidos (propiedad del colaborador de persistencia).

Todos llevan clave primaria numérica ``id`` (0 = aún no creado) y flag
``active``.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class DeviceRecord:
    id: int = 0
    model: str = ""
    serial: str = ""
    firmware: str = ""
    active: int = 1


@dataclass
class DeviceUserMappingRecord:
    id: int = 0
    user_id: int = 0
    device_id: int = 0
    active: int = 1


@dataclass
class UserRecord:
    id: int = 0
    first_name: str = ""
    last_name: str = ""
    nick_name: str = ""
    username: str = ""
    email: str = ""
    phone: str = ""
    age: int = 0
    accepts_cookies: int = 0
    filter_content: int = 0
    active: int = 1


@dataclass
class ImageRecord:
    id: int = 0
    user_id: int = 0
    device_id: int = 0
    path: str = ""
    active: int = 1


@dataclass
class SettingsRecord:
    id: int = 0
    user_device_mapping_id: int = 0
    name: str = ""
    value: str = ""
    active: int = 1
