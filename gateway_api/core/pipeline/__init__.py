"""Pipeline layer - Despacho de datos decodificados."""

from .dispatcher import Dispatcher, DeviceSettingsPayload, parse_settings_payload

__all__ = ["Dispatcher", "DeviceSettingsPayload", "parse_settings_payload"]
