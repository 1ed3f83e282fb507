"""Domain layer - Modelos de dominio."""

from .device_data import (
    CATEGORY_ORDER,
    VARIANTS,
    AudioData,
    Category,
    DeviceData,
    ImageData,
    SettingsData,
    VideoData,
)
from .records import (
    DeviceRecord,
    DeviceUserMappingRecord,
    ImageRecord,
    SettingsRecord,
    UserRecord,
)

__all__ = [
    "CATEGORY_ORDER",
    "VARIANTS",
    "AudioData",
    "Category",
    "DeviceData",
    "ImageData",
    "SettingsData",
    "VideoData",
    "DeviceRecord",
    "DeviceUserMappingRecord",
    "ImageRecord",
    "SettingsRecord",
    "UserRecord",
]
