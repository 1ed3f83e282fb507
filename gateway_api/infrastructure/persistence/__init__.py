"""Persistencia - repositorios SQLAlchemy y esquema."""

from .repositories import (
    DeviceRepository,
    DeviceUserMappingRepository,
    ImageRepository,
    RecordRepository,
    Repositories,
    SettingsRepository,
    UserRepository,
)
from .schema import apply_schema, default_schema_file, split_statements

__all__ = [
    "DeviceRepository",
    "DeviceUserMappingRepository",
    "ImageRepository",
    "RecordRepository",
    "Repositories",
    "SettingsRepository",
    "UserRepository",
    "apply_schema",
    "default_schema_file",
    "split_statements",
]
