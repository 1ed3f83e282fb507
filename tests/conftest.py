"""Fixtures compartidas."""

from __future__ import annotations

from dataclasses import replace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from common.config import Settings
from gateway_api.core.context import GatewayContext
from gateway_api.core.domain.records import DeviceRecord, DeviceUserMappingRecord, UserRecord
from gateway_api.core.pipeline.dispatcher import Dispatcher
from gateway_api.infrastructure.persistence.repositories import Repositories
from gateway_api.infrastructure.persistence.schema import apply_schema
from gateway_api.infrastructure.storage.image_store import ImageStore


BASE_SETTINGS = Settings(
    mqtt_host="127.0.0.1",
    mqtt_port=1883,
    mqtt_username=None,
    mqtt_password=None,
    mqtt_client_id="test-gateway",
    mqtt_topic_filter="afm/v1/#",
    mqtt_subscribe_qos=1,
    mqtt_connect_timeout=1.0,
    mqtt_disconnect_timeout=0.25,
    database_url="sqlite://",
    http_host="127.0.0.1",
    http_port=8080,
    http_shutdown_timeout=1.0,
    cache_dir="/tmp/afm-cache",
    identifier_path="/nonexistent/identifier.id",
    topic_match_mode="substring",
    shutdown_ack_timeout=2.0,
    loop_poll_interval=0.01,
    log_level="ERROR",
    log_format="text",
    log_file=None,
)


def make_settings(**overrides) -> Settings:
    return replace(BASE_SETTINGS, **overrides)


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(cache_dir=str(tmp_path / "cache"))


@pytest.fixture
def engine():
    """SQLite en memoria con el esquema del gateway."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    apply_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def repos(engine) -> Repositories:
    return Repositories.from_engine(engine)


@pytest.fixture
def store(tmp_path) -> ImageStore:
    return ImageStore(tmp_path / "cache")


@pytest.fixture
def dispatcher(repos, store) -> Dispatcher:
    return Dispatcher(repos, store)


@pytest.fixture
def context(settings) -> GatewayContext:
    return GatewayContext(settings, client_id="test-gateway")


@pytest.fixture
def registered_device(repos):
    """Device 'cam01' asociado al usuario 'alice'."""
    user = repos.users.create(UserRecord(first_name="Alice", username="alice", email="alice@example.com"))
    device = repos.devices.create(DeviceRecord(serial="cam01", model="AFM-1"))
    mapping = repos.device_user_mappings.create(
        DeviceUserMappingRecord(user_id=user.id, device_id=device.id)
    )
    return device, user, mapping
