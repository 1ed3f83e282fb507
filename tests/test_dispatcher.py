"""Tests del dispatcher: settings, imágenes y categorías reservadas."""

import os
from unittest.mock import MagicMock

import pytest

from gateway_api.core.decoding import decode_payload, encode_frame
from gateway_api.core.domain import VARIANTS, Category, DeviceData
from gateway_api.core.pipeline.dispatcher import parse_settings_payload
from gateway_api.errors import (
    IncompleteWrite,
    LookupNotFound,
    MalformedFrame,
    PersistenceFailure,
    UnrecognizedCategory,
)


def _settings(device_id, payload=b"{}"):
    return decode_payload(Category.SETTINGS, device_id, payload)


def _image(device_id, payload):
    return decode_payload(Category.IMAGE, device_id, payload)


# =============================================================================
# SETTINGS
# =============================================================================

class TestSettings:

    def test_unseen_device_created_once(self, dispatcher, repos):
        message = _settings("dev42", b'{"model": "AFM-2", "firmware": "1.0.3"}')

        dispatcher.dispatch(message)
        dispatcher.dispatch(message)

        devices = repos.devices.query({"serial": "dev42"})
        assert len(devices) == 1
        assert devices[0].active == 1
        assert devices[0].model == "AFM-2"
        assert devices[0].firmware == "1.0.3"

    def test_existing_device_not_updated(self, dispatcher, repos, registered_device):
        device, _, _ = registered_device
        dispatcher.dispatch(_settings("cam01", b'{"model": "changed"}'))
        assert repos.devices.load(device.id).model == "AFM-1"

    def test_invalid_json_uses_defaults(self, dispatcher, repos):
        dispatcher.dispatch(_settings("dev43", b"not json"))

        device = repos.devices.load_by_field("dev43")
        assert device.active == 1
        assert device.model == ""

    def test_identity_fields_not_taken_from_payload(self, dispatcher, repos):
        dispatcher.dispatch(_settings("dev44", b'{"Serial": "other", "active": 0, "id": 7, "Model": "X"}'))

        device = repos.devices.load_by_field("dev44")
        assert device.model == "X"
        assert device.active == 1
        with pytest.raises(LookupNotFound):
            repos.devices.load_by_field("other")

    def test_wrong_type_field_keeps_valid_fields(self, dispatcher, repos):
        dispatcher.dispatch(_settings("dev45", b'{"model": 5, "firmware": "1.2"}'))

        device = repos.devices.load_by_field("dev45")
        assert device.firmware == "1.2"
        assert device.model == ""

    def test_parse_settings_drops_only_bad_fields(self):
        fields = parse_settings_payload(b'{"Model": ["x"], "FIRMWARE": "2.0"}')
        assert fields.model is None
        assert fields.firmware == "2.0"

    def test_parse_settings_rejects_non_object(self):
        with pytest.raises(ValueError):
            parse_settings_payload(b"[1, 2]")


# =============================================================================
# IMAGE
# =============================================================================

class TestImage:

    def test_image_stored_and_recorded(self, dispatcher, repos, store, registered_device):
        device, user, _ = registered_device

        dispatcher.dispatch(_image("cam01", encode_frame("a.jpg", b"0123456789")))

        path = store.root / "alice" / "a.jpg"
        assert path.read_bytes() == b"0123456789"
        images = repos.images.query({"device_id": device.id})
        assert len(images) == 1
        assert images[0].user_id == user.id
        assert images[0].path == str(path.resolve())

    def test_incomplete_write_creates_nothing(self, dispatcher, repos, store, registered_device):
        with pytest.raises(IncompleteWrite):
            dispatcher.dispatch(_image("cam01", encode_frame("a.jpg", b"01234567", declared_size=10)))

        assert not (store.root / "alice" / "a.jpg").exists()
        assert repos.images.query({}) == []

    def test_missing_mapping_no_write(self, dispatcher, repos, store):
        from gateway_api.core.domain.records import DeviceRecord

        repos.devices.create(DeviceRecord(serial="orphan"))

        with pytest.raises(LookupNotFound):
            dispatcher.dispatch(_image("orphan", encode_frame("a.jpg", b"x")))

        assert not store.root.exists() or list(store.root.rglob("*")) == []
        assert repos.images.query({}) == []

    def test_unknown_device(self, dispatcher, store):
        with pytest.raises(LookupNotFound):
            dispatcher.dispatch(_image("ghost", encode_frame("a.jpg", b"x")))
        assert not store.root.exists()

    def test_malformed_frame(self, dispatcher, repos, registered_device):
        with pytest.raises(MalformedFrame):
            dispatcher.dispatch(_image("cam01", b"\x09short"))
        assert repos.images.query({}) == []

    def test_record_failure_removes_file(self, repos, store, registered_device):
        from gateway_api.core.pipeline.dispatcher import Dispatcher
        from gateway_api.infrastructure.persistence.repositories import Repositories

        images = MagicMock()
        images.create.side_effect = PersistenceFailure("boom")
        broken = Repositories(
            devices=repos.devices,
            device_user_mappings=repos.device_user_mappings,
            users=repos.users,
            images=images,
            settings=repos.settings,
        )

        with pytest.raises(PersistenceFailure):
            Dispatcher(broken, store).dispatch(_image("cam01", encode_frame("a.jpg", b"abc")))

        assert os.listdir(store.root / "alice") == []


# =============================================================================
# CATEGORÍAS RESERVADAS Y EXHAUSTIVIDAD
# =============================================================================

class TestReservedCategories:

    @pytest.mark.parametrize("category", [Category.VIDEO, Category.AUDIO])
    def test_noop(self, dispatcher, repos, category):
        dispatcher.dispatch(decode_payload(category, "cam01", b"\x00\x01"))
        assert repos.devices.query({}) == []
        assert repos.images.query({}) == []

    def test_every_category_has_a_handler(self, dispatcher, registered_device):
        payloads = {
            Category.SETTINGS: b"{}",
            Category.IMAGE: encode_frame("x.jpg", b"1"),
            Category.VIDEO: b"",
            Category.AUDIO: b"",
        }
        assert set(VARIANTS) == set(Category)
        for category in Category:
            dispatcher.dispatch(decode_payload(category, "cam01", payloads[category]))

    def test_unknown_variant(self, dispatcher):
        with pytest.raises(UnrecognizedCategory):
            dispatcher.dispatch(DeviceData(device_id="x", payload=b""))
