"""Tests de repositorios sobre SQLite en memoria."""

import pytest
from sqlalchemy import text

from gateway_api.core.domain.records import DeviceRecord, SettingsRecord, UserRecord
from gateway_api.errors import LookupNotFound, PersistenceFailure
from gateway_api.infrastructure.persistence.schema import split_statements


class TestDeviceRepository:

    def test_create_assigns_id_and_active(self, repos):
        record = repos.devices.create(DeviceRecord(serial="cam01", model="AFM-1", active=0))

        assert record.id > 0
        assert record.active == 1
        assert repos.devices.load(record.id) == record

    def test_load_by_serial(self, repos):
        created = repos.devices.create(DeviceRecord(serial="cam01", firmware="1.2"))
        assert repos.devices.load_by_field("cam01") == created

    def test_load_missing(self, repos):
        with pytest.raises(LookupNotFound) as exc:
            repos.devices.load_by_field("nope")
        assert exc.value.entity == "Device"
        assert exc.value.key == "nope"

    def test_update_by_primary_key(self, repos):
        a = repos.devices.create(DeviceRecord(serial="a"))
        b = repos.devices.create(DeviceRecord(serial="b"))

        a.firmware = "2.0"
        repos.devices.update(a)

        assert repos.devices.load(a.id).firmware == "2.0"
        assert repos.devices.load(b.id).firmware == ""

    def test_update_missing_row(self, repos):
        with pytest.raises(LookupNotFound):
            repos.devices.update(DeviceRecord(id=999, serial="ghost"))

    def test_update_many_and_query(self, repos):
        repos.devices.create(DeviceRecord(serial="a", model="m1"))
        repos.devices.create(DeviceRecord(serial="b", model="m1"))
        repos.devices.create(DeviceRecord(serial="c", model="m2"))

        changed = repos.devices.update_many({"firmware": "3.1"}, {"model": "m1"})

        assert changed == 2
        assert [d.serial for d in repos.devices.query({"firmware": "3.1"})] == ["a", "b"]
        assert len(repos.devices.query({})) == 3

    def test_update_many_requires_criteria(self, repos):
        with pytest.raises(PersistenceFailure):
            repos.devices.update_many({"firmware": "x"}, {})

    def test_unknown_column_rejected(self, repos):
        with pytest.raises(PersistenceFailure):
            repos.devices.query({"serial = serial OR 1": 1})

    def test_values_are_bound_not_interpolated(self, repos):
        repos.devices.create(DeviceRecord(serial="a"))
        assert repos.devices.query({"serial": "a' OR '1'='1"}) == []

    def test_remove(self, repos):
        record = repos.devices.create(DeviceRecord(serial="a"))
        repos.devices.remove(record)
        with pytest.raises(LookupNotFound):
            repos.devices.load(record.id)

    def test_duplicate_serial_is_persistence_failure(self, repos):
        repos.devices.create(DeviceRecord(serial="a"))
        with pytest.raises(PersistenceFailure):
            repos.devices.create(DeviceRecord(serial="a"))


class TestUserRepository:

    def test_column_mapping(self, repos, engine):
        user = repos.users.create(UserRecord(first_name="Ada", last_name="L", username="ada"))

        with engine.connect() as conn:
            row = conn.execute(text("SELECT fname, lname, uname FROM users WHERE id = :id"), {"id": user.id}).one()
        assert tuple(row) == ("Ada", "L", "ada")

        assert repos.users.load_by_field("ada").first_name == "Ada"
        assert repos.users.query({"username": "ada"})[0].id == user.id
        assert repos.users.query({"uname": "ada"})[0].id == user.id


class TestMappingAndSettings:

    def test_mapping_by_device(self, repos, registered_device):
        device, user, mapping = registered_device
        loaded = repos.device_user_mappings.load_by_field(device.id)
        assert loaded.user_id == user.id

    def test_settings_by_name(self, repos, registered_device):
        _, _, mapping = registered_device
        repos.settings.create(SettingsRecord(user_device_mapping_id=mapping.id, name="exposure", value="auto"))
        assert repos.settings.load_by_field("exposure").value == "auto"


class TestSchema:

    def test_split_skips_comments(self):
        sql = "-- header\n/* block */\nCREATE TABLE a (id INT);\n\n-- x\nDROP TABLE b;\n"
        assert split_statements(sql) == ["CREATE TABLE a (id INT)", "DROP TABLE b"]

    def test_apply_schema_missing_file(self, engine, tmp_path):
        from gateway_api.infrastructure.persistence.schema import apply_schema

        with pytest.raises(FileNotFoundError):
            apply_schema(engine, tmp_path / "missing.sql")
