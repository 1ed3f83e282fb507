"""Repositorios de registros - acceso a BD.

Un repositorio por tipo de registro, todos sobre el mismo Engine. Cada
operación es una sentencia independiente en su propio ``engine.begin()``:
no hay transacciones que abarquen varias operaciones.

Todas las sentencias usan ``text()`` con parámetros enlazados. Los nombres de
tabla y columna salen de constantes de clase; las claves que llegan en
``values``/``criteria`` se validan contra esa lista blanca.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Generic, Iterator, List, Mapping, Tuple, TypeVar

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ...core.domain.records import (
    DeviceRecord,
    DeviceUserMappingRecord,
    ImageRecord,
    SettingsRecord,
    UserRecord,
)
from ...errors import LookupNotFound, PersistenceFailure

logger = logging.getLogger(__name__)

R = TypeVar("R")


class RecordRepository(Generic[R]):
    """Operaciones comunes: load, load_by_field, create, update,
    update_many, remove, query."""

    table: ClassVar[str]
    record_type: ClassVar[type]
    # atributo del registro → columna en BD (sin ``id``)
    columns: ClassVar[Dict[str, str]]
    lookup_column: ClassVar[str]

    def __init__(self, engine: Engine):
        self._engine = engine

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def entity(self) -> str:
        return self.record_type.__name__.replace("Record", "")

    @contextmanager
    def _db_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error("[DB] %s.%s failed: %s", self.table, operation, e)
            raise PersistenceFailure(f"{self.table}.{operation} failed: {e}", cause=e) from e

    def _column(self, key: str) -> str:
        """Resuelve atributo o columna a un nombre de columna permitido."""
        if key == "id":
            return "id"
        if key in self.columns:
            return self.columns[key]
        if key in self.columns.values():
            return key
        raise PersistenceFailure(f"unknown column {key!r} for table {self.table}")

    def _select(self) -> str:
        cols = ", ".join(["id", *self.columns.values()])
        return f"SELECT {cols} FROM {self.table}"

    def _where(self, criteria: Mapping[str, Any], prefix: str) -> Tuple[str, Dict[str, Any]]:
        clauses = []
        params: Dict[str, Any] = {}
        for key, value in criteria.items():
            col = self._column(key)
            name = f"{prefix}{col}"
            clauses.append(f"{col} = :{name}")
            params[name] = value
        return " AND ".join(clauses), params

    def _to_record(self, row) -> R:
        data = row._mapping
        kwargs = {"id": int(data["id"])}
        for attr, col in self.columns.items():
            value = data[col]
            if value is not None:
                kwargs[attr] = value
        return self.record_type(**kwargs)

    def _params(self, record: R) -> Dict[str, Any]:
        return {col: getattr(record, attr) for attr, col in self.columns.items()}

    def _fetch_one(self, sql: str, params: Dict[str, Any], key: object) -> R:
        with self._db_errors("load"):
            with self._engine.begin() as conn:
                row = conn.execute(text(sql), params).fetchone()
        if row is None:
            raise LookupNotFound(self.entity, key)
        return self._to_record(row)

    # ------------------------------------------------------------------
    # Operaciones
    # ------------------------------------------------------------------

    def load(self, record_id: int) -> R:
        """Carga por clave primaria."""
        return self._fetch_one(
            f"{self._select()} WHERE id = :id",
            {"id": int(record_id)},
            record_id,
        )

    def load_by_field(self, value: Any) -> R:
        """Carga el primer registro cuyo campo de búsqueda coincide."""
        return self._fetch_one(
            f"{self._select()} WHERE {self.lookup_column} = :value ORDER BY id LIMIT 1",
            {"value": value},
            value,
        )

    def create(self, record: R) -> R:
        """Inserta el registro (active=1) y asigna su ``id``."""
        record.active = 1
        params = self._params(record)
        cols = ", ".join(params)
        binds = ", ".join(f":{c}" for c in params)
        with self._db_errors("create"):
            with self._engine.begin() as conn:
                result = conn.execute(
                    text(f"INSERT INTO {self.table} ({cols}) VALUES ({binds})"),
                    params,
                )
        record.id = int(result.lastrowid)
        logger.debug("[DB] %s created id=%d", self.table, record.id)
        return record

    def update(self, record: R) -> None:
        """Actualiza todas las columnas del registro por ``id``."""
        params = self._params(record)
        assignments = ", ".join(f"{c} = :{c}" for c in params)
        params["id"] = record.id
        with self._db_errors("update"):
            with self._engine.begin() as conn:
                result = conn.execute(
                    text(f"UPDATE {self.table} SET {assignments} WHERE id = :id"),
                    params,
                )
        if result.rowcount == 0:
            raise LookupNotFound(self.entity, record.id)

    def update_many(self, values: Mapping[str, Any], criteria: Mapping[str, Any]) -> int:
        """Actualiza ``values`` en las filas que cumplen ``criteria``.

        Exige criterios no vacíos. Devuelve filas afectadas.
        """
        if not values:
            raise PersistenceFailure(f"{self.table}.update_many requires values")
        if not criteria:
            raise PersistenceFailure(f"{self.table}.update_many requires criteria")

        assignments = []
        params: Dict[str, Any] = {}
        for key, value in values.items():
            col = self._column(key)
            assignments.append(f"{col} = :v_{col}")
            params[f"v_{col}"] = value
        where, where_params = self._where(criteria, "c_")
        params.update(where_params)

        with self._db_errors("update_many"):
            with self._engine.begin() as conn:
                result = conn.execute(
                    text(f"UPDATE {self.table} SET {', '.join(assignments)} WHERE {where}"),
                    params,
                )
        return int(result.rowcount)

    def remove(self, record: R) -> None:
        """Borra el registro por ``id``."""
        with self._db_errors("remove"):
            with self._engine.begin() as conn:
                conn.execute(text(f"DELETE FROM {self.table} WHERE id = :id"), {"id": record.id})

    def query(self, criteria: Mapping[str, Any]) -> List[R]:
        """Devuelve los registros que cumplen ``criteria`` (vacío = todos)."""
        sql = self._select()
        params: Dict[str, Any] = {}
        if criteria:
            where, params = self._where(criteria, "c_")
            sql = f"{sql} WHERE {where}"
        with self._db_errors("query"):
            with self._engine.begin() as conn:
                rows = conn.execute(text(f"{sql} ORDER BY id"), params).fetchall()
        return [self._to_record(row) for row in rows]


class DeviceRepository(RecordRepository[DeviceRecord]):
    table = "devices"
    record_type = DeviceRecord
    columns = {"model": "model", "serial": "serial", "firmware": "firmware", "active": "active"}
    lookup_column = "serial"


class DeviceUserMappingRepository(RecordRepository[DeviceUserMappingRecord]):
    table = "device_user_mapping"
    record_type = DeviceUserMappingRecord
    columns = {"user_id": "user_id", "device_id": "device_id", "active": "active"}
    lookup_column = "device_id"


class UserRepository(RecordRepository[UserRecord]):
    table = "users"
    record_type = UserRecord
    columns = {
        "first_name": "fname",
        "last_name": "lname",
        "nick_name": "nname",
        "username": "uname",
        "email": "email",
        "phone": "phone",
        "age": "age",
        "accepts_cookies": "accepts_cookies",
        "filter_content": "filter_content",
        "active": "active",
    }
    lookup_column = "uname"


class ImageRepository(RecordRepository[ImageRecord]):
    table = "images"
    record_type = ImageRecord
    columns = {"user_id": "user_id", "device_id": "device_id", "path": "path", "active": "active"}
    lookup_column = "device_id"


class SettingsRepository(RecordRepository[SettingsRecord]):
    table = "settings"
    record_type = SettingsRecord
    columns = {
        "user_device_mapping_id": "user_device_mapping_id",
        "name": "name",
        "value": "value",
        "active": "active",
    }
    lookup_column = "name"


@dataclass(frozen=True)
class Repositories:
    """Conjunto de repositorios compartiendo un Engine."""
    devices: DeviceRepository
    device_user_mappings: DeviceUserMappingRepository
    users: UserRepository
    images: ImageRepository
    settings: SettingsRepository

    @classmethod
    def from_engine(cls, engine: Engine) -> "Repositories":
        return cls(
            devices=DeviceRepository(engine),
            device_user_mappings=DeviceUserMappingRepository(engine),
            users=UserRepository(engine),
            images=ImageRepository(engine),
            settings=SettingsRepository(engine),
        )
