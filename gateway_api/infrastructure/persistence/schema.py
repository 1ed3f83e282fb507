"""Creación del esquema desde ficheros SQL.

Los ficheros viven en ``migrations/schema_<dialect>.sql``. Se ejecutan
sentencia a sentencia, ignorando líneas de comentario.
"""

from __future__ import annotations

import logging
import pathlib
from typing import List, Optional, Union

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = pathlib.Path(__file__).parent / "migrations"


def default_schema_file(dialect: str) -> pathlib.Path:
    return MIGRATIONS_DIR / f"schema_{dialect}.sql"


def split_statements(sql_content: str) -> List[str]:
    """Divide un script SQL en sentencias, sin líneas de comentario."""
    lines = [
        line for line in sql_content.splitlines()
        if line.strip() and not line.lstrip().startswith(("--", "/*"))
    ]
    return [s.strip() for s in "\n".join(lines).split(";") if s.strip()]


def apply_schema(engine: Engine, sql_file: Optional[Union[str, pathlib.Path]] = None) -> int:
    """Aplica el esquema y devuelve el número de sentencias ejecutadas.

    Borra y recrea las tablas: pensado para ``initialize``.
    """
    path = pathlib.Path(sql_file) if sql_file else default_schema_file(engine.dialect.name)
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")

    statements = split_statements(path.read_text(encoding="utf-8"))
    logger.info("[DB] Applying schema %s (%d statements)", path, len(statements))

    try:
        with engine.begin() as conn:
            for statement in statements:
                logger.debug("[DB] query: %s", statement)
                conn.execute(text(statement))
    except Exception as e:
        logger.exception("[DB] Schema creation failed: %s", e)
        raise

    logger.info("[DB] Schema creation completed successfully")
    return len(statements)
