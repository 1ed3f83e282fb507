from __future__ import annotations

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url

from .config import Settings


logger = logging.getLogger(__name__)


def get_engine(settings: Settings) -> Engine:
    """Crea el engine y verifica que la BD responde.

    Lanza la excepción original si el test de conexión falla: el llamador
    decide si es fatal (arranque) o no.
    """
    url = make_url(settings.database_url)

    # Log básico de parámetros de conexión (sin contraseña)
    logger.info(
        "[DB] Crear engine driver=%s host=%s port=%s db=%s user=%s",
        url.drivername,
        url.host,
        url.port,
        url.database,
        url.username,
    )

    engine = create_engine(url, pool_pre_ping=True, pool_recycle=300, future=True)

    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    logger.info("[DB] Test de conexión OK")

    return engine
