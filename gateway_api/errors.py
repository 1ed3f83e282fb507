"""Taxonomía de errores del gateway.

Los errores por mensaje heredan de ``MessageError``: el handler los captura,
los loguea y descarta el mensaje. Los errores de arranque son fatales.
"""

from __future__ import annotations

from typing import Optional


class GatewayError(Exception):
    """Base de todos los errores del gateway."""


# ---------------------------------------------------------------------------
# Errores por mensaje
# ---------------------------------------------------------------------------

class MessageError(GatewayError):
    """Fallo que afecta a un único mensaje."""


class ParseFailure(MessageError):
    """Topic mal formado."""


class UnrecognizedCategory(MessageError):
    """Topic sin categoría conocida."""


class MalformedFrame(MessageError):
    """Frame de imagen truncado o con cabecera inválida."""


class IncompleteWrite(MessageError):
    """Los bytes escritos no coinciden con el tamaño declarado."""

    def __init__(self, path: str, declared: int, written: int):
        self.path = path
        self.declared = declared
        self.written = written
        super().__init__(
            f"failed to write complete image file {path}: {written} of size {declared}"
        )


class LookupNotFound(MessageError):
    """No existe el registro buscado (device, mapping o user)."""

    def __init__(self, entity: str, key: object):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found for key={key!r}")


class PersistenceFailure(MessageError):
    """Error del almacén subyacente."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


# ---------------------------------------------------------------------------
# Errores de arranque (fatales)
# ---------------------------------------------------------------------------

class BrokerConnectionError(GatewayError):
    """No se pudo conectar al broker MQTT en el arranque."""


class DatabaseConnectionError(GatewayError):
    """No se pudo conectar a la BD en el arranque."""


# ---------------------------------------------------------------------------
# Ciclo de vida
# ---------------------------------------------------------------------------

class UnexpectedShutdown(GatewayError):
    """El proceso se detuvo por una causa distinta de SIGINT."""

    def __init__(self, signum: int, name: str):
        self.signum = signum
        self.signal_name = name
        super().__init__(f"shutting down due to signal: {name}")
