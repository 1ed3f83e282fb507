"""Codec del frame binario de imagen.

Formato en el cable::

    [1 byte L][L bytes filename][4 bytes uint32 little-endian size][body]

Cada paso de lectura comprueba límites y lanza ``MalformedFrame`` si el buffer
es más corto de lo que indica la cabecera. Que ``len(body)`` coincida con el
tamaño declarado se verifica al escribir (``IncompleteWrite``).
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Optional

from ...errors import MalformedFrame

SIZE_FORMAT = "<I"
SIZE_BYTES = struct.calcsize(SIZE_FORMAT)
MAX_FILENAME_BYTES = 255


@dataclass(frozen=True)
class ImageFrame:
    """Frame decodificado (no se persiste)."""
    filename: str
    declared_size: int
    body: bytes

    @property
    def is_complete(self) -> bool:
        return len(self.body) == self.declared_size


def _check_filename(filename: str) -> None:
    if not filename or filename in (".", ".."):
        raise MalformedFrame(f"invalid image filename: {filename!r}")
    if "/" in filename or "\\" in filename or "\x00" in filename:
        raise MalformedFrame(f"image filename must not contain path separators: {filename!r}")


def decode_frame(raw: bytes) -> ImageFrame:
    """Decodifica un frame de imagen.

    Raises:
        MalformedFrame: buffer truncado, nombre vacío/no UTF-8 o con separadores
    """
    raw = bytes(raw)
    if len(raw) < 1:
        raise MalformedFrame("empty image frame")

    name_len = raw[0]
    name_end = 1 + name_len
    if len(raw) < name_end:
        raise MalformedFrame(
            f"frame too short for filename: need {name_end} bytes, got {len(raw)}"
        )

    try:
        filename = raw[1:name_end].decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedFrame(f"image filename is not valid UTF-8: {e}") from None
    _check_filename(filename)

    size_end = name_end + SIZE_BYTES
    if len(raw) < size_end:
        raise MalformedFrame(
            f"frame too short for size field: need {size_end} bytes, got {len(raw)}"
        )
    (declared_size,) = struct.unpack_from(SIZE_FORMAT, raw, name_end)

    return ImageFrame(filename=filename, declared_size=declared_size, body=raw[size_end:])


def encode_frame(filename: str, body: bytes, declared_size: Optional[int] = None) -> bytes:
    """Codifica un frame; ``declared_size`` por defecto es ``len(body)``."""
    name = filename.encode("utf-8")
    if not name or len(name) > MAX_FILENAME_BYTES:
        raise ValueError(f"filename must be 1..{MAX_FILENAME_BYTES} bytes, got {len(name)}")
    size = len(body) if declared_size is None else declared_size
    return bytes([len(name)]) + name + struct.pack(SIZE_FORMAT, size) + bytes(body)
