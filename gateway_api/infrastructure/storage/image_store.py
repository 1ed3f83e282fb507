"""Almacenamiento de imágenes en la caché local.

Ruta destino: ``<cache_root>/<username>/<filename>``.

La escritura pasa por un fichero temporal en el mismo directorio y solo se
renombra al destino si los bytes escritos coinciden con el tamaño declarado;
si no, el temporal se borra y no queda nada en la ruta destino.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from ...core.decoding.image_frame import ImageFrame
from ...errors import IncompleteWrite, MalformedFrame

logger = logging.getLogger(__name__)


class ImageStore:
    """Escribe frames de imagen bajo ``cache_root``."""

    def __init__(self, cache_root: Union[str, Path]):
        self._root = Path(cache_root)

    @property
    def root(self) -> Path:
        return self._root

    def resolve_path(self, username: str, filename: str) -> Path:
        """Calcula la ruta destino, sin salir de ``cache_root``."""
        root = self._root.resolve()
        target = (root / username / filename).resolve()
        if root not in target.parents:
            raise MalformedFrame(f"image path escapes cache root: {username!r}/{filename!r}")
        return target

    def write(self, username: str, frame: ImageFrame) -> Path:
        """Escribe el cuerpo del frame y devuelve la ruta final.

        Raises:
            IncompleteWrite: bytes escritos != tamaño declarado
            OSError: fallo del sistema de ficheros
        """
        target = self.resolve_path(username, frame.filename)
        created_dir = not target.parent.exists()
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=".incoming-", dir=target.parent)
        try:
            with os.fdopen(fd, "wb") as fh:
                written = fh.write(frame.body)
                fh.flush()
                os.fsync(fh.fileno())

            if written != frame.declared_size:
                raise IncompleteWrite(str(target), frame.declared_size, written)

            os.replace(tmp_name, target)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            if created_dir:
                # directorio de usuario creado para este frame: no dejarlo vacío
                try:
                    target.parent.rmdir()
                except OSError:
                    pass
            raise

        logger.info("[STORE] Image written: %s (%d bytes)", target, frame.declared_size)
        return target
