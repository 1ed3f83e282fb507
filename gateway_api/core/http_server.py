"""Servidor HTTP (uvicorn) en su propio hilo, con parada acotada."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .context import GatewayContext

logger = logging.getLogger(__name__)


class HTTPServer:
    """Sirve la app y atiende la señal de parada del contexto.

    Al recibir la parada pide salida ordenada, espera como mucho
    ``http_shutdown_timeout`` y fuerza la salida si no terminó. Ningún fallo
    de parada se propaga: solo se loguea.
    """

    name = "http"

    def __init__(self, context: GatewayContext, app: FastAPI, server: Optional[uvicorn.Server] = None):
        self._ctx = context
        self._settings = context.settings
        self._server = server or uvicorn.Server(
            uvicorn.Config(
                app,
                host=self._settings.http_host,
                port=self._settings.http_port,
                log_config=None,
                lifespan="off",
            )
        )
        self._serve_thread: Optional[threading.Thread] = None
        self._watch_thread: Optional[threading.Thread] = None
        self.done = threading.Event()

    @property
    def server(self) -> uvicorn.Server:
        return self._server

    def start(self) -> None:
        self._serve_thread = threading.Thread(target=self._serve, name="http-server", daemon=True)
        self._watch_thread = threading.Thread(target=self._watch, name="http-shutdown", daemon=True)
        self._serve_thread.start()
        self._watch_thread.start()
        logger.info("[HTTP] Listening on %s:%d", self._settings.http_host, self._settings.http_port)

    def _serve(self) -> None:
        try:
            self._server.run()
        except SystemExit as e:
            # uvicorn sale con SystemExit si no puede abrir el puerto
            logger.error("[HTTP] Server exited: code=%s", e.code)
        except Exception as e:
            logger.exception("[HTTP] Server error: %s", e)

    def _watch(self) -> None:
        self._ctx.shutdown.wait()
        timeout = self._settings.http_shutdown_timeout
        try:
            self._server.should_exit = True
            self._serve_thread.join(timeout=timeout)
            if self._serve_thread.is_alive():
                logger.error("[HTTP] Graceful shutdown timed out after %.1fs, forcing exit", timeout)
                self._server.force_exit = True
                self._serve_thread.join(timeout=timeout)
        finally:
            self.done.set()
            logger.info("[HTTP] Stopped")
