"""Orquestador: loop principal de mensajes y parada coordinada.

Estados: RUNNING → DRAINING → STOPPED.

- RUNNING: un único hilo alterna entre la cola de señales y la cola de
  mensajes entrantes. Cada mensaje se procesa de forma síncrona; un error de
  mensaje nunca termina el loop.
- DRAINING: se activa el evento de parada (lo ven todos los workers) y se
  espera el acuse (``done``) de cada uno.
- STOPPED: SIGINT termina sin error; cualquier otra causa lanza
  ``UnexpectedShutdown``.
"""

from __future__ import annotations

import logging
import queue
import signal
import threading
import time
from enum import Enum
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from .context import GatewayContext
from .transport.message_handler import MessageHandler
from ..errors import UnexpectedShutdown

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class OrchestratorState(str, Enum):
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class Worker(Protocol):
    """Unidad concurrente gestionada por el orquestador."""
    name: str
    done: threading.Event

    def start(self) -> None: ...


def signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


class Orchestrator:
    """Conduce el pipeline y coordina la parada de los workers."""

    def __init__(
        self,
        context: GatewayContext,
        handler: MessageHandler,
        workers: Sequence[Worker],
        install_signal_handlers: bool = True,
    ):
        self._ctx = context
        self._handler = handler
        self._workers = list(workers)
        self._install = install_signal_handlers
        self._signals: "queue.SimpleQueue[int]" = queue.SimpleQueue()
        self._state: Optional[OrchestratorState] = None
        self._unacknowledged: List[str] = []

    @property
    def state(self) -> Optional[OrchestratorState]:
        return self._state

    @property
    def unacknowledged(self) -> List[str]:
        """Workers que no confirmaron la parada a tiempo."""
        return list(self._unacknowledged)

    def notify_signal(self, signum: int, frame=None) -> None:
        """Handler de señal; también usable desde otros hilos."""
        self._signals.put(signum)

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Arranca los workers, procesa mensajes y para de forma ordenada.

        Raises:
            UnexpectedShutdown: parada por una señal distinta de SIGINT
            GatewayError: fallo al arrancar un worker (los ya arrancados se paran)
        """
        previous = self._install_handlers()
        try:
            started: List[Worker] = []
            try:
                for worker in self._workers:
                    worker.start()
                    started.append(worker)
            except Exception:
                logger.error("[ORCH] Startup failed, stopping started workers")
                self._drain(started)
                raise

            signum = self._loop()
            self._drain(self._workers)
        finally:
            self._restore_handlers(previous)

        name = signal_name(signum)
        if signum != signal.SIGINT:
            logger.error("[ORCH] Stopped on %s", name)
            raise UnexpectedShutdown(signum, name)
        logger.info("[ORCH] Stopped cleanly on %s", name)

    def _loop(self) -> int:
        self._state = OrchestratorState.RUNNING
        poll = self._ctx.settings.loop_poll_interval
        logger.info("[ORCH] Running")

        while True:
            try:
                signum = self._signals.get_nowait()
            except queue.Empty:
                pass
            else:
                logger.info("[ORCH] Application is now exiting on signal %s", signal_name(signum))
                return signum

            try:
                message = self._ctx.inbound.get(timeout=poll)
            except queue.Empty:
                continue

            logger.debug("[ORCH] Received message on %s", message.topic)
            if not self._handler.handle(message.topic, message.payload):
                logger.warning("[ORCH] Failed to process message on %s", message.topic)

    def _drain(self, workers: Iterable[Worker]) -> None:
        self._state = OrchestratorState.DRAINING
        self._ctx.shutdown.set()

        deadline = time.monotonic() + self._ctx.settings.shutdown_ack_timeout
        self._unacknowledged = []
        for worker in workers:
            remaining = max(0.0, deadline - time.monotonic())
            if worker.done.wait(timeout=remaining):
                logger.info("[ORCH] %s acknowledged shutdown", worker.name)
            else:
                logger.error("[ORCH] %s did not acknowledge shutdown in time", worker.name)
                self._unacknowledged.append(worker.name)

        self._state = OrchestratorState.STOPPED

    # ------------------------------------------------------------------
    # Señales
    # ------------------------------------------------------------------

    def _install_handlers(self) -> Dict[int, object]:
        if not self._install or threading.current_thread() is not threading.main_thread():
            return {}
        previous = {}
        for signum in HANDLED_SIGNALS:
            previous[signum] = signal.signal(signum, self.notify_signal)
        return previous

    def _restore_handlers(self, previous: Dict[int, object]) -> None:
        for signum, handler in previous.items():
            if handler is not None:
                signal.signal(signum, handler)
