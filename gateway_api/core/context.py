"""Contexto del proceso: canales y señal de parada compartidos.

Se construye una vez en el arranque y se pasa a cada componente por
constructor. No hay estado global.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.engine import Engine

from common.config import Settings
from .monitoring.stats import Stats

logger = logging.getLogger(__name__)

INBOUND_CAPACITY = 1


@dataclass(frozen=True)
class InboundMessage:
    topic: str
    payload: bytes


@dataclass(frozen=True)
class PublishRequest:
    """Petición de publicación (topic, payload, QoS como texto numérico)."""
    topic: str
    payload: Union[str, bytes]
    qos: str = "0"


class GatewayContext:
    """Agrupa settings, engine, client id, colas y evento de parada.

    - inbound: capacidad 1, la entrega bloquea mientras el loop está ocupado
    - outbound: peticiones de publicación para el hilo MQTT
    - shutdown: broadcast, lo ven todos los listeners
    """

    def __init__(
        self,
        settings: Settings,
        engine: Optional[Engine] = None,
        client_id: str = "",
        stats: Optional[Stats] = None,
    ):
        self.settings = settings
        self.engine = engine
        self.client_id = client_id
        self.stats = stats or Stats()
        self.inbound: "queue.Queue[InboundMessage]" = queue.Queue(maxsize=INBOUND_CAPACITY)
        self.outbound: "queue.Queue[PublishRequest]" = queue.Queue()
        self.shutdown = threading.Event()

    @property
    def shutting_down(self) -> bool:
        return self.shutdown.is_set()

    def offer(self, topic: str, payload: bytes, poll_interval: float = 0.1) -> bool:
        """Entrega un mensaje al loop principal.

        Bloquea hasta que haya hueco; devuelve False si llega la parada antes.
        """
        message = InboundMessage(topic=topic, payload=bytes(payload))
        while not self.shutdown.is_set():
            try:
                self.inbound.put(message, timeout=poll_interval)
                return True
            except queue.Full:
                continue
        logger.debug("[CTX] Dropping message on %s: shutting down", topic)
        return False

    def publish(self, topic: str, payload: Union[str, bytes], qos: str = "0") -> None:
        """Encola una publicación; la realiza el hilo del cliente MQTT."""
        self.outbound.put(PublishRequest(topic=topic, payload=payload, qos=qos))
