"""Handler de mensajes: topic + payload → clasificación → decodificación → despacho."""

from __future__ import annotations

import logging
import time
from typing import Optional

from ..classification.topic_classifier import TopicClassifier
from ..decoding.payload_decoder import decode_payload
from ..monitoring.stats import Stats
from ..pipeline.dispatcher import Dispatcher
from ...errors import MessageError

logger = logging.getLogger(__name__)


class MessageHandler:
    """Procesa un mensaje entrante a través del pipeline.

    Responsabilidades:
    - Clasificación del topic
    - Construcción de la variante DeviceData
    - Delegación al dispatcher
    - Tracking de estadísticas

    Ningún error de mensaje sale de ``handle``: se loguea y el mensaje se
    descarta.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        classifier: Optional[TopicClassifier] = None,
        stats: Optional[Stats] = None,
    ):
        self._dispatcher = dispatcher
        self._classifier = classifier or TopicClassifier()
        self._stats = stats or Stats()

    def handle(self, topic: str, payload: bytes) -> bool:
        """Procesa un mensaje. Devuelve True si se despachó sin error."""
        self._stats.received += 1
        self._stats.last_message_at = time.time()

        try:
            # 1. Clasificar topic
            info = self._classifier.classify(topic)
            self._stats.record_category(info.category.value)

            # 2. Construir variante
            data = decode_payload(info.category, info.device_id, payload)

            # 3. Despachar
            self._dispatcher.dispatch(data)

        except MessageError as e:
            logger.error("[HANDLER] %s on topic=%s: %s", type(e).__name__, topic, e)
            self._stats.record_error(e)
            return False
        except Exception as e:
            logger.exception("[HANDLER] Unexpected error on topic=%s: %s", topic, e)
            self._stats.record_error(e)
            return False

        self._stats.processed += 1

        # Log periódico
        if self._stats.processed % 10 == 0:
            logger.info("[HANDLER] %s", self._stats)

        return True

    @property
    def stats(self) -> Stats:
        return self._stats
