"""TopicClassifier - Extrae device_id y categoría de un topic MQTT.

Formato esperado: ``<prefix>/<version>/<category>/<deviceID>``
(p.ej. ``afm/v1/settings/dev1``).

Modos de coincidencia:
- substring (por defecto): se prueba cada categoría, en orden fijo
  settings → image → video → audio, contra el topic completo. Gana la primera
  que aparezca en cualquier parte del topic, aunque otra aparezca antes en el
  texto (``afm/v1/settings-image/dev1`` → settings).
- segment: la categoría debe coincidir exactamente con el tercer segmento.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..domain.device_data import CATEGORY_ORDER, Category
from ...errors import ParseFailure, UnrecognizedCategory

logger = logging.getLogger(__name__)

MIN_TOPIC_SEGMENTS = 4
CATEGORY_SEGMENT_INDEX = 2

MATCH_SUBSTRING = "substring"
MATCH_SEGMENT = "segment"


@dataclass(frozen=True)
class TopicInfo:
    """Resultado de clasificar un topic."""
    device_id: str
    category: Category


class TopicClassifier:
    """Clasificador de topics sin efectos laterales."""

    def __init__(self, match_mode: str = MATCH_SUBSTRING):
        if match_mode not in (MATCH_SUBSTRING, MATCH_SEGMENT):
            raise ValueError(f"Unknown topic match mode: {match_mode!r}")
        self._match_mode = match_mode

    @property
    def match_mode(self) -> str:
        return self._match_mode

    def classify(self, topic: str) -> TopicInfo:
        """Clasifica un topic.

        Raises:
            ParseFailure: menos de 4 segmentos o device_id vacío
            UnrecognizedCategory: ninguna categoría coincide
        """
        parts = topic.split("/")
        if len(parts) < MIN_TOPIC_SEGMENTS:
            raise ParseFailure(
                f"topic {topic!r} has {len(parts)} segments, expected at least {MIN_TOPIC_SEGMENTS}"
            )

        device_id = parts[-1]
        if not device_id:
            raise ParseFailure(f"topic {topic!r} has an empty device id")

        if self._match_mode == MATCH_SEGMENT:
            category = self._match_segment(parts[CATEGORY_SEGMENT_INDEX])
        else:
            category = self._match_substring(topic)

        if category is None:
            raise UnrecognizedCategory(f"no category found in topic {topic!r}")

        return TopicInfo(device_id=device_id, category=category)

    @staticmethod
    def _match_substring(topic: str) -> Optional[Category]:
        for category in CATEGORY_ORDER:
            if category.value in topic:
                return category
        return None

    @staticmethod
    def _match_segment(segment: str) -> Optional[Category]:
        for category in CATEGORY_ORDER:
            if category.value == segment:
                return category
        return None


def classify_topic(topic: str) -> TopicInfo:
    """Atajo con el modo por defecto (substring)."""
    return TopicClassifier().classify(topic)
