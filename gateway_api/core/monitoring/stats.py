"""Estadísticas de procesamiento."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Stats:
    """Estadísticas de procesamiento de mensajes.

    Se escriben desde el loop principal y se leen desde el hilo HTTP.
    """

    received: int = 0
    processed: int = 0
    failed: int = 0
    last_message_at: float = 0
    started_at: datetime = field(default_factory=_utcnow)
    by_category: Dict[str, int] = field(default_factory=dict)
    errors: Dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __str__(self) -> str:
        return f"Stats: received={self.received} processed={self.processed} failed={self.failed}"

    def record_category(self, category: str) -> None:
        with self._lock:
            self.by_category[category] = self.by_category.get(category, 0) + 1

    def record_error(self, error: BaseException) -> None:
        name = type(error).__name__
        with self._lock:
            self.failed += 1
            self.errors[name] = self.errors.get(name, 0) + 1

    def to_dict(self) -> dict:
        """Convierte a diccionario."""
        with self._lock:
            by_category = dict(self.by_category)
            errors = dict(self.errors)
        return {
            "received": self.received,
            "processed": self.processed,
            "failed": self.failed,
            "last_message_at": self.last_message_at,
            "started_at": self.started_at.isoformat(),
            "success_rate": self._success_rate(),
            "by_category": by_category,
            "errors": errors,
        }

    def _success_rate(self) -> float:
        """Calcula tasa de éxito."""
        total = self.processed + self.failed
        if total == 0:
            return 1.0
        return self.processed / total

    def reset(self):
        """Reinicia estadísticas."""
        with self._lock:
            self.received = 0
            self.processed = 0
            self.failed = 0
            self.last_message_at = 0
            self.started_at = _utcnow()
            self.by_category.clear()
            self.errors.clear()
