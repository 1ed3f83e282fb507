"""Monitoring layer - Métricas y observabilidad."""

from .stats import Stats

__all__ = ["Stats"]
