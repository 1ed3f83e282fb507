"""Utilidades compartidas: settings, engine de BD y logging."""
