"""Infrastructure layer - Persistencia y almacenamiento en disco."""
