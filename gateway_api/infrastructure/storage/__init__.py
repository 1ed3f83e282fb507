from .image_store import ImageStore

__all__ = ["ImageStore"]
