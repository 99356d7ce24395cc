"""Módulo de utilidades"""

from .cache import ImageCache
from .backoff import with_retry

__all__ = ["ImageCache", "with_retry"]
