"""
Cache en disco para imágenes generadas por IA.
Con semilla determinista, la misma petición siempre devuelve la misma imagen.
"""

import hashlib
from datetime import timedelta
from pathlib import Path
from typing import Optional

from diskcache import Cache


class ImageCache:
    """Cache persistente en disco para bytes de imagen."""

    def __init__(self, cache_dir: str = "./cache", default_ttl_hours: int = 168):
        """
        Inicializa el cache.

        Args:
            cache_dir: Directorio para almacenar el cache
            default_ttl_hours: Tiempo de vida por defecto en horas
        """
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.cache = Cache(str(self.cache_dir))
        self.default_ttl = timedelta(hours=default_ttl_hours)

    def _generate_key(self, request_key: str) -> str:
        """Genera una clave única basada en la petición."""
        return "image:" + hashlib.sha256(request_key.encode()).hexdigest()[:24]

    def get(self, request_key: str) -> Optional[bytes]:
        return self.cache.get(self._generate_key(request_key))

    def set(self, request_key: str, data: bytes, ttl_hours: Optional[int] = None) -> None:
        ttl = timedelta(hours=ttl_hours) if ttl_hours else self.default_ttl
        self.cache.set(self._generate_key(request_key), data, expire=ttl.total_seconds())

    def get_stats(self) -> dict:
        """Obtiene estadísticas del cache."""
        return {
            "size_bytes": self.cache.volume(),
            "items_count": len(self.cache),
            "directory": str(self.cache_dir)
        }

    def close(self) -> None:
        """Cierra la conexión al cache."""
        self.cache.close()
