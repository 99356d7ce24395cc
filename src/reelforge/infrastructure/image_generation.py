"""
Cliente de generación de imágenes por IA - Infraestructura
Una sola petición GET con semilla determinista y timeout corto.
"""
import logging
import time
from typing import Optional
from urllib.parse import quote

import httpx

from ..domain.errors import ImageGenerationError
from ..utils.cache import ImageCache
from .uploads import MAX_IMAGE_BYTES

logger = logging.getLogger(__name__)


def build_prompt(scene_text: str) -> str:
    return f"cinematic photo of {scene_text.strip()}, high quality, no text"


class ImageGenerationClient:
    """
    Cliente para un servicio de generación de imágenes sin API key
    (estilo Pollinations: GET /prompt/<texto>?seed=&width=&height=).
    """

    BASE_URL = "https://image.pollinations.ai/prompt"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 5.0,
        cache: Optional[ImageCache] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.cache = cache
        self.client = httpx.Client(timeout=timeout, follow_redirects=True, transport=transport)

    def build_url(self, prompt: str, seed: int, width: int, height: int) -> str:
        return (
            f"{self.base_url}/{quote(prompt, safe='')}"
            f"?seed={seed}&width={width}&height={height}&nologo=true"
        )

    def generate(self, prompt: str, seed: int, width: int, height: int) -> bytes:
        """
        Pide una imagen al servicio.

        Sin reintentos: cualquier desvío (timeout, no-2xx, content-type que no
        es image/*, cuerpo vacío) es un fallo y el llamador cae al siguiente nivel.

        Raises:
            ImageGenerationError
        """
        url = self.build_url(prompt, seed, width, height)

        if self.cache is not None:
            cached = self.cache.get(url)
            if cached:
                logger.info(f"Imagen IA desde cache (seed={seed})")
                return cached

        try:
            data = self._fetch(url)
        except httpx.TimeoutException as e:
            raise ImageGenerationError(f"Timeout tras {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise ImageGenerationError(f"Error HTTP: {e}") from e

        logger.info(f"Imagen IA generada (seed={seed}, {len(data) // 1024}KB)")
        if self.cache is not None:
            self.cache.set(url, data)
        return data

    def _fetch(self, url: str) -> bytes:
        """Descarga el cuerpo con un plazo total de self.timeout, no por fase."""
        deadline = time.monotonic() + self.timeout
        with self.client.stream("GET", url) as response:
            if not response.is_success:
                raise ImageGenerationError(
                    f"Respuesta {response.status_code}", status_code=response.status_code
                )

            content_type = response.headers.get("content-type", "")
            if not content_type.startswith("image/"):
                raise ImageGenerationError(f"Content-type inválido: '{content_type}'")

            chunks = []
            size = 0
            for chunk in response.iter_bytes():
                if time.monotonic() > deadline:
                    raise ImageGenerationError(f"Timeout tras {self.timeout}s descargando la imagen")
                size += len(chunk)
                if size > MAX_IMAGE_BYTES:
                    raise ImageGenerationError(f"Imagen supera {MAX_IMAGE_BYTES // 1024 // 1024}MB")
                chunks.append(chunk)

        if not size:
            raise ImageGenerationError("Cuerpo vacío")
        return b"".join(chunks)

    def close(self):
        self.client.close()
