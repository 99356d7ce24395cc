"""
Proveedor de fondos por escena: Upload → IA → Degradado.
El degradado es el caso terminal garantizado; `resolve` nunca lanza excepciones.
"""
import io
import logging
from typing import Optional

from PIL import Image, ImageOps

from ..domain.errors import ImageGenerationError
from ..domain.models import (
    BackgroundMode,
    BackgroundSpec,
    ResolvedBackground,
    UploadBackground,
)
from ..infrastructure.image_generation import ImageGenerationClient, build_prompt
from .captions import to_png_bytes
from .gradients import GradientEngine, GradientHistory, stable_hash

logger = logging.getLogger(__name__)


def cover_crop(data: bytes, width: int, height: int) -> tuple[Image.Image, tuple[int, int]]:
    """
    Decodifica, corrige orientación EXIF, escala para cubrir y recorta al centro.

    Returns:
        (imagen de exactamente width×height, tamaño original)
    """
    with Image.open(io.BytesIO(data)) as img:
        img = ImageOps.exif_transpose(img)
        source_size = img.size
        fitted = ImageOps.fit(
            img.convert("RGB"), (width, height), method=Image.Resampling.LANCZOS, centering=(0.5, 0.5)
        )
    return fitted, source_size


class BackgroundResolver:
    """Resuelve el fondo de cada escena con fallback garantizado."""

    def __init__(
        self,
        gradient_engine: Optional[GradientEngine] = None,
        image_client: Optional[ImageGenerationClient] = None,
        ai_default: bool = False,
    ):
        self.gradients = gradient_engine or GradientEngine()
        self.image_client = image_client
        self.ai_default = ai_default
        self.history = GradientHistory()

    def start_project(self, project_id: str) -> None:
        """Limpia el historial anti-repetición al empezar un proyecto."""
        self.history.reset(project_id)

    def _requested_mode(self, spec: Optional[BackgroundSpec]) -> BackgroundMode:
        if spec is None:
            return BackgroundMode.AI if self.ai_default else BackgroundMode.GRADIENT
        return BackgroundMode(spec.mode)

    def resolve(
        self,
        spec: Optional[BackgroundSpec],
        scene_text: str,
        scene_index: int,
        ai_enabled: bool,
        width: int,
        height: int,
    ) -> ResolvedBackground:
        requested = self._requested_mode(spec)
        project_id = self.history.project_id
        meta: dict = {"reasons": [], "requested_mode": requested.value}
        reasons = meta["reasons"]

        # 1. Imagen subida. Si falla, directo al degradado: nunca a la red.
        if isinstance(spec, UploadBackground):
            if spec.image:
                try:
                    image, source_size = cover_crop(spec.image, width, height)
                    meta.update(source_size=source_size, source_aspect=source_size[0] / source_size[1])
                    reasons.append(f"Imagen subida {source_size[0]}x{source_size[1]} recortada a {width}x{height}")
                    return self._result(image, BackgroundMode.UPLOAD, requested, meta)
                except Exception as e:
                    logger.warning(f"Escena {scene_index}: imagen subida inválida ({e}), usando degradado")
                    reasons.append(f"Fallo al decodificar la imagen subida: {e}")
            else:
                reasons.append("Modo upload sin imagen, usando degradado")
        # 2. Generación por IA
        elif requested is BackgroundMode.AI:
            if not ai_enabled:
                reasons.append("IA deshabilitada, usando degradado")
            elif self.image_client is None:
                reasons.append("Sin cliente de IA configurado, usando degradado")
            else:
                seed = abs(stable_hash(f"{project_id}-{scene_index}-{scene_text}"))
                prompt = build_prompt(scene_text)
                meta.update(seed=seed, prompt=prompt, search_queries=[prompt])
                try:
                    data = self.image_client.generate(prompt, seed, width, height)
                    image, source_size = cover_crop(data, width, height)
                    meta.update(source_size=source_size, source_aspect=source_size[0] / source_size[1])
                    reasons.append(f"Imagen IA generada (seed={seed})")
                    return self._result(image, BackgroundMode.AI, requested, meta)
                except ImageGenerationError as e:
                    logger.warning(f"Escena {scene_index}: IA falló ({e}), usando degradado")
                    reasons.append(f"IA falló: {e}")
                except Exception as e:
                    logger.warning(f"Escena {scene_index}: imagen IA ilegible ({e}), usando degradado")
                    reasons.append(f"Imagen IA ilegible: {e}")

        # 3. Degradado: siempre funciona
        gradient = self.gradients.generate(scene_text, scene_index, project_id, self.history.items)
        self.history.append(gradient)
        image = self.gradients.render(gradient, width, height)
        meta.update(
            gradient=gradient.model_dump(),
            source_size=(width, height),
            source_aspect=width / height,
        )
        reasons.append(f"Degradado {gradient.color1} → {gradient.color2} @ {gradient.angle_degrees}°")
        return self._result(image, BackgroundMode.GRADIENT, requested, meta)

    @staticmethod
    def _result(
        image: Image.Image, actual: BackgroundMode, requested: BackgroundMode, meta: dict
    ) -> ResolvedBackground:
        return ResolvedBackground(
            image_bytes=to_png_bytes(image),
            actual_mode=actual,
            requested_mode=requested,
            source_metadata=meta,
        )


def mode_display_name(mode: BackgroundMode) -> str:
    return {
        BackgroundMode.UPLOAD: "Imagen propia",
        BackgroundMode.AI: "Generada por IA",
        BackgroundMode.GRADIENT: "Degradado",
    }[mode]
