"""
Jerarquía de errores del pipeline.
Solo los errores fatales llegan al orquestador; el resto se absorbe con fallback.
"""
from typing import Optional


class ReelforgeError(Exception):
    """Error base del proyecto."""
    pass


class EncoderError(ReelforgeError):
    """FFmpeg terminó con error o no está disponible."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr

    def __str__(self) -> str:
        base = super().__str__()
        if self.stderr:
            # Solo la cola del stderr, que es donde FFmpeg deja la causa real
            tail = self.stderr.strip().splitlines()[-3:]
            return f"{base}: {' | '.join(tail)}"
        return base


class SceneRenderError(ReelforgeError):
    """Fallo fatal al componer o validar el segmento de una escena."""

    def __init__(self, scene_index: int, stage: str, cause: str):
        super().__init__(f"Escena {scene_index} falló en '{stage}': {cause}")
        self.scene_index = scene_index
        self.stage = stage
        self.cause = cause


class ConcatenationError(ReelforgeError):
    """Ni la concatenación ni la sustitución por el primer segmento fueron posibles."""
    pass


class OutputValidationError(ReelforgeError):
    """El archivo final no tiene la firma de contenedor esperada o está vacío."""
    pass


class UploadValidationError(ValueError):
    """Archivo subido con tipo MIME o tamaño no permitido."""
    pass


class ImageGenerationError(ReelforgeError):
    """El servicio de generación de imágenes no devolvió una imagen válida."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PipelineCancelled(ReelforgeError):
    """El llamador pidió cancelar la corrida."""

    def __init__(self, stage: str):
        super().__init__(f"Cancelado antes de '{stage}'")
        self.stage = stage
