"""Servicios externos: generación de imágenes y validación de archivos subidos."""

from .image_generation import ImageGenerationClient
from .uploads import validate_image_upload, validate_narration_upload

__all__ = ["ImageGenerationClient", "validate_image_upload", "validate_narration_upload"]
