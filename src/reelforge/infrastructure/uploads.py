"""
Validación de archivos subidos (imágenes de fondo y narración).
Se aplica antes de que los bytes entren al pipeline.
"""
from typing import Optional

from ..domain.errors import UploadValidationError

IMAGE_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
MAX_IMAGE_BYTES = 10 * 1024 * 1024

AUDIO_MIME_TYPES = {
    "audio/mpeg", "audio/mp3", "audio/wav", "audio/x-wav", "audio/wave",
    "audio/mp4", "audio/x-m4a", "audio/aac", "audio/ogg", "audio/webm",
}
MAX_AUDIO_BYTES = 50 * 1024 * 1024

EXTENSION_MIME = {
    ".jpg": "image/jpeg", ".jpeg": "image/jpeg", ".png": "image/png", ".webp": "image/webp",
    ".mp3": "audio/mpeg", ".wav": "audio/wav", ".m4a": "audio/x-m4a", ".aac": "audio/aac",
    ".ogg": "audio/ogg", ".webm": "audio/webm",
}


def guess_mime(filename: str) -> Optional[str]:
    for ext, mime in EXTENSION_MIME.items():
        if filename.lower().endswith(ext):
            return mime
    return None


def _validate(data: bytes, mime_type: str, allowed: set, max_bytes: int, label: str) -> bytes:
    mime = (mime_type or "").split(";")[0].strip().lower()
    if mime not in allowed:
        raise UploadValidationError(f"{label}: tipo '{mime_type}' no soportado")
    if not data:
        raise UploadValidationError(f"{label}: archivo vacío")
    if len(data) > max_bytes:
        raise UploadValidationError(
            f"{label}: {len(data) / 1024 / 1024:.1f}MB supera el máximo de {max_bytes // 1024 // 1024}MB"
        )
    return data


def validate_image_upload(data: bytes, mime_type: str) -> bytes:
    """Solo JPG, PNG y WebP, hasta 10MB."""
    return _validate(data, mime_type, IMAGE_MIME_TYPES, MAX_IMAGE_BYTES, "Imagen")


def validate_narration_upload(data: bytes, mime_type: str) -> bytes:
    """Formatos de audio comunes, hasta 50MB."""
    return _validate(data, mime_type, AUDIO_MIME_TYPES, MAX_AUDIO_BYTES, "Narración")
