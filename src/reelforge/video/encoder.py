"""
Envoltorio de FFmpeg/ffprobe.
Todas las invocaciones del encoder pasan por aquí para poder sustituirlo en pruebas.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Sequence

from ..domain.errors import EncoderError

logger = logging.getLogger(__name__)

# Caja 'ftyp' en el offset 4 de un MP4/ISO-BMFF
MP4_SIGNATURE = b"ftyp"
MIN_VIDEO_BYTES = 1024


def looks_like_mp4(header: bytes) -> bool:
    return len(header) >= 8 and header[4:8] == MP4_SIGNATURE


def validate_video_file(path: Path, min_bytes: int = MIN_VIDEO_BYTES) -> str:
    """
    Valida que un archivo de video exista, no sea trivial y tenga firma MP4.

    Returns:
        Cadena vacía si es válido; si no, el motivo.
    """
    path = Path(path)
    if not path.exists():
        return f"{path.name} no existe"
    size = path.stat().st_size
    if size < min_bytes:
        return f"{path.name} demasiado pequeño ({size} bytes)"
    with open(path, "rb") as f:
        header = f.read(12)
    if not looks_like_mp4(header):
        return f"{path.name} no tiene firma de contenedor MP4"
    return ""


class FFmpegRunner:
    """Ejecuta FFmpeg con salida capturada y timeout."""

    def __init__(self, binary: str = "ffmpeg", probe_binary: str = "ffprobe", timeout: int = 300):
        self.binary = binary
        self.probe_binary = probe_binary
        self.timeout = timeout

    def is_available(self) -> bool:
        """Verifica que FFmpeg esté instalado."""
        if shutil.which(self.binary) is None:
            return False
        try:
            subprocess.run([self.binary, "-version"], capture_output=True, check=True)
            return True
        except (subprocess.CalledProcessError, FileNotFoundError):
            return False

    def run(self, args: Sequence[str]) -> None:
        """
        Ejecuta `ffmpeg -y <args>`.

        Raises:
            EncoderError: si FFmpeg no existe, falla o excede el timeout.
        """
        cmd = [self.binary, "-y", "-hide_banner", "-loglevel", "error", *[str(a) for a in args]]
        logger.debug("FFmpeg: " + " ".join(cmd))
        try:
            subprocess.run(cmd, capture_output=True, check=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise EncoderError(f"'{self.binary}' no encontrado en PATH") from e
        except subprocess.TimeoutExpired as e:
            raise EncoderError(f"FFmpeg excedió {self.timeout}s") from e
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode(errors="replace") if e.stderr else ""
            raise EncoderError(f"FFmpeg terminó con código {e.returncode}", stderr=stderr) from e

    def probe_duration(self, media_path: Path) -> float:
        """Obtiene la duración de un archivo (video o audio) con ffprobe."""
        try:
            result = subprocess.run([
                self.probe_binary, "-v", "error",
                "-show_entries", "format=duration",
                "-of", "default=noprint_wrappers=1:nokey=1",
                str(media_path)
            ], capture_output=True, text=True, check=True, timeout=30)
            return float(result.stdout.strip())
        except (subprocess.SubprocessError, FileNotFoundError, ValueError) as e:
            logger.error(f"Error leyendo duración de {media_path}: {e}")
            return 0.0
