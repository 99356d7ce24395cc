"""
Concatenación de segmentos con recuperación escalonada.
Copia de streams → reintento idéntico → primer segmento solo (video truncado).
"""
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

from ..domain.errors import ConcatenationError, EncoderError, OutputValidationError
from ..domain.models import SceneSegment
from ..utils.backoff import with_retry
from .encoder import FFmpegRunner, validate_video_file

logger = logging.getLogger(__name__)

MIN_OUTPUT_BYTES = 1024


@dataclass
class ConcatResult:
    output_path: Path
    truncated: bool = False
    attempts: int = 0
    warnings: List[str] = field(default_factory=list)

    def read_bytes(self) -> bytes:
        return self.output_path.read_bytes()


class Concatenator:
    """Une segmentos ya validados en un solo MP4."""

    def __init__(self, runner: FFmpegRunner, retry_wait: float = 0.5):
        self.runner = runner
        self.retry_wait = retry_wait

    @staticmethod
    def write_list(segments: Sequence[SceneSegment], list_path: Path) -> Path:
        """Archivo de lista para el demuxer concat, en orden de escena."""
        with open(list_path, "w", encoding="utf-8") as f:
            for segment in segments:
                escaped = str(Path(segment.path).absolute()).replace("'", "'\\''")
                f.write(f"file '{escaped}'\n")
        return list_path

    def _concat_once(self, list_path: Path, output_path: Path) -> None:
        self.runner.run([
            "-f", "concat",
            "-safe", "0",
            "-i", str(list_path),
            "-c", "copy",
            "-movflags", "+faststart",
            str(output_path),
        ])
        problem = validate_video_file(output_path, MIN_OUTPUT_BYTES)
        if problem:
            raise OutputValidationError(problem)

    def concat(self, segments: Sequence[SceneSegment], output_path: Path) -> ConcatResult:
        """
        Concatena sin recodificar.

        Raises:
            ConcatenationError: si ni siquiera el primer segmento se puede leer.
        """
        if not segments:
            raise ConcatenationError("No hay segmentos para concatenar")

        output_path = Path(output_path)
        result = ConcatResult(output_path=output_path)
        list_path = self.write_list(segments, output_path.with_suffix(".txt"))

        @with_retry(
            max_attempts=2,
            min_wait=self.retry_wait,
            max_wait=self.retry_wait,
            exceptions=(EncoderError, OutputValidationError, OSError),
        )
        def attempt():
            result.attempts += 1
            self._concat_once(list_path, output_path)

        try:
            attempt()
            logger.info(f"Concatenados {len(segments)} segmentos → {output_path.name}")
            return result
        except (EncoderError, OutputValidationError, OSError) as e:
            logger.error(f"Concatenación falló dos veces: {e}")
            result.warnings.append(f"Concatenación falló tras {result.attempts} intentos: {e}")
        finally:
            list_path.unlink(missing_ok=True)

        # Último recurso: el primer segmento solo
        first = segments[0]
        try:
            data = Path(first.path).read_bytes()
        except OSError as e:
            raise ConcatenationError(f"No se pudo leer el primer segmento: {e}") from e
        if not data:
            raise ConcatenationError("El primer segmento está vacío")

        output_path.unlink(missing_ok=True)
        output_path.write_bytes(data)
        result.truncated = True
        result.warnings.append(
            f"Video truncado: solo se entrega la escena {first.scene_index} de {len(segments)}"
        )
        logger.warning(result.warnings[-1])
        return result


def cleanup_segments(segments: Sequence[SceneSegment]) -> None:
    for segment in segments:
        try:
            Path(segment.path).unlink(missing_ok=True)
        except OSError as e:
            logger.debug(f"No se pudo borrar {segment.path}: {e}")


def move_output(source: Path, destination: Path) -> Path:
    destination.parent.mkdir(parents=True, exist_ok=True)
    return Path(shutil.move(str(source), str(destination)))
