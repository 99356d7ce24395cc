"""
Compositor de escenas
Fondo + movimiento + tinte + subtítulo → un segmento MP4 por escena con FFmpeg.
"""
import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from ..config import OutputProfile
from ..domain.errors import EncoderError, SceneRenderError
from ..domain.models import MotionParams, ResolvedBackground, SceneSegment, TintConfig
from .encoder import FFmpegRunner, validate_video_file
from .motion import zoompan_filter

logger = logging.getLogger(__name__)

MIN_SEGMENT_BYTES = 1024


@contextmanager
def scene_scratch(parent: Path, scene_index: int) -> Iterator[Path]:
    """Directorio temporal de una escena; se borra al salir, también si hay error."""
    parent.mkdir(parents=True, exist_ok=True)
    path = Path(tempfile.mkdtemp(prefix=f"scene_{scene_index:03d}_", dir=parent))
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


def build_filter_graph(
    motion: MotionParams,
    profile: OutputProfile,
    tint: Optional[TintConfig] = None,
) -> str:
    """
    Grafo de filtros: escala → zoompan → [tinte] → subtítulo → yuv420p.

    Entradas: [0:v] fondo (una imagen), [1:v] subtítulo PNG transparente en bucle.
    """
    w, h, fps = profile.width, profile.height, profile.fps
    parts: List[str] = [
        f"[0:v]scale={w}:{h},setsar=1,{zoompan_filter(motion, fps, w, h)}[motion]"
    ]
    base = "[motion]"

    if tint is not None:
        color = "0x" + tint.color.lstrip("#")
        parts.append(
            f"color=c={color}:s={w}x{h}:d={motion.duration_sec}:r={fps},"
            f"format=rgba,colorchannelmixer=aa={tint.opacity}[tint]"
        )
        parts.append(f"{base}[tint]overlay=0:0:shortest=1[tinted]")
        base = "[tinted]"

    parts.append(f"{base}[1:v]overlay=0:0:shortest=1,format={profile.pixel_format}[vout]")
    return ";".join(parts)


class SceneCompositor:
    """Genera el segmento codificado de cada escena."""

    def __init__(self, runner: FFmpegRunner, profile: Optional[OutputProfile] = None):
        self.runner = runner
        self.profile = profile or OutputProfile()

    def build_command(
        self,
        background_path: Path,
        caption_path: Path,
        motion: MotionParams,
        output_path: Path,
        tint: Optional[TintConfig] = None,
    ) -> List[str]:
        p = self.profile
        duration = f"{motion.duration_sec:.3f}"
        return [
            "-i", str(background_path),
            "-loop", "1", "-framerate", str(p.fps), "-t", duration, "-i", str(caption_path),
            "-filter_complex", build_filter_graph(motion, p, tint),
            "-map", "[vout]",
            "-c:v", p.codec,
            "-preset", p.preset,
            "-crf", str(p.crf),
            "-pix_fmt", p.pixel_format,
            "-r", str(p.fps),
            "-t", duration,
            "-an",
            "-movflags", "+faststart",
            str(output_path),
        ]

    def compose(
        self,
        scene_index: int,
        background: ResolvedBackground,
        motion: MotionParams,
        caption_png: bytes,
        output_path: Path,
        scratch_dir: Path,
        tint: Optional[TintConfig] = None,
    ) -> SceneSegment:
        """
        Codifica una escena.

        Un fallo aquí es fatal para la corrida: no se reintenta localmente.

        Raises:
            SceneRenderError
        """
        background_path = scratch_dir / "background.png"
        caption_path = scratch_dir / "caption.png"
        try:
            background_path.write_bytes(background.image_bytes)
            caption_path.write_bytes(caption_png)
        except OSError as e:
            raise SceneRenderError(scene_index, "prepare", str(e)) from e

        cmd = self.build_command(background_path, caption_path, motion, output_path, tint)
        try:
            self.runner.run(cmd)
        except EncoderError as e:
            logger.error(f"Escena {scene_index}: error de FFmpeg: {e}")
            raise SceneRenderError(scene_index, "encode", str(e)) from e

        problem = validate_video_file(output_path, MIN_SEGMENT_BYTES)
        if problem:
            raise SceneRenderError(scene_index, "validate", problem)

        size = output_path.stat().st_size
        logger.info(f"Escena {scene_index} codificada: {size // 1024}KB, {motion.duration_sec:.1f}s")
        return SceneSegment(
            scene_index=scene_index,
            path=output_path,
            size_bytes=size,
            duration_sec=motion.duration_sec,
        )
