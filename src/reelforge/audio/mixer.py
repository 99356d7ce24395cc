"""
Mezclador de Audio
Calcula ganancias y fades, y mezcla música/narración sobre el video final con FFmpeg.
El audio es best-effort: si la mezcla falla se entrega el video sin audio.
"""
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from pydub import AudioSegment

from ..domain.errors import EncoderError
from ..domain.models import AudioConfig, AudioPlan
from ..video.encoder import FFmpegRunner, validate_video_file
from .library import NO_MUSIC, AudioLibrary

logger = logging.getLogger(__name__)

FADE_IN_SEC = 0.3
FADE_OUT_SEC = 0.6
MUTED_DB = -60.0
DUCKED_MUSIC_GAIN = 0.7
LIMITER = "alimiter=limit=0.95:attack=5:release=50"


def volume_to_db(volume: float) -> float:
    """Volumen 0-100 a dB: 0 → -60 (silencio), 100 → 0."""
    if volume <= 0:
        return MUTED_DB
    if volume >= 100:
        return 0.0
    return 20 * math.log10(volume / 100)


def db_to_linear(db_gain: float) -> float:
    """Ganancia en dB a multiplicador lineal para el filtro volume."""
    return 10 ** (db_gain / 20)


def calculate_fade_times(total_duration_sec: float) -> tuple[float, float, float]:
    """(fade_in, fade_out, inicio del fade_out)."""
    return FADE_IN_SEC, FADE_OUT_SEC, max(0.0, total_duration_sec - FADE_OUT_SEC)


def probe_audio_seconds(path: Path) -> Optional[float]:
    """Duración de un archivo de audio; None si no se puede decodificar."""
    try:
        audio = AudioSegment.from_file(str(path))
        return len(audio) / 1000.0
    except Exception as e:
        logger.error(f"Error leyendo audio {path}: {e}")
        return None


@dataclass
class MixResult:
    output_path: Path
    mixed: bool
    warnings: List[str] = field(default_factory=list)


class AudioMixer:
    """Planifica y ejecuta la mezcla de audio del video final."""

    def __init__(self, runner: FFmpegRunner, library: AudioLibrary):
        self.runner = runner
        self.library = library

    def plan(
        self,
        total_duration_sec: float,
        config: AudioConfig,
        narration_path: Optional[Path] = None,
    ) -> AudioPlan:
        fade_in, fade_out, fade_out_start = calculate_fade_times(total_duration_sec)
        warnings: List[str] = []

        music = self.library.resolve(config.background_track)
        if music is None and config.background_track not in (None, "", NO_MUSIC):
            warnings.append(f"Pista '{config.background_track}' no disponible, sin música")

        narration = Path(narration_path) if narration_path else None
        if narration is not None:
            seconds = probe_audio_seconds(narration)
            if seconds is None:
                warnings.append(f"Narración ilegible ({Path(narration).name}), se omite")
                narration = None
            elif seconds > total_duration_sec:
                warnings.append(
                    f"Narración de {seconds:.1f}s recortada a {total_duration_sec:.1f}s"
                )

        gain = db_to_linear(volume_to_db(config.music_volume))
        if music is not None and narration is not None:
            gain = DUCKED_MUSIC_GAIN

        plan = AudioPlan(
            music_track=music,
            narration_track=narration,
            music_gain_linear=gain,
            fade_in_sec=fade_in,
            fade_out_sec=fade_out,
            fade_out_start_sec=fade_out_start,
            total_duration_sec=total_duration_sec,
            warnings=warnings,
        )
        logger.info(
            f"Audio: música={music.name if music else 'no'} "
            f"({volume_to_db(config.music_volume):.1f} dB), narración={'sí' if narration else 'no'}, "
            f"fade-out desde {fade_out_start:.1f}s"
        )
        return plan

    @staticmethod
    def build_filter_graph(plan: AudioPlan) -> str:
        total = f"{plan.total_duration_sec:.3f}"
        music = (
            f"atrim=0:{total},asetpts=PTS-STARTPTS,"
            f"volume={plan.music_gain_linear:.4f},"
            f"afade=t=in:st=0:d={plan.fade_in_sec},"
            f"afade=t=out:st={plan.fade_out_start_sec:.3f}:d={plan.fade_out_sec}"
        )
        voice = f"atrim=0:{total},asetpts=PTS-STARTPTS,volume=1.0,apad=whole_dur={total}"

        if plan.music_track and plan.narration_track:
            return (
                f"[1:a]{music}[music];[2:a]{voice}[voice];"
                f"[music][voice]amix=inputs=2:duration=first:dropout_transition=0:normalize=0,"
                f"{LIMITER}[aout]"
            )
        if plan.music_track:
            return f"[1:a]{music}[aout]"
        if plan.narration_track:
            return f"[1:a]{voice},{LIMITER}[aout]"
        raise ValueError("El plan no tiene pistas de audio")

    def build_command(self, video_path: Path, plan: AudioPlan, output_path: Path) -> List[str]:
        inputs = ["-i", str(video_path)]
        if plan.music_track:
            # La música se repite hasta cubrir toda la duración
            inputs += ["-stream_loop", "-1", "-i", str(plan.music_track)]
        if plan.narration_track:
            inputs += ["-i", str(plan.narration_track)]
        return [
            *inputs,
            "-filter_complex", self.build_filter_graph(plan),
            "-map", "0:v",
            "-map", "[aout]",
            "-c:v", "copy",
            "-c:a", "aac",
            "-b:a", "192k",
            "-t", f"{plan.total_duration_sec:.3f}",
            "-movflags", "+faststart",
            str(output_path),
        ]

    def mix(self, video_path: Path, plan: AudioPlan, output_path: Path) -> MixResult:
        """
        Mezcla el audio planificado sobre el video.

        Nunca lanza: ante cualquier fallo devuelve el video original sin audio.
        """
        if not plan.has_audio:
            return MixResult(output_path=video_path, mixed=False)

        try:
            self.runner.run(self.build_command(video_path, plan, output_path))
            problem = validate_video_file(output_path)
            if problem:
                raise EncoderError(problem)
        except Exception as e:
            logger.warning(f"Mezcla de audio falló, se entrega solo video: {e}")
            Path(output_path).unlink(missing_ok=True)
            return MixResult(
                output_path=video_path,
                mixed=False,
                warnings=[f"Mezcla de audio falló, video sin audio: {e}"],
            )

        logger.info(f"Audio mezclado → {Path(output_path).name}")
        return MixResult(output_path=output_path, mixed=True)
