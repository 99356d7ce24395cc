"""
Pipeline principal para orquestar la creación de videos.
Coordina escenas → fondos → subtítulos → segmentos → concatenación → audio.
"""

import logging
import shutil
import tempfile
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from rich.console import Console
from rich.panel import Panel

from .audio.library import AudioLibrary
from .audio.mixer import AudioMixer
from .config import Settings, load_settings
from .domain.errors import (
    ConcatenationError,
    PipelineCancelled,
    ReelforgeError,
    SceneRenderError,
    UploadValidationError,
)
from .domain.models import (
    PipelineFailure,
    Project,
    RunResult,
    RunStatus,
    Scene,
    SceneMetric,
    SceneSegment,
)
from .infrastructure.image_generation import ImageGenerationClient
from .infrastructure.uploads import guess_mime, validate_narration_upload
from .tts.edge_tts import NarrationSynthesizer, narration_text
from .utils.cache import ImageCache
from .video.background import BackgroundResolver, mode_display_name
from .video.captions import CaptionLayoutEngine, CaptionRasterizer
from .video.compositor import SceneCompositor, scene_scratch
from .video.concat import Concatenator, cleanup_segments, move_output
from .video.encoder import FFmpegRunner, validate_video_file
from .video.motion import MotionPlanner
from .video.tint import select_tint

logger = logging.getLogger(__name__)
console = Console()

ProgressCallback = Callable[[int, int, str], None]


class CancellationToken:
    """Bandera de cancelación compartida entre el llamador y la corrida."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise PipelineCancelled(stage)


class _Progress:
    """Reporta progreso (actual, total, etapa) sin retroceder nunca."""

    def __init__(self, total: int, callback: Optional[ProgressCallback]):
        self.total = total
        self.current = 0
        self.callback = callback

    def report(self, current: int, stage: str) -> None:
        self.current = max(self.current, min(current, self.total))
        logger.debug(f"Progreso {self.current}/{self.total}: {stage}")
        if self.callback is not None:
            self.callback(self.current, self.total, stage)


class PipelineOrchestrator:
    """Orquestador principal: convierte un Project en un único MP4."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        runner: Optional[FFmpegRunner] = None,
        image_client: Optional[ImageGenerationClient] = None,
        narrator: Optional[NarrationSynthesizer] = None,
        motion_seed: Optional[int] = None,
        verbose: bool = False,
    ):
        """
        Args:
            settings: Configuración; si falta se lee config/config.yaml
            runner: Envoltorio de FFmpeg (sustituible en pruebas)
            image_client: Cliente de imágenes IA; si falta se crea al primer uso
            narrator: Sintetizador de narración; si falta se crea al primer uso
            motion_seed: Semilla del planificador de movimiento (reproducibilidad)
            verbose: Mostrar paneles de resumen en consola
        """
        self.settings = settings or load_settings()
        self.profile = self.settings.profile
        self.runner = runner or FFmpegRunner(timeout=self.settings.encoder_timeout_seconds)
        self.motion_seed = motion_seed
        self.verbose = verbose

        for dir_path in [self.settings.output_dir, self.settings.temp_dir]:
            Path(dir_path).mkdir(parents=True, exist_ok=True)

        # Componentes lazy-loaded
        self._image_client = image_client
        self._narrator = narrator
        self._cache = None
        self._layout_engine = None
        self._rasterizer = None
        self._compositor = None
        self._concatenator = None
        self._mixer = None

    @property
    def cache(self) -> ImageCache:
        if self._cache is None:
            self._cache = ImageCache(
                cache_dir=str(self.settings.cache_dir),
                default_ttl_hours=self.settings.ai.cache_ttl_hours,
            )
        return self._cache

    @property
    def image_client(self) -> ImageGenerationClient:
        if self._image_client is None:
            self._image_client = ImageGenerationClient(
                base_url=self.settings.ai.base_url,
                timeout=self.settings.ai.timeout_seconds,
                cache=self.cache,
            )
        return self._image_client

    @property
    def narrator(self) -> NarrationSynthesizer:
        if self._narrator is None:
            self._narrator = NarrationSynthesizer(voice=self.settings.tts.voice)
        return self._narrator

    @property
    def layout_engine(self) -> CaptionLayoutEngine:
        if self._layout_engine is None:
            self._layout_engine = CaptionLayoutEngine(self.settings.captions.font_path)
        return self._layout_engine

    @property
    def rasterizer(self) -> CaptionRasterizer:
        if self._rasterizer is None:
            self._rasterizer = CaptionRasterizer(self.layout_engine)
        return self._rasterizer

    @property
    def compositor(self) -> SceneCompositor:
        if self._compositor is None:
            self._compositor = SceneCompositor(self.runner, self.profile)
        return self._compositor

    @property
    def concatenator(self) -> Concatenator:
        if self._concatenator is None:
            self._concatenator = Concatenator(self.runner)
        return self._concatenator

    @property
    def mixer(self) -> AudioMixer:
        if self._mixer is None:
            self._mixer = AudioMixer(self.runner, AudioLibrary(self.settings.music_dir))
        return self._mixer

    def _ai_enabled(self, project: Project) -> bool:
        # La configuración (REELFORGE_AI_ENABLED) habilita IA para todos los proyectos
        return project.ai_enabled or self.settings.ai.enabled

    def _resolver_for(self, project: Project) -> BackgroundResolver:
        needs_ai = self._ai_enabled(project)
        resolver = BackgroundResolver(
            image_client=self.image_client if needs_ai else None,
            ai_default=project.ai_default or self.settings.ai.default,
        )
        resolver.start_project(project.project_id)
        return resolver

    def _render_scene(
        self,
        index: int,
        scene: Scene,
        project: Project,
        resolver: BackgroundResolver,
        planner: MotionPlanner,
        workdir: Path,
    ) -> Tuple[SceneSegment, SceneMetric]:
        """
        Fondo → movimiento → tinte → subtítulo → segmento codificado.

        Raises:
            SceneRenderError
        """
        w, h = self.profile.width, self.profile.height
        metric = SceneMetric(scene_index=index)

        with scene_scratch(workdir, index) as scratch:
            start = time.perf_counter()
            background = resolver.resolve(
                scene.background,
                scene.text,
                index,
                ai_enabled=self._ai_enabled(project),
                width=w,
                height=h,
            )
            metric.timings_ms["background"] = (time.perf_counter() - start) * 1000
            metric.background_source = background.actual_mode.value
            metric.search_queries = background.source_metadata.get("search_queries", [])
            if background.actual_mode != background.requested_mode:
                # La última razón describe el degradado elegido; las anteriores, los fallos
                metric.warnings.append(
                    f"Fondo {background.requested_mode.value} → {background.actual_mode.value}: "
                    + "; ".join(background.reasons[:-1])
                )

            motion = planner.plan(scene.render_duration, background.source_aspect)
            tint = select_tint(scene)

            start = time.perf_counter()
            try:
                layout = self.layout_engine.layout(scene.text, w, h)
                caption_png = self.rasterizer.render_png(layout)
            except Exception as e:
                raise SceneRenderError(index, "caption", str(e)) from e
            metric.timings_ms["caption"] = (time.perf_counter() - start) * 1000
            metric.caption_font_size = layout.font_size_px
            metric.warnings.extend(layout.warnings)

            start = time.perf_counter()
            segment = self.compositor.compose(
                scene_index=index,
                background=background,
                motion=motion,
                caption_png=caption_png,
                output_path=workdir / f"segment_{index:03d}.mp4",
                scratch_dir=scratch,
                tint=tint,
            )
            metric.timings_ms["encode"] = (time.perf_counter() - start) * 1000

        logger.info(
            f"Escena {index + 1}/{len(project.scenes)} lista "
            f"({mode_display_name(background.actual_mode)}, {motion.duration_sec:.0f}s)"
        )
        return segment, metric

    def _narration_track(self, project: Project, workdir: Path, warnings: List[str]) -> Optional[Path]:
        """Narración subida (validada) o sintetizada; None si no hay o si falla."""
        audio = project.audio
        if audio.narration_path:
            path = Path(audio.narration_path)
            try:
                validate_narration_upload(path.read_bytes(), guess_mime(path.name) or "")
                return path
            except (OSError, UploadValidationError) as e:
                warnings.append(f"Narración descartada: {e}")
                return None

        if audio.narration_tts:
            if audio.voice or audio.voice_rate != 1.0:
                narrator = NarrationSynthesizer(
                    voice=audio.voice or self.settings.tts.voice, rate=audio.voice_rate
                )
            else:
                narrator = self.narrator
            track = narrator.synthesize(
                narration_text([s.text for s in project.scenes]), workdir / "narration.mp3"
            )
            if track is None:
                warnings.append("Síntesis de narración falló, video sin narración")
            return track
        return None

    def run(
        self,
        project: Project,
        cancel_token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> RunResult:
        """
        Ejecuta la corrida completa. Nunca lanza: el resultado lleva el estado.

        Args:
            project: Proyecto validado
            cancel_token: Se consulta antes de cada escena, de concatenar y de mezclar
            on_progress: Recibe (actual, total, etapa); total = escenas + 2

        Returns:
            RunResult con estado succeeded, failed o cancelled.
        """
        token = cancel_token or CancellationToken()
        scenes = project.scenes
        progress = _Progress(len(scenes) + 2, on_progress)
        warnings: List[str] = []
        metrics: List[SceneMetric] = []

        if not scenes:
            return RunResult(
                status=RunStatus.FAILED,
                error=PipelineFailure(stage="validate", cause="El proyecto no tiene escenas"),
            )

        logger.info(f"Proyecto '{project.project_id}': {len(scenes)} escenas, {project.total_duration:.0f}s")
        resolver = self._resolver_for(project)
        planner = MotionPlanner(self.profile.width, self.profile.height, seed=self.motion_seed)
        workdir = Path(tempfile.mkdtemp(prefix=f"run_{project.project_id[:24]}_", dir=self.settings.temp_dir))

        try:
            segments: List[SceneSegment] = []
            for index, scene in enumerate(scenes):
                token.raise_if_cancelled(f"escena {index}")
                segment, metric = self._render_scene(index, scene, project, resolver, planner, workdir)
                progress.report(index + 1, f"Escena {index + 1}/{len(scenes)} lista")
                segments.append(segment)
                metrics.append(metric)
                warnings.extend(f"Escena {index}: {w}" for w in metric.warnings)

            token.raise_if_cancelled("concatenación")
            concat = self.concatenator.concat(segments, workdir / "concat.mp4")
            progress.report(len(scenes) + 1, "Concatenado")
            warnings.extend(concat.warnings)
            cleanup_segments(segments)

            problem = validate_video_file(concat.output_path)
            if problem:
                return self._failed(metrics, warnings, "validate", problem)

            duration = segments[0].duration_sec if concat.truncated else project.total_duration

            token.raise_if_cancelled("audio")
            final_path = concat.output_path
            narration = self._narration_track(project, workdir, warnings)
            plan = self.mixer.plan(duration, project.audio, narration)
            warnings.extend(plan.warnings)
            if plan.has_audio:
                mixed = self.mixer.mix(final_path, plan, workdir / "mixed.mp4")
                warnings.extend(mixed.warnings)
                final_path = mixed.output_path

            token.raise_if_cancelled("entrega")
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            destination = move_output(
                final_path, Path(self.settings.output_dir) / f"{project.project_id}_{stamp}.mp4"
            )
            progress.report(progress.total, "Listo")

            result = RunResult(
                status=RunStatus.SUCCEEDED,
                output_path=destination,
                duration_sec=duration,
                warnings=warnings,
                metrics=metrics,
                truncated=concat.truncated,
            )
            self._summary(project, result)
            return result

        except PipelineCancelled as e:
            logger.warning(f"Corrida cancelada: {e}")
            return RunResult(status=RunStatus.CANCELLED, warnings=warnings, metrics=metrics)
        except SceneRenderError as e:
            if token.cancelled:
                # El encoder murió por la misma interrupción que pidió cancelar
                logger.warning(f"Corrida cancelada durante la escena {e.scene_index}")
                return RunResult(status=RunStatus.CANCELLED, warnings=warnings, metrics=metrics)
            logger.error(str(e))
            return self._failed(metrics, warnings, e.stage, e.cause, e.scene_index)
        except ConcatenationError as e:
            logger.error(f"Concatenación imposible: {e}")
            return self._failed(metrics, warnings, "concat", str(e))
        except (ReelforgeError, OSError) as e:
            logger.error(f"Error en la corrida: {e}")
            return self._failed(metrics, warnings, "pipeline", str(e))
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

    @staticmethod
    def _failed(
        metrics: List[SceneMetric],
        warnings: List[str],
        stage: str,
        cause: str,
        scene_index: Optional[int] = None,
    ) -> RunResult:
        return RunResult(
            status=RunStatus.FAILED,
            warnings=warnings,
            metrics=metrics,
            error=PipelineFailure(stage=stage, cause=cause, scene_index=scene_index),
        )

    def _summary(self, project: Project, result: RunResult) -> None:
        if not self.verbose:
            return
        sources = ", ".join(m.background_source for m in result.metrics)
        console.print(Panel(
            f"[bold green]✓ VIDEO GENERADO[/bold green]\n"
            f"Proyecto: {project.project_id}\n"
            f"Archivo: {result.output_path}\n"
            f"Duración: {result.duration_sec:.1f}s\n"
            f"Fondos: {sources}\n"
            f"Advertencias: {len(result.warnings)}",
            title="Completado",
            style="yellow" if result.truncated else "green"
        ))

    def close(self):
        """Libera recursos."""
        if self._image_client is not None:
            self._image_client.close()
        if self._cache is not None:
            self._cache.close()
