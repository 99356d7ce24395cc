"""
Entrada principal de reelforge.
Convierte un prompt (o un proyecto JSON) en un video MP4 narrado.
"""
import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from .audio.library import AUDIO_TRACKS
from .config import load_settings
from .director.parser import ProjectParser, slugify
from .director.scene_builder import build_scenes
from .domain.models import AudioConfig, GradientBackground, Project, RunStatus
from .pipeline import CancellationToken, PipelineOrchestrator
from .tts.edge_tts import VOICES
from .video.encoder import FFmpegRunner

logger = logging.getLogger(__name__)
console = Console()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reelforge",
        description="reelforge - prompt → video multi-escena",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("prompt", nargs="?", help="Texto libre; cada oración es una escena")
    parser.add_argument("--project", type=Path, help="Proyecto JSON (escenas, fondos, audio)")
    parser.add_argument("--config", type=Path, help="Ruta a config.yaml")
    parser.add_argument("--id", dest="project_id", help="Identificador del proyecto")

    # Fondos
    parser.add_argument("--ai", action="store_true", help="Usar imágenes IA como fondo por defecto")
    parser.add_argument("--gradient-only", action="store_true", help="Forzar degradados en todas las escenas")
    parser.add_argument("--polish", action="store_true", help="Reforzar Hook y Cta del prompt")

    # Audio
    parser.add_argument("--music", default="lofi-1", help="Pista de fondo ('none' para desactivar)")
    parser.add_argument("--volume", type=float, default=65, help="Volumen de la música (0-100)")
    parser.add_argument("--narration", type=Path, help="Archivo de narración (mp3, wav, m4a...)")
    parser.add_argument("--tts", action="store_true", help="Sintetizar narración con Edge-TTS")
    parser.add_argument("--voice", help="Voz de Edge-TTS")

    parser.add_argument("--output", type=Path, help="Directorio de salida")
    parser.add_argument("--seed", type=int, help="Semilla del movimiento de cámara")
    parser.add_argument("--list-tracks", action="store_true", help="Listar pistas de música")
    parser.add_argument("--list-voices", action="store_true", help="Listar voces de narración")
    parser.add_argument("--check", action="store_true", help="Verificar que FFmpeg esté instalado")
    parser.add_argument("-v", "--verbose", action="store_true", help="Logging detallado")
    return parser


def project_from_args(args: argparse.Namespace) -> Project:
    """Arma el Project desde --project o desde el prompt posicional."""
    if args.project:
        project = ProjectParser(base_dir=args.project.parent).parse(
            args.project.read_text(encoding="utf-8")
        )
    else:
        scenes = build_scenes(args.prompt or "", polish=args.polish)
        if not scenes:
            raise ValueError("El prompt está vacío")
        audio = AudioConfig(
            background_track=args.music,
            music_volume=args.volume,
            narration_path=args.narration,
            narration_tts=args.tts,
            voice=args.voice,
        )
        project = Project(
            project_id=args.project_id or slugify(scenes[0].text),
            scenes=scenes,
            ai_enabled=args.ai,
            ai_default=args.ai,
            audio=audio,
        )

    if args.gradient_only:
        project = project.model_copy(update={
            "scenes": [s.with_background(GradientBackground()) for s in project.scenes]
        })
    return project


def main(argv: Optional[List[str]] = None) -> int:
    "Punto de entrada CLI."
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    settings = load_settings(args.config)
    level = "DEBUG" if args.verbose else settings.log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_tracks:
        console.print("[cyan]Pistas disponibles:[/cyan]\n")
        for track in AUDIO_TRACKS:
            console.print(f"  {track.id}: {track.name} - {track.description}")
        return 0

    if args.list_voices:
        console.print("[cyan]Voces disponibles:[/cyan]\n")
        for voice_id, description in VOICES.items():
            console.print(f"  {voice_id}: {description}")
        return 0

    if args.check:
        if FFmpegRunner().is_available():
            console.print("[green]✓ FFmpeg disponible[/green]")
            return 0
        console.print("[red]✗ FFmpeg no encontrado en PATH[/red]")
        return 1

    if not args.prompt and not args.project:
        parser.print_help()
        return 2

    if args.output:
        settings.output_dir = args.output

    try:
        project = project_from_args(args)
    except (OSError, ValueError) as e:
        console.print(f"[red]Proyecto inválido: {e}[/red]")
        return 2

    console.print(Panel(
        f"[bold cyan]{project.project_id}[/bold cyan]\n"
        f"Escenas: {len(project.scenes)}\n"
        f"Duración: {project.total_duration:.0f}s\n"
        f"Música: {project.audio.background_track} ({project.audio.music_volume:.0f}%)",
        title="reelforge"
    ))

    orchestrator = PipelineOrchestrator(settings=settings, motion_seed=args.seed, verbose=True)
    token = CancellationToken()

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console
        ) as progress:
            task = progress.add_task("Iniciando...", total=len(project.scenes) + 2)

            def on_progress(current: int, total: int, stage: str):
                progress.update(task, completed=current, total=total, description=stage)

            def on_interrupt(signum, frame):
                console.print("[yellow]Cancelando...[/yellow]")
                token.cancel()

            # Ctrl-C solo marca el token; la corrida se detiene en el siguiente punto de control
            previous = signal.signal(signal.SIGINT, on_interrupt)
            try:
                result = orchestrator.run(project, cancel_token=token, on_progress=on_progress)
            finally:
                signal.signal(signal.SIGINT, previous)
    finally:
        orchestrator.close()

    for warning in result.warnings:
        console.print(f"[yellow]⚠ {warning}[/yellow]")

    if result.status is RunStatus.SUCCEEDED:
        console.print(f"[green]✓ Video: {result.output_path}[/green]")
        return 0
    if result.status is RunStatus.CANCELLED:
        console.print("[yellow]Corrida cancelada[/yellow]")
        return 130

    error = result.error
    where = f" (escena {error.scene_index})" if error and error.scene_index is not None else ""
    console.print(f"[red]✗ Falló en '{error.stage if error else '?'}'{where}: {error.cause if error else ''}[/red]")
    return 1


if __name__ == "__main__":
    sys.exit(main())
