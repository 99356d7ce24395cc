"""
Biblioteca de pistas de música de fondo.
Conjunto fijo de pistas con nombre; 'none' desactiva la música.
"""
import logging
from pathlib import Path
from typing import List, Optional

from ..domain.models import AudioTrack

logger = logging.getLogger(__name__)

NO_MUSIC = "none"

AUDIO_TRACKS: List[AudioTrack] = [
    AudioTrack(id="none", name="No Music", filename="",
               description="Silent video with no background music", mood="lofi"),
    AudioTrack(id="lofi-1", name="Lofi Chill", filename="lofi-1.wav",
               description="Relaxed lofi hip-hop for chill scenes", mood="lofi"),
    AudioTrack(id="cinematic-1", name="Epic Cinematic", filename="cinematic-1.wav",
               description="Epic orchestral for dramatic scenes", mood="cinematic"),
    AudioTrack(id="tension-1", name="Suspense", filename="tension-1.wav",
               description="Suspenseful ambient for mystery/thriller", mood="tension"),
    AudioTrack(id="uplift-1", name="Uplifting", filename="uplift-1.wav",
               description="Upbeat motivational for positive endings", mood="uplift"),
]


class AudioLibrary:
    """Resuelve ids de pista a archivos locales."""

    def __init__(self, music_dir: Path, tracks: Optional[List[AudioTrack]] = None):
        self.music_dir = Path(music_dir)
        self.tracks = {t.id: t for t in (tracks or AUDIO_TRACKS)}

    def list_tracks(self) -> List[AudioTrack]:
        return list(self.tracks.values())

    def resolve(self, track_id: Optional[str]) -> Optional[Path]:
        """
        Ruta local de la pista, o None si es 'none', desconocida o no existe en disco.
        """
        if not track_id or track_id == NO_MUSIC:
            return None
        track = self.tracks.get(track_id)
        if track is None:
            logger.warning(f"Pista desconocida: '{track_id}'")
            return None
        path = self.music_dir / track.filename
        if not path.exists():
            logger.warning(f"Pista '{track_id}' no encontrada en {path}")
            return None
        return path
