"""
Narración con Edge-TTS.
Usa voces neurales de Microsoft Edge para generar una pista de narración opcional.
La síntesis es best-effort: si falla, el video se entrega sin narración.
"""

import asyncio
import logging
import re
import time
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

VOICES = {
    "en-US-AriaNeural": "Aria (US, femenino)",
    "en-US-GuyNeural": "Guy (US, masculino)",
    "en-GB-SoniaNeural": "Sonia (UK, femenino)",
    "en-GB-RyanNeural": "Ryan (UK, masculino)",
    "es-CO-GonzaloNeural": "Gonzalo (Colombia, masculino)",
    "es-MX-DaliaNeural": "Dalia (México, femenino)",
    "es-ES-AlvaroNeural": "Álvaro (España, masculino)",
}

DEFAULT_VOICE = "en-US-AriaNeural"


def clean_text_for_tts(text: str) -> str:
    """
    Limpia texto para síntesis TTS, removiendo elementos problemáticos.
    """
    # URLs
    text = re.sub(r'https?://\S+', '', text)
    text = re.sub(r'www\.\S+', '', text)

    # Menciones y hashtags
    text = re.sub(r'[@#]\w+', '', text)

    emoji_pattern = re.compile("["
        "\U0001F600-\U0001F64F"
        "\U0001F300-\U0001F5FF"
        "\U0001F680-\U0001F6FF"
        "\U0001F1E0-\U0001F1FF"
        "\U00002702-\U000027B0"
        "\U000024C2-\U0001F251"
        "]+", flags=re.UNICODE)
    text = emoji_pattern.sub('', text)

    # Marcado
    text = re.sub(r'[*_~`|<>{}[\]\\]', '', text)

    text = re.sub(r'\s+', ' ', text)
    text = re.sub(r'[.]{2,}', '.', text)
    text = re.sub(r'[!]{2,}', '!', text)
    text = re.sub(r'[?]{2,}', '?', text)

    return text.strip()


def rate_to_edge(rate: float) -> str:
    """Multiplicador de velocidad (1.0 = normal) al formato de Edge ('+10%', '-5%')."""
    return f"{round((rate - 1.0) * 100):+d}%"


def narration_text(scene_texts: Sequence[str]) -> str:
    """Texto completo de la narración: los textos de escena en orden."""
    return clean_text_for_tts(" ".join(t.replace("\\n", " ") for t in scene_texts))


class NarrationSynthesizer:
    """Sintetiza la narración de un proyecto con Edge-TTS (Microsoft Neural Voices)."""

    def __init__(self, voice: str = DEFAULT_VOICE, rate: float = 1.0, pitch: str = "+0Hz"):
        """
        Args:
            voice: Voz a usar (ej: en-US-AriaNeural)
            rate: Multiplicador de velocidad del habla
            pitch: Tono de voz (ej: "+5Hz", "-10Hz")
        """
        if voice not in VOICES:
            logger.warning(f"Voz no listada: {voice}, se intentará de todos modos")
        self.voice = voice
        self.rate = rate_to_edge(rate)
        self.pitch = pitch

    async def _synthesize_async(self, text: str, output_path: Path) -> bool:
        try:
            import edge_tts

            communicate = edge_tts.Communicate(
                text=text,
                voice=self.voice,
                rate=self.rate,
                pitch=self.pitch
            )
            await communicate.save(str(output_path))
            return output_path.exists() and output_path.stat().st_size > 0

        except Exception as e:
            logger.error(f"Error en Edge-TTS: {e}")
            return False

    def synthesize(self, text: str, output_path: Path) -> Optional[Path]:
        """
        Sintetiza texto a un MP3.

        Returns:
            Ruta al archivo de audio, o None si el texto queda vacío o la síntesis falla.
        """
        text = clean_text_for_tts(text)
        if not text:
            logger.error("Texto vacío después de limpieza")
            return None

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        start_time = time.time()
        job = self._synthesize_async(text, output_path)
        try:
            ok = asyncio.run(job)
        except RuntimeError as e:
            # asyncio.run no admite un event loop ya activo
            job.close()
            logger.error(f"Edge-TTS no pudo ejecutarse: {e}")
            return None
        if not ok:
            return None

        logger.info(
            f"Narración generada con {VOICES.get(self.voice, self.voice)} "
            f"en {time.time() - start_time:.1f}s ({len(text)} caracteres)"
        )
        return output_path
