"""
Constructor de escenas
Divide un prompt de texto libre en escenas Hook → Beat… → Cta.
"""
import logging
import re
from typing import List

from ..domain.models import Scene, SceneKind

logger = logging.getLogger(__name__)

MAX_SCENES = 12
MAX_KEYWORDS = 6

_SENTENCE_END = re.compile(r'(?<=[.!?])\s+')
_HOOK_WORDS = re.compile(r'imagine|what if|picture this|you', re.IGNORECASE)
_CTA_WORDS = re.compile(r'follow|subscribe|more|next', re.IGNORECASE)


def extract_keywords(sentence: str) -> List[str]:
    """Palabras en minúscula de más de 3 caracteres, máximo 6."""
    words = re.sub(r'[^a-z0-9\s]', '', sentence.lower()).split()
    return [w for w in words if len(w) > 3][:MAX_KEYWORDS]


def _polish(text: str, kind: SceneKind) -> str:
    if kind is SceneKind.HOOK and not _HOOK_WORDS.search(text):
        return "Imagine this: " + text
    if kind is SceneKind.CTA and not _CTA_WORDS.search(text):
        return text + " Follow for more."
    return text


def build_scenes(prompt: str, max_scenes: int = MAX_SCENES, polish: bool = False) -> List[Scene]:
    """
    Convierte un prompt en escenas.

    La primera oración es el Hook, la última el Cta y el resto Beats.
    Con una sola oración se produce una única escena Hook.

    Args:
        prompt: Texto libre
        max_scenes: Máximo de oraciones que se convierten en escena
        polish: Añade una apertura al Hook y un llamado a la acción al Cta si no lo tienen
    """
    clean = re.sub(r'\(.*?\)', '', prompt or '', flags=re.DOTALL)
    clean = re.sub(r'\s+', ' ', clean).strip()
    if not clean:
        return []

    sentences = [s for s in _SENTENCE_END.split(clean) if s][:max_scenes]
    scenes: List[Scene] = []
    for i, sentence in enumerate(sentences):
        if i == 0:
            kind = SceneKind.HOOK
        elif i == len(sentences) - 1:
            kind = SceneKind.CTA
        else:
            kind = SceneKind.BEAT
        text = _polish(sentence, kind) if polish else sentence
        scenes.append(Scene(
            text=text,
            keywords=extract_keywords(sentence),
            duration_sec=kind.default_duration,
            kind=kind,
        ))

    logger.info(f"Prompt dividido en {len(scenes)} escenas")
    return scenes
