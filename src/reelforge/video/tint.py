"""
Tintes de color por escena.
Prioridad: tema por palabra clave > tipo de escena > sin tinte.
"""
import logging
import re
from typing import Iterable, Optional

from ..domain.models import Scene, SceneKind, TintConfig

logger = logging.getLogger(__name__)

TINT_THEMES = {
    "space": {
        "color": "#3250c8",
        "opacity": 0.3,
        "theme": "sci-fi/space",
        "keywords": ["space", "station", "stars", "galaxy", "cosmic", "universe", "asteroid",
                     "planet", "jupiter", "mars", "spacecraft", "alien", "nebula", "orbit"],
    },
    "romance": {
        "color": "#c83250",
        "opacity": 0.3,
        "theme": "romantic",
        "keywords": ["love", "romance", "heart", "kiss", "wedding", "couple", "passion",
                     "beautiful", "paris", "summer", "romantic", "tender", "intimate", "embrace"],
    },
    "mystery": {
        "color": "#323232",
        "opacity": 0.4,
        "theme": "mystery/thriller",
        "keywords": ["mystery", "dark", "shadow", "secret", "hidden", "thriller", "crime",
                     "detective", "stranger", "disappears", "vanish", "clue", "investigate"],
    },
    "nature": {
        "color": "#329632",
        "opacity": 0.3,
        "theme": "nature",
        "keywords": ["forest", "tree", "nature", "garden", "green", "wildlife", "mountain",
                     "river", "deep", "woods", "leaves", "natural", "outdoor"],
    },
}

# Acento suave para el gancho y el cierre; los beats no llevan tinte propio
KIND_TINTS = {
    SceneKind.HOOK: TintConfig(theme="hook", color="#ff6b6b", opacity=0.15),
    SceneKind.CTA: TintConfig(theme="cta", color="#4ecdc4", opacity=0.15),
}


def _words(scene: Scene) -> set:
    text_words = re.findall(r"[a-z0-9]+", scene.text.lower())
    return set(text_words) | {k.lower() for k in scene.keywords}


def theme_tint(words: Iterable[str]) -> Optional[TintConfig]:
    """Tema con más coincidencias; empate → orden de declaración."""
    words = set(words)
    best, best_hits = None, 0
    for name, theme in TINT_THEMES.items():
        hits = len(words.intersection(theme["keywords"]))
        if hits > best_hits:
            best, best_hits = name, hits
    if best is None:
        return None
    theme = TINT_THEMES[best]
    return TintConfig(theme=theme["theme"], color=theme["color"], opacity=theme["opacity"])


def select_tint(scene: Scene) -> Optional[TintConfig]:
    tint = theme_tint(_words(scene)) or KIND_TINTS.get(scene.kind)
    if tint:
        logger.debug(f"Tinte '{tint.theme}' ({tint.color} @ {tint.opacity})")
    return tint
