"""
Generador de degradados cinematográficos.
Fondo procedural determinista: es el último recurso garantizado de la jerarquía.
"""
import colorsys
import logging
import math
from typing import List, Optional, Sequence

import numpy as np
from PIL import Image

from ..domain.models import GradientSpec

logger = logging.getLogger(__name__)

# Paletas que funcionan bien con texto blanco
PALETTE_TEMPLATES = [
    {"name": "Warm Sunset", "base_hue": 25, "sat": (40, 60), "light": (20, 40)},
    {"name": "Cool Twilight", "base_hue": 220, "sat": (45, 65), "light": (15, 35)},
    {"name": "Forest Mystery", "base_hue": 140, "sat": (35, 55), "light": (18, 38)},
]

# Ángulos cinematográficos, mayormente diagonales
CINEMATIC_ANGLES = [135, 225, 45, 315, 180, 90]

COLLISION_HUE_SHIFT = 15
VIGNETTE_STRENGTH = 0.35


def stable_hash(text: str) -> int:
    """Hash rodante de 32 bits (h*31 + c) con signo, como el de Java."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def hsl_to_hex(h: float, s: float, l: float) -> str:
    """HSL (grados, %, %) a '#rrggbb'."""
    r, g, b = colorsys.hls_to_rgb((h % 360) / 360.0, l / 100.0, s / 100.0)
    return "#" + "".join(f"{int(c * 255 + 0.5):02x}" for c in (r, g, b))


def hex_to_rgb(color: str) -> tuple[int, int, int]:
    color = color.lstrip("#")
    return tuple(int(color[i:i + 2], 16) for i in (0, 2, 4))


class GradientHistory:
    """Degradados generados en el proyecto actual, para evitar repeticiones."""

    def __init__(self, project_id: str = ""):
        self.project_id = project_id
        self._items: List[GradientSpec] = []

    def reset(self, project_id: str) -> None:
        self.project_id = project_id
        self._items.clear()

    def append(self, spec: GradientSpec) -> None:
        self._items.append(spec)

    @property
    def items(self) -> List[GradientSpec]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)


class GradientEngine:
    """Genera y renderiza degradados deterministas por escena."""

    def generate(
        self,
        seed_text: str,
        scene_index: int,
        project_id: str = "",
        history: Optional[Sequence[GradientSpec]] = None,
    ) -> GradientSpec:
        """
        Calcula el degradado de una escena.

        Función pura de (project_id, scene_index, seed_text); el historial solo
        se usa para romper empates con el degradado inmediatamente anterior.
        """
        base_hash = abs(stable_hash(f"{project_id}-{scene_index}-{seed_text}"))
        palette = PALETTE_TEMPLATES[scene_index % len(PALETTE_TEMPLATES)]

        hue_variation = (base_hash % 60) - 30
        hue1 = (palette["base_hue"] + hue_variation + 360) % 360
        hue2 = (hue1 + 45 + (base_hash % 90)) % 360

        sat_lo, sat_hi = palette["sat"]
        light_lo, light_hi = palette["light"]
        sat1 = sat_lo + (base_hash % (sat_hi - sat_lo))
        sat2 = sat_lo + ((base_hash >> 8) % (sat_hi - sat_lo))
        light1 = light_lo + ((base_hash >> 16) % (light_hi - light_lo))
        light2 = light_lo + ((base_hash >> 24) % (light_hi - light_lo))

        color1 = hsl_to_hex(hue1, sat1, light1)
        color2 = hsl_to_hex(hue2, sat2, light2)

        if history:
            last = history[-1]
            if (last.color1, last.color2) == (color1, color2):
                logger.info(f"Degradado de escena {scene_index} idéntico al anterior, rotando tono")
                color1 = hsl_to_hex(hue1 + COLLISION_HUE_SHIFT, sat1, light1)
                color2 = hsl_to_hex(hue2 + COLLISION_HUE_SHIFT, sat2, light2)

        angle = CINEMATIC_ANGLES[base_hash % len(CINEMATIC_ANGLES)]
        logger.debug(f"Escena {scene_index} ({palette['name']}): {color1} → {color2} @ {angle}°")
        return GradientSpec(color1=color1, color2=color2, angle_degrees=angle)

    def render(self, spec: GradientSpec, width: int, height: int) -> Image.Image:
        """
        Dibuja el degradado lineal (color1, color2, color1) con viñeta radial.
        """
        c1 = np.array(hex_to_rgb(spec.color1), dtype=np.float32)
        c2 = np.array(hex_to_rgb(spec.color2), dtype=np.float32)

        ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
        cx, cy = width / 2.0, height / 2.0
        rad = math.radians(spec.angle_degrees)
        dx, dy = math.cos(rad), math.sin(rad)

        # Proyección sobre la dirección del ángulo, normalizada a [0, 1]
        half_span = abs(dx) * width / 2.0 + abs(dy) * height / 2.0
        proj = (xs - cx) * dx + (ys - cy) * dy
        t = np.clip((proj / max(half_span, 1e-6) + 1.0) / 2.0, 0.0, 1.0)

        # Tres paradas: 0 → color1, 0.5 → color2, 1 → color1
        mix = 1.0 - np.abs(2.0 * t - 1.0)
        rgb = c1 + (c2 - c1) * mix[..., None]

        # Viñeta: 0% en el centro, 35% de oscurecimiento en el borde
        radius = math.hypot(cx, cy)
        dist = np.sqrt((xs - cx) ** 2 + (ys - cy) ** 2) / max(radius, 1e-6)
        rgb *= (1.0 - VIGNETTE_STRENGTH * np.clip(dist, 0.0, 1.0))[..., None]

        return Image.fromarray(np.clip(rgb + 0.5, 0, 255).astype(np.uint8), "RGB")
