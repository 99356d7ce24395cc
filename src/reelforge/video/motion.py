"""
Efecto Ken Burns (zoom + paneo) con guard-rails.
El cálculo de la ventana visible y la expresión zoompan de FFmpeg usan la misma fórmula.
"""
import logging
import random
from typing import Optional, Tuple

from ..domain.models import MotionParams, PanDirection, ZoomDirection

logger = logging.getLogger(__name__)

ZOOM_MIN = 1.0
ZOOM_MAX = 1.12

PAN_DEFAULT = 0.08
PAN_MODERATE = 0.06
PAN_EXTREME = 0.04
ASPECT_MODERATE_DIFF = 0.2
ASPECT_EXTREME_DIFF = 0.5


def pan_fraction_for(image_aspect: Optional[float], target_aspect: float) -> float:
    """Menos paneo cuanto más difiere el aspecto de la imagen del de salida."""
    if image_aspect is None:
        return PAN_DEFAULT
    diff = abs(image_aspect - target_aspect)
    if diff > ASPECT_EXTREME_DIFF:
        return PAN_EXTREME
    if diff > ASPECT_MODERATE_DIFF:
        return PAN_MODERATE
    return PAN_DEFAULT


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


class MotionPlanner:
    """Calcula los parámetros de movimiento de cada escena."""

    def __init__(self, target_width: int = 1920, target_height: int = 1080, seed: Optional[int] = None):
        self.target_width = target_width
        self.target_height = target_height
        self._rng = random.Random(seed)

    @property
    def target_aspect(self) -> float:
        return self.target_width / self.target_height

    def plan(
        self,
        duration_sec: float,
        image_aspect_ratio: Optional[float] = None,
        zoom_direction: Optional[ZoomDirection] = None,
        pan_direction: Optional[PanDirection] = None,
    ) -> MotionParams:
        zoom_direction = zoom_direction or self._rng.choice(list(ZoomDirection))
        pan_direction = pan_direction or self._rng.choice(list(PanDirection))
        pan = pan_fraction_for(image_aspect_ratio, self.target_aspect)

        if pan < PAN_DEFAULT:
            logger.info(
                f"Aspecto {image_aspect_ratio:.2f} vs {self.target_aspect:.2f}: paneo reducido a {pan:.0%}"
            )

        if zoom_direction is ZoomDirection.IN:
            zoom_start, zoom_end = ZOOM_MIN, ZOOM_MAX
        else:
            zoom_start, zoom_end = ZOOM_MAX, ZOOM_MIN

        return MotionParams(
            zoom_direction=zoom_direction,
            pan_direction=pan_direction,
            duration_sec=duration_sec,
            pan_fraction=pan,
            zoom_start=zoom_start,
            zoom_end=zoom_end,
        )


def _center_fraction(params: MotionParams, progress: float, horizontal: bool) -> float:
    """Posición del centro de la ventana como fracción del lado de la imagen."""
    pan = params.pan_fraction
    direction = params.pan_direction
    if direction.is_horizontal != horizontal:
        return 0.5
    forward = direction in (PanDirection.LEFT_RIGHT, PanDirection.TOP_BOTTOM)
    if forward:
        return 0.5 - pan / 2 + pan * progress
    return 0.5 + pan / 2 - pan * progress


def total_frames(params: MotionParams, fps: int) -> int:
    return max(1, round(params.duration_sec * fps))


def window_at(
    params: MotionParams, frame: int, frames: int, src_w: float, src_h: float
) -> Tuple[float, float, float, float]:
    """
    Ventana de la imagen fuente muestreada en un cuadro: (x, y, ancho, alto).

    El origen se recorta a [0, lado - lado/zoom], así que la ventana nunca sale
    de la imagen.
    """
    progress = frame / (frames - 1) if frames > 1 else 0.0
    zoom = params.zoom_start + (params.zoom_end - params.zoom_start) * progress
    win_w, win_h = src_w / zoom, src_h / zoom

    cx = src_w * _center_fraction(params, progress, horizontal=True)
    cy = src_h * _center_fraction(params, progress, horizontal=False)
    x = _clamp(cx - win_w / 2, 0.0, src_w - win_w)
    y = _clamp(cy - win_h / 2, 0.0, src_h - win_h)
    return x, y, win_w, win_h


def _axis_expression(params: MotionParams, horizontal: bool, last: int) -> str:
    side = "iw" if horizontal else "ih"
    pan = params.pan_fraction
    direction = params.pan_direction
    if direction.is_horizontal != horizontal:
        center = f"{side}*0.5"
    elif direction in (PanDirection.LEFT_RIGHT, PanDirection.TOP_BOTTOM):
        center = f"{side}*({0.5 - pan / 2:.4f}+{pan:.4f}*on/{last})"
    else:
        center = f"{side}*({0.5 + pan / 2:.4f}-{pan:.4f}*on/{last})"
    return f"max(0,min({side}-{side}/zoom,{center}-{side}/zoom/2))"


def zoompan_filter(params: MotionParams, fps: int, width: int, height: int) -> str:
    """Filtro zoompan de FFmpeg equivalente a `window_at`."""
    frames = total_frames(params, fps)
    last = max(1, frames - 1)
    zs, ze = params.zoom_start, params.zoom_end
    zoom = f"{zs:.4f}+({ze:.4f}-{zs:.4f})*on/{last}"
    x = _axis_expression(params, horizontal=True, last=last)
    y = _axis_expression(params, horizontal=False, last=last)
    return f"zoompan=z='{zoom}':x='{x}':y='{y}':d={frames}:s={width}x{height}:fps={fps}"
