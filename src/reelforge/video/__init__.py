"""Módulo de video: fondos, subtítulos, movimiento, composición y concatenación."""

from .gradients import GradientEngine
from .captions import CaptionLayoutEngine, CaptionRasterizer
from .motion import MotionPlanner
from .background import BackgroundResolver
from .compositor import SceneCompositor
from .concat import Concatenator
from .encoder import FFmpegRunner

__all__ = [
    "GradientEngine",
    "CaptionLayoutEngine",
    "CaptionRasterizer",
    "MotionPlanner",
    "BackgroundResolver",
    "SceneCompositor",
    "Concatenator",
    "FFmpegRunner",
]
