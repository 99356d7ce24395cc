"""Módulo director: del prompt o proyecto JSON a escenas."""

from .scene_builder import build_scenes
from .parser import ProjectParser

__all__ = ["build_scenes", "ProjectParser"]
