"""Módulo de narración con Edge-TTS."""

from .edge_tts import NarrationSynthesizer

__all__ = ["NarrationSynthesizer"]
