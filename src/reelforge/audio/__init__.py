"""Módulo de audio: biblioteca de pistas y mezcla final."""

from .library import AudioLibrary, AUDIO_TRACKS
from .mixer import AudioMixer

__all__ = ["AudioLibrary", "AUDIO_TRACKS", "AudioMixer"]
