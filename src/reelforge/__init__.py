"""reelforge: convierte un prompt corto en un video narrado multi-escena."""

__version__ = "0.3.0"
