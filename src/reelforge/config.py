"""
Configuración del pipeline.
Lee config/config.yaml y permite sobrescribir con variables de entorno (.env).
"""
import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/config.yaml")


class OutputProfile(BaseModel):
    """Perfil de salida fijo: una resolución, un contenedor, un códec."""
    width: int = 1920
    height: int = 1080
    fps: int = 30
    codec: str = "libx264"
    pixel_format: str = "yuv420p"
    preset: str = "fast"
    crf: int = 23


class AiSettings(BaseModel):
    enabled: bool = False
    default: bool = False
    base_url: str = "https://image.pollinations.ai/prompt"
    timeout_seconds: float = Field(5.0, gt=0, lt=10)
    cache_ttl_hours: int = 168


class CaptionSettings(BaseModel):
    font_path: Optional[str] = None


class TTSSettings(BaseModel):
    voice: str = "en-US-AriaNeural"


class Settings(BaseModel):
    output_dir: Path = Path("./output")
    temp_dir: Path = Path("./temp")
    cache_dir: Path = Path("./cache")
    assets_dir: Path = Path("./assets")
    encoder_timeout_seconds: int = 300
    log_level: str = "INFO"
    profile: OutputProfile = Field(default_factory=OutputProfile)
    ai: AiSettings = Field(default_factory=AiSettings)
    captions: CaptionSettings = Field(default_factory=CaptionSettings)
    tts: TTSSettings = Field(default_factory=TTSSettings)

    @property
    def music_dir(self) -> Path:
        return self.assets_dir / "music"


def _env_bool(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(data: dict) -> dict:
    """Variables de entorno tienen prioridad sobre el YAML."""
    ai = data.setdefault("ai", {})

    enabled = _env_bool("REELFORGE_AI_ENABLED")
    if enabled is not None:
        ai["enabled"] = enabled
    if os.getenv("IMAGE_API_URL"):
        ai["base_url"] = os.environ["IMAGE_API_URL"]

    for key, env in (
        ("output_dir", "REELFORGE_OUTPUT_DIR"),
        ("temp_dir", "REELFORGE_TEMP_DIR"),
        ("cache_dir", "REELFORGE_CACHE_DIR"),
        ("assets_dir", "REELFORGE_ASSETS_DIR"),
        ("log_level", "REELFORGE_LOG_LEVEL"),
    ):
        if os.getenv(env):
            data[key] = os.environ[env]

    if os.getenv("REELFORGE_FONT_PATH"):
        data.setdefault("captions", {})["font_path"] = os.environ["REELFORGE_FONT_PATH"]
    if os.getenv("REELFORGE_TTS_VOICE"):
        data.setdefault("tts", {})["voice"] = os.environ["REELFORGE_TTS_VOICE"]
    return data


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """
    Carga la configuración del pipeline.

    Args:
        config_path: Ruta al YAML. Si no existe, se usan los valores por defecto.

    Returns:
        Settings validado.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    data: dict = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        logger.debug(f"Configuración cargada desde {path}")
    elif config_path:
        logger.warning(f"No existe {path}, usando configuración por defecto")

    return Settings(**_apply_env_overrides(data))
