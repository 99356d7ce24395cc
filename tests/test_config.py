from pathlib import Path

import pytest
import yaml

from reelforge.config import Settings, load_settings

ENV_VARS = [
    "REELFORGE_AI_ENABLED", "IMAGE_API_URL", "REELFORGE_OUTPUT_DIR", "REELFORGE_TEMP_DIR",
    "REELFORGE_CACHE_DIR", "REELFORGE_ASSETS_DIR", "REELFORGE_LOG_LEVEL", "REELFORGE_FONT_PATH",
    "REELFORGE_TTS_VOICE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings()
    assert (settings.profile.width, settings.profile.height, settings.profile.fps) == (1920, 1080, 30)
    assert settings.profile.codec == "libx264"
    assert settings.ai.timeout_seconds == 5.0
    assert settings.music_dir == Path("./assets") / "music"


def test_missing_file_uses_defaults(tmp_path):
    settings = load_settings(tmp_path / "missing.yaml")
    assert settings.ai.enabled is False


def test_yaml_values(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"output_dir": "out", "ai": {"enabled": True, "timeout_seconds": 3}}))
    settings = load_settings(path)
    assert settings.output_dir == Path("out")
    assert settings.ai.enabled is True
    assert settings.ai.timeout_seconds == 3


def test_env_overrides_yaml(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"ai": {"enabled": True}, "output_dir": "out"}))
    monkeypatch.setenv("REELFORGE_AI_ENABLED", "false")
    monkeypatch.setenv("IMAGE_API_URL", "https://example.test/img")
    monkeypatch.setenv("REELFORGE_OUTPUT_DIR", str(tmp_path / "env-out"))
    monkeypatch.setenv("REELFORGE_TTS_VOICE", "en-GB-SoniaNeural")

    settings = load_settings(path)
    assert settings.ai.enabled is False
    assert settings.ai.base_url == "https://example.test/img"
    assert settings.output_dir == tmp_path / "env-out"
    assert settings.tts.voice == "en-GB-SoniaNeural"


def test_timeout_must_stay_under_ten_seconds(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"ai": {"timeout_seconds": 30}}))
    with pytest.raises(ValueError):
        load_settings(path)
