import io
from pathlib import Path

import pytest
from PIL import Image

from reelforge.config import OutputProfile, Settings
from reelforge.domain.errors import EncoderError

# Cabecera ISO-BMFF mínima: tamaño de caja + 'ftyp' en el offset 4
FAKE_MP4 = b"\x00\x00\x00\x18ftypisom\x00\x00\x02\x00isomiso2" + b"\x00" * 2048


class FakeRunner:
    """Sustituto de FFmpegRunner: registra comandos y escribe un MP4 falso en la salida."""

    def __init__(self, payload: bytes = FAKE_MP4):
        self.payload = payload
        self.calls = []
        self.failures = {}

    @staticmethod
    def kind_of(args) -> str:
        if "concat" in args:
            return "concat"
        if "[aout]" in args:
            return "mix"
        return "scene"

    def fail(self, kind: str, times: int = 1):
        self.failures[kind] = times

    def is_available(self) -> bool:
        return True

    def run(self, args):
        args = [str(a) for a in args]
        self.calls.append(args)
        kind = self.kind_of(args)
        if self.failures.get(kind, 0) > 0:
            self.failures[kind] -= 1
            raise EncoderError(f"fallo simulado de {kind}", stderr="line1\nline2\nboom")
        Path(args[-1]).write_bytes(self.payload)

    def probe_duration(self, media_path) -> float:
        return 0.0

    def calls_of(self, kind: str):
        return [c for c in self.calls if self.kind_of(c) == kind]


def png_bytes(width: int, height: int, color=(200, 40, 40)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        output_dir=tmp_path / "output",
        temp_dir=tmp_path / "temp",
        cache_dir=tmp_path / "cache",
        assets_dir=tmp_path / "assets",
    )


@pytest.fixture
def small_profile():
    return OutputProfile(width=320, height=180)
