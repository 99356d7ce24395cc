import io

import httpx
from PIL import Image

from reelforge.domain.errors import ImageGenerationError
from reelforge.domain.models import (
    AiBackground,
    BackgroundMode,
    GradientBackground,
    UploadBackground,
)
from reelforge.infrastructure.image_generation import ImageGenerationClient
from reelforge.video.background import BackgroundResolver, cover_crop
from reelforge.video.gradients import stable_hash

from conftest import png_bytes

W, H = 320, 180


class ExplodingClient:
    """Cliente que falla la prueba si se le llama."""

    def generate(self, *args, **kwargs):
        raise AssertionError("no se debe consultar la red")


class FailingClient:
    def __init__(self):
        self.calls = 0

    def generate(self, prompt, seed, width, height):
        self.calls += 1
        raise ImageGenerationError("Respuesta 500", status_code=500)


def decode(result):
    return Image.open(io.BytesIO(result.image_bytes))


def mock_client(handler):
    return ImageGenerationClient(base_url="https://images.test/prompt", transport=httpx.MockTransport(handler))


def test_cover_crop_fills_target():
    image, source = cover_crop(png_bytes(100, 400), W, H)
    assert image.size == (W, H)
    assert source == (100, 400)


def test_gradient_default():
    resolver = BackgroundResolver()
    resolver.start_project("p")
    result = resolver.resolve(None, "Plain text.", 0, ai_enabled=False, width=W, height=H)
    assert result.actual_mode is BackgroundMode.GRADIENT
    assert decode(result).size == (W, H)
    assert result.source_metadata["gradient"]["angle_degrees"] > 0


def test_upload_is_cropped():
    resolver = BackgroundResolver(image_client=ExplodingClient())
    spec = UploadBackground(image=png_bytes(1000, 1000))
    result = resolver.resolve(spec, "x", 0, ai_enabled=True, width=W, height=H)
    assert result.actual_mode is BackgroundMode.UPLOAD
    assert decode(result).size == (W, H)
    assert result.source_aspect == 1.0


def test_broken_upload_falls_to_gradient_without_ai():
    resolver = BackgroundResolver(image_client=ExplodingClient(), ai_default=True)
    spec = UploadBackground(image=b"not an image")
    result = resolver.resolve(spec, "x", 0, ai_enabled=True, width=W, height=H)
    assert result.actual_mode is BackgroundMode.GRADIENT
    assert result.requested_mode is BackgroundMode.UPLOAD
    assert any("decodificar" in r for r in result.reasons)


def test_missing_upload_falls_to_gradient():
    resolver = BackgroundResolver(image_client=ExplodingClient())
    result = resolver.resolve(UploadBackground(), "x", 0, ai_enabled=True, width=W, height=H)
    assert result.actual_mode is BackgroundMode.GRADIENT


def test_ai_disabled_skips_network():
    resolver = BackgroundResolver(image_client=ExplodingClient())
    result = resolver.resolve(AiBackground(), "x", 0, ai_enabled=False, width=W, height=H)
    assert result.actual_mode is BackgroundMode.GRADIENT


def test_ai_failure_falls_to_gradient():
    client = FailingClient()
    resolver = BackgroundResolver(image_client=client)
    result = resolver.resolve(AiBackground(), "x", 0, ai_enabled=True, width=W, height=H)
    assert client.calls == 1
    assert result.actual_mode is BackgroundMode.GRADIENT
    assert any("500" in r for r in result.reasons)


def test_ai_success_uses_deterministic_seed():
    seen = []

    def handler(request):
        seen.append(request.url)
        return httpx.Response(200, headers={"content-type": "image/png"}, content=png_bytes(640, 640))

    resolver = BackgroundResolver(image_client=mock_client(handler), ai_default=True)
    resolver.start_project("proj")
    result = resolver.resolve(None, "A red car.", 2, ai_enabled=True, width=W, height=H)

    assert result.actual_mode is BackgroundMode.AI
    expected_seed = abs(stable_hash("proj-2-A red car."))
    assert result.source_metadata["seed"] == expected_seed
    assert seen[0].params["seed"] == str(expected_seed)
    assert seen[0].params["nologo"] == "true"
    assert decode(result).size == (W, H)


def test_ai_wrong_content_type_falls_back():
    def handler(request):
        return httpx.Response(200, headers={"content-type": "text/html"}, content=b"<html>")

    resolver = BackgroundResolver(image_client=mock_client(handler))
    result = resolver.resolve(AiBackground(), "x", 0, ai_enabled=True, width=W, height=H)
    assert result.actual_mode is BackgroundMode.GRADIENT


def test_ai_undecodable_image_falls_back():
    def handler(request):
        return httpx.Response(200, headers={"content-type": "image/png"}, content=b"garbage")

    resolver = BackgroundResolver(image_client=mock_client(handler))
    result = resolver.resolve(AiBackground(), "x", 0, ai_enabled=True, width=W, height=H)
    assert result.actual_mode is BackgroundMode.GRADIENT


def test_ai_timeout_falls_back():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    resolver = BackgroundResolver(image_client=mock_client(handler))
    result = resolver.resolve(AiBackground(), "x", 0, ai_enabled=True, width=W, height=H)
    assert result.actual_mode is BackgroundMode.GRADIENT
    assert any("Timeout" in r for r in result.reasons)


def test_consecutive_gradients_differ():
    resolver = BackgroundResolver()
    resolver.start_project("p")
    spec = GradientBackground()
    first = resolver.resolve(spec, "Same.", 0, ai_enabled=False, width=W, height=H)
    second = resolver.resolve(spec, "Same.", 0, ai_enabled=False, width=W, height=H)
    g1, g2 = first.source_metadata["gradient"], second.source_metadata["gradient"]
    assert (g1["color1"], g1["color2"]) != (g2["color1"], g2["color2"])
