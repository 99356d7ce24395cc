import pytest
from pydantic import ValidationError

from reelforge.domain.errors import EncoderError, SceneRenderError
from reelforge.domain.models import (
    AiBackground,
    GradientBackground,
    Project,
    RunResult,
    RunStatus,
    Scene,
    SceneKind,
)


def test_scene_kind_durations():
    assert SceneKind.HOOK.default_duration == 4
    assert SceneKind.BEAT.default_duration == 5
    assert SceneKind.CTA.default_duration == 4


def test_scene_is_immutable_except_background():
    scene = Scene(text="Hi.", duration_sec=4, kind=SceneKind.HOOK)
    with pytest.raises(ValidationError):
        scene.text = "changed"
    edited = scene.with_background(AiBackground())
    assert edited.background.mode == "ai"
    assert scene.background is None


def test_background_discriminator():
    scene = Scene.model_validate({"text": "x", "duration_sec": 4, "background": {"mode": "gradient"}})
    assert isinstance(scene.background, GradientBackground)
    with pytest.raises(ValidationError):
        Scene.model_validate({"text": "x", "duration_sec": 4, "background": {"mode": "video"}})


def test_project_total_duration():
    scenes = [
        Scene(text="a", duration_sec=4, kind=SceneKind.HOOK),
        Scene(text="b", duration_sec=2, kind=SceneKind.BEAT),
        Scene(text="c", duration_sec=6, kind=SceneKind.CTA),
    ]
    assert Project(project_id="p", scenes=scenes).total_duration == 4 + 5 + 6


def test_run_result_bytes(tmp_path):
    video = tmp_path / "v.mp4"
    video.write_bytes(b"data")
    assert RunResult(status=RunStatus.SUCCEEDED, output_path=video).read_bytes() == b"data"
    assert RunResult(status=RunStatus.CANCELLED, output_path=video).read_bytes() == b""


def test_encoder_error_shows_stderr_tail():
    error = EncoderError("FFmpeg terminó con código 1", stderr="a\nb\nc\nd\n")
    assert str(error) == "FFmpeg terminó con código 1: b | c | d"


def test_scene_render_error_fields():
    error = SceneRenderError(2, "encode", "boom")
    assert (error.scene_index, error.stage, error.cause) == (2, "encode", "boom")
