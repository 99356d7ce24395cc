import json
import signal

from reelforge.domain.models import BackgroundMode, RunResult, RunStatus
from reelforge.main import build_arg_parser, main, project_from_args
from reelforge.pipeline import PipelineOrchestrator

from conftest import FakeRunner


def test_project_from_prompt_args():
    args = build_arg_parser().parse_args(
        ["One. Two. Three.", "--music", "none", "--volume", "40", "--gradient-only", "--id", "demo"]
    )
    project = project_from_args(args)
    assert project.project_id == "demo"
    assert len(project.scenes) == 3
    assert all(s.background.mode == BackgroundMode.GRADIENT.value for s in project.scenes)
    assert project.audio.background_track == "none"
    assert project.audio.music_volume == 40


def test_project_from_json_file(tmp_path):
    path = tmp_path / "project.json"
    path.write_text(json.dumps({"project_id": "file", "prompt": "Hello there. Bye now."}))
    project = project_from_args(build_arg_parser().parse_args(["--project", str(path)]))
    assert project.project_id == "file"
    assert len(project.scenes) == 2


def test_list_tracks(capsys):
    assert main(["--list-tracks"]) == 0
    assert "lofi-1" in capsys.readouterr().out


def test_no_input_prints_help():
    assert main([]) == 2


def test_full_run_with_fake_encoder(tmp_path, monkeypatch):
    runner = FakeRunner()
    original_init = PipelineOrchestrator.__init__

    def init_with_fake(self, *args, **kwargs):
        kwargs["runner"] = runner
        original_init(self, *args, **kwargs)

    monkeypatch.setattr(PipelineOrchestrator, "__init__", init_with_fake)
    monkeypatch.setenv("REELFORGE_TEMP_DIR", str(tmp_path / "temp"))
    code = main(["A. B. C.", "--music", "none", "--output", str(tmp_path / "out")])

    assert code == 0
    assert len(list((tmp_path / "out").glob("*.mp4"))) == 1
    assert len(runner.calls_of("scene")) == 3


def test_ctrl_c_only_sets_the_cancel_token(tmp_path, monkeypatch):
    seen = {}

    def interrupted_run(self, project, cancel_token=None, on_progress=None):
        signal.raise_signal(signal.SIGINT)
        seen["cancelled"] = cancel_token.cancelled
        return RunResult(status=RunStatus.CANCELLED)

    monkeypatch.setattr(PipelineOrchestrator, "run", interrupted_run)
    monkeypatch.setenv("REELFORGE_TEMP_DIR", str(tmp_path / "temp"))
    handler_before = signal.getsignal(signal.SIGINT)

    code = main(["A. B.", "--music", "none", "--output", str(tmp_path / "out")])

    assert code == 130
    assert seen["cancelled"] is True
    assert signal.getsignal(signal.SIGINT) is handler_before
