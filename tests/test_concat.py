import pytest

from reelforge.domain.errors import ConcatenationError
from reelforge.domain.models import SceneSegment
from reelforge.video.concat import Concatenator, cleanup_segments, move_output

from conftest import FAKE_MP4, FakeRunner


def make_segments(tmp_path, count=3):
    segments = []
    for i in range(count):
        path = tmp_path / f"segment_{i:03d}.mp4"
        path.write_bytes(FAKE_MP4 + bytes([i]))
        segments.append(SceneSegment(scene_index=i, path=path, size_bytes=path.stat().st_size, duration_sec=4))
    return segments


def test_list_file_in_scene_order(tmp_path):
    segments = make_segments(tmp_path)
    list_path = Concatenator.write_list(segments, tmp_path / "list.txt")
    lines = list_path.read_text().splitlines()
    assert len(lines) == 3
    assert lines[0].endswith("segment_000.mp4'")
    assert lines[2].endswith("segment_002.mp4'")


def test_list_file_escapes_quotes(tmp_path):
    path = tmp_path / "it's.mp4"
    segment = SceneSegment(scene_index=0, path=path, size_bytes=0, duration_sec=4)
    text = Concatenator.write_list([segment], tmp_path / "list.txt").read_text()
    assert "it'\\''s.mp4" in text


def test_concat_success(tmp_path):
    runner = FakeRunner()
    result = Concatenator(runner, retry_wait=0).concat(make_segments(tmp_path), tmp_path / "out.mp4")
    assert not result.truncated
    assert result.attempts == 1
    assert result.read_bytes()[4:8] == b"ftyp"
    cmd = runner.calls[0]
    assert cmd[cmd.index("-c") + 1] == "copy"
    assert not (tmp_path / "out.txt").exists()


def test_concat_retries_once(tmp_path):
    runner = FakeRunner()
    runner.fail("concat", times=1)
    result = Concatenator(runner, retry_wait=0).concat(make_segments(tmp_path), tmp_path / "out.mp4")
    assert result.attempts == 2
    assert not result.truncated


def test_falls_back_to_first_segment(tmp_path):
    runner = FakeRunner()
    runner.fail("concat", times=2)
    segments = make_segments(tmp_path)
    result = Concatenator(runner, retry_wait=0).concat(segments, tmp_path / "out.mp4")
    assert result.truncated
    assert result.attempts == 2
    assert result.read_bytes() == segments[0].path.read_bytes()
    assert any("truncado" in w for w in result.warnings)


def test_invalid_concat_output_counts_as_failure(tmp_path):
    segments = make_segments(tmp_path)
    result = Concatenator(FakeRunner(payload=b"junk"), retry_wait=0).concat(segments, tmp_path / "out.mp4")
    assert result.truncated


def test_unreadable_first_segment_is_fatal(tmp_path):
    runner = FakeRunner()
    runner.fail("concat", times=2)
    segments = make_segments(tmp_path)
    segments[0].path.unlink()
    with pytest.raises(ConcatenationError):
        Concatenator(runner, retry_wait=0).concat(segments, tmp_path / "out.mp4")


def test_no_segments_is_fatal(tmp_path):
    with pytest.raises(ConcatenationError):
        Concatenator(FakeRunner()).concat([], tmp_path / "out.mp4")


def test_cleanup_and_move(tmp_path):
    segments = make_segments(tmp_path, 2)
    cleanup_segments(segments)
    assert not any(s.path.exists() for s in segments)

    source = tmp_path / "a.mp4"
    source.write_bytes(b"x")
    moved = move_output(source, tmp_path / "nested" / "b.mp4")
    assert moved.read_bytes() == b"x"
    assert not source.exists()
