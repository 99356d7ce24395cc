import pytest

from reelforge.domain.models import PanDirection, ZoomDirection
from reelforge.video.motion import (
    PAN_DEFAULT,
    PAN_EXTREME,
    PAN_MODERATE,
    MotionPlanner,
    pan_fraction_for,
    total_frames,
    window_at,
    zoompan_filter,
)


def test_pan_fraction_shrinks_with_aspect_mismatch():
    target = 16 / 9
    assert pan_fraction_for(None, target) == PAN_DEFAULT
    assert pan_fraction_for(target, target) == PAN_DEFAULT
    assert pan_fraction_for(target - 0.3, target) == PAN_MODERATE
    assert pan_fraction_for(9 / 16, target) == PAN_EXTREME


def test_planner_is_reproducible_with_seed():
    a = MotionPlanner(seed=7).plan(5.0)
    b = MotionPlanner(seed=7).plan(5.0)
    assert a == b


def test_zoom_direction_sets_range():
    planner = MotionPlanner(seed=1)
    zoom_in = planner.plan(4.0, zoom_direction=ZoomDirection.IN)
    zoom_out = planner.plan(4.0, zoom_direction=ZoomDirection.OUT)
    assert (zoom_in.zoom_start, zoom_in.zoom_end) == (1.0, 1.12)
    assert (zoom_out.zoom_start, zoom_out.zoom_end) == (1.12, 1.0)


@pytest.mark.parametrize("pan", list(PanDirection))
@pytest.mark.parametrize("zoom", list(ZoomDirection))
@pytest.mark.parametrize("aspect", [None, 1.0, 0.5625, 16 / 9])
def test_window_never_leaves_image(pan, zoom, aspect):
    params = MotionPlanner(seed=3).plan(5.0, aspect, zoom_direction=zoom, pan_direction=pan)
    frames = total_frames(params, 30)
    assert frames == 150
    for frame in (0, 1, frames // 2, frames - 2, frames - 1):
        x, y, w, h = window_at(params, frame, frames, 1920, 1080)
        assert x >= 0 and y >= 0
        assert x + w <= 1920 + 1e-6
        assert y + h <= 1080 + 1e-6


def test_pan_moves_in_declared_direction():
    params = MotionPlanner().plan(
        5.0, zoom_direction=ZoomDirection.OUT, pan_direction=PanDirection.LEFT_RIGHT
    )
    frames = total_frames(params, 30)
    start = window_at(params, 0, frames, 1920, 1080)
    end = window_at(params, frames - 1, frames, 1920, 1080)
    assert end[0] + end[2] / 2 > start[0] + start[2] / 2
    assert end[2] == pytest.approx(1920.0)


def test_zoompan_filter_expression():
    params = MotionPlanner().plan(
        4.0, zoom_direction=ZoomDirection.IN, pan_direction=PanDirection.TOP_BOTTOM
    )
    expr = zoompan_filter(params, 30, 1920, 1080)
    assert expr.startswith("zoompan=z='1.0000+(1.1200-1.0000)*on/119'")
    assert "d=120" in expr
    assert "s=1920x1080" in expr
    assert "fps=30" in expr
    assert "max(0,min(iw-iw/zoom" in expr
