import json

import pytest

from reelforge.director.parser import ProjectParser, slugify
from reelforge.director.scene_builder import build_scenes, extract_keywords
from reelforge.domain.models import BackgroundMode, SceneKind

from conftest import png_bytes

PROMPT = "A storm is coming. The village prepares. Watch what happens next!"


def test_build_scenes_kinds_and_durations():
    scenes = build_scenes(PROMPT)
    assert [s.kind for s in scenes] == [SceneKind.HOOK, SceneKind.BEAT, SceneKind.CTA]
    assert [s.duration_sec for s in scenes] == [4, 5, 4]
    assert sum(s.render_duration for s in scenes) == 13
    assert scenes[1].text == "The village prepares."


def test_single_sentence_is_single_hook():
    scenes = build_scenes("Just one idea")
    assert len(scenes) == 1
    assert scenes[0].kind is SceneKind.HOOK


def test_empty_prompt():
    assert build_scenes("   ") == []


def test_asides_dropped_and_whitespace_collapsed():
    scenes = build_scenes("First   (ignore this)  part.\n\nSecond part.")
    assert scenes[0].text == "First part."


def test_max_scenes():
    prompt = " ".join(f"Sentence {i}." for i in range(20))
    scenes = build_scenes(prompt, max_scenes=12)
    assert len(scenes) == 12
    assert scenes[-1].kind is SceneKind.CTA


def test_keywords():
    assert extract_keywords("The Giant, glowing jellyfish drifts slowly through dark water!") == [
        "giant", "glowing", "jellyfish", "drifts", "slowly", "through"
    ]


def test_polish_adds_hook_and_cta():
    scenes = build_scenes("A storm is coming. It arrives.", polish=True)
    assert scenes[0].text.startswith("Imagine this: ")
    assert scenes[-1].text.endswith("Follow for more.")


def test_slugify():
    assert slugify("A Storm, is coming!") == "a-storm-is-coming"
    assert slugify("!!!") == "project"


def test_parse_prompt_project():
    project = ProjectParser().parse(json.dumps({"prompt": PROMPT, "ai_enabled": True}))
    assert len(project.scenes) == 3
    assert project.project_id == "a-storm-is-coming"
    assert project.ai_enabled
    assert project.total_duration == 13


def test_parse_markdown_wrapped_json():
    raw = "```json\n" + json.dumps({"project_id": "x", "prompt": PROMPT}) + "\n```"
    assert ProjectParser().parse(raw).project_id == "x"


def test_parse_explicit_scenes_with_upload(tmp_path):
    (tmp_path / "bg.png").write_bytes(png_bytes(64, 64))
    data = {
        "project_id": "demo",
        "scenes": [
            {"text": "Hook.", "duration_sec": 4, "kind": "hook",
             "background": {"mode": "upload", "image_path": "bg.png"}},
            {"text": "Missing image.", "duration_sec": 5, "kind": "beat",
             "background": {"mode": "upload", "image_path": "nope.png"}},
            {"text": "Bye.", "duration_sec": 4, "kind": "cta", "background": {"mode": "gradient"}},
        ],
        "audio": {"background_track": "none", "music_volume": 30},
    }
    project = ProjectParser(base_dir=tmp_path).parse(data)
    assert project.scenes[0].background.image
    assert project.scenes[1].background.image is None
    assert project.scenes[2].background.mode == BackgroundMode.GRADIENT.value
    assert project.audio.music_volume == 30


@pytest.mark.parametrize("raw", ["{not json", json.dumps({"prompt": ""}),
                                 json.dumps({"scenes": [{"text": "x", "duration_sec": -1}]})])
def test_parse_invalid(raw):
    with pytest.raises(ValueError):
        ProjectParser().parse(raw)
