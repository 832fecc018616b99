from pathlib import Path

import pytest
import yaml

from posecap.config import Settings
from posecap.errors import OptionsInvalidError


def test_defaults_are_valid():
    settings = Settings()
    assert settings.validate() == []
    assert settings.check() is settings
    assert settings.export.output_dir == Path("exports")


def test_yaml_round_trip(tmp_path):
    settings = Settings()
    settings.filtering.beta = 0.02
    settings.recording.chunk_frames = 60
    settings.stream.model = "full"
    settings.export.output_dir = tmp_path / "out"
    settings.export.fps = 24.0

    path = tmp_path / "posecap.yaml"
    settings.to_yaml(path)
    loaded = Settings.from_yaml(path)

    assert loaded == settings
    assert isinstance(loaded.export.output_dir, Path)


def test_partial_yaml_keeps_defaults(tmp_path):
    path = tmp_path / "partial.yaml"
    path.write_text(yaml.dump({"recording": {"chunk_frames": 10}}))

    loaded = Settings.from_yaml(path)
    assert loaded.recording.chunk_frames == 10
    assert loaded.stream.model == "lite"
    assert loaded.export.format == "both"


def test_empty_yaml(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert Settings.from_yaml(path) == Settings()


def test_validate_reports_every_problem():
    settings = Settings()
    settings.filtering.min_cutoff = 0
    settings.recording.chunk_frames = 0
    settings.stream.min_confidence = 1.5
    settings.export.format = "fbx"

    errors = settings.validate()
    assert len(errors) == 4
    assert any("chunk_frames" in e for e in errors)

    with pytest.raises(OptionsInvalidError):
        settings.check()


def test_export_options_from_settings():
    settings = Settings()
    settings.export.format = "bvh"
    settings.export.scale = 50.0

    options = settings.export.to_options("walk")
    assert options.format == "bvh"
    assert options.scale == 50.0
    assert options.filename_prefix == "walk"
    assert options.wants_bvh and not options.wants_json


@pytest.mark.parametrize("text", [
    "filtering:\n  cutoff: 2.0\n",
    "stream: 5\n",
    "- recording\n",
])
def test_malformed_yaml_raises_options_error(tmp_path, text):
    path = tmp_path / "bad.yaml"
    path.write_text(text)
    with pytest.raises(OptionsInvalidError):
        Settings.from_yaml(path)
