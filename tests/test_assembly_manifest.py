"""Tests for assembly manifest loader."""

import tempfile
from pathlib import Path

import pytest
import yaml

from cliploop.assembly_manifest import load_assembly_manifest, validate_assembly_paths
from cliploop.media import PathReference


def _write_manifest(content: dict) -> str:
    """Write a manifest dict to a temp YAML file, return path."""
    f = tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False)
    yaml.dump(content, f)
    f.close()
    return f.name


def _minimal_assembly(**overrides):
    """Return a minimal valid assembly manifest dict."""
    m = {
        "output": "/tmp/out/final.mp4",
        "duration": 60,
        "videos": ["/tmp/fake-a.mp4"],
        "audios": ["/tmp/fake-music.mp3"],
    }
    m.update(overrides)
    return m


class TestLoadAssemblyManifest:
    def test_parses_required_fields(self):
        config = load_assembly_manifest(_write_manifest(_minimal_assembly()))
        assert config.target_duration == 60
        assert config.output == Path("/tmp/out/final.mp4")
        assert config.videos == [PathReference(Path("/tmp/fake-a.mp4"))]
        assert config.audios == [PathReference(Path("/tmp/fake-music.mp3"))]

    def test_defaults(self):
        config = load_assembly_manifest(_write_manifest(_minimal_assembly()))
        assert config.fade_duration == 1.0
        assert config.loop_overlap == 1.0
        assert config.create_loops_first is False
        assert config.video_padding_factor == 1.5
        assert config.resolution == (1920, 1080)
        assert config.fps == 30

    def test_optional_fields(self):
        m = _minimal_assembly(
            fade=0.5, loops_first=True, loop_overlap=0.25,
            video={"resolution": [1280, 720], "fps": 25},
        )
        config = load_assembly_manifest(_write_manifest(m))
        assert config.fade_duration == 0.5
        assert config.create_loops_first is True
        assert config.loop_overlap == 0.25
        assert config.resolution == (1280, 720)
        assert config.fps == 25

    def test_null_padding_factor(self):
        config = load_assembly_manifest(_write_manifest(_minimal_assembly(padding_factor=None)))
        assert config.video_padding_factor is None

    def test_resolves_path_variables(self):
        m = _minimal_assembly(
            paths={"clips": "/data/clips", "out": "/data/out"},
            videos=["${clips}/a.mp4", "${clips}/b.mp4"],
            audios=["${clips}/song.wav"],
            output="${out}/final",
        )
        config = load_assembly_manifest(_write_manifest(m))
        assert [r.path for r in config.videos] == [Path("/data/clips/a.mp4"), Path("/data/clips/b.mp4")]
        assert config.audios[0].path == Path("/data/clips/song.wav")
        assert config.output == Path("/data/out/final.mp4")

    def test_relative_paths_resolve_against_manifest(self, tmp_path):
        manifest = tmp_path / "assembly.yaml"
        manifest.write_text(yaml.dump(_minimal_assembly(videos=["clips/a.mp4"], output="out.mp4")))
        config = load_assembly_manifest(manifest)
        assert config.videos[0].path == tmp_path / "clips" / "a.mp4"
        assert config.output == tmp_path / "out.mp4"

    def test_overrides_win(self):
        path = _write_manifest(_minimal_assembly(fade=0.5))
        config = load_assembly_manifest(
            path, target_duration=90.0, fade_duration=2.0, output=None,
        )
        assert config.target_duration == 90.0
        assert config.fade_duration == 2.0
        assert config.output == Path("/tmp/out/final.mp4")

    def test_output_may_come_from_override(self):
        m = _minimal_assembly()
        del m["output"]
        config = load_assembly_manifest(_write_manifest(m), output="/tmp/x.mp4")
        assert config.output == Path("/tmp/x.mp4")


class TestAssemblyManifestValidation:
    def test_missing_output_raises(self):
        m = _minimal_assembly()
        del m["output"]
        with pytest.raises(ValueError, match="output"):
            load_assembly_manifest(_write_manifest(m))

    def test_missing_duration_raises(self):
        m = _minimal_assembly()
        del m["duration"]
        with pytest.raises(ValueError, match="duration"):
            load_assembly_manifest(_write_manifest(m))

    @pytest.mark.parametrize("duration", [0, -10, "long"])
    def test_invalid_duration_raises(self, duration):
        with pytest.raises(ValueError, match="duration"):
            load_assembly_manifest(_write_manifest(_minimal_assembly(duration=duration)))

    def test_negative_fade_raises(self):
        with pytest.raises(ValueError, match="fade"):
            load_assembly_manifest(_write_manifest(_minimal_assembly(fade=-1)))

    def test_padding_factor_below_one_raises(self):
        with pytest.raises(ValueError, match="padding_factor must be >= 1"):
            load_assembly_manifest(_write_manifest(_minimal_assembly(padding_factor=0.5)))

    def test_empty_videos_raises(self):
        with pytest.raises(ValueError, match="videos"):
            load_assembly_manifest(_write_manifest(_minimal_assembly(videos=[])))

    def test_missing_audios_raises(self):
        m = _minimal_assembly()
        del m["audios"]
        with pytest.raises(ValueError, match="audios"):
            load_assembly_manifest(_write_manifest(m))

    def test_unknown_path_variable_raises(self):
        m = _minimal_assembly(videos=["${nowhere}/a.mp4"])
        with pytest.raises(ValueError, match="Unknown path variable"):
            load_assembly_manifest(_write_manifest(m))

    def test_bad_resolution_raises(self):
        m = _minimal_assembly(video={"resolution": [1920]})
        with pytest.raises(ValueError, match="resolution"):
            load_assembly_manifest(_write_manifest(m))

    def test_loops_first_must_be_bool(self):
        with pytest.raises(ValueError, match="loops_first"):
            load_assembly_manifest(_write_manifest(_minimal_assembly(loops_first="yes")))


class TestValidateAssemblyPaths:
    def test_all_present(self, tmp_path):
        a = tmp_path / "a.mp4"
        s = tmp_path / "s.wav"
        a.write_bytes(b"x")
        s.write_bytes(b"x")
        m = _minimal_assembly(videos=[str(a)], audios=[str(s)])
        validate_assembly_paths(load_assembly_manifest(_write_manifest(m)))

    def test_lists_every_missing_file(self, tmp_path):
        m = _minimal_assembly(
            videos=[str(tmp_path / "a.mp4"), str(tmp_path / "b.mp4")],
            audios=[str(tmp_path / "s.wav")],
        )
        config = load_assembly_manifest(_write_manifest(m))
        with pytest.raises(FileNotFoundError, match="Missing 3 media file"):
            validate_assembly_paths(config)
