"""Tests for the ffmpeg engine.

Uses the shared source_video / source_audio fixtures from conftest.py.
Uses moviepy for duration checks (imageio_ffmpeg does NOT bundle ffprobe).
"""

from pathlib import Path

import pytest
from moviepy import VideoFileClip

from cliploop.engine import FFmpegEngine, concat_manifest_line, write_concat_manifest
from cliploop.errors import EngineFailure, MediaUnreadable


def _get_duration(path):
    with VideoFileClip(str(path)) as clip:
        return clip.duration


@pytest.fixture
def engine():
    return FFmpegEngine(resolution=(320, 240), fps=10)


class TestConcatManifest:
    def test_line_is_absolute_and_quoted(self, tmp_path):
        line = concat_manifest_line(tmp_path / "a.wav")
        assert line == f"file '{(tmp_path / 'a.wav').resolve().as_posix()}'"

    def test_relative_path_made_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        line = concat_manifest_line("song.mp3")
        assert line == f"file '{(tmp_path / 'song.mp3').resolve().as_posix()}'"

    def test_escapes_single_quotes(self, tmp_path):
        line = concat_manifest_line(tmp_path / "it's.wav")
        assert line.endswith("it'\\''s.wav'")

    def test_one_line_per_path_in_order(self, tmp_path):
        paths = [tmp_path / "b.wav", tmp_path / "a.wav", tmp_path / "b.wav"]
        manifest = write_concat_manifest(paths, tmp_path / "list" / "concat.txt")
        lines = manifest.read_text().splitlines()
        assert len(lines) == 3
        assert [l.rsplit("/", 1)[1] for l in lines] == ["b.wav'", "a.wav'", "b.wav'"]


class TestRemove:
    def test_removes_tree(self, tmp_path):
        d = tmp_path / "work"
        (d / "nested").mkdir(parents=True)
        (d / "nested" / "f.mp4").write_bytes(b"x")
        FFmpegEngine.remove(d)
        assert not d.exists()

    def test_idempotent(self, tmp_path):
        FFmpegEngine.remove(tmp_path / "never-existed")
        FFmpegEngine.remove(tmp_path / "never-existed")

    def test_removes_file(self, tmp_path):
        f = tmp_path / "f.txt"
        f.write_text("x")
        FFmpegEngine.remove(f)
        assert not f.exists()


class TestProbe:
    def test_video_duration(self, engine, source_video):
        assert abs(engine.probe(source_video) - 5.0) < 0.2

    def test_audio_duration(self, engine, source_audio):
        assert abs(engine.probe(source_audio) - 2.0) < 0.1

    def test_missing_file(self, engine, tmp_path):
        with pytest.raises(MediaUnreadable, match="not found"):
            engine.probe(tmp_path / "nope.mp4")


class TestEngineOperations:
    def test_extract_segment(self, engine, source_video, tmp_path):
        out = engine.extract_segment(source_video, 2.5, 2.5, tmp_path / "seg" / "b.mp4")
        assert out.exists()
        assert abs(_get_duration(out) - 2.5) < 0.5

    def test_extract_from_unreadable_source(self, engine, tmp_path):
        bogus = tmp_path / "bogus.mp4"
        bogus.write_bytes(b"not a video")
        with pytest.raises(MediaUnreadable):
            engine.extract_segment(bogus, 0, 1, tmp_path / "out.mp4")

    def test_crossfade_merge_duration(self, engine, source_video, tmp_path):
        out = engine.crossfade_merge(source_video, source_video, 1.0, 4.0, tmp_path / "m.mp4")
        # 5 + 5 - 1 = 9s
        assert abs(_get_duration(out) - 9.0) < 0.3
        with VideoFileClip(str(out)) as clip:
            assert tuple(clip.size) == (320, 240)

    def test_zero_fade_merge_is_plain_join(self, engine, source_video, tmp_path):
        out = engine.crossfade_merge(source_video, source_video, 0.0, 5.0, tmp_path / "cut.mp4")
        # No overlap: 5 + 5 = 10s, the second clip plays in full.
        assert abs(_get_duration(out) - 10.0) < 0.3

    def test_crossfade_failure_raises_engine_failure(self, engine, source_video, tmp_path):
        with pytest.raises(EngineFailure) as exc_info:
            engine.crossfade_merge(source_video, tmp_path / "gone.mp4", 1.0, 4.0, tmp_path / "m.mp4")
        assert exc_info.value.command
        assert exc_info.value.stderr

    def test_concatenate_and_mux(self, engine, source_video, source_audio, tmp_path):
        audio = engine.concatenate_sequential(
            [source_audio, source_audio, source_audio],
            tmp_path / "concat.txt",
            tmp_path / "audio.wav",
        )
        assert abs(engine.probe(audio) - 6.0) < 0.1

        out = engine.mux(source_video, audio, 4.0, tmp_path / "final" / "out.mp4")
        with VideoFileClip(str(out)) as clip:
            assert abs(clip.duration - 4.0) < 0.3
            assert clip.audio is not None

    def test_copy_stream(self, engine, source_video, tmp_path):
        out = engine.copy_stream(source_video, tmp_path / "copy.mp4")
        assert abs(_get_duration(out) - _get_duration(source_video)) < 0.1
