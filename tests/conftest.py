"""Shared test fixtures for cliploop tests."""

import subprocess
from pathlib import Path

import pytest
import imageio_ffmpeg

from cliploop.engine import FFmpegEngine, write_concat_manifest
from cliploop.errors import EngineFailure, MediaUnreadable

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()


class FakeEngine:
    """In-memory stand-in for FFmpegEngine.

    Durations are looked up by file name. Every call is recorded in
    ``calls`` as (operation, args...). Outputs are written as small
    placeholder files so existence checks behave like the real thing.
    ``fail_on`` names an operation that raises EngineFailure. An extracted
    segment probes as its requested length unless a duration for its
    file name was set up front.
    """

    def __init__(self, durations=None, fail_on=None):
        self.durations = dict(durations or {})
        self.fail_on = fail_on
        self.calls = []

    def _check(self, op):
        if self.fail_on == op:
            raise EngineFailure(f"{op} failed (fake)")

    @staticmethod
    def _touch(path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"fake")
        return path

    def ops(self, name):
        return [c for c in self.calls if c[0] == name]

    def probe(self, path):
        self.calls.append(("probe", Path(path)))
        self._check("probe")
        name = Path(path).name
        if name not in self.durations:
            raise MediaUnreadable(f"Cannot read media {path}")
        return self.durations[name]

    def extract_segment(self, source, start, length, output):
        self.calls.append(("extract_segment", Path(source), start, length, Path(output)))
        self._check("extract_segment")
        self.durations.setdefault(Path(output).name, length)
        return self._touch(output)

    def copy_stream(self, source, output):
        self.calls.append(("copy_stream", Path(source), Path(output)))
        self._check("copy_stream")
        return self._touch(output)

    def crossfade_merge(self, first, second, fade, offset, output):
        self.calls.append(("crossfade_merge", Path(first), Path(second), fade, offset, Path(output)))
        self._check("crossfade_merge")
        return self._touch(output)

    def concatenate_sequential(self, paths, manifest_path, output):
        self.calls.append(("concatenate_sequential", [Path(p) for p in paths], Path(output)))
        self._check("concatenate_sequential")
        write_concat_manifest(paths, manifest_path)
        return self._touch(output)

    def mux(self, video, audio, duration_cap, output):
        self.calls.append(("mux", Path(video), Path(audio), duration_cap, Path(output)))
        self._check("mux")
        return self._touch(output)

    def remove(self, path):
        self.calls.append(("remove", Path(path)))
        FFmpegEngine.remove(path)


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def media_files(tmp_path):
    """Factory: create placeholder media files, return their paths."""
    def _make(*names):
        media_dir = tmp_path / "media"
        media_dir.mkdir(exist_ok=True)
        paths = []
        for name in names:
            p = media_dir / name
            p.write_bytes(b"media")
            paths.append(p)
        return paths
    return _make


@pytest.fixture
def source_video(tmp_path):
    """Create a 5-second test video (320x240, 10fps) with audio using ffmpeg.

    Keyframe every 5 frames so stream-copy trims land close to the
    requested times.
    """
    out = tmp_path / "source.mp4"
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", "testsrc=s=320x240:d=5:r=10",
            "-f", "lavfi", "-i", "anullsrc=r=44100:cl=mono",
            "-shortest",
            "-c:v", "libx264", "-crf", "28", "-pix_fmt", "yuv420p", "-g", "5",
            "-c:a", "aac", "-b:a", "32k",
            str(out),
        ],
        check=True,
        capture_output=True,
    )
    return out


@pytest.fixture
def source_audio(tmp_path):
    """Create a 2-second 440 Hz tone as 16-bit WAV."""
    out = tmp_path / "tone.wav"
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", "sine=frequency=440:duration=2:sample_rate=44100",
            "-c:a", "pcm_s16le",
            str(out),
        ],
        check=True,
        capture_output=True,
    )
    return out
