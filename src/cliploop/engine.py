"""ffmpeg engine — every probe, trim, transition, concat, and mux.

All decoding, encoding, and transition rendering is done by the ffmpeg
binary bundled with imageio-ffmpeg, run as a subprocess. Nothing here
knows about playlists or merge trees; callers pick the output paths.

imageio-ffmpeg does NOT bundle ffprobe, so durations are read with
moviepy's ffmpeg info parser (which runs ``ffmpeg -i`` and parses the
header) instead.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

import imageio_ffmpeg
from moviepy.video.io.ffmpeg_reader import ffmpeg_parse_infos

from .errors import EngineFailure, MediaUnreadable

logger = logging.getLogger(__name__)

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()

DEFAULT_RESOLUTION = (1920, 1080)
DEFAULT_FPS = 30


def _codec_params(codec):
    """Return (codec, ffmpeg_params) for the given codec name."""
    if codec == "h264_nvenc":
        return codec, ["-cq", "20", "-pix_fmt", "yuv420p"]
    return codec, ["-crf", "20", "-preset", "fast", "-pix_fmt", "yuv420p"]


def concat_manifest_line(path: str | Path) -> str:
    """Format one concat-demuxer line for ``path``.

    Paths are made absolute and use forward slashes on every OS. Single
    quotes inside the path are escaped the way the concat demuxer expects.
    """
    resolved = str(Path(path).resolve()).replace("\\", "/")
    return "file '" + resolved.replace("'", "'\\''") + "'"


def write_concat_manifest(paths, manifest_path: str | Path) -> Path:
    """Write a concat-demuxer manifest listing ``paths`` in order."""
    manifest_path = Path(manifest_path)
    manifest_path.parent.mkdir(parents=True, exist_ok=True)
    manifest_path.write_text("\n".join(concat_manifest_line(p) for p in paths) + "\n")
    return manifest_path


@dataclass
class FFmpegEngine:
    """Runs ffmpeg for the assembly and loop pipelines.

    Attributes:
        resolution: (width, height) every crossfade input is scaled to.
        fps: Frame rate every crossfade input is resampled to.
        codec: "libx264" for CPU or "h264_nvenc" for GPU encoding.
        ffmpeg: Path to the ffmpeg binary.
    """

    resolution: tuple[int, int] = DEFAULT_RESOLUTION
    fps: int = DEFAULT_FPS
    codec: str = "libx264"
    ffmpeg: str = _FFMPEG

    def _run(self, args: list[str], desc: str) -> subprocess.CompletedProcess:
        """Run one ffmpeg command, raising EngineFailure on a non-zero exit."""
        cmd = [self.ffmpeg, "-hide_banner", "-y", *args]
        logger.debug("%s: %s", desc, " ".join(cmd))
        result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0:
            logger.error("%s failed (rc=%d):\n%s", desc, result.returncode, result.stderr[-2000:])
            raise EngineFailure(
                f"{desc} failed: {result.stderr[-500:].strip()}",
                command=cmd,
                stderr=result.stderr,
            )
        return result

    # ── Probing ────────────────────────────────────────────────────

    def probe(self, path: str | Path) -> float:
        """Return the playback duration of ``path`` in seconds.

        Raises:
            MediaUnreadable: Missing file, unparsable file, or no duration.
        """
        path = Path(path)
        if not path.is_file():
            raise MediaUnreadable(f"Media file not found: {path}")
        try:
            infos = ffmpeg_parse_infos(str(path))
        except (OSError, ValueError, KeyError, IndexError) as exc:
            raise MediaUnreadable(f"Cannot read media {path}: {exc}") from exc
        duration = infos.get("duration")
        if duration is None:
            raise MediaUnreadable(f"No duration found for {path}")
        return max(0.0, float(duration))

    # ── Trimming ───────────────────────────────────────────────────

    def extract_segment(
        self,
        source: str | Path,
        start: float,
        length: float,
        output: str | Path,
    ) -> Path:
        """Stream-copy ``length`` seconds of ``source`` starting at ``start``.

        Raises:
            MediaUnreadable: ffmpeg could not read or trim the source.
        """
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._run(
                [
                    "-ss", f"{start:.3f}",
                    "-i", str(source),
                    "-t", f"{length:.3f}",
                    "-c", "copy",
                    "-avoid_negative_ts", "make_zero",
                    str(output),
                ],
                desc=f"extract {Path(source).name} @{start:.3f}s",
            )
        except EngineFailure as exc:
            raise MediaUnreadable(f"Cannot extract segment from {source}: {exc}") from exc
        return output

    def copy_stream(self, source: str | Path, output: str | Path) -> Path:
        """Copy ``source`` to ``output`` without re-encoding."""
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        self._run(
            ["-i", str(source), "-c", "copy", str(output)],
            desc=f"copy {Path(source).name}",
        )
        return output

    # ── Transitions ────────────────────────────────────────────────

    def _normalize_filter(self, label_in: str, label_out: str) -> str:
        w, h = self.resolution
        return (
            f"{label_in}scale={w}:{h},setsar=1,fps={self.fps},"
            f"format=yuv420p{label_out}"
        )

    def crossfade_merge(
        self,
        first: str | Path,
        second: str | Path,
        fade: float,
        offset: float,
        output: str | Path,
    ) -> Path:
        """Dissolve ``first`` into ``second``, starting ``offset`` s into ``first``.

        Both inputs are scaled to ``resolution`` and resampled to ``fps``
        so xfade sees matching streams. A ``fade`` of 0 is a hard cut:
        the clips are joined with the concat filter and ``offset`` is
        unused. Audio is dropped; assembled audio comes from the separate
        audio playlist.
        """
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        codec_name, codec_ffparams = _codec_params(self.codec)
        if fade > 0:
            join = (
                f"[v0][v1]xfade=transition=fade:duration={fade:.3f}"
                f":offset={offset:.3f}[vout]"
            )
        else:
            # xfade with duration 0 keeps only the first input.
            join = "[v0][v1]concat=n=2:v=1:a=0[vout]"
        filter_graph = ";".join([
            self._normalize_filter("[0:v]", "[v0]"),
            self._normalize_filter("[1:v]", "[v1]"),
            join,
        ])
        self._run(
            [
                "-i", str(first),
                "-i", str(second),
                "-filter_complex", filter_graph,
                "-map", "[vout]",
                "-c:v", codec_name, *codec_ffparams,
                "-an",
                str(output),
            ],
            desc=f"crossfade {Path(first).name} + {Path(second).name}",
        )
        return output

    # ── Audio & final mux ──────────────────────────────────────────

    def concatenate_sequential(
        self,
        paths,
        manifest_path: str | Path,
        output: str | Path,
    ) -> Path:
        """Join ``paths`` back to back (no transitions) into a PCM WAV."""
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        write_concat_manifest(paths, manifest_path)
        self._run(
            [
                "-f", "concat", "-safe", "0",
                "-i", str(manifest_path),
                "-vn",
                "-c:a", "pcm_s16le",
                str(output),
            ],
            desc="concatenate audio",
        )
        return output

    def mux(
        self,
        video: str | Path,
        audio: str | Path,
        duration_cap: float,
        output: str | Path,
    ) -> Path:
        """Combine video and audio streams, truncated to ``duration_cap`` s."""
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        self._run(
            [
                "-i", str(video),
                "-i", str(audio),
                "-map", "0:v:0",
                "-map", "1:a:0",
                "-t", f"{duration_cap:.3f}",
                "-c:v", "copy",
                "-c:a", "aac",
                "-shortest",
                str(output),
            ],
            desc="mux video and audio",
        )
        return output

    # ── Working storage ────────────────────────────────────────────

    @staticmethod
    def remove(path: str | Path) -> None:
        """Delete a file or directory tree; missing paths are ignored."""
        path = Path(path)
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
