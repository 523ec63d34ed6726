"""Assembly manifest loader — YAML description of one assembly run.

Assembly manifest schema:
  output: "${out}/final.mp4"     # ".mp4" appended if no extension
  duration: 120                  # target length in seconds (> 0)
  fade: 1.0                      # crossfade length, default 1.0
  loops_first: false             # loop-transform every video first
  loop_overlap: 1.0              # default: same as fade
  padding_factor: 1.5            # headroom over the merged length; null = exact
  video:
    resolution: [1920, 1080]
    fps: 30
  paths:
    clips: "/data/clips"
    out: "/data/out"
  videos:
    - "${clips}/intro.mp4"
  audios:
    - "${clips}/music.mp3"
"""

from pathlib import Path

import yaml

from .assembly import DEFAULT_FADE, VIDEO_PADDING_FACTOR, AssemblyConfig
from .common import resolve_path_vars
from .engine import DEFAULT_FPS, DEFAULT_RESOLUTION
from .media import PathReference


def _number(raw, key, *, minimum=None, strict=False):
    value = raw[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Assembly manifest: {key} must be a number, got {value!r}")
    if minimum is not None and (value <= minimum if strict else value < minimum):
        op = ">" if strict else ">="
        raise ValueError(f"Assembly manifest: {key} must be {op} {minimum}, got {value!r}")
    return float(value)


def _media_list(raw, key, paths, base_dir):
    entries = raw.get(key)
    if not isinstance(entries, list) or not entries:
        raise ValueError(f"Assembly manifest: '{key}' must be a non-empty list")
    resolved = []
    for i, entry in enumerate(entries):
        if not isinstance(entry, str):
            raise ValueError(f"Assembly manifest: {key}[{i}] must be a path string")
        p = Path(resolve_path_vars(entry, paths)).expanduser()
        resolved.append(p if p.is_absolute() else base_dir / p)
    return resolved


def load_assembly_manifest(manifest_path: str | Path, **overrides) -> AssemblyConfig:
    """Load, validate, and normalize an assembly manifest.

    Processing pipeline:
      1. Parse YAML.
      2. Resolve ${path} variables in media and output paths.
      3. Resolve relative paths against the manifest's directory.
      4. Validate numbers and flags, apply defaults.
      5. Apply keyword ``overrides`` (non-None values win), e.g. from CLI flags.

    Returns:
        AssemblyConfig ready for ``assemble``.

    Raises:
        ValueError: Missing/invalid fields.
    """
    manifest_path = Path(manifest_path)
    with open(manifest_path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError("Assembly manifest: top level must be a mapping")

    base_dir = manifest_path.resolve().parent
    paths = raw.get("paths", {}) or {}

    # Output and duration may come from overrides instead of the manifest.
    if overrides.get("output") is None and "output" not in raw:
        raise ValueError("Assembly manifest: missing required 'output' field")
    if overrides.get("target_duration") is None and "duration" not in raw:
        raise ValueError("Assembly manifest: missing required 'duration' field")

    settings = {
        "videos": _media_list(raw, "videos", paths, base_dir),
        "audios": _media_list(raw, "audios", paths, base_dir),
        "fade_duration": DEFAULT_FADE,
        "video_padding_factor": VIDEO_PADDING_FACTOR,
        "resolution": DEFAULT_RESOLUTION,
        "fps": DEFAULT_FPS,
    }

    if "output" in raw:
        out = Path(resolve_path_vars(str(raw["output"]), paths)).expanduser()
        settings["output"] = out if out.is_absolute() else base_dir / out
    if "duration" in raw:
        settings["target_duration"] = _number(raw, "duration", minimum=0, strict=True)
    if "fade" in raw:
        settings["fade_duration"] = _number(raw, "fade", minimum=0)
    if "loop_overlap" in raw:
        settings["loop_overlap"] = _number(raw, "loop_overlap", minimum=0, strict=True)
    if "padding_factor" in raw:
        settings["video_padding_factor"] = (
            None if raw["padding_factor"] is None
            else _number(raw, "padding_factor", minimum=1)
        )
    if "loops_first" in raw:
        if not isinstance(raw["loops_first"], bool):
            raise ValueError("Assembly manifest: loops_first must be true or false")
        settings["create_loops_first"] = raw["loops_first"]

    video = raw.get("video", {}) or {}
    if "resolution" in video:
        res = video["resolution"]
        if (
            not isinstance(res, (list, tuple)) or len(res) != 2
            or not all(isinstance(v, int) and v > 0 for v in res)
        ):
            raise ValueError(
                f"Assembly manifest: video.resolution must be [width, height], got {res!r}"
            )
        settings["resolution"] = tuple(res)
    if "fps" in video:
        fps = video["fps"]
        if not isinstance(fps, int) or fps <= 0:
            raise ValueError(f"Assembly manifest: video.fps must be a positive integer, got {fps!r}")
        settings["fps"] = fps

    settings.update({k: v for k, v in overrides.items() if v is not None})
    return AssemblyConfig(**settings)


def validate_assembly_paths(config: AssemblyConfig) -> None:
    """Check that every video and audio path exists on disk.

    Raises:
        FileNotFoundError: Lists all missing files.
    """
    missing = []
    for ref in [*config.videos, *config.audios]:
        if isinstance(ref, PathReference) and not ref.path.exists():
            missing.append(str(ref.path))

    if missing:
        msg = f"Missing {len(missing)} media file(s):\n"
        for p in missing:
            msg += f"  - {p}\n"
        raise FileNotFoundError(msg)
