"""Assembly pipeline — pad, crossfade, and mux clips to an exact duration.

One run:
  1. (optional) turn every video clip into a seamless loop
  2. build a video playlist and an audio playlist by repeating the inputs
  3. merge the video playlist with crossfades (merge tree)
  4. concatenate the audio playlist back to back
  5. mux both streams, truncated to exactly the target duration

All intermediate files live in a per-run working directory that is
removed when the run ends, whether it succeeded or failed.
"""

import contextlib
import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from .common import with_default_suffix
from .engine import DEFAULT_FPS, DEFAULT_RESOLUTION, FFmpegEngine
from .errors import CliploopError
from .loop import LOOP_SUFFIX, make_loop
from .media import as_reference, materialize_all
from .merge import merge_playlist
from .playlist import build_playlist
from .progress import ProgressEvent, Step, emit

logger = logging.getLogger(__name__)

DEFAULT_FADE = 1.0

# Headroom on top of the merged video length. The playlist is always sized
# after crossfade overlap; None means exactly the target.
VIDEO_PADDING_FACTOR = 1.5


@dataclass
class AssemblyConfig:
    """Everything one assembly run needs.

    ``videos`` and ``audios`` accept paths or MediaReferences. ``output``
    gets ".mp4" appended when it has no extension.
    """

    videos: list
    audios: list
    target_duration: float
    output: Path
    fade_duration: float = DEFAULT_FADE
    create_loops_first: bool = False
    loop_overlap: float | None = None
    video_padding_factor: float | None = VIDEO_PADDING_FACTOR
    resolution: tuple[int, int] = DEFAULT_RESOLUTION
    fps: int = DEFAULT_FPS
    codec: str = "libx264"
    max_workers: int = 4
    work_root: Path | None = None

    def __post_init__(self):
        self.videos = [as_reference(v) for v in self.videos]
        self.audios = [as_reference(a) for a in self.audios]
        self.output = with_default_suffix(self.output)
        self.resolution = tuple(self.resolution)
        if not isinstance(self.target_duration, (int, float)) or self.target_duration <= 0:
            raise ValueError(f"target_duration must be > 0, got {self.target_duration!r}")
        if self.fade_duration < 0:
            raise ValueError(f"fade_duration must be >= 0, got {self.fade_duration!r}")
        if self.loop_overlap is None:
            self.loop_overlap = self.fade_duration
        if self.video_padding_factor is not None and self.video_padding_factor < 1:
            raise ValueError(
                f"video_padding_factor must be >= 1 or None, got {self.video_padding_factor!r}"
            )
        if len(self.resolution) != 2 or min(self.resolution) <= 0:
            raise ValueError(f"resolution must be (width, height), got {self.resolution!r}")
        if self.fps <= 0:
            raise ValueError(f"fps must be > 0, got {self.fps!r}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers!r}")


@dataclass
class AssemblyOutcome:
    """Result of ``try_assemble``: an output path or the error that stopped the run."""

    output: Path | None = None
    error: CliploopError | None = None
    events: list[ProgressEvent] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


@contextlib.contextmanager
def working_directory(root: str | Path | None = None, engine=None):
    """Create a unique run directory under ``root``; remove it on exit.

    Removal happens on every exit path, including exceptions.
    """
    if root is not None:
        Path(root).mkdir(parents=True, exist_ok=True)
    path = Path(tempfile.mkdtemp(prefix="cliploop-", dir=root))
    try:
        yield path
    finally:
        (engine.remove if engine is not None else FFmpegEngine.remove)(path)
        logger.debug("Removed working directory %s", path)


class _StageTracker:
    """Forwards events to the caller's sink and remembers the current step."""

    def __init__(self, sink):
        self.sink = sink
        self.step = Step.STARTING

    def __call__(self, event: ProgressEvent) -> None:
        self.step = event.step
        if self.sink is not None:
            self.sink(event)


def _loop_all(videos, config, engine, work_dir, report):
    """Replace each video with its seamless loop version."""
    loops_dir = work_dir / "loops"
    looped = []
    for i, path in enumerate(videos):
        out = loops_dir / f"{i:03d}_{path.stem}{LOOP_SUFFIX}{path.suffix or '.mp4'}"
        looped.append(make_loop(
            path, config.loop_overlap, out,
            engine=engine, work_root=work_dir, on_progress=report,
        ))
        emit(
            report, Step.LOOP_PROCESSING,
            f"Loop {i + 1}/{len(videos)} ready",
            2 + 7 * (i + 1) / len(videos),
        )
    return looped


def assemble(config: AssemblyConfig, on_progress=None, *, engine=None) -> Path:
    """Run the full assembly and return the output path.

    Args:
        config: Run settings.
        on_progress: Optional ProgressEvent sink.
        engine: FFmpegEngine (or compatible). Built from ``config`` if None.

    Raises:
        CliploopError: Any stage failure, with ``stage`` set to the step
            that was running. The working directory is already gone when
            the error reaches the caller.
    """
    engine = engine or FFmpegEngine(
        resolution=config.resolution, fps=config.fps, codec=config.codec,
    )
    report = _StageTracker(on_progress)
    target = config.target_duration
    output = Path(config.output)

    try:
        emit(report, Step.STARTING, "Starting video assembly...", 0)
        with working_directory(config.work_root, engine) as work_dir:
            videos = materialize_all(config.videos, work_dir)
            audios = materialize_all(config.audios, work_dir)

            if config.create_loops_first:
                emit(report, Step.LOOP_PROCESSING, f"Creating loops for {len(videos)} videos...", 1)
                videos = _loop_all(videos, config, engine, work_dir, report)

            emit(report, Step.PLAYLIST, "Creating video playlist...", 10)
            video_playlist = build_playlist(
                videos, target * (config.video_padding_factor or 1.0), engine,
                overlap=config.fade_duration, max_workers=config.max_workers,
            )
            emit(report, Step.PLAYLIST, "Creating audio playlist...", 15)
            audio_playlist = build_playlist(
                audios, target, engine, max_workers=config.max_workers,
            )

            emit(report, Step.VIDEO, "Creating video with crossfade transitions...", 20)
            merged = merge_playlist(
                video_playlist, config.fade_duration, work_dir / "merge", engine,
                output=work_dir / "video.mp4",
                on_progress=report,
                max_workers=config.max_workers,
            )
            emit(report, Step.VIDEO, f"Video with crossfades created ({merged.duration:.2f}s)", 45)

            emit(report, Step.AUDIO, "Processing audio...", 55)
            audio = engine.concatenate_sequential(
                [e.path for e in audio_playlist],
                work_dir / "concat_audios.txt",
                work_dir / "concat_audios.wav",
            )
            emit(report, Step.AUDIO, "Audio concatenated", 65)

            emit(report, Step.MERGING, "Merging video and audio...", 70)
            engine.mux(merged.path, audio, target, output)
            emit(report, Step.MERGING, "Video and audio merged", 90)

            emit(report, Step.CLEANUP, "Cleaning temporary files...", 95)
    except CliploopError as exc:
        if exc.stage is None:
            exc.stage = report.step.value
        logger.error("Assembly failed during %s: %s", exc.stage, exc)
        raise

    emit(report, Step.DONE, "Video created successfully!", 100)
    return output


def try_assemble(config: AssemblyConfig, on_progress=None, *, engine=None) -> AssemblyOutcome:
    """Like ``assemble`` but returns an AssemblyOutcome instead of raising.

    Only CliploopError is captured; programming errors still propagate.
    """
    events = []

    def _sink(event):
        events.append(event)
        if on_progress is not None:
            on_progress(event)

    try:
        output = assemble(config, _sink, engine=engine)
    except CliploopError as exc:
        return AssemblyOutcome(error=exc, events=events)
    return AssemblyOutcome(output=output, events=events)
