"""Loop transform — turn one clip into a seamlessly repeating clip.

The clip is split at its midpoint and the halves are re-joined in
swapped order (second half first) with a dissolve at the new seam:

    source:  [ seg1 | seg2 ]         plays  0 .. M .. D
    loop:    [ seg2 ~ seg1 ]         plays  M .. D ~ 0 .. M

The dissolve smooths the point where the source used to wrap from its
end back to its start. The loop's own file boundary (end of seg1 back
to start of seg2) is a continuous cut in the source, so playing the
loop back to back has no visible seam.

The loop is video only. The source audio track is not carried over;
assembled videos get their sound from the separate audio playlist.
"""

import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .engine import FFmpegEngine
from .errors import InvalidFadeDuration
from .media import InlineBlobReference, as_reference, materialize
from .progress import Step, emit

logger = logging.getLogger(__name__)

LOOP_SUFFIX = "_loop"


@dataclass(frozen=True)
class LoopPlan:
    """Split and crossfade arithmetic for one loop transform."""

    duration: float
    midpoint: float
    first_length: float
    second_length: float
    offset: float
    overlap: float

    @property
    def loop_duration(self) -> float:
        return self.duration - self.overlap


def seam_offset(second_length: float, overlap: float) -> float:
    """Offset into the second half where the seam dissolve begins.

    Raises:
        InvalidFadeDuration: ``overlap`` <= 0, or not shorter than
            ``second_length``.
    """
    if overlap <= 0:
        raise InvalidFadeDuration(f"Loop overlap must be > 0, got {overlap!r}")
    offset = second_length - overlap
    if offset <= 0:
        raise InvalidFadeDuration(
            f"Loop overlap of {overlap:.3f}s does not fit in a "
            f"{second_length:.3f}s half clip"
        )
    return offset


def plan_loop(duration: float, overlap: float) -> LoopPlan:
    """Compute midpoint, segment lengths, and dissolve offset.

    Raises:
        InvalidFadeDuration: See ``seam_offset``.
    """
    midpoint = duration / 2
    second_length = duration - midpoint
    offset = seam_offset(second_length, overlap)
    return LoopPlan(
        duration=duration,
        midpoint=midpoint,
        first_length=midpoint,
        second_length=second_length,
        offset=offset,
        overlap=overlap,
    )


def default_loop_output(source) -> Path:
    """``<dir>/<stem>_loop<suffix>`` next to the source (cwd for blobs)."""
    ref = as_reference(source)
    if isinstance(ref, InlineBlobReference):
        name = Path(ref.name)
        return Path.cwd() / f"{name.stem}{LOOP_SUFFIX}{name.suffix or '.mp4'}"
    path = ref.path
    return path.parent / f"{path.stem}{LOOP_SUFFIX}{path.suffix or '.mp4'}"


def make_loop(
    source,
    overlap: float = 1.0,
    output: str | Path | None = None,
    *,
    engine=None,
    work_root: str | Path | None = None,
    on_progress=None,
) -> Path:
    """Write a seamlessly looping, video-only version of ``source``.

    Args:
        source: Path or MediaReference of the clip to transform.
        overlap: Dissolve length at the new seam, in seconds (> 0).
        output: Destination path. Defaults to ``default_loop_output``.
        engine: FFmpegEngine (or compatible); a default one if None.
        work_root: Parent directory for the temporary segment files.
        on_progress: Optional ProgressEvent sink.

    Returns:
        Path of the loop clip.

    Raises:
        InvalidFadeDuration: See ``plan_loop``. Checked before any
            segment is extracted, and again against the extracted
            second half.
        MediaUnreadable: The source cannot be probed or trimmed.
    """
    engine = engine or FFmpegEngine()
    output = Path(output) if output is not None else default_loop_output(source)
    if work_root is not None:
        Path(work_root).mkdir(parents=True, exist_ok=True)

    work_dir = Path(tempfile.mkdtemp(prefix="cliploop-loop-", dir=work_root))
    try:
        path = materialize(as_reference(source), work_dir)
        emit(on_progress, Step.LOOP_PROCESSING, f"Probing {path.name}...")
        plan = plan_loop(engine.probe(path), overlap)
        logger.info(
            "Loop %s: %.2fs, split at %.2fs, dissolve at %.2fs",
            path.name, plan.duration, plan.midpoint, plan.offset,
        )

        suffix = path.suffix or ".mp4"
        first = work_dir / f"segment1{suffix}"
        second = work_dir / f"segment2{suffix}"
        emit(on_progress, Step.LOOP_PROCESSING, f"Splitting {path.name} at {plan.midpoint:.2f}s...")
        engine.extract_segment(path, 0.0, plan.first_length, first)
        engine.extract_segment(path, plan.midpoint, plan.second_length, second)

        # Stream-copy cuts snap to packet boundaries, so the dissolve is
        # placed from the length actually written, not the planned one.
        offset = seam_offset(engine.probe(second), plan.overlap)
        logger.debug("Loop %s: segment2 dissolve at %.3fs", path.name, offset)

        emit(on_progress, Step.LOOP_PROCESSING, f"Joining halves of {path.name}...")
        engine.crossfade_merge(second, first, plan.overlap, offset, output)
    finally:
        engine.remove(work_dir)

    emit(on_progress, Step.LOOP_PROCESSING, f"Loop created: {output}")
    return output
