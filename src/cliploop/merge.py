"""Crossfade merging — reduce a playlist to one video via a merge tree.

Adjacent clips are merged pairwise with a dissolve, level by level, until
one clip remains:

    level 1:  [a b] [c d] [e]   ->  ab  cd  e
    level 2:  [ab cd] [e]       ->  abcd  e
    level 3:  [abcd e]          ->  abcde

A left-to-right fold would re-encode the growing prefix at every step;
the tree re-encodes each source frame about log2(n) times instead.

Duration arithmetic per pair (A, B) with fade f:
  - the dissolve starts at offset = A - f (must be >= 0)
  - the merged clip lasts A + B - f (the fade is shared overlap)
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from .errors import EmptyPlaylist, InvalidFadeDuration
from .media import TimedEntry
from .progress import Step, emit

logger = logging.getLogger(__name__)

# Progress band this stage reports within, matching the assembly run.
_PROGRESS_START = 21
_PROGRESS_END = 44


@dataclass(frozen=True)
class MergeNode:
    """A clip in the merge working set.

    ``intermediate`` nodes point at files this merge created in the
    working directory; they are deleted once the next level consumes them.
    """

    path: Path
    duration: float
    intermediate: bool = False


def merge_levels(n: int) -> int:
    """Number of tree levels needed to reduce ``n`` clips to one."""
    if n < 1:
        raise ValueError(f"Need at least one clip, got {n}")
    return math.ceil(math.log2(n)) if n > 1 else 0


def pair_offset(first: float, fade: float) -> float:
    """Offset into ``first`` where a ``fade``-second dissolve must begin.

    Raises:
        InvalidFadeDuration: ``first`` is shorter than the fade.
    """
    offset = first - fade
    if offset < 0:
        raise InvalidFadeDuration(
            f"Clip of {first:.3f}s is shorter than the {fade:.3f}s crossfade"
        )
    return offset


def _pair_up(nodes: list[MergeNode]):
    """Split a level into (pairs, carried-over odd node or None)."""
    pairs = [(nodes[i], nodes[i + 1]) for i in range(0, len(nodes) - 1, 2)]
    carry = nodes[-1] if len(nodes) % 2 else None
    return pairs, carry


def merge_playlist(
    playlist: list[TimedEntry],
    fade: float,
    work_dir: str | Path,
    engine,
    *,
    output: str | Path | None = None,
    on_progress=None,
    max_workers: int = 4,
) -> MergeNode:
    """Merge ``playlist`` into one clip with ``fade``-second dissolves.

    Args:
        playlist: Entries in playback order.
        fade: Crossfade length in seconds (>= 0).
        work_dir: Directory for intermediate merge outputs.
        engine: Engine providing ``crossfade_merge``, ``copy_stream``,
            and ``remove``.
        output: If given, the merged result is stream-copied here.
        on_progress: Optional ProgressEvent sink.
        max_workers: How many merges of one level may run at once.

    Returns:
        MergeNode for the merged clip (at ``output`` when given).

    Raises:
        EmptyPlaylist: ``playlist`` has no entries.
        InvalidFadeDuration: ``fade`` < 0, or the earlier clip of some
            pair is shorter than ``fade``. Raised before any engine call
            for the offending level.
    """
    if not playlist:
        raise EmptyPlaylist("Playlist is empty")
    if fade < 0:
        raise InvalidFadeDuration(f"Crossfade duration must be >= 0, got {fade!r}")

    work_dir = Path(work_dir)
    work_dir.mkdir(parents=True, exist_ok=True)

    # Single clip: identity, copied rather than re-encoded.
    if len(playlist) == 1:
        entry = playlist[0]
        emit(on_progress, Step.VIDEO, "Copying single video...", _PROGRESS_START + 1)
        if output is None:
            return MergeNode(path=entry.path, duration=entry.duration)
        engine.copy_stream(entry.path, output)
        emit(on_progress, Step.VIDEO, "Video processing complete", _PROGRESS_END)
        return MergeNode(path=Path(output), duration=entry.duration)

    total_levels = merge_levels(len(playlist))
    nodes = [MergeNode(path=e.path, duration=e.duration) for e in playlist]
    emit(
        on_progress, Step.VIDEO,
        f"Processing {len(nodes)} videos with crossfade transitions...",
        _PROGRESS_START,
    )

    level = 0
    workers = max(1, max_workers)
    while len(nodes) > 1:
        pairs, carry = _pair_up(nodes)
        offsets = [pair_offset(a.duration, fade) for a, _ in pairs]

        def _merge(index):
            a, b = pairs[index]
            pct = (
                _PROGRESS_START + 1
                + level * 8 / total_levels
                + index * 4 / (total_levels * len(pairs))
            )
            emit(
                on_progress, Step.VIDEO,
                f"Merging videos (iteration {level + 1}/{total_levels}, "
                f"pair {index + 1}/{len(pairs)})...",
                min(_PROGRESS_END - 1, pct),
            )
            out = work_dir / f"merged_{level}_{index}.mp4"
            engine.crossfade_merge(a.path, b.path, fade, offsets[index], out)
            return MergeNode(
                path=out, duration=a.duration + b.duration - fade, intermediate=True,
            )

        # All pairs of a level finish before the next level starts.
        if workers == 1 or len(pairs) == 1:
            merged = [_merge(i) for i in range(len(pairs))]
        else:
            with ThreadPoolExecutor(max_workers=min(workers, len(pairs))) as pool:
                merged = list(pool.map(_merge, range(len(pairs))))

        for a, b in pairs:
            for node in (a, b):
                if node.intermediate:
                    engine.remove(node.path)

        logger.info(
            "Merge level %d/%d: %d pairs -> %s",
            level + 1, total_levels, len(pairs),
            ", ".join(f"{m.duration:.2f}s" for m in merged),
        )
        nodes = merged + ([carry] if carry is not None else [])
        level += 1

    final = nodes[0]
    if output is not None:
        emit(on_progress, Step.VIDEO, "Finalizing crossfade video...", _PROGRESS_END)
        engine.copy_stream(final.path, output)
        if final.intermediate:
            engine.remove(final.path)
        final = MergeNode(path=Path(output), duration=final.duration)
    emit(on_progress, Step.VIDEO, "Crossfade processing complete", _PROGRESS_END)
    return final
