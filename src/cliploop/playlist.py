"""Playlist building — repeat a clip set until it covers a target duration.

Items are probed once, then walked round-robin (wrapping back to the
first item after the last) until the running total meets the target.
The playlist overshoots or meets the target and is never trimmed here;
exact duration is enforced later, when the final output is muxed.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from .errors import EmptyInputSet, ZeroDurationInput
from .media import TimedEntry

logger = logging.getLogger(__name__)


def probe_all(paths: list[Path], engine, max_workers: int = 4) -> list[float]:
    """Probe every distinct path once, returning durations in input order.

    Probes are independent, so they run on a thread pool bounded by
    ``max_workers``. The first probe failure propagates.
    """
    unique = list(dict.fromkeys(paths))
    workers = max(1, min(max_workers, len(unique)))
    if workers == 1:
        durations = [engine.probe(p) for p in unique]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            durations = list(pool.map(engine.probe, unique))
    by_path = dict(zip(unique, durations))
    return [by_path[p] for p in paths]


def build_playlist(
    items,
    target: float,
    engine,
    *,
    overlap: float = 0.0,
    max_workers: int = 4,
) -> list[TimedEntry]:
    """Build the shortest round-robin playlist whose length meets ``target``.

    Args:
        items: Ordered media paths (already materialized).
        target: Duration to cover, in seconds (> 0).
        engine: Anything with ``probe(path) -> float``.
        overlap: Seconds each entry after the first loses to a crossfade
            with its predecessor. 0 means entries are simply summed.
        max_workers: Probe parallelism.

    Returns:
        List of TimedEntry in playback order. Its (effective) total is
        >= target, and dropping the last entry would leave it < target.

    Raises:
        EmptyInputSet: ``items`` is empty.
        ZeroDurationInput: The items can never reach ``target``.
        ValueError: ``target`` <= 0 or ``overlap`` < 0.
    """
    paths = [Path(p) for p in items]
    if not paths:
        raise EmptyInputSet("No media items to build a playlist from")
    if target <= 0:
        raise ValueError(f"Playlist target must be > 0, got {target!r}")
    if overlap < 0:
        raise ValueError(f"Playlist overlap must be >= 0, got {overlap!r}")

    durations = probe_all(paths, engine, max_workers=max_workers)
    total_probed = sum(durations)
    logger.info("Probed %d items: %.2fs total, target %.2fs", len(paths), total_probed, target)

    # Guard before walking: an all-zero set would loop forever.
    if total_probed <= 0:
        raise ZeroDurationInput(
            f"All {len(paths)} items have zero duration; cannot reach {target}s"
        )
    cycle_gain = sum(d - overlap for d in durations)

    playlist = []
    running = 0.0
    index = 0
    while running < target:
        if index == 0 and playlist and cycle_gain <= 0:
            raise ZeroDurationInput(
                f"Items are too short for a {overlap}s overlap; cannot reach {target}s"
            )
        duration = durations[index]
        playlist.append(TimedEntry(path=paths[index], duration=duration))
        running += duration if len(playlist) == 1 else duration - overlap
        index = (index + 1) % len(paths)

    logger.info("Playlist: %d entries, %.2fs", len(playlist), running)
    return playlist


def playlist_duration(playlist: list[TimedEntry], overlap: float = 0.0) -> float:
    """Total length of ``playlist`` once consecutive entries overlap by ``overlap``."""
    if not playlist:
        return 0.0
    return sum(e.duration for e in playlist) - overlap * (len(playlist) - 1)
