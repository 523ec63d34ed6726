"""Media references and timed playlist entries.

A media item arrives either as a file on disk or as an in-memory payload
(e.g. a file dropped into a browser UI). Both are resolved to a concrete
path with ``materialize`` before any duration math or merging happens,
so the rest of the pipeline only ever deals with paths.
"""

import re
from dataclasses import dataclass
from pathlib import Path

from .errors import MediaUnreadable


@dataclass(frozen=True)
class PathReference:
    """A media file already on disk."""

    path: Path

    def __post_init__(self):
        object.__setattr__(self, "path", Path(self.path))

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class InlineBlobReference:
    """A media payload held in memory, with the file name it came from."""

    name: str
    data: bytes = b""

    def __repr__(self):
        return f"InlineBlobReference(name={self.name!r}, {len(self.data)} bytes)"


MediaReference = PathReference | InlineBlobReference


@dataclass(frozen=True)
class TimedEntry:
    """One playlist occurrence: a resolved media path and its duration."""

    path: Path
    duration: float

    def __post_init__(self):
        if self.duration < 0:
            raise ValueError(
                f"TimedEntry duration must be >= 0, got {self.duration!r}"
            )


def as_reference(value: "str | Path | MediaReference") -> MediaReference:
    """Coerce a str/Path (or an existing reference) into a MediaReference."""
    if isinstance(value, (PathReference, InlineBlobReference)):
        return value
    if isinstance(value, (str, Path)):
        return PathReference(Path(value))
    raise TypeError(f"Not a media reference: {value!r}")


_UNSAFE_CHARS = re.compile(r"[^\w.\- ]")


def _safe_name(name: str) -> str:
    # Blob names come from untrusted UIs; keep only the basename.
    base = Path(name.replace("\\", "/")).name
    base = _UNSAFE_CHARS.sub("_", base).strip(" .")
    return base or "media"


def materialize(ref: MediaReference, work_dir: Path) -> Path:
    """Resolve a reference to an absolute on-disk path.

    Path references must point at an existing file. Blob references are
    written into ``work_dir/inputs``; blobs sharing a name get an index
    prefix so they never overwrite each other.

    Raises:
        MediaUnreadable: A path reference does not exist.
    """
    if isinstance(ref, PathReference):
        path = ref.path.expanduser().resolve()
        if not path.is_file():
            raise MediaUnreadable(f"Media file not found: {ref.path}")
        return path

    inputs_dir = Path(work_dir) / "inputs"
    inputs_dir.mkdir(parents=True, exist_ok=True)
    name = _safe_name(ref.name)
    target = inputs_dir / name
    index = 1
    while target.exists():
        target = inputs_dir / f"{index:03d}_{name}"
        index += 1
    target.write_bytes(ref.data)
    return target.resolve()


def materialize_all(refs, work_dir: Path) -> list[Path]:
    """Materialize a sequence of references, keeping order."""
    return [materialize(as_reference(r), work_dir) for r in refs]
