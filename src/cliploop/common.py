"""cliploop.common — small shared helpers for manifests and CLIs."""

import re
from pathlib import Path


# ── Path utilities ─────────────────────────────────────────────────

def resolve_path_vars(text: str, paths: dict[str, str]) -> str:
    """Replace ${name} variables in a string using the paths dict."""
    def _replace(match):
        key = match.group(1)
        if key not in paths:
            raise ValueError(f"Unknown path variable: ${{{key}}}")
        return str(paths[key])
    return re.sub(r"\$\{(\w+)\}", _replace, text)


def with_default_suffix(path: str | Path, suffix: str = ".mp4") -> Path:
    """Append ``suffix`` when ``path`` has no extension of its own.

    Output names are often given bare ("final_video"); those get ".mp4".
    """
    path = Path(path)
    if path.suffix:
        return path
    return path.with_name(path.name + suffix)
