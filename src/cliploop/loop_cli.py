"""CLI for the loop transform — make one clip loop seamlessly.

Usage:
    cliploop loop clip.mp4                       # writes clip_loop.mp4
    cliploop loop clip.mp4 --overlap 0.5 --output loops/clip.mp4

The loop is written without audio.
"""

import argparse
import logging
import sys

from .engine import FFmpegEngine
from .errors import CliploopError
from .loop import make_loop
from .progress import format_event


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Turn a clip into a seamlessly looping clip (video only, audio is dropped).",
    )
    parser.add_argument("source", help="Path to the source clip")
    parser.add_argument(
        "--overlap", type=float, default=1.0,
        help="Crossfade length at the new seam, in seconds (default 1.0)",
    )
    parser.add_argument(
        "--output", default=None,
        help="Output path (default: <source>_loop next to the source)",
    )
    parser.add_argument(
        "--gpu", action="store_true",
        help="Use GPU encoding (h264_nvenc). Default is CPU (libx264).",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Log every ffmpeg command",
    )
    parsed = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    engine = FFmpegEngine(codec="h264_nvenc" if parsed.gpu else "libx264")
    try:
        output = make_loop(
            parsed.source, parsed.overlap, parsed.output,
            engine=engine,
            on_progress=lambda e: print(format_event(e), flush=True),
        )
    except CliploopError as err:
        print(f"Error: {err}", file=sys.stderr)
        sys.exit(1)
    print(f"Done: {output}")


if __name__ == "__main__":
    main()
