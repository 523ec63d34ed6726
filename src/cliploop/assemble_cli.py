"""CLI for assembly — pad and crossfade clips into one video of a set length.

Video clips are repeated round-robin and joined with crossfades; audio
clips are repeated and joined back to back; the result is cut to exactly
the requested duration.

Usage:
    # From a manifest
    cliploop assemble --manifest assembly.yaml

    # Manifest with overrides
    cliploop assemble --manifest assembly.yaml --duration 300 --gpu

    # Without a manifest
    cliploop assemble --videos a.mp4 b.mp4 --audios music.mp3 \
        --duration 120 --output final.mp4

    # Validate only (check paths, don't render)
    cliploop assemble --manifest assembly.yaml --validate
"""

import argparse
import logging
import sys

from .assembly import DEFAULT_FADE, AssemblyConfig, try_assemble
from .assembly_manifest import load_assembly_manifest, validate_assembly_paths
from .progress import format_event


def _print_event(event):
    print(format_event(event), flush=True)


def _build_config(parser, parsed):
    overrides = {
        "output": parsed.output,
        "target_duration": parsed.duration,
        "fade_duration": parsed.fade,
        "create_loops_first": True if parsed.loops_first else None,
        "codec": "h264_nvenc" if parsed.gpu else None,
        "max_workers": parsed.workers,
    }

    if parsed.manifest:
        if parsed.videos or parsed.audios:
            parser.error("--videos/--audios cannot be combined with --manifest")
        return load_assembly_manifest(parsed.manifest, **overrides)

    if not parsed.videos or not parsed.audios:
        parser.error("Specify --manifest, or both --videos and --audios")
    if parsed.duration is None or parsed.output is None:
        parser.error("--duration and --output are required without --manifest")

    settings = {k: v for k, v in overrides.items() if v is not None}
    return AssemblyConfig(videos=parsed.videos, audios=parsed.audios, **settings)


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Assemble video and audio clips into one crossfaded video.",
    )
    parser.add_argument("--manifest", help="Path to YAML assembly manifest")
    parser.add_argument("--videos", nargs="+", help="Video clips, in playback order")
    parser.add_argument("--audios", nargs="+", help="Audio clips, in playback order")
    parser.add_argument(
        "--duration", type=float, default=None,
        help="Output duration in seconds",
    )
    parser.add_argument(
        "--output", default=None,
        help="Output video path (.mp4 appended if no extension)",
    )
    parser.add_argument(
        "--fade", type=float, default=None,
        help=f"Crossfade duration in seconds (default {DEFAULT_FADE})",
    )
    parser.add_argument(
        "--loops-first", action="store_true",
        help="Turn every video into a seamless loop before assembling",
    )
    parser.add_argument(
        "--gpu", action="store_true",
        help="Use GPU encoding (h264_nvenc). Default is CPU (libx264).",
    )
    parser.add_argument(
        "--workers", type=int, default=None,
        help="Parallel probes/merges (default 4)",
    )
    parser.add_argument(
        "--validate", action="store_true",
        help="Check that every media path exists, don't render",
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

    config = _build_config(parser, parsed)
    validate_assembly_paths(config)

    if parsed.validate:
        print(
            f"Assembly valid: {len(config.videos)} videos, {len(config.audios)} audios, "
            f"{config.target_duration:.1f}s -> {config.output}"
        )
        print("All paths verified.")
        return

    print(f"Assembling {config.target_duration:.1f}s video into {config.output}")
    outcome = try_assemble(config, _print_event)
    if not outcome.ok:
        err = outcome.error
        print(f"\nError ({err.stage}): {err}", file=sys.stderr)
        sys.exit(1)
    print(f"\nDone: {outcome.output}")


if __name__ == "__main__":
    main()
