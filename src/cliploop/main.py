"""Subcommand dispatcher for cliploop.

Usage:
    cliploop assemble  --manifest ... | --videos ... --audios ... --duration ... --output ...
    cliploop loop      clip.mp4 --overlap 1.0
"""

import argparse
import sys


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="cliploop",
        description="Assemble crossfaded, duration-padded videos and seamless loops.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    subparsers.add_parser("assemble", help="Assemble clips into one video of a set duration")
    subparsers.add_parser("loop", help="Make a clip loop seamlessly")

    # Checked before parsing: argparse would reject an unknown choice with exit 2.
    known_commands = {"assemble", "loop"}
    argv = sys.argv[1:] if args is None else list(args)
    if argv and not argv[0].startswith("-") and argv[0] not in known_commands:
        print(f"Unknown command: {argv[0]}\n", file=sys.stderr)
        parser.print_help()
        sys.exit(1)

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(argv)

    if parsed.command is None:
        # No subcommand: show help and exit with an error.
        parser.print_help()
        sys.exit(1)

    if parsed.command == "assemble":
        from .assemble_cli import main as assemble_main
        assemble_main(remaining)
    elif parsed.command == "loop":
        from .loop_cli import main as loop_main
        loop_main(remaining)


if __name__ == "__main__":
    main()
