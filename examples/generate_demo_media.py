#!/usr/bin/env python3
"""Generate synthetic clips and tones for the cliploop demo manifest.

Creates 4 video clips with varying durations and 2 audio tones in
examples/demo-media/. Each clip is a solid color with a white bar that
sweeps left to right, so crossfades and loop seams are easy to spot.

Usage:
    python examples/generate_demo_media.py
    # Then assemble:
    cliploop assemble --manifest examples/demo-assembly.yaml
"""

from pathlib import Path

import numpy as np
from moviepy import VideoClip
from moviepy.audio.AudioClip import AudioArrayClip

OUTPUT_DIR = Path(__file__).resolve().parent / "demo-media"
SIZE = (320, 240)
FPS = 30
SAMPLE_RATE = 44100

# Distinct colors and durations (2s to 4s); all longer than the 1s fade.
CLIPS = [
    ("clip-01", (180, 60, 60),  2.0),  # red
    ("clip-02", (60, 60, 180),  3.0),  # blue
    ("clip-03", (60, 160, 60),  2.5),  # green
    ("clip-04", (200, 130, 40), 4.0),  # orange
]

TONES = [
    ("tone-a", 440.0, 3.0),
    ("tone-b", 660.0, 2.0),
]


def _sweep_clip(color, duration):
    """Solid color clip with a white bar crossing the frame once."""
    w, h = SIZE
    bar = max(w // 16, 4)

    def frame(t):
        img = np.full((h, w, 3), color, dtype=np.uint8)
        x = int((w - bar) * min(t / duration, 1.0))
        img[:, x:x + bar] = 255
        return img

    return VideoClip(frame, duration=duration)


def _tone(freq, duration):
    t = np.arange(int(SAMPLE_RATE * duration)) / SAMPLE_RATE
    wave = 0.3 * np.sin(2 * np.pi * freq * t)
    return AudioArrayClip(np.column_stack([wave, wave]), fps=SAMPLE_RATE)


def main():
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    for name, color, duration in CLIPS:
        out = OUTPUT_DIR / f"{name}.mp4"
        if out.exists():
            print(f"  skip {name} (exists)")
            continue
        _sweep_clip(color, duration).write_videofile(
            str(out), fps=FPS, codec="libx264", audio=False, logger=None,
        )
        print(f"  wrote {name} ({duration}s)")

    for name, freq, duration in TONES:
        out = OUTPUT_DIR / f"{name}.wav"
        if out.exists():
            print(f"  skip {name} (exists)")
            continue
        _tone(freq, duration).write_audiofile(str(out), fps=SAMPLE_RATE, logger=None)
        print(f"  wrote {name} ({duration}s, {freq:.0f} Hz)")

    print(f"\nDone. {len(CLIPS)} clips and {len(TONES)} tones in {OUTPUT_DIR}")


if __name__ == "__main__":
    main()
