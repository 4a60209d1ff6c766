"""
Narrate a story page and save the audio alongside its word timings.

Usage:
    python scripts/run_narration.py \
        --text "Once upon a time, a small dragon woke up. Hooray!" \
        --output narration.mp3
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from doodletales import ElevenLabsSpeechProvider, NarrationEngine, VoiceSettings  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Narrate text with word-level timings.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="Text to narrate.")
    source.add_argument("--text-file", help="UTF-8 file with the text to narrate.")
    parser.add_argument(
        "--output",
        default="narration.mp3",
        help="Audio output path; timings are written next to it as YAML.",
    )
    parser.add_argument("--voice-id", default=None, help="Override the ElevenLabs voice id.")
    parser.add_argument("--speed", type=float, default=None, help="Speaking speed (0.7-1.2).")
    parser.add_argument(
        "--list-voices",
        action="store_true",
        help="Print the child-friendly voices before narrating.",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    text = args.text if args.text is not None else Path(args.text_file).read_text(encoding="utf-8")

    overrides = {}
    if args.voice_id:
        overrides["voice_id"] = args.voice_id
    if args.speed is not None:
        overrides["speed"] = args.speed
    voice = VoiceSettings.from_env(**overrides)

    provider = ElevenLabsSpeechProvider(default_voice=voice)
    if args.list_voices:
        catalog = provider.list_voices()
        for entry in catalog.child_friendly:
            print(f"{entry.voice_id}  {entry.name}")

    result = NarrationEngine(provider).synthesize_with_word_timings(text, voice)

    audio_path = Path(args.output)
    audio_path.write_bytes(result.audio)
    timings_path = audio_path.with_suffix(".timings.yaml")
    timings_path.write_text(result.to_yaml(), encoding="utf-8")
    print(f"Saved narration to {audio_path} ({len(result.word_timings)} timed words)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
