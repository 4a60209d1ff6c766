"""
CLI example to run the complete DoodleTales story pipeline end-to-end.

Usage:
    python scripts/run_full_pipeline.py \
        --description "A friendly dragon who loves pancakes" \
        --drawing example_images/dragon.png \
        --language english \
        --storage-dir generated \
        --output doodletales_story.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from tqdm.auto import tqdm

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from doodletales import (  # noqa: E402
    GenerativeGateway,
    InlineImage,
    LocalBlobStore,
    StoryGenerationConfig,
    StoryGenerationOrchestrator,
)


class ProgressTracker:
    """
    Provides user-friendly command-line progress updates for the story pipeline.
    """

    def __init__(self) -> None:
        self._page_bar: tqdm | None = None

    def __call__(self, stage: str, payload: Dict[str, Any]) -> None:
        match stage:
            case "drawing:parsing":
                self._write("[1/4] Looking closely at the drawing...")
            case "drawing:skipped":
                reason = payload.get("reason")
                self._write("[1/4] Skipping drawing analysis" + (f" ({reason})." if reason else "."))
            case "drawing:ready":
                names = ", ".join(payload.get("characters") or []) or "unknown characters"
                self._write(f"[1/4] Drawing understood: {names}.")
            case "pages:generating":
                self._write("[2/4] Writing the story pages...")
            case "pages:ready":
                total = payload.get("total_pages", 0)
                self._write(f"[3/4] Story has {total} pages. Generating scenes & images...")
                self._page_bar = tqdm(total=total, desc="Illustrated pages", unit="page")
            case "page:processing":
                if self._page_bar is not None:
                    self._page_bar.set_description(f"Page {payload.get('page_number')}")
            case "page:done":
                if self._page_bar is not None:
                    self._page_bar.update(1)
                    if not payload.get("has_image"):
                        self._write(f"  Page {payload.get('page_number')} has no illustration.")
            case "title:generating":
                self.close()
                self._write("[4/4] Choosing a title...")
            case "pipeline:fallback":
                self._write("Story generation failed; using the built-in story instead.")
            case "pipeline:complete":
                self.close()
                self._write(f"Pipeline complete: \"{payload.get('title', '')}\".")

    def close(self) -> None:
        if self._page_bar is not None:
            self._page_bar.close()
            self._page_bar = None

    @staticmethod
    def _write(message: str) -> None:
        tqdm.write(message)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Turn a drawing into an illustrated story.")
    parser.add_argument(
        "--description",
        default="",
        help="What the child says about the drawing.",
    )
    parser.add_argument(
        "--drawing",
        default=None,
        help="Path to the child's drawing (PNG/JPEG).",
    )
    parser.add_argument(
        "--language",
        default="english",
        help="Story language: english, spanish, french or chinese (default: english).",
    )
    parser.add_argument(
        "--output",
        default="doodletales_story.yaml",
        help="Output YAML file to store the story and illustration URLs.",
    )
    parser.add_argument(
        "--storage-dir",
        default=None,
        help="Directory for generated illustrations (default: $DOODLETALES_STORAGE_DIR).",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Override the maximum number of story pages.",
    )
    parser.add_argument(
        "--no-fallback",
        dest="allow_fallback",
        action="store_false",
        default=True,
        help="Fail instead of returning the built-in story when generation fails.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.description and not args.drawing:
        print("Provide --description, --drawing, or both.", file=sys.stderr)
        return 2

    image = InlineImage.from_path(args.drawing) if args.drawing else None
    blob_store = LocalBlobStore(args.storage_dir) if args.storage_dir else None

    config = StoryGenerationConfig()
    if args.max_pages is not None:
        config = StoryGenerationConfig(max_pages=args.max_pages)

    orchestrator = StoryGenerationOrchestrator(GenerativeGateway(), blob_store, config)
    tracker = ProgressTracker()

    try:
        story = orchestrator.generate_story(
            args.description,
            args.language,
            image,
            progress_callback=tracker,
            allow_fallback=args.allow_fallback,
        )
    finally:
        tracker.close()

    output_path = Path(args.output)
    output_path.write_text(story.to_yaml(), encoding="utf-8")
    print(f"Saved story to {output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
