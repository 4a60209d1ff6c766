"""
Convert a plain-text or PDF book into a simplified, illustrated children's version.

Usage:
    python scripts/run_book_conversion.py \
        --book alice.txt \
        --storage-dir generated \
        --output alice_book.yaml

    python scripts/run_book_conversion.py --pdf alice.pdf --output alice_book.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from tqdm.auto import tqdm

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from doodletales import BookConversionOrchestrator, GenerativeGateway, LocalBlobStore  # noqa: E402
from doodletales.pdf_generation import extract_pdf_text_from_path  # noqa: E402


class BookProgressTracker:
    def __init__(self) -> None:
        self._scene_bar: tqdm | None = None

    def __call__(self, stage: str, payload: Dict[str, Any]) -> None:
        match stage:
            case "book:simplifying":
                tqdm.write(
                    f"Simplifying chunk {payload.get('chunk_number')}/{payload.get('total_chunks')}..."
                )
            case "book:characters":
                tqdm.write("Finding the main characters...")
            case "book:scenes":
                tqdm.write("Picking the key scenes...")
            case "book:scenes_ready":
                total = payload.get("total_scenes", 0)
                self._scene_bar = tqdm(total=total, desc="Illustrated scenes", unit="scene")
            case "scene:done":
                if self._scene_bar is not None:
                    self._scene_bar.update(1)
            case "pipeline:complete":
                self.close()
                tqdm.write("Book conversion complete.")

    def close(self) -> None:
        if self._scene_bar is not None:
            self._scene_bar.close()
            self._scene_bar = None


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simplify and illustrate a book for children.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--book", help="Path to the UTF-8 text of the book.")
    source.add_argument("--pdf", help="Path to a PDF of the book; its text is extracted first.")
    parser.add_argument(
        "--output",
        default="doodletales_book.yaml",
        help="Output YAML file for the simplified text and scenes.",
    )
    parser.add_argument(
        "--storage-dir",
        default=None,
        help="Directory for generated illustrations (default: $DOODLETALES_STORAGE_DIR).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.pdf:
        extracted = extract_pdf_text_from_path(args.pdf)
        tqdm.write(f"Extracted text from {extracted.num_pages} PDF page(s).")
        raw_text = extracted.full_text
    else:
        raw_text = Path(args.book).read_text(encoding="utf-8")
    blob_store = LocalBlobStore(args.storage_dir) if args.storage_dir else None
    orchestrator = BookConversionOrchestrator(GenerativeGateway(), blob_store)
    tracker = BookProgressTracker()

    try:
        result = orchestrator.convert_book(raw_text, progress_callback=tracker)
    finally:
        tracker.close()

    output_path = result.write_yaml(args.output)
    print(f"Saved converted book to {output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
