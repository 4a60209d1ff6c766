import base64
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import Mock

import requests
import yaml

from doodletales.ai_generation import to_data_url
from doodletales.pdf_generation import PAGE_SIZES, StorybookPDFBuilder
from doodletales.pipeline import Page, StoryResult

# 1x1 transparent PNG.
TINY_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


def sample_story(*image_urls) -> StoryResult:
    pages = [
        Page(text=f"Page {number} of the dragon story.", image_url=url)
        for number, url in enumerate(image_urls, start=1)
    ]
    return StoryResult(
        pages=pages,
        full_text="\n\n".join(page.text for page in pages),
        title="Ember & the Pancakes",
        summary="A dragon learns to share <breakfast>.",
    )


class TestStorybookPDFBuilder(unittest.TestCase):
    def test_build_renders_pdf_with_inline_and_missing_images(self) -> None:
        story = sample_story(to_data_url(TINY_PNG, "image/png"), None)

        with TemporaryDirectory() as tmpdir:
            output = StorybookPDFBuilder().build(story, Path(tmpdir) / "out" / "story.pdf")

            self.assertTrue(output.read_bytes().startswith(b"%PDF"))

    def test_file_and_http_images_are_loaded(self) -> None:
        session = Mock()
        session.get.return_value = Mock(content=TINY_PNG)

        with TemporaryDirectory() as tmpdir:
            image_path = Path(tmpdir) / "page.png"
            image_path.write_bytes(TINY_PNG)
            story = sample_story(image_path.as_uri(), "https://cdn.example.com/page.png")
            builder = StorybookPDFBuilder(page_size=PAGE_SIZES["a4"], session=session)

            output = builder.build(story, Path(tmpdir) / "story.pdf")

            self.assertTrue(output.exists())
        session.get.assert_called_once_with("https://cdn.example.com/page.png", timeout=30.0)

    def test_unreachable_image_falls_back_to_placeholder(self) -> None:
        session = Mock()
        session.get.side_effect = requests.ConnectionError("offline")
        builder = StorybookPDFBuilder(session=session)

        with self.assertLogs("doodletales.pdf_generation.builder", level="WARNING"):
            self.assertIsNone(builder._fetch_image("https://cdn.example.com/missing.png"))
        self.assertIsNone(builder._fetch_image("data:image/png;base64,###"))

    def test_build_from_yaml(self) -> None:
        story = sample_story(None)

        with TemporaryDirectory() as tmpdir:
            story_path = Path(tmpdir) / "story.yaml"
            story_path.write_text(story.to_yaml(), encoding="utf-8")

            output = StorybookPDFBuilder().build_from_yaml(story_path, Path(tmpdir) / "story.pdf")

            self.assertTrue(output.read_bytes().startswith(b"%PDF"))
            self.assertEqual(yaml.safe_load(story_path.read_text(encoding="utf-8"))["title"], story.title)


if __name__ == "__main__":
    unittest.main()
