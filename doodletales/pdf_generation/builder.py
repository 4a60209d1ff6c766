"""
High-level utilities for rendering DoodleTales stories into printable PDFs.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional, Sequence
from urllib.parse import unquote, urlparse
from xml.sax.saxutils import escape

import requests
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import A4, LETTER
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch, mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfbase.ttfonts import TTFError, TTFont
from reportlab.pdfgen import canvas
from reportlab.platypus import Frame, Paragraph

from doodletales.ai_generation.media import parse_data_url
from doodletales.pipeline.pipeline import Page, StoryResult

logger = logging.getLogger(__name__)

CJK_FONT_NAME = "STSong-Light"


@dataclass(frozen=True)
class PageLayoutConfig:
    text_background: colors.Color
    image_background: colors.Color
    cover_background: colors.Color
    accent_color: colors.Color
    text_color: colors.Color
    caption_color: colors.Color


DEFAULT_LAYOUT = PageLayoutConfig(
    text_background=colors.HexColor("#FFF8E7"),
    image_background=colors.HexColor("#E8F5FF"),
    cover_background=colors.HexColor("#FF8A5B"),
    accent_color=colors.HexColor("#FFD166"),
    text_color=colors.HexColor("#2F2A40"),
    caption_color=colors.HexColor("#4B506D"),
)


PAGE_SIZES = {
    "a4": A4,
    "letter": LETTER,
    "square": (8 * inch, 8 * inch),
}


class StorybookPDFBuilder:
    """
    Render DoodleTales stories into printable PDFs.

    The builder creates:
      * A cover page with the story title and summary.
      * For every story page, a text page followed by its illustration. Pages
        whose illustration is missing or cannot be loaded get a placeholder panel.
    """

    def __init__(
        self,
        *,
        page_size: tuple[float, float] = PAGE_SIZES["square"],
        margin_mm: float = 18.0,
        layout: PageLayoutConfig = DEFAULT_LAYOUT,
        request_timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.page_size = page_size
        self.margin = margin_mm * mm
        self.layout = layout
        self.request_timeout = request_timeout
        self._session = session

        self.body_font, self.body_bold_font = self._configure_story_fonts()

    def build_from_yaml(self, story_path: Path | str, output_path: Path | str) -> Path:
        story = StoryResult.from_yaml(story_path)
        return self.build(story, output_path)

    def build(self, story: StoryResult, output_path: Path | str) -> Path:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        fonts = self._fonts_for_language(story.language)
        pdf = canvas.Canvas(str(output_file), pagesize=self.page_size)
        pdf.setTitle(story.title)
        width, height = self.page_size

        self._draw_cover_page(pdf, story, fonts, width, height)

        total = len(story.pages)
        for number, page in enumerate(story.pages, start=1):
            self._draw_text_page(pdf, story, page, number, total, fonts, width, height)
            self._draw_image_page(pdf, page, number, width, height)

        pdf.save()
        logger.info("Rendered %d page(s) to %s", total, output_file)
        return output_file

    # ------------------------------------------------------------------ cover rendering

    def _draw_cover_page(
        self,
        pdf: canvas.Canvas,
        story: StoryResult,
        fonts: tuple[str, str],
        width: float,
        height: float,
    ) -> None:
        regular, bold = fonts
        _paint_background(pdf, self.layout.cover_background, width, height)

        title_style = ParagraphStyle(
            name="StoryTitle",
            fontName=bold,
            fontSize=30,
            leading=36,
            alignment=TA_CENTER,
            textColor=colors.white,
            spaceAfter=18,
        )
        summary_style = ParagraphStyle(
            name="StorySummary",
            fontName=regular,
            fontSize=16,
            leading=21,
            alignment=TA_CENTER,
            textColor=colors.white,
            spaceAfter=12,
        )

        frame = Frame(
            self.margin,
            self.margin,
            width - 2 * self.margin,
            height * 0.65,
            showBoundary=0,
        )
        intro = [Paragraph(escape(story.title), title_style)]
        if story.summary:
            intro.append(Paragraph(escape(story.summary), summary_style))
        frame.addFromList(intro, pdf)

        self._draw_footer(pdf, "A DoodleTales story", width)
        pdf.showPage()

    # ------------------------------------------------------------------ text pages

    def _draw_text_page(
        self,
        pdf: canvas.Canvas,
        story: StoryResult,
        page: Page,
        number: int,
        total: int,
        fonts: tuple[str, str],
        width: float,
        height: float,
    ) -> None:
        regular, _ = fonts
        _paint_background(pdf, self.layout.text_background, width, height)

        bubble = _inset_box(0, 0, width, height, self.margin * 0.6)

        pdf.saveState()
        pdf.setFillColor(self._lighten(self.layout.accent_color, 0.75))
        pdf.roundRect(*bubble, 26, stroke=0, fill=1)
        pdf.restoreState()

        self._draw_sparkles(pdf, *bubble)

        body_style = self._body_style(page.text, story.language, regular)

        frame = Frame(*_inset_box(*bubble, self.margin * 0.3), showBoundary=0)

        paragraphs = [
            Paragraph(escape(block).replace("\n", "<br/>"), body_style)
            for block in filter(None, (chunk.strip() for chunk in page.text.split("\n\n")))
        ]
        frame.addFromList(paragraphs, pdf)

        self._draw_footer(pdf, f"Page {number} of {total} • {escape(story.title)}", width, font=regular)
        pdf.showPage()

    # ------------------------------------------------------------------ image pages

    def _draw_image_page(
        self,
        pdf: canvas.Canvas,
        page: Page,
        number: int,
        width: float,
        height: float,
    ) -> None:
        _paint_background(pdf, self.layout.image_background, width, height)

        image_reader = self._fetch_image(page.image_url) if page.image_url else None

        if image_reader is not None:
            img_width, img_height = image_reader.getSize()
            scale = min(
                (width - 2 * self.margin) / img_width,
                (height - 2 * self.margin) / img_height,
            )
            draw_width = img_width * scale
            draw_height = img_height * scale
            pdf.drawImage(
                image_reader,
                (width - draw_width) / 2,
                (height - draw_height) / 2,
                draw_width,
                draw_height,
                preserveAspectRatio=True,
                mask="auto",
            )
        else:
            self._draw_placeholder(pdf, width, height)

        self._draw_footer(pdf, f"Illustration for page {number}", width)
        pdf.showPage()

    # ------------------------------------------------------------------ helpers

    def _body_style(self, text: str, language: str, font: str) -> ParagraphStyle:
        # Shrink type for longer pages so they still fit inside the bubble.
        font_size, leading = next(
            (size, lead) for limit, size, lead in BODY_TYPE_SCALE if len(text) < limit
        )
        return ParagraphStyle(
            name="Body",
            fontName=font,
            fontSize=font_size,
            leading=leading,
            alignment=TA_CENTER if language == "chinese" else TA_JUSTIFY,
            textColor=self.layout.text_color,
            spaceAfter=14,
        )

    def _draw_placeholder(self, pdf: canvas.Canvas, width: float, height: float) -> None:
        x, y, panel_width, panel_height = _inset_box(0, 0, width, height, 2 * self.margin)

        pdf.saveState()
        pdf.setFillColor(self._lighten(self.layout.accent_color, 0.5))
        pdf.setStrokeColor(self.layout.accent_color)
        pdf.setDash(6, 4)
        pdf.roundRect(x, y, panel_width, panel_height, 20, stroke=1, fill=1)
        pdf.restoreState()

        self._draw_sparkles(pdf, x, y, panel_width, panel_height)

        pdf.saveState()
        pdf.setFillColor(self.layout.caption_color)
        pdf.setFont("Helvetica-Bold", 14)
        pdf.drawCentredString(width / 2, height / 2, "Imagine the picture here!")
        pdf.restoreState()

    def _draw_footer(
        self,
        pdf: canvas.Canvas,
        text: str,
        width: float,
        *,
        font: str = "Helvetica-Oblique",
    ) -> None:
        footer_style = ParagraphStyle(
            name="Footer",
            fontName=font,
            fontSize=10,
            leading=12,
            alignment=TA_CENTER,
            textColor=self.layout.caption_color,
        )
        footer_frame = Frame(
            self.margin,
            10,
            width - 2 * self.margin,
            20,
            showBoundary=0,
        )
        footer_frame.addFromList([Paragraph(text, footer_style)], pdf)

    def _fetch_image(self, url: str) -> Optional[ImageReader]:
        if url.startswith("data:"):
            try:
                _, data = parse_data_url(url)
            except ValueError as exc:
                logger.warning("Skipping invalid inline illustration: %s", exc)
                return None
            return ImageReader(BytesIO(data))

        if url.startswith("file://"):
            path = Path(unquote(urlparse(url).path))
            try:
                return ImageReader(BytesIO(path.read_bytes()))
            except OSError as exc:
                logger.warning("Could not read illustration %s: %s", path, exc)
                return None

        session = self._session or requests
        try:
            response = session.get(url, timeout=self.request_timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Could not download illustration %s: %s", url, exc)
            return None
        return ImageReader(BytesIO(response.content))

    def _draw_sparkles(
        self,
        pdf: canvas.Canvas,
        x: float,
        y: float,
        width: float,
        height: float,
    ) -> None:
        pdf.saveState()
        pdf.setFillColor(self._lighten(self.layout.accent_color, 0.6))
        for rel_x, rel_y, size in SPARKLE_LAYOUT:
            cx, cy = x + width * rel_x, y + height * rel_y
            star = pdf.beginPath()
            star.moveTo(cx, cy + size)
            star.lineTo(cx + size / 3, cy + size / 3)
            star.lineTo(cx + size, cy)
            star.lineTo(cx + size / 3, cy - size / 3)
            star.lineTo(cx, cy - size)
            star.lineTo(cx - size / 3, cy - size / 3)
            star.lineTo(cx - size, cy)
            star.lineTo(cx - size / 3, cy + size / 3)
            star.close()
            pdf.drawPath(star, stroke=0, fill=1)
        pdf.restoreState()

    @staticmethod
    def _lighten(color: colors.Color, amount: float = 0.5) -> colors.Color:
        """Blend ``color`` toward white; ``amount`` is clamped to [0, 1]."""
        amount = max(0.0, min(amount, 1.0))
        return colors.Color(*(channel + (1 - channel) * amount for channel in color.rgb()))

    def _fonts_for_language(self, language: str) -> tuple[str, str]:
        # Built-in Latin fonts have no CJK glyphs.
        if language == "chinese":
            if CJK_FONT_NAME not in pdfmetrics.getRegisteredFontNames():
                pdfmetrics.registerFont(UnicodeCIDFont(CJK_FONT_NAME))
            return CJK_FONT_NAME, CJK_FONT_NAME
        return self.body_font, self.body_bold_font

    def _configure_story_fonts(self) -> tuple[str, str]:
        roots = _font_search_roots()
        for family in PLAYFUL_FONT_FAMILIES:
            if family.register(roots):
                logger.debug("Using %s for story text", family.regular)
                return family.regular, family.bold
        return "Helvetica", "Helvetica-Bold"


@dataclass(frozen=True)
class FontFamily:
    """A regular/bold TrueType pair and the file names each may ship under."""

    regular: str
    bold: str
    regular_files: tuple[str, ...]
    bold_files: tuple[str, ...]

    def register(self, roots: Sequence[Path]) -> bool:
        return _register_first_match(self.regular, self.regular_files, roots) and _register_first_match(
            self.bold, self.bold_files, roots
        )


PLAYFUL_FONT_FAMILIES = (
    FontFamily(
        regular="ComicSansMS",
        bold="ComicSansMS-Bold",
        regular_files=("Comic Sans MS.ttf", "ComicSansMS.ttf", "comic.ttf"),
        bold_files=("Comic Sans MS Bold.ttf", "ComicSansMS-Bold.ttf", "comicbd.ttf"),
    ),
    FontFamily(
        regular="ComicNeue",
        bold="ComicNeue-Bold",
        regular_files=("ComicNeue-Regular.ttf",),
        bold_files=("ComicNeue-Bold.ttf",),
    ),
)

BODY_TYPE_SCALE = (
    (300, 20, 29),
    (600, 17, 24),
    (float("inf"), 14, 19),
)

SPARKLE_LAYOUT = (
    (0.15, 0.85, 7),
    (0.86, 0.8, 10),
    (0.2, 0.22, 6),
    (0.8, 0.18, 7),
    (0.52, 0.92, 5),
)


def _font_search_roots() -> list[Path]:
    roots = [
        Path("/usr/share/fonts"),
        Path("/usr/local/share/fonts"),
        Path.home() / ".fonts",
        Path("/Library/Fonts"),
        Path.home() / "Library" / "Fonts",
        Path("C:/Windows/Fonts"),
    ]
    custom = os.environ.get("DOODLETALES_FONT_DIR")
    if custom:
        roots.insert(0, Path(custom))
    return [root for root in roots if root.is_dir()]


def _register_first_match(font_name: str, filenames: Sequence[str], roots: Sequence[Path]) -> bool:
    if font_name in pdfmetrics.getRegisteredFontNames():
        return True

    candidates = (root / filename for root in roots for filename in filenames)
    for font_path in candidates:
        if not font_path.is_file():
            continue
        try:
            pdfmetrics.registerFont(TTFont(font_name, str(font_path)))
        except (OSError, TTFError) as exc:
            logger.debug("Skipping unreadable font %s: %s", font_path, exc)
            continue
        return True
    return False


def _paint_background(pdf: canvas.Canvas, color: colors.Color, width: float, height: float) -> None:
    pdf.setFillColor(color)
    pdf.rect(0, 0, width, height, stroke=0, fill=1)


def _inset_box(x: float, y: float, width: float, height: float, inset: float) -> tuple[float, float, float, float]:
    """Return ``(x, y, width, height)`` shrunk by ``inset`` on every side."""
    return x + inset, y + inset, width - 2 * inset, height - 2 * inset
