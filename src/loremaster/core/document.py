"""PDF compilation for generated worlds.

The document is assembled with ReportLab's platypus layout engine:

- a cover page with the centered world title and subtitle, plus the world
  portrait when one exists (``single`` image policy)
- one page per section, in the given order: an underlined section header, the
  section image fit into a 500 x 300 pt box and centered, then the body text

Section bodies are Markdown.  A small line-oriented converter turns headings,
bullet and numbered lists, ``**bold**``, ``*italic*`` and ```code``` spans into
platypus paragraphs; everything else is rendered as plain paragraphs.  Model
output is not trusted to be well formed: a paragraph whose converted markup
platypus cannot parse is rendered as escaped plain text instead.

A missing or unreadable image only removes the image from its page.  Failure
to write the document itself raises :class:`~loremaster.core.errors.FatalError`.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Mapping, Sequence
from pathlib import Path
from xml.sax.saxutils import escape

from PIL import Image, UnidentifiedImageError
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Flowable, PageBreak, Paragraph, SimpleDocTemplate, Spacer
from reportlab.platypus import Image as PDFImage
from reportlab.platypus.doctemplate import LayoutError

from loremaster.core.errors import FatalError
from loremaster.core.models import ImageResult, SectionResult, WorldPhase

logger = logging.getLogger(__name__)

DOCUMENT_EXTENSION = ".pdf"
DEFAULT_SUBTITLE = "An Illustrated Guide"

# Bounding box for section images, in points.
IMAGE_BOX = (500.0, 300.0)
PAGE_MARGIN = 50.0

_HEADING = re.compile(r"^(#{1,6})\s+(.*)$")
_BULLET = re.compile(r"^\s*[-*+•]\s+(.*)$")
_NUMBERED = re.compile(r"^\s*(\d+)[.)]\s+(.*)$")
_RULE = re.compile(r"^\s*([-*_])(\s*\1){2,}\s*$")
_BOLD = re.compile(r"\*\*(.+?)\*\*|__(.+?)__")
_ITALIC = re.compile(
    r"(?<![*\w])\*(?!\s)(.+?)(?<!\s)\*(?![*\w])"
    r"|(?<![_\w])_(?!\s)(.+?)(?<!\s)_(?![_\w])"
)
_CODE = re.compile(r"`([^`]+)`")


def _styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    body = ParagraphStyle(
        "LoreBody",
        parent=base["BodyText"],
        fontName="Helvetica",
        fontSize=12,
        leading=16,
        alignment=TA_LEFT,
        textColor=colors.black,
        spaceAfter=6,
    )
    return {
        "cover_title": ParagraphStyle(
            "LoreCoverTitle",
            parent=base["Title"],
            fontSize=28,
            leading=34,
            alignment=TA_CENTER,
        ),
        "cover_subtitle": ParagraphStyle(
            "LoreCoverSubtitle",
            parent=base["Title"],
            fontName="Helvetica-Oblique",
            fontSize=16,
            leading=20,
            alignment=TA_CENTER,
            textColor=colors.darkgrey,
        ),
        "section_title": ParagraphStyle(
            "LoreSectionTitle",
            parent=base["Heading1"],
            fontSize=20,
            leading=24,
            textColor=colors.blue,
            spaceAfter=12,
        ),
        "h1": ParagraphStyle("LoreH1", parent=base["Heading2"], fontSize=16, leading=20),
        "h2": ParagraphStyle("LoreH2", parent=base["Heading3"], fontSize=14, leading=18),
        "h3": ParagraphStyle("LoreH3", parent=base["Heading4"], fontSize=12, leading=16),
        "body": body,
        "bullet": ParagraphStyle(
            "LoreBullet", parent=body, leftIndent=18, bulletIndent=6, spaceAfter=3
        ),
    }


def _inline(text: str) -> str:
    """Escape *text* for platypus and convert inline Markdown emphasis."""
    markup = escape(text)
    markup = _CODE.sub(r'<font face="Courier">\1</font>', markup)
    markup = _BOLD.sub(lambda m: f"<b>{m.group(1) or m.group(2)}</b>", markup)
    markup = _ITALIC.sub(lambda m: f"<i>{m.group(1) or m.group(2)}</i>", markup)
    return markup


def _paragraph(
    text: str,
    style: ParagraphStyle,
    bullet_text: str | None = None,
) -> Paragraph:
    """Build a paragraph from Markdown text, falling back to plain text.

    Overlapping or unbalanced emphasis can produce markup that platypus
    rejects.  Such text is rendered escaped, without formatting, so that one
    malformed line only loses its styling.
    """
    try:
        return Paragraph(_inline(text), style, bulletText=bullet_text)
    except ValueError as e:
        logger.warning("Rendering paragraph as plain text (%s): %.60r", e, text)
        return Paragraph(escape(text), style, bulletText=bullet_text)


def markdown_to_flowables(text: str, styles: Mapping[str, ParagraphStyle]) -> list[Flowable]:
    """Convert a Markdown section body into platypus flowables.

    Consecutive plain lines are joined into one paragraph; blank lines end a
    paragraph.  Headings and list items always stand on their own.
    """
    flowables: list[Flowable] = []
    pending: list[str] = []

    def flush() -> None:
        if pending:
            flowables.append(_paragraph(" ".join(pending), styles["body"]))
            pending.clear()

    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("```"):
            flush()
            continue
        if _RULE.match(line):
            flush()
            flowables.append(Spacer(1, 8))
            continue

        heading = _HEADING.match(line)
        if heading:
            flush()
            level = min(len(heading.group(1)), 3)
            flowables.append(_paragraph(heading.group(2), styles[f"h{level}"]))
            continue

        bullet = _BULLET.match(raw)
        if bullet:
            flush()
            flowables.append(_paragraph(bullet.group(1), styles["bullet"], "•"))
            continue

        numbered = _NUMBERED.match(raw)
        if numbered:
            flush()
            flowables.append(
                _paragraph(numbered.group(2), styles["bullet"], f"{numbered.group(1)}.")
            )
            continue

        pending.append(line)

    flush()
    return flowables


def fit_image(path: Path, box: tuple[float, float] = IMAGE_BOX) -> PDFImage | None:
    """Load *path* as a centered image scaled to fit inside *box*.

    Returns:
        The image flowable, or ``None`` if the file is missing or unreadable.
    """
    try:
        with Image.open(path) as img:
            width, height = img.size
    except (OSError, UnidentifiedImageError) as e:
        logger.warning("Skipping unreadable image %s: %s", path, e)
        return None
    if not width or not height:
        return None

    scale = min(box[0] / width, box[1] / height)
    flowable = PDFImage(str(path), width=width * scale, height=height * scale)
    flowable.hAlign = "CENTER"
    return flowable


def build_story(
    sections: Sequence[SectionResult],
    images: Mapping[str, ImageResult],
    title: str,
    *,
    subtitle: str = DEFAULT_SUBTITLE,
    cover_image_key: str | None = None,
) -> list[Flowable]:
    """Lay out the cover page and one page per section."""
    styles = _styles()
    story: list[Flowable] = [
        Spacer(1, 2 * inch),
        Paragraph(escape(title), styles["cover_title"]),
        Spacer(1, 12),
        Paragraph(escape(subtitle), styles["cover_subtitle"]),
    ]

    cover = images.get(cover_image_key) if cover_image_key else None
    if cover is not None:
        cover_flowable = fit_image(cover.local_path)
        if cover_flowable is not None:
            story.extend([Spacer(1, 24), cover_flowable])

    for section in sections:
        story.append(PageBreak())
        story.append(Paragraph(f"<u>{escape(section.title.upper())}</u>", styles["section_title"]))

        image = images.get(section.key)
        if image is not None:
            flowable = fit_image(image.local_path)
            if flowable is not None:
                story.extend([flowable, Spacer(1, 12)])

        story.extend(markdown_to_flowables(section.body, styles))

    return story


def compile_document(
    sections: Sequence[SectionResult],
    images: Mapping[str, ImageResult],
    title: str,
    destination: Path,
    *,
    subtitle: str = DEFAULT_SUBTITLE,
    cover_image_key: str | None = None,
) -> Path:
    """Compile sections and images into a PDF at *destination*.

    The file is fully written and closed when this function returns.  An
    existing file at *destination* is overwritten.

    Args:
        sections: Sections in page order.
        images: Persisted images by key; sections without one get no image.
        title: Cover page title.
        destination: Output PDF path.
        subtitle: Cover page subtitle.
        cover_image_key: Key of the image to place on the cover, if any.

    Returns:
        *destination*.

    Raises:
        FatalError: If the document cannot be produced.
    """
    story = build_story(
        sections, images, title, subtitle=subtitle, cover_image_key=cover_image_key
    )
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        doc = SimpleDocTemplate(
            str(destination),
            pagesize=LETTER,
            leftMargin=PAGE_MARGIN,
            rightMargin=PAGE_MARGIN,
            topMargin=PAGE_MARGIN,
            bottomMargin=PAGE_MARGIN,
            title=title,
            author="Loremaster",
        )
        doc.build(story)
    except (OSError, LayoutError) as e:
        raise FatalError(WorldPhase.COMPILING_DOCUMENT.value, str(e)) from e

    logger.info("Compiled %d section page(s) into %s", len(sections), destination)
    return destination


async def compile_document_async(
    sections: Sequence[SectionResult],
    images: Mapping[str, ImageResult],
    title: str,
    destination: Path,
    *,
    subtitle: str = DEFAULT_SUBTITLE,
    cover_image_key: str | None = None,
) -> Path:
    """Run :func:`compile_document` in a worker thread and await completion."""
    return await asyncio.to_thread(
        compile_document,
        sections,
        images,
        title,
        destination,
        subtitle=subtitle,
        cover_image_key=cover_image_key,
    )
