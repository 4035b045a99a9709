"""
DOCX export.

Converts the standalone letter document (see html.render_letter_document)
into a Word file in a single pass. Word has no notion of the absolute
page positions used by the preview, so the slots come out in reading
order and the footer appears once at the end rather than on every page.
"""

import io
import logging
from typing import Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_BREAK
from docx.shared import Mm, Pt, RGBColor

from utils import safe_filename
from .exceptions import ExportError, ImageLoadError
from .geometry import PAGE_HEIGHT_MM, PAGE_WIDTH_MM
from .richtext import Block, parse_blocks
from .types import ExportResult, Letter

logger = logging.getLogger(__name__)

DOCX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'

MARGIN_MM = 20
SEAL_WIDTH_MM = 26
HEADINGS = {'h1': 1, 'h2': 2, 'h3': 3, 'h4': 4, 'h5': 4, 'h6': 4}
ALIGNMENTS = {
    'left': WD_ALIGN_PARAGRAPH.LEFT,
    'center': WD_ALIGN_PARAGRAPH.CENTER,
    'right': WD_ALIGN_PARAGRAPH.RIGHT,
    'justify': WD_ALIGN_PARAGRAPH.JUSTIFY,
}


class DocxExporter:
    """
    Args:
        image_loader: Optional object with load(url) -> bytes. Without one,
            images are left out of the document.
    """

    def __init__(self, image_loader=None):
        self.images = image_loader

    def _new_document(self, letter: Letter) -> Document:
        document = Document()
        section = document.sections[0]
        section.page_width = Mm(PAGE_WIDTH_MM)
        section.page_height = Mm(PAGE_HEIGHT_MM)
        section.left_margin = section.right_margin = Mm(MARGIN_MM)
        section.top_margin = section.bottom_margin = Mm(MARGIN_MM)

        style = document.styles['Normal']
        style.font.name = 'Times New Roman'
        style.font.size = Pt(12)
        document.core_properties.title = letter.title
        return document

    def _add_image(self, document, src: str, css_class: Optional[str]) -> None:
        if self.images is None:
            logger.debug(f"No image loader, leaving {src} out of DOCX")
            return
        try:
            data = self.images.load(src)
        except ImageLoadError as e:
            logger.error(f"Skipping image in DOCX export: {e}")
            return

        width = Mm(SEAL_WIDTH_MM) if css_class and 'seal' in css_class else Mm(PAGE_WIDTH_MM - 2 * MARGIN_MM)
        try:
            document.add_picture(io.BytesIO(data), width=width)
        except Exception:
            logger.error(f"Could not embed image {src} in DOCX", exc_info=True)
            return
        if css_class and 'seal' in css_class:
            document.paragraphs[-1].alignment = WD_ALIGN_PARAGRAPH.RIGHT

    def _add_block(self, document, block: Block) -> None:
        images = [run.image for run in block.runs if run.image]
        if images and not block.text.strip():
            for src in images:
                self._add_image(document, src, block.css_class)
            return

        if block.tag in HEADINGS:
            paragraph = document.add_heading(level=HEADINGS[block.tag])
        elif block.tag == 'li':
            style = 'List Number' if block.list_style == 'ordered' else 'List Bullet'
            paragraph = document.add_paragraph(style=style)
        elif block.tag == 'blockquote':
            paragraph = document.add_paragraph(style='Quote')
        else:
            paragraph = document.add_paragraph()

        align = block.align
        if not align and block.css_class:
            if 'signatory' in block.css_class:
                align = 'right'
        if align:
            paragraph.alignment = ALIGNMENTS[align]

        for run in block.runs:
            if run.image:
                continue
            if run.is_break:
                paragraph.add_run().add_break(WD_BREAK.LINE)
                continue
            doc_run = paragraph.add_run(run.text)
            doc_run.bold = run.bold or None
            doc_run.italic = run.italic or None
            doc_run.underline = run.underline or (block.css_class == 'underline') or None
            if block.css_class == 'underline':
                doc_run.bold = True
            if run.strike:
                doc_run.font.strike = True
            if run.href:
                doc_run.font.color.rgb = RGBColor(0x1D, 0x4E, 0xD8)

    def export(self, letter: Letter, html: str) -> ExportResult:
        """Convert the standalone letter HTML to DOCX bytes."""
        document = self._new_document(letter)
        try:
            for block in parse_blocks(html):
                if block.tag == 'img':
                    self._add_image(document, block.runs[0].image, block.css_class)
                    continue
                self._add_block(document, block)

            buffer = io.BytesIO()
            document.save(buffer)
        except Exception as e:
            logger.error(f"DOCX build failed for '{letter.title}'", exc_info=True)
            raise ExportError(f"Failed to generate DOCX: {e}") from e

        return ExportResult(
            data=buffer.getvalue(),
            filename=f"{safe_filename(letter.title)}.docx",
            mimetype=DOCX_MIMETYPE,
        )
