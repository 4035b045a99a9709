"""
PDF export.

The letter body flows through reportlab's platypus engine and paginates
onto as many A4 pages as it needs. Everything else is positioned page
furniture drawn straight onto the canvas:

- header, ref, date, recipient, subject, signatory and seal are drawn on
  page 1 only, at their layout positions
- the footer is kept out of the flow entirely; once pagination is done its
  height is computed from the image's natural aspect ratio at full page
  width and it is drawn at the bottom of every page
"""

import io
import logging
import re
from functools import partial
from typing import List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas
from reportlab.platypus import (
    BaseDocTemplate, Frame, NextPageTemplate, PageTemplate, Paragraph, Spacer
)

from utils import safe_filename
from .exceptions import ExportError, ImageLoadError
from .geometry import PAGE_HEIGHT_MM, PAGE_WIDTH_MM
from .richtext import Block, Run, parse_blocks
from .types import ExportResult, Letter, RenderedSlot

logger = logging.getLogger(__name__)

PAGE_W, PAGE_H = A4

FONT = 'Times-Roman'
FONT_BOLD = 'Times-Bold'
FONT_SIZE = 12
LINE_HEIGHT_MM = 5.5

MARGIN_MM = 20
MIN_FRAME_MM = 10
SEAL_SIZE_MM = 28
SIGNATURE_SPACE_MM = 20

# Slots drawn before the body (underneath it) and after it (on top).
SLOTS_BEFORE_BODY = ('header', 'ref', 'date', 'recipient', 'subject')
SLOTS_AFTER_BODY = ('signatory', 'seal')

ALIGNMENTS = {'left': TA_LEFT, 'center': TA_CENTER, 'right': TA_RIGHT, 'justify': TA_JUSTIFY}

BODY_STYLE = ParagraphStyle('LetterBody', fontName=FONT, fontSize=FONT_SIZE, leading=18,
                            alignment=TA_JUSTIFY, spaceAfter=6)
HEADING_STYLES = {
    'h1': ParagraphStyle('LetterH1', parent=BODY_STYLE, fontName=FONT_BOLD, fontSize=20, leading=24,
                         alignment=TA_LEFT, spaceAfter=8),
    'h2': ParagraphStyle('LetterH2', parent=BODY_STYLE, fontName=FONT_BOLD, fontSize=16, leading=20,
                         alignment=TA_LEFT, spaceAfter=6),
    'h3': ParagraphStyle('LetterH3', parent=BODY_STYLE, fontName=FONT_BOLD, fontSize=14, leading=18,
                         alignment=TA_LEFT, spaceAfter=6),
}
LIST_STYLE = ParagraphStyle('LetterListItem', parent=BODY_STYLE, leftIndent=8 * mm, bulletIndent=2 * mm,
                            spaceAfter=2)
QUOTE_STYLE = ParagraphStyle('LetterQuote', parent=BODY_STYLE, leftIndent=8 * mm, textColor=colors.HexColor('#4b5563'))
PRE_STYLE = ParagraphStyle('LetterPre', parent=BODY_STYLE, fontName='Courier', fontSize=10, leading=13,
                           alignment=TA_LEFT)

_PAGE_OBJECT = re.compile(rb'/Type /Page[^s]')


class _OverlayCanvas(canvas.Canvas):
    """
    Canvas that holds every page until the document is complete, then
    calls overlay(canvas, page_number, page_count) on each before writing it.
    """

    def __init__(self, *args, overlay=None, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []
        self._overlay = overlay

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        page_count = len(self._saved_page_states)
        for page_number, state in enumerate(self._saved_page_states, 1):
            self.__dict__.update(state)
            if self._overlay is not None:
                self._overlay(self, page_number, page_count)
            super().showPage()
        super().save()


def _run_markup(run: Run) -> str:
    if run.is_break:
        return '<br/>'
    text = escape(run.text)
    if run.bold:
        text = f'<b>{text}</b>'
    if run.italic:
        text = f'<i>{text}</i>'
    if run.underline:
        text = f'<u>{text}</u>'
    if run.strike:
        text = f'<strike>{text}</strike>'
    if run.href:
        text = f'<a href="{escape(run.href, {chr(34): "&quot;"})}" color="blue">{text}</a>'
    return text


def block_markup(block: Block) -> str:
    """Paragraph markup for one block. Inline images are not supported in the body."""
    parts = []
    for run in block.runs:
        if run.image:
            logger.debug(f"Skipping inline body image {run.image[:60]}")
            continue
        parts.append(_run_markup(run))
    return ''.join(parts)


def body_flowables(html: str) -> list:
    """Convert the letter body into platypus flowables."""
    flowables = []
    for block in parse_blocks(html):
        if block.tag == 'img':
            logger.debug("Skipping block image in letter body")
            continue
        if block.is_empty:
            flowables.append(Spacer(1, BODY_STYLE.leading))
            continue

        if block.tag == 'li':
            style = LIST_STYLE
        elif block.tag in HEADING_STYLES:
            style = HEADING_STYLES[block.tag]
        elif block.tag in ('h4', 'h5', 'h6'):
            style = HEADING_STYLES['h3']
        elif block.tag == 'blockquote':
            style = QUOTE_STYLE
        elif block.tag == 'pre':
            style = PRE_STYLE
        else:
            style = BODY_STYLE

        if block.align:
            style = ParagraphStyle(f'{style.name}-{block.align}', parent=style,
                                   alignment=ALIGNMENTS[block.align])

        markup = block_markup(block)
        if block.tag == 'pre':
            markup = markup.replace('\n', '<br/>')

        if block.tag == 'li':
            bullet = f'{block.number}.' if block.list_style == 'ordered' else '•'
            flowables.append(Paragraph(markup, style, bulletText=bullet))
        else:
            flowables.append(Paragraph(markup, style))
    return flowables


class PdfExporter:
    """
    Renders positioned slots and the paginated body into a PDF.

    Args:
        image_loader: Object with load(url) -> bytes and
            measure_image_aspect_ratio(url) -> (width, height)
    """

    def __init__(self, image_loader):
        self.images = image_loader

    def _reader(self, url: str) -> ImageReader:
        return ImageReader(io.BytesIO(self.images.load(url)))

    def footer_height_mm(self, url: str) -> float:
        """Footer height when its image spans the full page width."""
        width, height = self.images.measure_image_aspect_ratio(url)
        return PAGE_WIDTH_MM * height / width

    def _draw_image(self, c, s: RenderedSlot, default_width_mm: float) -> bool:
        try:
            width_px, height_px = self.images.measure_image_aspect_ratio(s.src)
            reader = self._reader(s.src)
        except ImageLoadError as e:
            logger.error(f"Skipping {s.slot} image: {e}")
            return False

        width_mm = s.item.w if s.item.w is not None else default_width_mm
        height_mm = width_mm * height_px / width_px
        try:
            c.drawImage(reader, s.item.x * mm, PAGE_H - (s.item.y + height_mm) * mm,
                        width=width_mm * mm, height=height_mm * mm, mask='auto')
        except Exception:
            logger.error(f"Drawing {s.slot} image failed", exc_info=True)
            return False
        return True

    @staticmethod
    def _wrap(s: RenderedSlot, line: str, font: str) -> List[str]:
        if s.item.w is None:
            return [line]
        return simpleSplit(line, font, FONT_SIZE, s.item.w * mm) or ['']

    def _draw_lines(self, c, s: RenderedSlot, lines, baseline: float, bold_count: int = 0,
                    underline: bool = False) -> float:
        x = s.item.x * mm
        for index, line in enumerate(lines):
            font = FONT_BOLD if index < bold_count or underline else FONT
            for segment in self._wrap(s, line, font):
                c.setFont(font, FONT_SIZE)
                c.drawString(x, baseline, segment)
                if underline:
                    width = stringWidth(segment, font, FONT_SIZE)
                    c.line(x, baseline - 1.5, x + width, baseline - 1.5)
                baseline -= LINE_HEIGHT_MM * mm
        return baseline

    def _draw_slot(self, c, s: RenderedSlot, drawn: dict) -> None:
        baseline = PAGE_H - s.item.y * mm - FONT_SIZE
        if s.kind == 'image':
            default_width = SEAL_SIZE_MM if s.slot == 'seal' else PAGE_WIDTH_MM
            if self._draw_image(c, s, default_width):
                drawn.setdefault(s.slot, []).append(c.getPageNumber())
        elif s.kind == 'placeholder':
            # Placeholders only guide on-screen editing.
            return
        elif s.kind == 'recipient':
            self._draw_lines(c, s, s.lines, baseline, bold_count=2)
        elif s.kind == 'signatory':
            baseline = self._draw_lines(c, s, s.lines[:1], baseline, bold_count=1)
            baseline -= SIGNATURE_SPACE_MM * mm
            caption = s.lines[1]
            c.setLineWidth(0.5)
            c.line(s.item.x * mm, baseline + FONT_SIZE + 2,
                   s.item.x * mm + stringWidth(caption, FONT_BOLD, FONT_SIZE), baseline + FONT_SIZE + 2)
            self._draw_lines(c, s, [caption], baseline, bold_count=1)
        elif s.kind == 'text':
            self._draw_lines(c, s, s.lines, baseline, underline=s.underline)

    def export(self, letter: Letter, slots: List[RenderedSlot]) -> ExportResult:
        by_slot = {s.slot: s for s in slots}
        content = by_slot.get('content')
        footer = by_slot.get('footer')

        footer_reader: Optional[ImageReader] = None
        footer_mm = 0.0
        if footer is not None:
            try:
                footer_mm = self.footer_height_mm(footer.src)
                footer_reader = self._reader(footer.src)
            except ImageLoadError as e:
                logger.error(f"Footer image unavailable, pages will have no footer: {e}")
                footer_reader = None
                footer_mm = 0.0

        bottom_mm = max(MARGIN_MM, footer_mm)

        if content is not None:
            body_x = content.item.x
            body_y = content.item.y
            body_w = content.item.w if content.item.w is not None else PAGE_WIDTH_MM - body_x - MARGIN_MM
        else:
            body_x, body_y, body_w = MARGIN_MM, MARGIN_MM, PAGE_WIDTH_MM - 2 * MARGIN_MM
        body_w = max(body_w, MIN_FRAME_MM)

        first_height = max(PAGE_HEIGHT_MM - body_y - bottom_mm, MIN_FRAME_MM)
        later_height = max(PAGE_HEIGHT_MM - MARGIN_MM - bottom_mm, MIN_FRAME_MM)

        frame_kwargs = dict(leftPadding=0, rightPadding=0, topPadding=0, bottomPadding=0, showBoundary=0)
        first_frame = Frame(body_x * mm, PAGE_H - (body_y + first_height) * mm, body_w * mm,
                            first_height * mm, id='body-first', **frame_kwargs)
        later_frame = Frame(body_x * mm, bottom_mm * mm, body_w * mm, later_height * mm,
                            id='body-later', **frame_kwargs)

        drawn = {}

        def draw_before(c, doc):
            for slot in SLOTS_BEFORE_BODY:
                if slot in by_slot:
                    self._draw_slot(c, by_slot[slot], drawn)

        def draw_after(c, doc):
            for slot in SLOTS_AFTER_BODY:
                if slot in by_slot:
                    self._draw_slot(c, by_slot[slot], drawn)

        pagination = {'page_count': 0, 'footer_pages': []}

        def overlay_footer(c, page_number, page_count):
            pagination['page_count'] = page_count
            if footer_reader is None:
                return
            try:
                c.drawImage(footer_reader, 0, 0, width=PAGE_W, height=footer_mm * mm, mask='auto')
            except Exception:
                logger.error(f"Footer overlay failed on page {page_number}", exc_info=True)
                return
            pagination['footer_pages'].append(page_number)

        buffer = io.BytesIO()
        doc = BaseDocTemplate(buffer, pagesize=A4, title=letter.title,
                              leftMargin=0, rightMargin=0, topMargin=0, bottomMargin=0)
        doc.addPageTemplates([
            PageTemplate(id='first', frames=[first_frame], onPage=draw_before, onPageEnd=draw_after),
            PageTemplate(id='later', frames=[later_frame]),
        ])

        story = [NextPageTemplate('later')]
        if content is not None:
            story.extend(body_flowables(content.html))
        if len(story) == 1:
            story.append(Spacer(1, 1))

        try:
            doc.build(story, canvasmaker=partial(_OverlayCanvas, overlay=overlay_footer))
        except Exception as e:
            logger.error(f"PDF build failed for '{letter.title}'", exc_info=True)
            raise ExportError(f"Failed to generate PDF: {e}") from e

        data = buffer.getvalue()
        return ExportResult(
            data=data,
            filename=f"{safe_filename(letter.title)}.pdf",
            mimetype='application/pdf',
            page_count=pagination['page_count'],
            header_pages=drawn.get('header', []),
            footer_pages=pagination['footer_pages'],
        )


def count_pdf_pages(data: bytes) -> int:
    """Number of page objects in an uncompressed reportlab PDF."""
    return len(_PAGE_OBJECT.findall(data))
