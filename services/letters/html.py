"""
HTML rendering of assembled letters.

Two outputs share the same slot data:
- the preview page: an A4 sheet with every slot absolutely positioned in mm
- the standalone document: the same slots in reading order with a minimal
  print stylesheet, which is what the DOCX conversion consumes
"""

from pathlib import Path
from typing import List

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .geometry import PAGE_HEIGHT_MM, PAGE_WIDTH_MM
from .types import Letter, RenderedSlot

TEMPLATES_DIR = Path(__file__).resolve().parents[2] / 'templates'

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(['html']),
    trim_blocks=True,
    lstrip_blocks=True,
)


def _mm(value) -> str:
    return f"{value:.2f}mm"


_env.filters['mm'] = _mm


def render_letter_html(letter: Letter, slots: List[RenderedSlot],
                       customizing: bool = False, scale: float = 1.0) -> str:
    """Render the positioned A4 preview page."""
    template = _env.get_template('letters/preview.html')
    return template.render(
        letter=letter,
        slots=slots,
        customizing=customizing,
        scale=scale,
        page_width=PAGE_WIDTH_MM,
        page_height=PAGE_HEIGHT_MM,
    )


def render_letter_document(letter: Letter, slots: List[RenderedSlot]) -> str:
    """Render a standalone HTML document for single-pass conversion."""
    template = _env.get_template('letters/document.html')
    return template.render(letter=letter, slots=slots)
