"""
Letter Layout and Rendering System

Positions the nine slots of a letter page, binds draft data to them, and
renders the result as an HTML preview, a paginated PDF or a DOCX file.

Usage:
    from services.letters import LetterAssembler, LayoutEditor, get_default_layout

    assembler = LetterAssembler(base_url=request.host_url)
    letter = assembler.build_letter(draft, draft.business, draft.recipient)
    layout = assembler.resolve_layout(draft.layout)
    pdf = assembler.export_pdf(letter, layout)
"""

from .types import (
    DEFAULT_LAYOUT,
    SLOTS,
    DraftStatus,
    ExportResult,
    LayoutConfig,
    LayoutItem,
    Letter,
    RenderedSlot,
    get_default_layout,
)

from .exceptions import (
    LetterError,
    LayoutError,
    MissingReferenceError,
    ExportError,
    ImageLoadError,
    SaveError,
)

from .geometry import (
    PAGE_WIDTH_MM,
    PAGE_HEIGHT_MM,
    REFERENCE_PAGE_WIDTH_PX,
    px_to_mm,
    mm_to_px,
    preview_scale,
)

from .assembler import LetterAssembler, DOCX_LAYOUT_WARNING
from .editor import LayoutEditor
from .autosave import AutosaveScheduler
from .client import DraftApiClient
from .images import ImageLoader, resolve_image_url

__all__ = [
    # Types
    'DEFAULT_LAYOUT',
    'SLOTS',
    'DraftStatus',
    'ExportResult',
    'LayoutConfig',
    'LayoutItem',
    'Letter',
    'RenderedSlot',
    'get_default_layout',

    # Exceptions
    'LetterError',
    'LayoutError',
    'MissingReferenceError',
    'ExportError',
    'ImageLoadError',
    'SaveError',

    # Geometry
    'PAGE_WIDTH_MM',
    'PAGE_HEIGHT_MM',
    'REFERENCE_PAGE_WIDTH_PX',
    'px_to_mm',
    'mm_to_px',
    'preview_scale',

    # Components
    'LetterAssembler',
    'DOCX_LAYOUT_WARNING',
    'LayoutEditor',
    'AutosaveScheduler',
    'DraftApiClient',
    'ImageLoader',
    'resolve_image_url',
]
