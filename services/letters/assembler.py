"""
Letter Assembler

Binds draft, business and recipient data to the nine layout slots and
hands the result to the HTML, PDF and DOCX renderers.

Usage:
    assembler = LetterAssembler(default_layout=DEFAULT_LAYOUT, base_url=request.host_url)
    letter = assembler.build_letter(draft, draft.business, draft.recipient)
    layout = assembler.resolve_layout(draft.layout)
    html = assembler.render_html(letter, layout)
    result = assembler.export_pdf(letter, layout)
"""

import logging
from typing import Any, List, Mapping, Optional

import bleach
from bleach.css_sanitizer import CSSSanitizer

from utils import format_letter_date
from .exceptions import MissingReferenceError
from .images import ImageLoader, resolve_image_url
from .types import (
    DEFAULT_LAYOUT, SLOTS, ExportResult, LayoutConfig, Letter, RenderedSlot
)

logger = logging.getLogger(__name__)

ALLOWED_TAGS = [
    'p', 'br', 'strong', 'b', 'em', 'i', 'u', 's', 'strike', 'a', 'span',
    'ul', 'ol', 'li', 'h1', 'h2', 'h3', 'blockquote', 'pre', 'code',
]
ALLOWED_ATTRS = {
    'a': ['href', 'title', 'target'],
    'span': ['style'],
    'p': ['style', 'class'],
    'li': ['class'],
}
CSS_SANITIZER = CSSSanitizer(allowed_css_properties=['text-align'])

DOCX_LAYOUT_WARNING = "Custom layouts may not translate exactly to DOCX."


class LetterAssembler:
    """
    Resolves drafts into renderable letters.

    Args:
        default_layout: Table of slot -> {x, y} used when a draft has no
            saved layout (or is missing slots)
        base_url: Prefix for relative image URLs
        sanitize_html: Clean the draft body with bleach before rendering.
            Off by default, the body is rendered verbatim.
        image_loader: Fetcher used by the PDF export for image bytes/sizes
    """

    def __init__(self, default_layout: Mapping[str, Mapping[str, Any]] = DEFAULT_LAYOUT,
                 base_url: Optional[str] = None, sanitize_html: bool = False,
                 image_loader: Optional[ImageLoader] = None):
        self.default_layout = default_layout
        self.base_url = base_url
        self.sanitize_html = sanitize_html
        self.image_loader = image_loader or ImageLoader(base_url=base_url)

    def resolve_layout(self, stored: Optional[Mapping[str, Any]]) -> LayoutConfig:
        """Saved draft layout, or the default one when nothing was saved."""
        return LayoutConfig.from_dict(stored, defaults=self.default_layout)

    def build_letter(self, draft, business, recipient) -> Letter:
        """
        Resolve a draft against its business and recipient.

        Raises:
            MissingReferenceError: If business or recipient is not set.
        """
        if business is None:
            raise MissingReferenceError(
                "Draft has no Business selected. Please edit and select a business.",
                reference='business'
            )
        if recipient is None:
            raise MissingReferenceError(
                "Draft has no Recipient selected. Please edit and select a recipient.",
                reference='recipient'
            )

        content = draft.content or ''
        if self.sanitize_html:
            content = bleach.clean(content, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRS,
                                   css_sanitizer=CSS_SANITIZER, strip=True)

        return Letter(
            title=draft.subject or 'letter',
            ref_no=draft.ref_no or '',
            date_text=format_letter_date(draft.date),
            subject=draft.subject or '',
            content_html=content,
            business_name=business.name or '',
            recipient_name=recipient.name or '',
            recipient_address=recipient.address or '',
            recipient_contact_person=getattr(recipient, 'contact_person', None) or None,
            header_image=resolve_image_url(getattr(business, 'header_image', None), self.base_url),
            footer_image=resolve_image_url(getattr(business, 'footer_image', None), self.base_url),
            seal_image=resolve_image_url(getattr(business, 'seal_url', None), self.base_url),
            include_seal=bool(draft.include_seal),
        )

    def _bind(self, slot: str, letter: Letter, item, marked: bool) -> Optional[RenderedSlot]:
        if slot == 'header':
            if letter.header_image:
                return RenderedSlot(slot, 'image', item, src=letter.header_image, marked_hidden=marked)
            return RenderedSlot(slot, 'placeholder', item, lines=['Header image'], marked_hidden=marked)
        if slot == 'ref':
            return RenderedSlot(slot, 'text', item, lines=[f"Ref: {letter.ref_no}"], marked_hidden=marked)
        if slot == 'date':
            return RenderedSlot(slot, 'text', item, lines=[f"Date: {letter.date_text}"], marked_hidden=marked)
        if slot == 'recipient':
            lines = ['To,', letter.recipient_name]
            if letter.recipient_contact_person:
                lines.append(letter.recipient_contact_person)
            lines.extend(letter.recipient_address.splitlines() or [''])
            return RenderedSlot(slot, 'recipient', item, lines=lines, marked_hidden=marked)
        if slot == 'subject':
            return RenderedSlot(slot, 'text', item, lines=[f"Subject: {letter.subject}"],
                                underline=True, marked_hidden=marked)
        if slot == 'content':
            return RenderedSlot(slot, 'html', item, html=letter.content_html, marked_hidden=marked)
        if slot == 'signatory':
            return RenderedSlot(slot, 'signatory', item,
                                lines=[f"For {letter.business_name}", 'Authorized Signatory'],
                                marked_hidden=marked)
        if slot == 'seal':
            if letter.include_seal and letter.seal_image:
                return RenderedSlot(slot, 'image', item, src=letter.seal_image, marked_hidden=marked)
            return None
        if slot == 'footer':
            if letter.footer_image:
                return RenderedSlot(slot, 'image', item, src=letter.footer_image, marked_hidden=marked)
            return None
        return None

    def render_slots(self, letter: Letter, layout: LayoutConfig,
                     customizing: bool = False) -> List[RenderedSlot]:
        """
        Populate every visible slot.

        Hidden slots are dropped in normal mode. In customization mode they
        are kept and marked so the user can select and unhide them.
        """
        rendered = []
        for slot in SLOTS:
            item = layout[slot]
            if item.hidden and not customizing:
                continue
            bound = self._bind(slot, letter, item, marked=item.hidden)
            if bound is not None:
                rendered.append(bound)
        return rendered

    def render_html(self, letter: Letter, layout: LayoutConfig,
                    customizing: bool = False, scale: float = 1.0) -> str:
        from .html import render_letter_html
        slots = self.render_slots(letter, layout, customizing=customizing)
        return render_letter_html(letter, slots, customizing=customizing, scale=scale)

    def export_pdf(self, letter: Letter, layout: LayoutConfig) -> ExportResult:
        from .pdf_export import PdfExporter
        slots = self.render_slots(letter, layout)
        return PdfExporter(self.image_loader).export(letter, slots)

    def export_docx(self, letter: Letter, layout: LayoutConfig) -> ExportResult:
        from .docx_export import DocxExporter
        from .html import render_letter_document
        slots = self.render_slots(letter, layout)
        html = render_letter_document(letter, slots)
        result = DocxExporter(self.image_loader).export(letter, html)
        result.warnings.append(DOCX_LAYOUT_WARNING)
        logger.info(f"DOCX export for '{letter.title}' is best-effort: {DOCX_LAYOUT_WARNING}")
        return result
