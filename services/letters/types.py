"""
Letter System Type Definitions

Dataclasses for layouts, assembled letters, rendered slots and export
results. Layout items are mutable because the editor moves them; the
assembled letter is immutable once built.
"""

import copy
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .exceptions import LayoutError


class DraftStatus(Enum):
    """Lifecycle states of a draft."""
    DRAFT = "DRAFT"
    FINAL = "FINAL"


# Rendering order, back to front.
SLOTS = (
    'header',
    'ref',
    'date',
    'recipient',
    'subject',
    'content',
    'signatory',
    'seal',
    'footer',
)

DEFAULT_LAYOUT: Dict[str, Dict[str, float]] = {
    'header': {'x': 0, 'y': 0},
    'ref': {'x': 20, 'y': 50},
    'date': {'x': 140, 'y': 50},
    'recipient': {'x': 20, 'y': 70},
    'subject': {'x': 20, 'y': 110},
    'content': {'x': 20, 'y': 130},
    'seal': {'x': 150, 'y': 220},
    'signatory': {'x': 150, 'y': 250},
    'footer': {'x': 0, 'y': 280},
}


def _finite(value: Any, name: str, slot: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise LayoutError(f"{slot}.{name} must be a number, got {value!r}", slot=slot)
    if not math.isfinite(number):
        raise LayoutError(f"{slot}.{name} must be finite, got {value!r}", slot=slot)
    return number


@dataclass
class LayoutItem:
    """
    Position of one slot on the page.

    Attributes:
        x: Offset from the left page edge in mm (may be negative)
        y: Offset from the top page edge in mm (may exceed the page)
        w: Optional fixed width in mm
        hidden: Excluded from normal rendering when True
    """
    x: float
    y: float
    w: Optional[float] = None
    hidden: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], slot: str = '') -> 'LayoutItem':
        if not isinstance(data, Mapping):
            raise LayoutError(f"{slot} must be an object, got {type(data).__name__}", slot=slot)
        if 'x' not in data or 'y' not in data:
            raise LayoutError(f"{slot} requires both x and y", slot=slot)
        w = data.get('w')
        hidden = data.get('hidden', False)
        if not isinstance(hidden, bool):
            raise LayoutError(f"{slot}.hidden must be true or false, got {hidden!r}", slot=slot)
        return cls(
            x=_finite(data['x'], 'x', slot),
            y=_finite(data['y'], 'y', slot),
            w=_finite(w, 'w', slot) if w is not None else None,
            hidden=hidden,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'x': self.x, 'y': self.y}
        if self.w is not None:
            data['w'] = self.w
        if self.hidden:
            data['hidden'] = True
        return data


class LayoutConfig:
    """
    The nine named slots of a letter page.

    Every slot in SLOTS is always present. Keys outside SLOTS are ignored
    when loading, and there is no way to add new ones.
    """

    def __init__(self, items: Dict[str, LayoutItem]):
        missing = [slot for slot in SLOTS if slot not in items]
        if missing:
            raise LayoutError(f"Layout is missing slots: {', '.join(missing)}")
        self._items = {slot: items[slot] for slot in SLOTS}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]],
                  defaults: Mapping[str, Mapping[str, Any]] = DEFAULT_LAYOUT) -> 'LayoutConfig':
        """Build a layout from stored JSON, filling absent slots from defaults."""
        data = data or {}
        if not isinstance(data, Mapping):
            raise LayoutError("Layout must be an object")
        items = {}
        for slot in SLOTS:
            source = data.get(slot)
            if source is None:
                source = defaults.get(slot) or DEFAULT_LAYOUT[slot]
            items[slot] = LayoutItem.from_dict(source, slot)
        return cls(items)

    def __getitem__(self, slot: str) -> LayoutItem:
        try:
            return self._items[slot]
        except KeyError:
            raise LayoutError(f"Unknown layout slot: {slot!r}", slot=slot)

    def __iter__(self):
        return iter(SLOTS)

    def __len__(self):
        return len(SLOTS)

    def __eq__(self, other):
        if not isinstance(other, LayoutConfig):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def items(self):
        return [(slot, self._items[slot]) for slot in SLOTS]

    def copy(self) -> 'LayoutConfig':
        return LayoutConfig(copy.deepcopy(self._items))

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {slot: self._items[slot].to_dict() for slot in SLOTS}

    def __repr__(self):
        return f'<LayoutConfig {self.to_dict()}>'


def get_default_layout(table: Mapping[str, Mapping[str, Any]] = DEFAULT_LAYOUT) -> LayoutConfig:
    """Fresh copy of the baseline layout. Nothing hidden."""
    return LayoutConfig.from_dict({}, defaults=table)


@dataclass(frozen=True)
class Letter:
    """
    Draft data resolved against its business and recipient, ready to render.

    Text fields are already formatted (date as 'dd MMMM, yyyy').
    """
    title: str
    ref_no: str
    date_text: str
    subject: str
    content_html: str
    business_name: str
    recipient_name: str
    recipient_address: str
    recipient_contact_person: Optional[str] = None
    header_image: Optional[str] = None
    footer_image: Optional[str] = None
    seal_image: Optional[str] = None
    include_seal: bool = False


@dataclass(frozen=True)
class RenderedSlot:
    """
    One slot resolved to content and position.

    kind is one of: 'image', 'placeholder', 'text', 'html', 'signatory',
    'recipient'. lines holds the text lines for text-like kinds; src holds
    the image URL for 'image'.
    """
    slot: str
    kind: str
    item: LayoutItem
    lines: List[str] = field(default_factory=list)
    src: Optional[str] = None
    html: Optional[str] = None
    underline: bool = False
    marked_hidden: bool = False


@dataclass
class ExportResult:
    """Output of a PDF or DOCX export."""
    data: bytes
    filename: str
    mimetype: str
    page_count: int = 1
    header_pages: List[int] = field(default_factory=list)
    footer_pages: List[int] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
