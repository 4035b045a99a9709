"""
Layout Editor

Session state for interactive layout customization: which slot is being
dragged, the last pointer position, and the container geometry used to
turn pixel movement into millimeters.

Usage:
    editor = LayoutEditor(draft_layout, gateway=DraftApiClient(url, token))
    editor.customizing = True
    editor.set_container(width_px=600, scale=0.75)
    editor.begin_drag('seal', (100, 200))
    editor.on_drag_move('seal', (112, 190))
    editor.end_drag()
    editor.persist(draft_id)
"""

import logging
from typing import Any, Mapping, Optional, Tuple

from .exceptions import LayoutError, SaveError
from .geometry import REFERENCE_PAGE_WIDTH_PX, px_to_mm
from .types import DEFAULT_LAYOUT, SLOTS, LayoutConfig, get_default_layout

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class LayoutEditor:
    """
    Drag, hide and reset the nine slots of a letter layout.

    Drags are incremental: each move adds the delta since the previous
    pointer position, so a sequence of small moves lands exactly where one
    large move would. Positions are never clamped to the page.
    """

    def __init__(self, layout: Optional[LayoutConfig] = None,
                 default_layout: Mapping[str, Mapping[str, Any]] = DEFAULT_LAYOUT,
                 gateway=None,
                 container_width_px: float = REFERENCE_PAGE_WIDTH_PX,
                 scale: float = 1.0,
                 customizing: bool = False):
        self.default_layout = default_layout
        self.layout = layout.copy() if layout is not None else get_default_layout(default_layout)
        self.gateway = gateway
        self.container_width_px = container_width_px
        self.scale = scale
        self.customizing = customizing
        self.active_slot: Optional[str] = None
        self._last_pointer: Optional[Point] = None

    @staticmethod
    def _check_slot(slot: str) -> None:
        if slot not in SLOTS:
            raise LayoutError(f"Unknown layout slot: {slot!r}", slot=slot)

    def set_container(self, width_px: float, scale: float = 1.0) -> None:
        """Record the rendered container width and the display scale applied to it."""
        if width_px <= 0 or scale <= 0:
            raise ValueError("Container width and scale must be positive")
        self.container_width_px = width_px
        self.scale = scale

    def begin_drag(self, slot: str, pointer_px: Point) -> None:
        self._check_slot(slot)
        if not self.customizing:
            return
        self.active_slot = slot
        self._last_pointer = (float(pointer_px[0]), float(pointer_px[1]))

    def on_drag_move(self, slot: str, pointer_px: Point) -> None:
        """Move the dragged slot by the pointer delta since the last event."""
        self._check_slot(slot)
        if self.active_slot != slot or self._last_pointer is None:
            return

        px, py = float(pointer_px[0]), float(pointer_px[1])
        dx = px - self._last_pointer[0]
        dy = py - self._last_pointer[1]

        item = self.layout[slot]
        item.x += px_to_mm(dx, self.container_width_px, self.scale)
        item.y += px_to_mm(dy, self.container_width_px, self.scale)
        self._last_pointer = (px, py)

    def end_drag(self) -> None:
        self.active_slot = None
        self._last_pointer = None

    def toggle_hidden(self, slot: str) -> bool:
        """Flip the hidden flag of a slot and return the new value."""
        item = self.layout[slot]
        item.hidden = not item.hidden
        return item.hidden

    def reset_layout(self) -> LayoutConfig:
        """Discard every drag and hidden flag."""
        self.end_drag()
        self.layout = get_default_layout(self.default_layout)
        return self.layout

    def persist(self, draft_id) -> Any:
        """
        Save the full layout onto the draft.

        Raises:
            SaveError: When no gateway is configured or the save fails.
                Callers show this to the user.
        """
        if self.gateway is None:
            raise SaveError("No draft gateway configured for saving the layout")
        try:
            return self.gateway.save_layout(draft_id, self.layout.to_dict())
        except SaveError:
            logger.error(f"Saving layout for draft {draft_id} failed", exc_info=True)
            raise
