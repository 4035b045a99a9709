"""
Page geometry and coordinate conversion.

Layout positions are stored in millimeters relative to the top-left
corner of an A4 page. The editor works in screen pixels on a container
that may be visually scaled down, so every conversion goes through the
two functions below.
"""

PAGE_WIDTH_MM = 210.0
PAGE_HEIGHT_MM = 297.0

# 210mm at 96 DPI
REFERENCE_PAGE_WIDTH_PX = 794.0


def _check_geometry(container_width_px: float, scale: float) -> None:
    if container_width_px is None or container_width_px <= 0:
        raise ValueError(f"Container width must be positive, got {container_width_px!r}")
    if scale is None or scale <= 0:
        raise ValueError(f"Scale must be positive, got {scale!r}")


def px_to_mm(px: float, container_width_px: float, scale: float = 1.0) -> float:
    """
    Convert an on-screen pixel distance to page millimeters.

    The pixel distance is first divided by the display scale so that a
    gesture maps to the same mm distance at any zoom.

    Examples:
        px_to_mm(794, 794) -> 210.0
        px_to_mm(397, 794, scale=0.5) -> 210.0
    """
    _check_geometry(container_width_px, scale)
    return (px / scale) * (PAGE_WIDTH_MM / container_width_px)


def mm_to_px(mm: float, container_width_px: float, scale: float = 1.0) -> float:
    """Convert page millimeters to on-screen pixels (inverse of px_to_mm)."""
    _check_geometry(container_width_px, scale)
    return mm * (container_width_px / PAGE_WIDTH_MM) * scale


def preview_scale(available_px: float, reference_px: float = REFERENCE_PAGE_WIDTH_PX) -> float:
    """
    Uniform scale factor for showing the page in a narrower container.

    Never enlarges: the result is capped at 1.
    """
    if reference_px <= 0:
        raise ValueError(f"Reference width must be positive, got {reference_px!r}")
    if available_px is None or available_px <= 0:
        return 1.0
    return min(1.0, available_px / reference_px)
