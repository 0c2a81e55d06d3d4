"""Utility functions for value mapping in print submissions."""

from __future__ import annotations

from ..const import (
    DEFAULT_ALIGN,
    FONT_SIZE_LARGE_PT,
    FONT_SIZE_MEDIUM_PT,
    SIZE_CLASS_MULTIPLIERS,
    SIZE_LARGE,
    SIZE_MEDIUM,
    SIZE_SMALL,
)


def map_align(align: str | None, default: str = DEFAULT_ALIGN) -> str:
    """Map alignment string to escpos alignment value."""
    if not align:
        return default
    align = align.lower()
    if align in ("left", "center", "right"):
        return align
    # Short forms used by the node escpos API
    return {"lt": "left", "ct": "center", "rt": "right"}.get(align, default)


def map_underline(underline: bool | str | None) -> int:
    """Map an underline flag or name to escpos underline value."""
    if isinstance(underline, bool):
        return 1 if underline else 0
    mapping = {"none": 0, "single": 1, "double": 2}
    if not underline:
        return 0
    return mapping.get(underline.lower(), 0)


def map_multiplier(val: str | int | None) -> int:
    """Map multiplier string or int to escpos multiplier value (1-8).

    Accepts named sizes ("normal", "double", "triple") or numeric values
    (int or numeric string). Values are clamped to the 1-8 range supported
    by python-escpos custom_size.
    """
    if val is None:
        return 1
    if isinstance(val, int):
        return max(1, min(8, val))
    mapping = {"normal": 1, "double": 2, "triple": 3}
    named = mapping.get(str(val).lower())
    if named is not None:
        return named
    try:
        return max(1, min(8, int(val)))
    except (ValueError, TypeError):
        return 1


def size_class_for_point_size(point_size: int | float) -> str:
    """Map the editor's font size in points to a printer size class."""
    if point_size >= FONT_SIZE_LARGE_PT:
        return SIZE_LARGE
    if point_size >= FONT_SIZE_MEDIUM_PT:
        return SIZE_MEDIUM
    return SIZE_SMALL


def map_size_class(size_class: str | int | float | None) -> int:
    """Map a size class (or an editor point size) to a character multiplier."""
    if size_class is None:
        return SIZE_CLASS_MULTIPLIERS[SIZE_MEDIUM]
    if isinstance(size_class, (int, float)) and not isinstance(size_class, bool):
        size_class = size_class_for_point_size(size_class)
    key = str(size_class).lower()
    if key in SIZE_CLASS_MULTIPLIERS:
        return SIZE_CLASS_MULTIPLIERS[key]
    return map_multiplier(key)


def map_cut(mode: str | None) -> str | None:
    """Map cut mode string to escpos cut value."""
    if not mode:
        return None
    mode_l = mode.lower()
    if mode_l == "partial":
        return "PART"
    if mode_l == "full":
        return "FULL"
    return None
