from __future__ import annotations

import re

from postersmith.errors import InvalidInputError
from postersmith.models import RgbaColor

_HEX_RE = re.compile(r"^#([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$")
_RGBA_RE = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*(\d*\.?\d+)\s*)?\)$"
)


def is_valid_hex_color(color: object) -> bool:
    return isinstance(color, str) and _HEX_RE.match(color) is not None


def hex_to_rgb(color: str) -> tuple[int, int, int]:
    match = _HEX_RE.match(color) if isinstance(color, str) else None
    if match is None:
        raise InvalidInputError(f"Invalid hex color format: {color}. Expected format: #rrggbb")
    return (int(match.group(1), 16), int(match.group(2), 16), int(match.group(3), 16))


def hex_to_rgba(color: str) -> RgbaColor:
    r, g, b = hex_to_rgb(color)
    return RgbaColor(r=r, g=g, b=b, alpha=1.0)


def parse_rgba_color(color: object) -> RgbaColor | None:
    """Parse ``rgba(r,g,b,a)`` / ``rgb(r,g,b)``; returns None instead of raising."""
    if not isinstance(color, str):
        return None
    match = _RGBA_RE.match(color.strip())
    if match is None:
        return None
    r, g, b = (int(match.group(index)) for index in (1, 2, 3))
    alpha = float(match.group(4)) if match.group(4) is not None else 1.0
    if max(r, g, b) > 255 or not 0.0 <= alpha <= 1.0:
        return None
    return RgbaColor(r=r, g=g, b=b, alpha=alpha)


def is_valid_color(color: object) -> bool:
    return is_valid_hex_color(color) or parse_rgba_color(color) is not None


def parse_color(color: str) -> RgbaColor:
    rgba = parse_rgba_color(color)
    if rgba is not None:
        return rgba
    if not is_valid_hex_color(color):
        raise InvalidInputError(
            f"Invalid color: {color}. Expected format: #rrggbb or rgba(r,g,b,a)"
        )
    return hex_to_rgba(color)


def to_css_rgba(color: RgbaColor) -> str:
    alpha = f"{color.alpha:g}"
    return f"rgba({color.r},{color.g},{color.b},{alpha})"
