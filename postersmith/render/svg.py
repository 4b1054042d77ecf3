"""Minimal SVG markup builder.

The text renderer and the canvas generator describe their output as SVG so it
can be exported or rasterised by cairosvg. Everything that ends up inside the
markup goes through :func:`escape_xml` or :func:`escape_font_family` first;
text content is untrusted user input.
"""
from __future__ import annotations

import io
import logging
import re
from typing import Any
from xml.sax.saxutils import escape

from PIL import Image

from postersmith.errors import ImageProcessingError

LOGGER = logging.getLogger(__name__)

SVG_NAMESPACE = "http://www.w3.org/2000/svg"

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}
# attribute values are always double-quoted
_ATTR_ENTITIES = {'"': "&quot;"}
_FONT_FAMILY_UNSAFE = re.compile(r"['\"<>&;{}\\]")


def escape_xml(text: str) -> str:
    return escape(str(text), _XML_ENTITIES)


def escape_font_family(font_family: str) -> str:
    """Drop characters that could break out of an attribute or a CSS block."""
    return _FONT_FAMILY_UNSAFE.sub("", str(font_family))


def format_number(value: float) -> str:
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return f"{number:.4f}".rstrip("0").rstrip(".")


def _attr_name(name: str) -> str:
    # python keyword-safe names: font_family -> font-family, stdDeviation stays
    return name.rstrip("_").replace("_", "-")


def _attr_value(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    return escape(str(value), _ATTR_ENTITIES)


def element(tag: str, content: str | None = None, **attrs: Any) -> str:
    rendered = "".join(
        f' {_attr_name(name)}="{_attr_value(value)}"'
        for name, value in attrs.items()
        if value is not None
    )
    if content is None:
        return f"<{tag}{rendered}/>"
    return f"<{tag}{rendered}>{content}</{tag}>"


class SvgDocument:
    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self._styles: list[str] = []
        self._defs: list[str] = []
        self._body: list[str] = []

    def add_style(self, css: str) -> None:
        self._styles.append(css)

    def add_def(self, markup: str) -> None:
        self._defs.append(markup)

    def add(self, markup: str) -> None:
        self._body.append(markup)

    def to_string(self) -> str:
        parts = [
            f'<svg width="{self.width}" height="{self.height}" '
            f'viewBox="0 0 {self.width} {self.height}" xmlns="{SVG_NAMESPACE}">'
        ]
        if self._styles or self._defs:
            parts.append("<defs>")
            if self._styles:
                parts.append(f"<style>{''.join(self._styles)}</style>")
            parts.extend(self._defs)
            parts.append("</defs>")
        parts.extend(self._body)
        parts.append("</svg>")
        return "\n".join(parts)


def rasterize_svg(markup: str | bytes, width: int, height: int) -> Image.Image:
    """Rasterise SVG markup to an RGBA image using cairosvg."""
    try:
        import cairosvg
    except (ImportError, OSError) as exc:
        raise ImageProcessingError(
            "SVG rasterizer is unavailable. Install cairosvg (`pip install postersmith[svg]`) "
            f"and the cairo library. Details: {exc}"
        ) from exc

    data = markup.encode("utf-8") if isinstance(markup, str) else markup
    png = cairosvg.svg2png(bytestring=data, output_width=width, output_height=height)
    with Image.open(io.BytesIO(png)) as image:
        LOGGER.debug("rasterized svg %sx%s", width, height)
        return image.convert("RGBA")
