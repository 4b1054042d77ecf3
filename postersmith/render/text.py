"""Text layers: validation, auto-fit sizing, layout and rendering.

Every layer is first resolved into a :class:`TextPlan` (final text, size,
baseline anchor and font). A plan can be drawn directly with Pillow (the
``"raster"`` renderer) or turned into an SVG document with
:func:`build_text_svg` and rasterised by cairosvg (the ``"svg"`` renderer).
"""
from __future__ import annotations

import base64
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from postersmith.constants import (
    AVG_CHAR_WIDTH_RATIO,
    MAX_BLUR,
    MAX_FONT_SIZE,
    MAX_LETTER_SPACING,
    MAX_STROKE_WIDTH,
    MIN_FONT_SIZE,
    TEXT_ALIGNS,
    TEXT_TRANSFORMS,
)
from postersmith.errors import PROGRAMMING_ERRORS, ImageProcessingError, InvalidInputError
from postersmith.models import TextLayer, TextShadow, TextStyle
from postersmith.render import raster
from postersmith.render.color import hex_to_rgba, is_valid_color, is_valid_hex_color, parse_color, to_css_rgba
from postersmith.render.fonts import DEFAULT_REGISTRY, FontRegistry, get_default_font
from postersmith.render.geometry import resolve_text_anchor
from postersmith.render.svg import (
    SvgDocument,
    element,
    escape_font_family,
    escape_xml,
    rasterize_svg,
)

LOGGER = logging.getLogger(__name__)

RENDERERS = ("raster", "svg")

_ALIGN_ANCHORS = {"left": "start", "center": "middle", "right": "end"}
_PIL_ANCHORS = {"start": "ls", "middle": "ms", "end": "rs"}
_WORD_START = re.compile(r"\b\w")


@dataclass(slots=True)
class TextPlan:
    text: str
    font_size: float
    x: float
    y: float
    anchor: str
    font_family: str
    font_data: bytes | None
    style: TextStyle

    @property
    def letter_spacing(self) -> float:
        return self.style.letter_spacing or 0


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_style(style: TextStyle) -> None:
    if not isinstance(style.font_family, str) or not style.font_family.strip():
        raise InvalidInputError("Font family must be a non-empty string")
    if not _is_number(style.font_size) or style.font_size < MIN_FONT_SIZE:
        raise InvalidInputError(f"Font size must be at least {MIN_FONT_SIZE}px")
    if style.font_size > MAX_FONT_SIZE:
        raise InvalidInputError(f"Font size exceeds maximum of {MAX_FONT_SIZE}px")
    if not is_valid_hex_color(style.color):
        raise InvalidInputError(f"Invalid text color: {style.color}. Expected format: #rrggbb")
    if style.align is not None and style.align not in TEXT_ALIGNS:
        raise InvalidInputError(f"Invalid text align: {style.align}. Expected one of: {', '.join(TEXT_ALIGNS)}")
    if style.text_transform is not None and style.text_transform not in TEXT_TRANSFORMS:
        raise InvalidInputError(
            f"Invalid text transform: {style.text_transform}. Expected one of: {', '.join(TEXT_TRANSFORMS)}"
        )

    if style.letter_spacing is not None:
        if not _is_number(style.letter_spacing):
            raise InvalidInputError("Letter spacing must be a number")
        if abs(style.letter_spacing) > MAX_LETTER_SPACING:
            raise InvalidInputError(f"Letter spacing exceeds maximum of {MAX_LETTER_SPACING}px")

    stroke = style.stroke
    if stroke is not None:
        if not _is_number(stroke.width) or stroke.width < 0:
            raise InvalidInputError("Stroke width must be non-negative")
        if stroke.width > MAX_STROKE_WIDTH:
            raise InvalidInputError(f"Stroke width exceeds maximum of {MAX_STROKE_WIDTH}px")
        if not is_valid_hex_color(stroke.color):
            raise InvalidInputError(f"Invalid stroke color: {stroke.color}. Expected format: #rrggbb")

    shadow = style.shadow
    if shadow is not None:
        if not _is_number(shadow.blur) or shadow.blur < 0:
            raise InvalidInputError("Shadow blur must be non-negative")
        if shadow.blur > MAX_BLUR:
            raise InvalidInputError(f"Shadow blur exceeds maximum of {MAX_BLUR}px")
        if not _is_number(shadow.offset_x) or not _is_number(shadow.offset_y):
            raise InvalidInputError("Shadow offsets must be numbers")
        if not is_valid_color(shadow.color):
            raise InvalidInputError(
                f"Invalid shadow color: {shadow.color}. Expected format: #rrggbb or rgba(r,g,b,a)"
            )

    if style.max_width is not None and (not _is_number(style.max_width) or style.max_width <= 0):
        raise InvalidInputError("maxWidth must be positive")


def apply_text_transform(text: str, transform: str | None) -> str:
    if transform == "uppercase":
        return text.upper()
    if transform == "lowercase":
        return text.lower()
    if transform == "capitalize":
        return _WORD_START.sub(lambda match: match.group(0).upper(), text)
    return text


def estimate_text_width(text: str, font_size: float, letter_spacing: float = 0) -> float:
    if not text:
        return 0.0
    return len(text) * font_size * AVG_CHAR_WIDTH_RATIO + (len(text) - 1) * letter_spacing


def fit_font_size(text: str, font_size: float, max_width: float, letter_spacing: float = 0) -> float:
    """Shrink ``font_size`` one pixel at a time until the estimated width fits."""
    size = font_size
    while size > MIN_FONT_SIZE:
        if estimate_text_width(text, size, letter_spacing) <= max_width:
            break
        size -= 1
    size = max(size, MIN_FONT_SIZE)
    if size < font_size:
        LOGGER.debug("font size reduced from %s to %s to fit max width %s", font_size, size, max_width)
    return size


def _coerce_layer(layer: TextLayer | Mapping[str, Any]) -> TextLayer:
    if isinstance(layer, TextLayer):
        return layer
    return TextLayer.from_dict(layer)


def plan_text_layer(
    layer: TextLayer | Mapping[str, Any],
    canvas_size: tuple[int, int],
    strict_font: bool = False,
    fonts: FontRegistry | None = None,
) -> TextPlan:
    layer = _coerce_layer(layer)
    style = layer.style
    validate_style(style)
    registry = fonts or DEFAULT_REGISTRY

    font_data = registry.get_font(style.font_family)
    if font_data is None:
        if strict_font:
            raise InvalidInputError(
                f"Font '{style.font_family}' is not registered. "
                "Register it with register_font() or init_bundled_fonts() before use."
            )
        LOGGER.warning("font %s is not registered, using fallback %s", style.font_family, get_default_font())

    text = apply_text_transform(layer.content, style.text_transform)
    font_size = style.font_size
    if style.max_width:
        font_size = fit_font_size(text, font_size, style.max_width, style.letter_spacing or 0)

    x, y = resolve_text_anchor(layer.position, canvas_size, font_size)
    return TextPlan(
        text=text,
        font_size=font_size,
        x=x,
        y=y,
        anchor=_ALIGN_ANCHORS.get(style.align or "left", "start"),
        font_family=style.font_family if font_data is not None else get_default_font(),
        font_data=font_data,
        style=style,
    )


def build_text_svg(plan: TextPlan, canvas_size: tuple[int, int], shadow_filter: bool = True) -> str:
    """Escaped SVG document drawing a single planned text layer.

    With ``shadow_filter=False`` the shadow is left out of the markup so the
    caller can composite it from the rasterised glyphs.
    """
    width, height = canvas_size
    document = SvgDocument(width, height)
    family = escape_font_family(plan.font_family)
    style = plan.style

    if plan.font_data is not None:
        encoded = base64.b64encode(plan.font_data).decode("ascii")
        document.add_style(
            f"@font-face {{ font-family: '{family}'; "
            f"src: url('data:font/truetype;base64,{encoded}') format('truetype'); }}"
        )

    filter_ref = None
    if style.shadow is not None and shadow_filter:
        shadow_color = to_css_rgba(parse_color(style.shadow.color))
        document.add_def(
            element(
                "filter",
                element(
                    "feDropShadow",
                    dx=style.shadow.offset_x,
                    dy=style.shadow.offset_y,
                    stdDeviation=style.shadow.blur / 2,
                    flood_color=shadow_color,
                ),
                id="shadow",
                x="-50%",
                y="-50%",
                width="200%",
                height="200%",
            )
        )
        filter_ref = "url(#shadow)"

    common = {
        "x": plan.x,
        "y": plan.y,
        "font_family": f"'{family}'",
        "font_size": plan.font_size,
        "text_anchor": plan.anchor,
        "letter_spacing": plan.letter_spacing,
    }
    content = escape_xml(plan.text)
    if style.stroke is not None and style.stroke.width > 0:
        outline = element(
            "tspan",
            content,
            stroke=style.stroke.color,
            stroke_width=style.stroke.width * 2,
            fill=style.stroke.color,
            stroke_linejoin="round",
        )
        document.add(element("text", outline, filter=filter_ref, **common))
        document.add(element("text", content, fill=style.color, **common))
    else:
        document.add(element("text", content, fill=style.color, filter=filter_ref, **common))
    return document.to_string()


def _pil_font(plan: TextPlan, registry: FontRegistry) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    size = max(MIN_FONT_SIZE, int(round(plan.font_size)))
    if plan.font_data is not None:
        return registry.load_truetype(plan.style.font_family, size)
    return registry.load_truetype(get_default_font(), size)


def _draw_run(
    draw: ImageDraw.ImageDraw,
    plan: TextPlan,
    font: ImageFont.FreeTypeFont | ImageFont.ImageFont,
    **kwargs: Any,
) -> None:
    spacing = plan.letter_spacing
    if not spacing or len(plan.text) < 2:
        draw.text((plan.x, plan.y), plan.text, font=font, anchor=_PIL_ANCHORS[plan.anchor], **kwargs)
        return

    advances = [font.getlength(char) for char in plan.text]
    total = sum(advances) + spacing * (len(plan.text) - 1)
    cursor = plan.x
    if plan.anchor == "middle":
        cursor -= total / 2
    elif plan.anchor == "end":
        cursor -= total
    for char, advance in zip(plan.text, advances):
        draw.text((cursor, plan.y), char, font=font, anchor="ls", **kwargs)
        cursor += advance + spacing


def render_plan(plan: TextPlan, canvas_size: tuple[int, int], fonts: FontRegistry | None = None) -> Image.Image:
    """Draw a planned text layer with Pillow onto a transparent canvas."""
    registry = fonts or DEFAULT_REGISTRY
    font = _pil_font(plan, registry)
    style = plan.style
    glyphs = raster.transparent(canvas_size)
    draw = ImageDraw.Draw(glyphs)

    if style.stroke is not None and style.stroke.width > 0:
        stroke_rgb = hex_to_rgba(style.stroke.color).as_tuple()
        _draw_run(
            draw,
            plan,
            font,
            fill=stroke_rgb,
            stroke_width=max(1, int(round(style.stroke.width))),
            stroke_fill=stroke_rgb,
        )
    _draw_run(draw, plan, font, fill=hex_to_rgba(style.color).as_tuple())

    if style.shadow is None:
        return glyphs
    return drop_shadow(glyphs, style.shadow)


def drop_shadow(glyphs: Image.Image, shadow: TextShadow) -> Image.Image:
    """Draw ``glyphs`` over a blurred, offset copy of their coverage."""
    offset = (int(round(shadow.offset_x)), int(round(shadow.offset_y)))
    coverage = Image.new("L", glyphs.size, 0)
    coverage.paste(glyphs.getchannel("A"), offset)
    if shadow.blur > 0:
        coverage = coverage.filter(ImageFilter.GaussianBlur(radius=shadow.blur / 2))
    layer = raster.solid_shape(coverage, parse_color(shadow.color))
    layer.alpha_composite(glyphs)
    return layer


def _check_svg_plan(plan: TextPlan) -> None:
    # cairosvg picks faces by family name and never loads @font-face data
    if plan.font_data is not None:
        raise InvalidInputError(
            f"Font '{plan.style.font_family}' is a registered font file; the svg renderer cannot "
            "embed it. Use the raster renderer."
        )


def render_plan_svg(plan: TextPlan, canvas_size: tuple[int, int]) -> Image.Image:
    """Rasterise a planned text layer through cairosvg.

    The shadow is composited here rather than by an SVG filter, which cairosvg
    does not implement.
    """
    markup = build_text_svg(plan, canvas_size, shadow_filter=False)
    glyphs = rasterize_svg(markup, canvas_size[0], canvas_size[1])
    if plan.style.shadow is None:
        return glyphs
    return drop_shadow(glyphs, plan.style.shadow)


def add_text(
    image: Image.Image,
    layers: Iterable[TextLayer | Mapping[str, Any]],
    strict_font: bool = False,
    fonts: FontRegistry | None = None,
    renderer: str = "raster",
) -> Image.Image:
    """Draw text layers onto a copy of ``image`` in list order."""
    if renderer not in RENDERERS:
        raise InvalidInputError(f"Unknown text renderer: {renderer}. Expected one of: {', '.join(RENDERERS)}")
    layers = list(layers or [])
    result = raster.ensure_rgba(image)
    if not layers:
        return result

    LOGGER.debug("adding %d text layer(s)", len(layers))
    try:
        plans = [plan_text_layer(layer, result.size, strict_font=strict_font, fonts=fonts) for layer in layers]
        if renderer == "svg":
            for plan in plans:
                _check_svg_plan(plan)
        for plan in plans:
            if renderer == "svg":
                rendered = render_plan_svg(plan, result.size)
            else:
                rendered = render_plan(plan, result.size, fonts)
            result.alpha_composite(rendered)
    except (InvalidInputError, ImageProcessingError, *PROGRAMMING_ERRORS):
        raise
    except Exception as exc:
        LOGGER.error("adding text failed: %s", exc)
        raise ImageProcessingError(f"Failed to add text: {exc}") from exc
    return result