"""Background generation: solid fills and linear/radial gradients.

Gradients follow SVG ``objectBoundingBox`` semantics: positions are sampled at
pixel centres in unit-square space, colours outside the first/last stop are
padded, and a stop placed before its predecessor is clamped to it.
"""
from __future__ import annotations

import logging
from typing import Any

import numpy as np
from PIL import Image

from postersmith.constants import (
    GRADIENT_DIRECTIONS,
    MAX_DIMENSION,
    MAX_GRADIENT_STOPS,
    MIN_DIMENSION,
    MIN_GRADIENT_STOPS,
)
from postersmith.errors import InvalidInputError
from postersmith.models import Fill, GradientFill, GradientStop, SolidFill, coerce_fill
from postersmith.render.color import hex_to_rgb, is_valid_hex_color
from postersmith.render.svg import SvgDocument, element, format_number

LOGGER = logging.getLogger(__name__)

_LINEAR_VECTORS = {
    "to-bottom": ("0%", "0%", "0%", "100%"),
    "to-right": ("0%", "0%", "100%", "0%"),
    "to-bottom-right": ("0%", "0%", "100%", "100%"),
}


def _check_dimension(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"Canvas {name} must be an integer, got: {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise InvalidInputError(f"Canvas {name} must be an integer, got: {value}")
    number = int(value)
    if not MIN_DIMENSION <= number <= MAX_DIMENSION:
        raise InvalidInputError(
            f"Canvas {name} must be between {MIN_DIMENSION} and {MAX_DIMENSION}, got: {value}"
        )
    return number


def _check_hex(color: Any, context: str) -> tuple[int, int, int]:
    if not is_valid_hex_color(color):
        raise InvalidInputError(f"Invalid {context} color: {color}. Expected format: #rrggbb")
    return hex_to_rgb(color)


def _check_stops(fill: GradientFill) -> list[GradientStop]:
    if fill.direction not in GRADIENT_DIRECTIONS:
        raise InvalidInputError(
            f"Unknown gradient direction: {fill.direction}. "
            f"Expected one of: {', '.join(GRADIENT_DIRECTIONS)}"
        )
    stops = list(fill.stops)
    if not MIN_GRADIENT_STOPS <= len(stops) <= MAX_GRADIENT_STOPS:
        raise InvalidInputError(
            f"Gradient requires {MIN_GRADIENT_STOPS} to {MAX_GRADIENT_STOPS} stops, got {len(stops)}"
        )
    for index, stop in enumerate(stops):
        position = stop.position
        if isinstance(position, bool) or not isinstance(position, (int, float)) or not 0 <= position <= 100:
            raise InvalidInputError(
                f"Gradient stop {index} position must be between 0 and 100, got: {position!r}"
            )
        _check_hex(stop.color, f"gradient stop {index}")
    return stops


def _stop_arrays(stops: list[GradientStop]) -> tuple[np.ndarray, np.ndarray]:
    offsets = np.maximum.accumulate(np.array([stop.position / 100.0 for stop in stops], dtype=np.float64))
    colors = np.array([hex_to_rgb(stop.color) for stop in stops], dtype=np.float64)
    return offsets, colors


def _gradient_field(direction: str, width: int, height: int) -> np.ndarray:
    u = (np.arange(width, dtype=np.float64) + 0.5) / width
    v = (np.arange(height, dtype=np.float64) + 0.5) / height
    uu, vv = np.meshgrid(u, v)
    if direction == "to-bottom":
        return vv
    if direction == "to-right":
        return uu
    if direction == "to-bottom-right":
        return (uu + vv) / 2.0
    # radial: centre 50%/50%, radius 50% of each axis
    distance = np.hypot((uu - 0.5) / 0.5, (vv - 0.5) / 0.5)
    return np.minimum(distance, 1.0)


def render_gradient(fill: GradientFill, width: int, height: int) -> Image.Image:
    stops = _check_stops(fill)
    offsets, colors = _stop_arrays(stops)
    t = _gradient_field(fill.direction, width, height)
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    for channel in range(3):
        values = np.interp(t, offsets, colors[:, channel])
        pixels[..., channel] = np.clip(np.rint(values), 0, 255).astype(np.uint8)
    pixels[..., 3] = 255
    return Image.fromarray(pixels)


def create_canvas(width: int, height: int, fill: Fill | dict[str, Any]) -> Image.Image:
    width = _check_dimension("width", width)
    height = _check_dimension("height", height)
    fill = coerce_fill(fill)

    if isinstance(fill, SolidFill):
        rgb = _check_hex(fill.color, "fill")
        LOGGER.debug("creating %sx%s solid canvas %s", width, height, fill.color)
        return Image.new("RGBA", (width, height), rgb + (255,))

    LOGGER.debug("creating %sx%s %s gradient canvas", width, height, fill.direction)
    return render_gradient(fill, width, height)


def build_fill_svg(width: int, height: int, fill: Fill | dict[str, Any]) -> str:
    """SVG document equivalent to :func:`create_canvas` for the same arguments."""
    width = _check_dimension("width", width)
    height = _check_dimension("height", height)
    fill = coerce_fill(fill)
    document = SvgDocument(width, height)

    if isinstance(fill, SolidFill):
        _check_hex(fill.color, "fill")
        document.add(element("rect", width="100%", height="100%", fill=fill.color))
        return document.to_string()

    stops = _check_stops(fill)
    stop_markup = "".join(
        element("stop", offset=f"{format_number(stop.position)}%", stop_color=stop.color)
        for stop in stops
    )
    if fill.direction == "radial":
        document.add_def(element("radialGradient", stop_markup, id="bg", cx="50%", cy="50%", r="50%"))
    else:
        x1, y1, x2, y2 = _LINEAR_VECTORS[fill.direction]
        document.add_def(element("linearGradient", stop_markup, id="bg", x1=x1, y1=y1, x2=x2, y2=y2))
    document.add(element("rect", width="100%", height="100%", fill="url(#bg)"))
    return document.to_string()
