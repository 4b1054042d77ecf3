"""Photo layer compositing.

Each layer goes through resize, mask, border, shadow, opacity and position in
that order; processed layers are then alpha-composited onto a copy of the
background in list order.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from PIL import Image, ImageFilter

from postersmith.constants import MAX_BLUR, MAX_BORDER_WIDTH, MAX_DIMENSION
from postersmith.errors import PROGRAMMING_ERRORS, ImageProcessingError, InvalidInputError
from postersmith.models import (
    Border,
    CircleMask,
    CompositeLayer,
    LayerSize,
    Mask,
    RoundedRectMask,
    Shadow,
)
from postersmith.render import raster
from postersmith.render.color import parse_color
from postersmith.render.geometry import resolve_layer_origin, resolve_target_size
from postersmith.render.image_io import load_image

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ProcessedLayer:
    image: Image.Image
    left: int
    top: int


def _check_size(width: int, height: int, context: str) -> None:
    if width <= 0 or height <= 0:
        raise InvalidInputError(f"{context}: dimensions must be positive (got {width}x{height})")
    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        raise InvalidInputError(
            f"{context}: dimensions exceed maximum of {MAX_DIMENSION}px (got {width}x{height})"
        )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def resize_layer(image: Image.Image, size: LayerSize) -> Image.Image:
    target = resolve_target_size(image.size, size)
    if target == image.size:
        return image
    if target[0] > image.width or target[1] > image.height:
        LOGGER.warning(
            "scaling up image from %sx%s to %sx%s may reduce quality",
            image.width,
            image.height,
            target[0],
            target[1],
        )
    return image.resize(target, Image.Resampling.LANCZOS)


def _rounded_radius(mask: RoundedRectMask, size: tuple[int, int]) -> float:
    radius = mask.radius
    if not _is_number(radius) or radius < 0:
        raise InvalidInputError(f"Rounded rect radius must be non-negative, got: {radius}")
    return min(float(radius), size[0] / 2, size[1] / 2)


def apply_mask(image: Image.Image, mask: Mask | None) -> Image.Image:
    if isinstance(mask, CircleMask):
        return raster.multiply_alpha(image, raster.circle_mask(image.size))
    if isinstance(mask, RoundedRectMask):
        radius = _rounded_radius(mask, image.size)
        return raster.multiply_alpha(image, raster.rounded_rect_mask(image.size, radius))
    return image


def add_border(image: Image.Image, border: Border, mask: Mask | None = None) -> Image.Image:
    """Surround the image with a border that follows the mask shape."""
    width = border.width
    if not _is_number(width) or width < 0:
        raise InvalidInputError(f"Border width must be non-negative, got: {width}")
    if width > MAX_BORDER_WIDTH:
        raise InvalidInputError(
            f"Border width exceeds maximum of {MAX_BORDER_WIDTH}px, got: {width}"
        )
    try:
        color = parse_color(border.color)
    except InvalidInputError:
        raise InvalidInputError(
            f"Invalid border color: {border.color}. Expected format: #rrggbb or rgba(r,g,b,a)"
        ) from None

    thickness = int(round(width))
    new_size = (image.width + thickness * 2, image.height + thickness * 2)
    _check_size(new_size[0], new_size[1], "Border result")

    if isinstance(mask, CircleMask):
        frame = raster.solid_shape(raster.circle_mask(new_size), color)
    elif isinstance(mask, RoundedRectMask):
        outer_radius = _rounded_radius(mask, image.size) + thickness
        frame = raster.solid_shape(raster.rounded_rect_mask(new_size, outer_radius), color)
    else:
        frame = Image.new("RGBA", new_size, color.as_tuple())
    frame.alpha_composite(raster.ensure_rgba(image), dest=(thickness, thickness))
    return frame


def add_shadow(image: Image.Image, shadow: Shadow) -> tuple[Image.Image, tuple[int, int]]:
    """Place the image over its blurred silhouette on a padded canvas.

    Returns the new image and the padding ``(pad_x, pad_y)``: the un-shadowed
    image sits at that offset inside the result, and the silhouette sits at
    ``pad + offset``.
    """
    blur = shadow.blur
    if not _is_number(blur) or blur < 0:
        raise InvalidInputError(f"Shadow blur must be non-negative, got: {blur}")
    if blur > MAX_BLUR:
        raise InvalidInputError(f"Shadow blur exceeds maximum of {MAX_BLUR}, got: {blur}")
    if not _is_number(shadow.offset_x) or not _is_number(shadow.offset_y):
        raise InvalidInputError(
            f"Shadow offsets must be numbers, got: ({shadow.offset_x!r}, {shadow.offset_y!r})"
        )
    try:
        color = parse_color(shadow.color)
    except InvalidInputError:
        raise InvalidInputError(
            f"Invalid shadow color: {shadow.color}. Expected format: #rrggbb or rgba(r,g,b,a)"
        ) from None

    offset_x = int(round(shadow.offset_x))
    offset_y = int(round(shadow.offset_y))
    spread = int(round(blur * 2))
    pad_x = abs(offset_x) + spread
    pad_y = abs(offset_y) + spread
    canvas_size = (image.width + pad_x * 2, image.height + pad_y * 2)
    _check_size(canvas_size[0], canvas_size[1], "Shadow canvas")

    source = raster.ensure_rgba(image)
    # blur the coverage only; blurring RGBA would bleed black into the edges
    coverage = Image.new("L", canvas_size, 0)
    coverage.paste(source.getchannel("A"), (pad_x + offset_x, pad_y + offset_y))
    if blur > 0:
        coverage = coverage.filter(ImageFilter.GaussianBlur(radius=blur))
    shadow_layer = raster.solid_shape(coverage, color)
    shadow_layer.alpha_composite(source, dest=(pad_x, pad_y))
    return shadow_layer, (pad_x, pad_y)


def apply_opacity(image: Image.Image, opacity: float | None) -> Image.Image:
    if opacity is None:
        return image
    if not _is_number(opacity) or not 0 <= opacity <= 1:
        raise InvalidInputError(f"Opacity must be between 0 and 1, got: {opacity}")
    if opacity == 1:
        return image
    return raster.multiply_alpha(image, raster.uniform_mask(image.size, opacity))


def _coerce_layer(layer: CompositeLayer | Mapping[str, Any]) -> CompositeLayer:
    if isinstance(layer, CompositeLayer):
        return layer
    return CompositeLayer.from_dict(layer)


def process_layer(layer: CompositeLayer, canvas_size: tuple[int, int]) -> ProcessedLayer:
    image = load_image(layer.image)

    if layer.size is not None:
        image = resize_layer(image, layer.size)
    image = apply_mask(image, layer.mask)
    if layer.border is not None:
        image = add_border(image, layer.border, layer.mask)

    placed_size = image.size
    pad = (0, 0)
    if layer.shadow is not None:
        image, pad = add_shadow(image, layer.shadow)

    image = apply_opacity(image, layer.opacity)

    left, top = resolve_layer_origin(layer.position, canvas_size, placed_size)
    return ProcessedLayer(image=image, left=left - pad[0], top=top - pad[1])


def composite_image(
    background: Image.Image,
    layers: Iterable[CompositeLayer | Mapping[str, Any]],
) -> Image.Image:
    """Composite photo layers onto ``background``; the background is not modified."""
    layers = [_coerce_layer(layer) for layer in layers or []]
    result = raster.ensure_rgba(background)
    if not layers:
        return result

    try:
        _check_size(result.width, result.height, "Background")
        processed = [process_layer(layer, result.size) for layer in layers]
        for item in processed:
            raster.paste_over(result, item.image, (item.left, item.top))
    except (InvalidInputError, ImageProcessingError, *PROGRAMMING_ERRORS):
        raise
    except Exception as exc:
        LOGGER.error("compositing failed: %s", exc)
        raise ImageProcessingError(f"Failed to composite image: {exc}") from exc
    return result
