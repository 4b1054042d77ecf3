from __future__ import annotations

from postersmith.constants import MAX_DIMENSION
from postersmith.errors import InvalidInputError
from postersmith.models import LayerSize, Point, Position


def resolve_layer_origin(
    position: Position,
    canvas_size: tuple[int, int],
    layer_size: tuple[int, int],
) -> tuple[int, int]:
    """Top-left pixel for a layer of ``layer_size`` placed on the canvas.

    Explicit points are used verbatim as the top-left corner.
    """
    if isinstance(position, Point):
        return position.x, position.y

    canvas_w, canvas_h = canvas_size
    layer_w, layer_h = layer_size
    centered_x = (canvas_w - layer_w) // 2
    centered_y = (canvas_h - layer_h) // 2
    if position == "center":
        return centered_x, centered_y
    if position == "top-center":
        return centered_x, 0
    if position == "bottom-center":
        return centered_x, canvas_h - layer_h
    if position == "left-center":
        return 0, centered_y
    if position == "right-center":
        return canvas_w - layer_w, centered_y
    raise InvalidInputError(f"Unknown position: {position}")


def resolve_text_anchor(
    position: Position,
    canvas_size: tuple[int, int],
    font_size: float,
) -> tuple[float, float]:
    """Baseline anchor point for a text layer."""
    if isinstance(position, Point):
        return float(position.x), float(position.y)

    canvas_w, canvas_h = canvas_size
    if position == "center":
        return canvas_w / 2, canvas_h / 2
    if position == "top-center":
        return canvas_w / 2, float(font_size)
    if position == "bottom-center":
        return canvas_w / 2, canvas_h - font_size / 4
    if position == "left-center":
        return 0.0, canvas_h / 2
    if position == "right-center":
        return float(canvas_w), canvas_h / 2
    raise InvalidInputError(f"Unknown position: {position}")


def _check_dimension(name: str, value: object) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"Resize {name} must be a number, got: {value!r}")
    rounded = int(round(value))
    if rounded < 1:
        raise InvalidInputError(f"Resize {name} must be at least 1 pixel, got: {value}")
    return rounded


def resolve_target_size(source_size: tuple[int, int], size: LayerSize) -> tuple[int, int]:
    """Fill a missing target dimension from the source aspect ratio."""
    width = _check_dimension("width", size.width)
    height = _check_dimension("height", size.height)
    if width is None and height is None:
        raise InvalidInputError("Resize requires at least a width or a height")

    source_w, source_h = source_size
    if width is None:
        width = max(1, round(source_w * height / source_h))
    elif height is None:
        height = max(1, round(source_h * width / source_w))

    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        raise InvalidInputError(
            f"Resize target {width}x{height} exceeds the maximum of {MAX_DIMENSION} pixels"
        )
    return width, height
