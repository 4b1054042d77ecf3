"""Structural validation of poster template payloads.

Validation never raises: every problem is collected as a message that starts
with the offending field path (``photos[0].size.width``) so callers can report
all of them at once.
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from postersmith.constants import (
    GRADIENT_DIRECTIONS,
    MAX_BLUR,
    MAX_BORDER_WIDTH,
    MAX_DIMENSION,
    MAX_FONT_SIZE,
    MAX_GRADIENT_STOPS,
    MAX_LETTER_SPACING,
    MAX_STROKE_WIDTH,
    MIN_DIMENSION,
    MIN_FONT_SIZE,
    MIN_GRADIENT_STOPS,
    NAMED_POSITIONS,
    TEXT_ALIGNS,
    TEXT_TRANSFORMS,
)
from postersmith.models import ValidationResult
from postersmith.render.color import is_valid_color, is_valid_hex_color

_DRIVE_PATH = re.compile(r"^[A-Za-z]:")
_PATH_SEPARATORS = re.compile(r"[\\/]")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _in_range(value: Any, low: float, high: float) -> bool:
    return _is_number(value) and low <= value <= high


def is_valid_position(position: Any) -> bool:
    if isinstance(position, str):
        return position in NAMED_POSITIONS
    if isinstance(position, Mapping):
        return _is_number(position.get("x")) and _is_number(position.get("y"))
    return False


def _validate_image_path(path: Any, errors: list[str]) -> None:
    if not _is_text(path):
        errors.append("background.path must be a non-empty string")
        return
    if path.startswith(("/", "\\")) or _DRIVE_PATH.match(path):
        errors.append("background.path must be a relative path, not absolute")
        return
    if ".." in _PATH_SEPARATORS.split(path):
        errors.append('background.path cannot contain ".." (path traversal)')


def _validate_background(background: Any, errors: list[str]) -> None:
    if not isinstance(background, Mapping):
        errors.append("background must be an object")
        return

    kind = background.get("type")
    if kind == "solid":
        if not is_valid_hex_color(background.get("color")):
            errors.append("background.color must be a valid hex color (e.g., #rrggbb)")
        return

    if kind == "gradient":
        if background.get("direction") not in GRADIENT_DIRECTIONS:
            errors.append(f"background.direction must be one of: {', '.join(GRADIENT_DIRECTIONS)}")
        stops = background.get("stops")
        if not isinstance(stops, list) or not MIN_GRADIENT_STOPS <= len(stops) <= MAX_GRADIENT_STOPS:
            errors.append(
                f"background.stops must be an array with {MIN_GRADIENT_STOPS}-{MAX_GRADIENT_STOPS} color stops"
            )
            return
        for index, stop in enumerate(stops):
            if (
                not isinstance(stop, Mapping)
                or not is_valid_hex_color(stop.get("color"))
                or not _in_range(stop.get("position"), 0, 100)
            ):
                errors.append(
                    f"background.stops[{index}] must have valid color (#rrggbb) and position (0-100)"
                )
        return

    if kind == "image":
        _validate_image_path(background.get("path"), errors)
        return

    errors.append("background.type must be one of: solid, gradient, image")


def _validate_mask(mask: Any, path: str, errors: list[str]) -> None:
    if not isinstance(mask, Mapping):
        errors.append(f"{path} must be an object")
        return
    kind = mask.get("type")
    if kind in ("none", "circle"):
        return
    if kind == "rounded-rect":
        radius = mask.get("radius")
        if not _is_number(radius) or radius < 0:
            errors.append(f"{path}.radius must be a non-negative number")
        return
    errors.append(f"{path}.type must be one of: none, circle, rounded-rect")


def _validate_shadow(shadow: Any, path: str, errors: list[str]) -> None:
    if not isinstance(shadow, Mapping):
        errors.append(f"{path} must be an object")
        return
    if not _in_range(shadow.get("blur"), 0, MAX_BLUR):
        errors.append(f"{path}.blur must be a number between 0 and {MAX_BLUR}")
    for key in ("offsetX", "offsetY"):
        if key in shadow and not _is_number(shadow[key]):
            errors.append(f"{path}.{key} must be a number")
    if not is_valid_color(shadow.get("color")):
        errors.append(f"{path}.color must be a valid color (#rrggbb or rgba(r,g,b,a))")


def _validate_photo(photo: Any, index: int, errors: list[str]) -> None:
    path = f"photos[{index}]"
    if not isinstance(photo, Mapping):
        errors.append(f"{path} must be an object")
        return

    if not _is_text(photo.get("id")):
        errors.append(f"{path}.id must be a non-empty string")
    if not is_valid_position(photo.get("position")):
        errors.append(f"{path}.position must be a valid position (center, top-center, etc. or {{x, y}})")

    size = photo.get("size")
    if not isinstance(size, Mapping):
        errors.append(f"{path}.size must be an object with width and height")
    else:
        for key in ("width", "height"):
            value = size.get(key)
            if not _is_number(value) or value <= 0 or value > MAX_DIMENSION:
                errors.append(f"{path}.size.{key} must be a positive number up to {MAX_DIMENSION}")

    if photo.get("mask") is not None:
        _validate_mask(photo["mask"], f"{path}.mask", errors)

    border = photo.get("border")
    if border is not None:
        if not isinstance(border, Mapping):
            errors.append(f"{path}.border must be an object")
        else:
            if not _in_range(border.get("width"), 0, MAX_BORDER_WIDTH):
                errors.append(f"{path}.border.width must be a number between 0 and {MAX_BORDER_WIDTH}")
            if not is_valid_color(border.get("color")):
                errors.append(f"{path}.border.color must be a valid color (#rrggbb or rgba(r,g,b,a))")

    if photo.get("shadow") is not None:
        _validate_shadow(photo["shadow"], f"{path}.shadow", errors)

    opacity = photo.get("opacity")
    if opacity is not None and not _in_range(opacity, 0, 1):
        errors.append(f"{path}.opacity must be a number between 0 and 1")


def _validate_text_style(style: Any, path: str, errors: list[str]) -> None:
    if not isinstance(style, Mapping):
        errors.append(f"{path} must be an object")
        return

    if not _is_text(style.get("fontFamily")):
        errors.append(f"{path}.fontFamily must be a non-empty string")
    if not _in_range(style.get("fontSize"), MIN_FONT_SIZE, MAX_FONT_SIZE):
        errors.append(f"{path}.fontSize must be a number between {MIN_FONT_SIZE} and {MAX_FONT_SIZE}")
    if not is_valid_hex_color(style.get("color")):
        errors.append(f"{path}.color must be a valid hex color (e.g., #rrggbb)")
    if style.get("align") is not None and style["align"] not in TEXT_ALIGNS:
        errors.append(f"{path}.align must be one of: {', '.join(TEXT_ALIGNS)}")

    spacing = style.get("letterSpacing")
    if spacing is not None and not _in_range(spacing, -MAX_LETTER_SPACING, MAX_LETTER_SPACING):
        errors.append(f"{path}.letterSpacing must be a number between -{MAX_LETTER_SPACING} and {MAX_LETTER_SPACING}")

    if style.get("textTransform") is not None and style["textTransform"] not in TEXT_TRANSFORMS:
        errors.append(f"{path}.textTransform must be one of: {', '.join(TEXT_TRANSFORMS)}")

    stroke = style.get("stroke")
    if stroke is not None:
        if not isinstance(stroke, Mapping):
            errors.append(f"{path}.stroke must be an object")
        else:
            if not _in_range(stroke.get("width"), 0, MAX_STROKE_WIDTH):
                errors.append(f"{path}.stroke.width must be a number between 0 and {MAX_STROKE_WIDTH}")
            if not is_valid_hex_color(stroke.get("color")):
                errors.append(f"{path}.stroke.color must be a valid hex color")

    if style.get("shadow") is not None:
        _validate_shadow(style["shadow"], f"{path}.shadow", errors)

    max_width = style.get("maxWidth")
    if max_width is not None and (not _is_number(max_width) or max_width <= 0):
        errors.append(f"{path}.maxWidth must be a positive number")


def _validate_text(text: Any, index: int, errors: list[str]) -> None:
    path = f"text[{index}]"
    if not isinstance(text, Mapping):
        errors.append(f"{path} must be an object")
        return

    if not _is_text(text.get("id")):
        errors.append(f"{path}.id must be a non-empty string")
    if not is_valid_position(text.get("position")):
        errors.append(f"{path}.position must be a valid position (center, top-center, etc. or {{x, y}})")
    _validate_text_style(text.get("style"), f"{path}.style", errors)
    if text.get("placeholder") is not None and not isinstance(text["placeholder"], str):
        errors.append(f"{path}.placeholder must be a string")


def _check_duplicate_ids(items: list[Any], name: str, errors: list[str]) -> None:
    seen: set[str] = set()
    for index, item in enumerate(items):
        slot_id = item.get("id") if isinstance(item, Mapping) else None
        if not isinstance(slot_id, str):
            continue
        if slot_id in seen:
            errors.append(f"{name}[{index}].id duplicates an earlier slot id: {slot_id}")
        seen.add(slot_id)


def _validate_canvas(canvas: Any, errors: list[str]) -> None:
    if not isinstance(canvas, Mapping):
        errors.append("canvas must be an object with width and height")
        return
    for key in ("width", "height"):
        value = canvas.get(key)
        if not _in_range(value, MIN_DIMENSION, MAX_DIMENSION) or float(value) != int(value):
            errors.append(f"canvas.{key} must be an integer between {MIN_DIMENSION} and {MAX_DIMENSION}")


def validate_template(candidate: Any) -> ValidationResult:
    if not isinstance(candidate, Mapping):
        return ValidationResult(valid=False, errors=["Template must be an object"])

    errors: list[str] = []
    for key in ("id", "name", "version"):
        if not _is_text(candidate.get(key)):
            errors.append(f"{key} must be a non-empty string")
    if not isinstance(candidate.get("description"), str):
        errors.append("description must be a string")

    _validate_canvas(candidate.get("canvas"), errors)
    _validate_background(candidate.get("background"), errors)

    photos = candidate.get("photos")
    if not isinstance(photos, list):
        errors.append("photos must be an array")
    else:
        for index, photo in enumerate(photos):
            _validate_photo(photo, index, errors)
        _check_duplicate_ids(photos, "photos", errors)

    text = candidate.get("text")
    if not isinstance(text, list):
        errors.append("text must be an array")
    else:
        for index, item in enumerate(text):
            _validate_text(item, index, errors)
        _check_duplicate_ids(text, "text", errors)

    return ValidationResult(valid=not errors, errors=errors)


def is_valid_template(candidate: Any) -> bool:
    return validate_template(candidate).valid
