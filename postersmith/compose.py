"""End-to-end poster composition from a registered template."""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from pathlib import Path

from PIL import Image, ImageOps

from postersmith.constants import RESIZE_FITS
from postersmith.errors import InvalidInputError
from postersmith.models import (
    ComposeResult,
    ImageBackground,
    LayerSize,
    OutputOptions,
    PosterTemplate,
    ResizeOptions,
)
from postersmith.render.canvas import create_canvas
from postersmith.render.compositor import composite_image
from postersmith.render.fonts import FontRegistry
from postersmith.render.geometry import resolve_target_size
from postersmith.render.image_io import ImageSource, encode_image, load_image
from postersmith.render.text import add_text
from postersmith.template_registry import DEFAULT_REGISTRY, TemplateRegistry

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int], None]

STAGE_LOADING_TEMPLATE = ("loading-template", 0)
STAGE_CREATING_BACKGROUND = ("creating-background", 10)
STAGE_PROCESSING_PHOTO = ("processing-photo", 30)
STAGE_COMPOSITING_PHOTO = ("compositing-photo", 50)
STAGE_RENDERING_TEXT = ("rendering-text", 70)
STAGE_ENCODING_OUTPUT = ("encoding-output", 90)
STAGE_COMPLETE = ("complete", 100)


def _report(on_progress: ProgressCallback | None, stage: tuple[str, int]) -> None:
    name, percent = stage
    LOGGER.debug("compose stage %s (%d%%)", name, percent)
    if on_progress is not None:
        on_progress(name, percent)


def _check_data(template: PosterTemplate, data: Mapping[str, str]) -> None:
    missing = [
        slot.id
        for slot in template.text
        if not isinstance(data.get(slot.id), str) or not data[slot.id].strip()
    ]
    if missing:
        raise InvalidInputError(f"Missing required data fields: {', '.join(missing)}")


def _resolve_asset(assets_dir: str | Path | None, relative: str) -> Path:
    if assets_dir is None:
        raise InvalidInputError("Image backgrounds require an assets directory")
    root = Path(assets_dir).resolve()
    candidate = (root / relative).resolve()
    if not candidate.is_relative_to(root):
        raise InvalidInputError(f"Background path escapes the assets directory: {relative}")
    return candidate


def build_background(template: PosterTemplate, assets_dir: str | Path | None = None) -> Image.Image:
    canvas = template.canvas
    background = template.background
    if isinstance(background, ImageBackground):
        source = load_image(_resolve_asset(assets_dir, background.path))
        return ImageOps.fit(source, (canvas.width, canvas.height), Image.Resampling.LANCZOS)
    return create_canvas(canvas.width, canvas.height, background)


def _photo_images(
    template: PosterTemplate,
    photo: ImageSource | Mapping[str, ImageSource],
) -> dict[str, Image.Image]:
    if isinstance(photo, Mapping):
        missing = [slot.id for slot in template.photos if slot.id not in photo]
        if missing:
            raise InvalidInputError(f"Missing photos for slots: {', '.join(missing)}")
        return {slot.id: load_image(photo[slot.id]) for slot in template.photos}
    if not template.photos:
        return {}
    decoded = load_image(photo)
    return {slot.id: decoded for slot in template.photos}


def resize_output(image: Image.Image, resize: ResizeOptions) -> Image.Image:
    if resize.fit not in RESIZE_FITS:
        raise InvalidInputError(f"Unknown resize fit: {resize.fit}. Expected one of: {', '.join(RESIZE_FITS)}")
    size = resolve_target_size(image.size, LayerSize(width=resize.width, height=resize.height))
    if resize.fit == "fill":
        return image.resize(size, Image.Resampling.LANCZOS)
    if resize.fit == "cover":
        return ImageOps.fit(image, size, Image.Resampling.LANCZOS)
    return ImageOps.pad(image, size, Image.Resampling.LANCZOS, color=(0, 0, 0, 0))


def compose_poster(
    template_id: str,
    photo: ImageSource | Mapping[str, ImageSource],
    data: Mapping[str, str],
    output: OutputOptions | None = None,
    on_progress: ProgressCallback | None = None,
    templates: TemplateRegistry | None = None,
    fonts: FontRegistry | None = None,
    assets_dir: str | Path | None = None,
    strict_font: bool = False,
) -> ComposeResult:
    output = output or OutputOptions()
    registry = templates or DEFAULT_REGISTRY

    _report(on_progress, STAGE_LOADING_TEMPLATE)
    template = registry.load_template(template_id)
    _check_data(template, data)

    _report(on_progress, STAGE_CREATING_BACKGROUND)
    poster = build_background(template, assets_dir)

    _report(on_progress, STAGE_PROCESSING_PHOTO)
    images = _photo_images(template, photo)
    layers = [slot.to_layer(images[slot.id]) for slot in template.photos]

    _report(on_progress, STAGE_COMPOSITING_PHOTO)
    poster = composite_image(poster, layers)

    _report(on_progress, STAGE_RENDERING_TEXT)
    text_layers = [slot.to_layer(data[slot.id]) for slot in template.text]
    poster = add_text(poster, text_layers, strict_font=strict_font, fonts=fonts)

    _report(on_progress, STAGE_ENCODING_OUTPUT)
    if output.resize is not None:
        poster = resize_output(poster, output.resize)
    encoded = encode_image(poster, output.format, output.quality)

    _report(on_progress, STAGE_COMPLETE)
    fmt = "jpeg" if output.format.lower() in ("jpeg", "jpg") else output.format.lower()
    return ComposeResult(
        data=encoded,
        width=poster.width,
        height=poster.height,
        format=fmt,
        size=len(encoded),
    )
