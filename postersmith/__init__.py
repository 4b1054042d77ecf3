"""Template-driven poster composition on top of Pillow."""
from __future__ import annotations

from postersmith.compose import compose_poster
from postersmith.errors import (
    FontLoadError,
    ImageProcessingError,
    InvalidInputError,
    PosterError,
    TemplateNotFoundError,
    TemplateValidationError,
)
from postersmith.models import (
    CompositeLayer,
    OutputOptions,
    PosterTemplate,
    TextLayer,
    TextStyle,
)
from postersmith.render.canvas import create_canvas
from postersmith.render.compositor import composite_image
from postersmith.render.fonts import FontRegistry, init_bundled_fonts, register_font
from postersmith.render.image_io import encode_image, load_image
from postersmith.render.text import add_text
from postersmith.template_registry import TemplateRegistry, load_template, register_template
from postersmith.template_schema import is_valid_template, validate_template

__version__ = "0.1.0"

__all__ = [
    "CompositeLayer",
    "FontLoadError",
    "FontRegistry",
    "ImageProcessingError",
    "InvalidInputError",
    "OutputOptions",
    "PosterError",
    "PosterTemplate",
    "TemplateNotFoundError",
    "TemplateRegistry",
    "TemplateValidationError",
    "TextLayer",
    "TextStyle",
    "add_text",
    "compose_poster",
    "composite_image",
    "create_canvas",
    "encode_image",
    "init_bundled_fonts",
    "is_valid_template",
    "load_image",
    "load_template",
    "register_font",
    "register_template",
    "validate_template",
]
