from __future__ import annotations

import copy
import io
from typing import Any

import pytest
from PIL import Image, ImageFont

from postersmith.render.fonts import list_available_font_paths


def png_bytes(size: tuple[int, int], color: tuple[int, int, int, int]) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def red_photo() -> bytes:
    return png_bytes((400, 400), (255, 0, 0, 255))


@pytest.fixture
def font_bytes() -> bytes:
    """A real TrueType binary: Pillow's bundled default face, else any system font."""
    default = ImageFont.load_default(size=12)
    data = getattr(default, "font_bytes", None)
    if data:
        return data
    for path in list_available_font_paths():
        if path.suffix.lower() != ".ttf":
            continue
        try:
            ImageFont.truetype(str(path), size=12)
        except OSError:
            continue
        return path.read_bytes()
    pytest.skip("no TrueType font available on this machine")


SAMPLE_TEMPLATE: dict[str, Any] = {
    "id": "sample",
    "name": "Sample",
    "description": "Small template used by the tests",
    "version": "1.0.0",
    "canvas": {"width": 200, "height": 250},
    "background": {
        "type": "gradient",
        "direction": "to-bottom",
        "stops": [
            {"color": "#1a1a2e", "position": 0},
            {"color": "#16213e", "position": 100},
        ],
    },
    "photos": [
        {
            "id": "athletePhoto",
            "position": "center",
            "size": {"width": 100, "height": 100},
            "mask": {"type": "circle"},
            "border": {"width": 2, "color": "#ffd700"},
            "shadow": {"blur": 4, "offsetX": 0, "offsetY": 3, "color": "rgba(0,0,0,0.5)"},
        }
    ],
    "text": [
        {
            "id": "athleteName",
            "position": {"x": 100, "y": 220},
            "style": {
                "fontFamily": "Oswald-Bold",
                "fontSize": 20,
                "color": "#ffffff",
                "align": "center",
                "textTransform": "uppercase",
                "maxWidth": 180,
            },
        },
        {
            "id": "date",
            "position": "bottom-center",
            "style": {"fontFamily": "Roboto-Regular", "fontSize": 12, "color": "#cccccc", "align": "center"},
            "placeholder": "January 1, 2025",
        },
    ],
}


@pytest.fixture
def sample_template() -> dict[str, Any]:
    return copy.deepcopy(SAMPLE_TEMPLATE)
