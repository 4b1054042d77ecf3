# Small Pillow helpers shared by the compositor and the text renderer.
from __future__ import annotations

from PIL import Image, ImageChops, ImageDraw

from postersmith.models import RgbaColor

_SUPERSAMPLE_LIMIT = 8192


def ensure_rgba(image: Image.Image) -> Image.Image:
    if image.mode == "RGBA":
        return image.copy()
    return image.convert("RGBA")


def transparent(size: tuple[int, int]) -> Image.Image:
    return Image.new("RGBA", size, (0, 0, 0, 0))


def paste_over(base: Image.Image, layer: Image.Image, origin: tuple[int, int]) -> None:
    """Alpha-composite ``layer`` onto ``base`` at ``origin``, clipping to the base bounds."""
    x, y = origin
    left = max(0, x)
    top = max(0, y)
    right = min(base.width, x + layer.width)
    bottom = min(base.height, y + layer.height)
    if right <= left or bottom <= top:
        return
    visible = layer.crop((left - x, top - y, right - x, bottom - y))
    base.alpha_composite(visible, dest=(left, top))


def multiply_alpha(image: Image.Image, mask: Image.Image) -> Image.Image:
    """Destination-in: keep ``image`` only where ``mask`` (mode L) is opaque."""
    result = ensure_rgba(image)
    alpha = ImageChops.multiply(result.getchannel("A"), mask)
    result.putalpha(alpha)
    return result


def uniform_mask(size: tuple[int, int], opacity: float) -> Image.Image:
    return Image.new("L", size, int(round(max(0.0, min(1.0, opacity)) * 255)))


def _supersample_scale(size: tuple[int, int]) -> int:
    return max(1, min(4, _SUPERSAMPLE_LIMIT // max(1, max(size))))


def circle_mask(size: tuple[int, int], fill: int = 255) -> Image.Image:
    width, height = size
    scale = _supersample_scale(size)
    radius = min(width, height) / 2.0
    cx, cy = width / 2.0, height / 2.0
    big = Image.new("L", (width * scale, height * scale), 0)
    ImageDraw.Draw(big).ellipse(
        (
            (cx - radius) * scale,
            (cy - radius) * scale,
            (cx + radius) * scale - 1,
            (cy + radius) * scale - 1,
        ),
        fill=fill,
    )
    if scale == 1:
        return big
    return big.resize(size, Image.Resampling.BOX)


def rounded_rect_mask(size: tuple[int, int], radius: float, fill: int = 255) -> Image.Image:
    width, height = size
    scale = _supersample_scale(size)
    big = Image.new("L", (width * scale, height * scale), 0)
    ImageDraw.Draw(big).rounded_rectangle(
        (0, 0, width * scale - 1, height * scale - 1),
        radius=max(0.0, radius) * scale,
        fill=fill,
    )
    if scale == 1:
        return big
    return big.resize(size, Image.Resampling.BOX)


def solid_shape(mask: Image.Image, color: RgbaColor) -> Image.Image:
    """Fill the area covered by ``mask`` with ``color``."""
    shape = Image.new("RGBA", mask.size, color.as_tuple()[:3] + (255,))
    alpha = ImageChops.multiply(mask, uniform_mask(mask.size, color.alpha))
    shape.putalpha(alpha)
    return shape
