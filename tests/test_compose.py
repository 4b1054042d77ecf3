import io
from pathlib import Path

import pytest
from PIL import Image

from postersmith.compose import compose_poster, resize_output
from postersmith.errors import InvalidInputError, TemplateNotFoundError
from postersmith.models import OutputOptions, ResizeOptions
from postersmith.render.fonts import FontRegistry
from postersmith.template_registry import TemplateRegistry


def png_bytes(size: tuple[int, int], color: tuple[int, int, int, int]) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


DATA = {"athleteName": "Jane Doe", "date": "March 15, 2025"}


@pytest.fixture
def templates(sample_template: dict) -> TemplateRegistry:
    registry = TemplateRegistry()
    registry.register_template(sample_template)
    return registry


def _compose(templates: TemplateRegistry, photo: object, data: dict = DATA, **kwargs):
    return compose_poster("sample", photo, data, templates=templates, fonts=FontRegistry(), **kwargs)


def test_unknown_template(templates: TemplateRegistry, red_photo: bytes) -> None:
    with pytest.raises(TemplateNotFoundError, match="Template not found: nonexistent"):
        compose_poster("nonexistent", red_photo, DATA, templates=templates)


def test_missing_text_fields_are_listed_in_slot_order(templates: TemplateRegistry, red_photo: bytes) -> None:
    with pytest.raises(InvalidInputError) as excinfo:
        _compose(templates, red_photo, {"date": "  "})

    assert str(excinfo.value) == "Missing required data fields: athleteName, date"


def test_undecodable_photo(templates: TemplateRegistry) -> None:
    with pytest.raises(InvalidInputError, match="Invalid or unsupported image format"):
        _compose(templates, b"definitely not a png")


def test_png_poster_with_progress(templates: TemplateRegistry, red_photo: bytes) -> None:
    stages: list[tuple[str, int]] = []

    result = _compose(templates, red_photo, on_progress=lambda stage, percent: stages.append((stage, percent)))

    assert result.data[:8] == b"\x89PNG\r\n\x1a\n"
    assert (result.width, result.height) == (200, 250)
    assert result.format == "png"
    assert result.size == len(result.data)
    assert stages == [
        ("loading-template", 0),
        ("creating-background", 10),
        ("processing-photo", 30),
        ("compositing-photo", 50),
        ("rendering-text", 70),
        ("encoding-output", 90),
        ("complete", 100),
    ]
    with Image.open(io.BytesIO(result.data)) as poster:
        assert poster.size == (200, 250)
        assert poster.convert("RGBA").getpixel((100, 125)) == (255, 0, 0, 255)


def test_jpeg_output(templates: TemplateRegistry, red_photo: bytes) -> None:
    result = _compose(templates, red_photo, output=OutputOptions(format="jpg", quality=70))

    assert result.data[:3] == b"\xff\xd8\xff"
    assert result.format == "jpeg"


def test_invalid_output_options(templates: TemplateRegistry, red_photo: bytes) -> None:
    with pytest.raises(InvalidInputError):
        _compose(templates, red_photo, output=OutputOptions(format="gif"))
    with pytest.raises(InvalidInputError):
        _compose(templates, red_photo, output=OutputOptions(format="jpeg", quality=0))


def test_resized_output_keeps_aspect_ratio(templates: TemplateRegistry, red_photo: bytes) -> None:
    result = _compose(templates, red_photo, output=OutputOptions(resize=ResizeOptions(width=100)))

    assert (result.width, result.height) == (100, 125)


def test_resize_fits() -> None:
    image = Image.new("RGBA", (200, 100), (255, 0, 0, 255))

    padded = resize_output(image, ResizeOptions(width=100, height=100, fit="contain"))
    assert padded.size == (100, 100)
    assert padded.getpixel((50, 5))[3] == 0
    assert padded.getpixel((50, 50)) == (255, 0, 0, 255)

    covered = resize_output(image, ResizeOptions(width=100, height=100, fit="cover"))
    assert covered.getpixel((50, 5)) == (255, 0, 0, 255)

    stretched = resize_output(image, ResizeOptions(width=50, height=50, fit="fill"))
    assert stretched.size == (50, 50)

    with pytest.raises(InvalidInputError):
        resize_output(image, ResizeOptions(width=50, fit="stretch"))


def test_photo_mapping_must_cover_every_slot(templates: TemplateRegistry, red_photo: bytes) -> None:
    with pytest.raises(InvalidInputError, match="Missing photos for slots: athletePhoto"):
        _compose(templates, {"other": red_photo})

    result = _compose(templates, {"athletePhoto": red_photo})
    assert result.size > 0


def test_image_background_from_assets_dir(tmp_path: Path, sample_template: dict, red_photo: bytes) -> None:
    (tmp_path / "images").mkdir()
    (tmp_path / "images" / "bg.png").write_bytes(png_bytes((50, 50), (0, 0, 255, 255)))
    sample_template["background"] = {"type": "image", "path": "images/bg.png"}
    registry = TemplateRegistry()
    registry.register_template(sample_template)

    result = compose_poster("sample", red_photo, DATA, templates=registry, fonts=FontRegistry(), assets_dir=tmp_path)

    with Image.open(io.BytesIO(result.data)) as poster:
        assert poster.convert("RGBA").getpixel((0, 0)) == (0, 0, 255, 255)

    with pytest.raises(InvalidInputError, match="assets directory"):
        compose_poster("sample", red_photo, DATA, templates=registry, fonts=FontRegistry())
