import io
from pathlib import Path

import pytest
from PIL import Image

from postersmith.errors import InvalidInputError
from postersmith.render.image_io import encode_image, get_image_metadata, load_image


def _jpeg_bytes(size: tuple[int, int], orientation: int | None = None) -> bytes:
    image = Image.new("RGB", size, (0, 128, 0))
    buffer = io.BytesIO()
    if orientation is None:
        image.save(buffer, format="JPEG")
    else:
        exif = Image.Exif()
        exif[0x0112] = orientation
        image.save(buffer, format="JPEG", exif=exif)
    return buffer.getvalue()


def test_load_image_from_bytes_and_path(tmp_path: Path, red_photo: bytes) -> None:
    photo_file = tmp_path / "photo.png"
    photo_file.write_bytes(red_photo)

    from_bytes = load_image(red_photo)
    from_path = load_image(photo_file)

    assert from_bytes.mode == "RGBA"
    assert from_bytes.size == from_path.size == (400, 400)


def test_load_image_copies_pillow_input() -> None:
    source = Image.new("RGB", (4, 4), (1, 2, 3))

    loaded = load_image(source)

    assert loaded is not source
    assert loaded.mode == "RGBA"
    assert source.mode == "RGB"


def test_exif_orientation_is_applied() -> None:
    assert load_image(_jpeg_bytes((40, 20), orientation=6)).size == (20, 40)


@pytest.mark.parametrize(
    ("source", "message"),
    [
        (b"", "Image data is empty"),
        (b"definitely not an image", "Invalid or unsupported image format"),
        ("/nonexistent/photo.png", "Image file not found"),
    ],
)
def test_load_image_errors(source: object, message: str) -> None:
    with pytest.raises(InvalidInputError, match=message):
        load_image(source)


def test_metadata(red_photo: bytes) -> None:
    metadata = get_image_metadata(red_photo)
    assert (metadata.width, metadata.height, metadata.format) == (400, 400, "png")

    assert get_image_metadata(_jpeg_bytes((30, 10))).format == "jpeg"
    with pytest.raises(InvalidInputError):
        get_image_metadata(b"nope")


def test_encode_image_formats() -> None:
    image = Image.new("RGBA", (8, 8), (255, 0, 0, 128))

    assert encode_image(image).startswith(b"\x89PNG")
    assert encode_image(image, "JPG", quality=50).startswith(b"\xff\xd8")

    with pytest.raises(InvalidInputError, match="Unsupported output format"):
        encode_image(image, "webp")
    with pytest.raises(InvalidInputError, match="Quality"):
        encode_image(image, "jpeg", quality=101)
