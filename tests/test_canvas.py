import pytest

from postersmith.errors import InvalidInputError
from postersmith.models import GradientFill, GradientStop, SolidFill
from postersmith.render.canvas import build_fill_svg, create_canvas


def _gradient(direction: str, *stops: tuple[str, float]) -> dict:
    return {
        "type": "gradient",
        "direction": direction,
        "stops": [{"color": color, "position": position} for color, position in stops],
    }


def test_solid_canvas_fills_every_pixel() -> None:
    image = create_canvas(1080, 1350, SolidFill(color="#ff5733"))

    assert image.size == (1080, 1350)
    assert image.mode == "RGBA"
    assert image.getpixel((0, 0)) == (255, 87, 51, 255)
    assert image.getpixel((1079, 1349)) == (255, 87, 51, 255)


def test_integral_float_dimensions_are_accepted() -> None:
    assert create_canvas(100.0, 20, {"type": "solid", "color": "#000000"}).size == (100, 20)


@pytest.mark.parametrize("width", [0, 10001, 100001, 100.5, True, "100"])
def test_invalid_dimensions_are_rejected(width: object) -> None:
    with pytest.raises(InvalidInputError):
        create_canvas(width, 100, {"type": "solid", "color": "#000000"})


def test_invalid_solid_color_is_rejected() -> None:
    with pytest.raises(InvalidInputError):
        create_canvas(10, 10, {"type": "solid", "color": "rgba(0,0,0,1)"})


def test_vertical_gradient_runs_top_to_bottom() -> None:
    image = create_canvas(10, 100, _gradient("to-bottom", ("#000000", 0), ("#ffffff", 100)))

    column = [image.getpixel((5, y))[0] for y in range(100)]
    assert column[0] < 5
    assert column[-1] > 250
    assert column == sorted(column)
    assert image.getpixel((0, 50)) == image.getpixel((9, 50))


def test_horizontal_gradient_runs_left_to_right() -> None:
    image = create_canvas(100, 10, _gradient("to-right", ("#ff0000", 0), ("#0000ff", 100)))

    left = image.getpixel((0, 5))
    right = image.getpixel((99, 5))
    assert left[0] > 250 and left[2] < 5
    assert right[2] > 250 and right[0] < 5


def test_diagonal_gradient_is_symmetric_across_the_anti_diagonal() -> None:
    image = create_canvas(50, 50, _gradient("to-bottom-right", ("#000000", 0), ("#ffffff", 100)))

    assert image.getpixel((49, 0)) == image.getpixel((0, 49))
    assert image.getpixel((0, 0))[0] < image.getpixel((49, 49))[0]


def test_radial_gradient_pads_outside_with_last_stop() -> None:
    fill = GradientFill(
        direction="radial",
        stops=[
            GradientStop("#2d2d44", 0),
            GradientStop("#1a1a2e", 50),
            GradientStop("#0f0f1a", 100),
        ],
    )
    image = create_canvas(101, 101, fill)

    assert image.getpixel((0, 0)) == (15, 15, 26, 255)
    assert image.getpixel((50, 50)) == (45, 45, 68, 255)


def test_out_of_order_stop_is_clamped_to_previous_position() -> None:
    image = create_canvas(100, 4, _gradient("to-right", ("#ff0000", 50), ("#0000ff", 20)))

    assert image.getpixel((10, 1)) == (255, 0, 0, 255)
    assert image.getpixel((90, 1)) == (0, 0, 255, 255)


@pytest.mark.parametrize(
    "fill",
    [
        _gradient("to-bottom", ("#000000", 0)),
        _gradient("to-bottom", *[("#000000", 0)] * 5),
        _gradient("to-bottom", ("#000000", 0), ("#ffffff", 120)),
        _gradient("to-bottom", ("#000000", 0), ("white", 100)),
        _gradient("sideways", ("#000000", 0), ("#ffffff", 100)),
        {"type": "pattern"},
    ],
)
def test_invalid_gradients_are_rejected(fill: dict) -> None:
    with pytest.raises(InvalidInputError):
        create_canvas(10, 10, fill)


def test_build_fill_svg_describes_the_same_fill() -> None:
    linear = build_fill_svg(10, 20, _gradient("to-bottom", ("#1a1a2e", 0), ("#16213e", 100)))
    assert "<linearGradient" in linear
    assert 'y2="100%"' in linear
    assert 'stop-color="#1a1a2e"' in linear
    assert 'offset="100%"' in linear

    radial = build_fill_svg(10, 20, _gradient("radial", ("#000000", 0), ("#ffffff", 100)))
    assert '<radialGradient id="bg" cx="50%" cy="50%" r="50%">' in radial

    solid = build_fill_svg(10, 20, {"type": "solid", "color": "#ff5733"})
    assert 'fill="#ff5733"' in solid
