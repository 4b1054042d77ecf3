import pytest

from postersmith.template_registry import load_builtin_template
from postersmith.template_schema import is_valid_position, is_valid_template, validate_template


def test_sample_template_is_valid(sample_template: dict) -> None:
    result = validate_template(sample_template)

    assert result.valid
    assert result.errors == []


@pytest.mark.parametrize("name", ["classic", "modern"])
def test_bundled_templates_are_valid(name: str) -> None:
    assert validate_template(load_builtin_template(name)).errors == []


@pytest.mark.parametrize("candidate", [None, "template", 42, ["id"]])
def test_non_mapping_is_rejected(candidate: object) -> None:
    result = validate_template(candidate)

    assert not result.valid
    assert result.errors == ["Template must be an object"]


def test_oversized_canvas_is_reported(sample_template: dict) -> None:
    sample_template["canvas"]["height"] = 20000

    result = validate_template(sample_template)

    assert not result.valid
    assert result.errors == ["canvas.height must be an integer between 1 and 10000"]


def test_fractional_canvas_is_reported(sample_template: dict) -> None:
    sample_template["canvas"]["width"] = 100.5

    assert validate_template(sample_template).errors == [
        "canvas.width must be an integer between 1 and 10000"
    ]


@pytest.mark.parametrize(
    ("path", "message"),
    [
        ("/etc/passwd", "background.path must be a relative path, not absolute"),
        ("\\server\\share.png", "background.path must be a relative path, not absolute"),
        ("C:\\Windows\\bg.png", "background.path must be a relative path, not absolute"),
        ("../../etc/passwd", 'background.path cannot contain ".." (path traversal)'),
        ("images/../../secret.png", 'background.path cannot contain ".." (path traversal)'),
        ("", "background.path must be a non-empty string"),
    ],
)
def test_unsafe_background_paths_are_rejected(sample_template: dict, path: str, message: str) -> None:
    sample_template["background"] = {"type": "image", "path": path}

    assert validate_template(sample_template).errors == [message]


def test_relative_background_path_is_accepted(sample_template: dict) -> None:
    sample_template["background"] = {"type": "image", "path": "images/bg..final.png"}

    assert is_valid_template(sample_template)


def test_all_errors_are_collected(sample_template: dict) -> None:
    sample_template["id"] = ""
    sample_template["background"]["stops"][1]["position"] = 150
    sample_template["photos"][0]["size"]["width"] = 0
    sample_template["text"][0]["style"]["fontSize"] = 900

    errors = validate_template(sample_template).errors

    assert errors == [
        "id must be a non-empty string",
        "background.stops[1] must have valid color (#rrggbb) and position (0-100)",
        "photos[0].size.width must be a positive number up to 10000",
        "text[0].style.fontSize must be a number between 1 and 500",
    ]


@pytest.mark.parametrize("count", [1, 5])
def test_stop_count_is_bounded(sample_template: dict, count: int) -> None:
    sample_template["background"]["stops"] = [{"color": "#000000", "position": 0}] * count

    assert validate_template(sample_template).errors == [
        "background.stops must be an array with 2-4 color stops"
    ]


def test_unknown_background_type(sample_template: dict) -> None:
    sample_template["background"] = {"type": "video"}

    assert validate_template(sample_template).errors == [
        "background.type must be one of: solid, gradient, image"
    ]


def test_photo_decoration_errors(sample_template: dict) -> None:
    photo = sample_template["photos"][0]
    photo["mask"] = {"type": "rounded-rect", "radius": -4}
    photo["border"] = {"width": 250, "color": "gold"}
    photo["shadow"] = {"blur": 4, "color": "rgba(0,0,0,2)"}
    photo["opacity"] = 1.5

    assert validate_template(sample_template).errors == [
        "photos[0].mask.radius must be a non-negative number",
        "photos[0].border.width must be a number between 0 and 200",
        "photos[0].border.color must be a valid color (#rrggbb or rgba(r,g,b,a))",
        "photos[0].shadow.color must be a valid color (#rrggbb or rgba(r,g,b,a))",
        "photos[0].opacity must be a number between 0 and 1",
    ]


def test_rgba_border_color_is_valid(sample_template: dict) -> None:
    sample_template["photos"][0]["border"] = {"width": 4, "color": "rgba(255,215,0,0.6)"}

    assert validate_template(sample_template).valid


def test_text_style_errors(sample_template: dict) -> None:
    style = sample_template["text"][1]["style"]
    style["color"] = "#ccc"
    style["align"] = "justify"
    style["stroke"] = {"width": 60, "color": "#000000"}
    style["maxWidth"] = -10

    assert validate_template(sample_template).errors == [
        "text[1].style.color must be a valid hex color (e.g., #rrggbb)",
        "text[1].style.align must be one of: left, center, right",
        "text[1].style.stroke.width must be a number between 0 and 50",
        "text[1].style.maxWidth must be a positive number",
    ]


def test_duplicate_slot_ids_are_reported(sample_template: dict) -> None:
    sample_template["text"][1]["id"] = "athleteName"

    assert validate_template(sample_template).errors == [
        "text[1].id duplicates an earlier slot id: athleteName"
    ]


def test_invalid_positions(sample_template: dict) -> None:
    sample_template["photos"][0]["position"] = "top-left"

    errors = validate_template(sample_template).errors

    assert errors == [
        "photos[0].position must be a valid position (center, top-center, etc. or {x, y})"
    ]


def test_position_shapes() -> None:
    assert is_valid_position("bottom-center")
    assert is_valid_position({"x": 10, "y": 20.5})
    assert not is_valid_position({"x": "10", "y": 20})
    assert not is_valid_position({"x": True, "y": 20})
    assert not is_valid_position([10, 20])
