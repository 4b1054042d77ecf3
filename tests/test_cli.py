import json
import logging
from pathlib import Path

import pytest
import yaml
from PIL import Image
from typer.testing import CliRunner

from postersmith import cli
from postersmith.cli import app

runner = CliRunner()

CLASSIC_DATA = [
    "tournament=Spring Open",
    "athleteName=Jane Doe",
    "beltRank=Black Belt",
    "date=March 15, 2025",
    "location=Austin, TX",
]


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    monkeypatch.setenv("POSTERSMITH_CONFIG", str(path))
    return path


def test_validate_accepts_a_good_template(tmp_path: Path, sample_template: dict) -> None:
    path = tmp_path / "sample.yaml"
    path.write_text(yaml.safe_dump(sample_template), encoding="utf-8")

    result = runner.invoke(app, ["validate", str(path)])

    assert result.exit_code == 0
    assert "Template is valid: sample" in result.output


def test_validate_lists_every_error(tmp_path: Path, sample_template: dict) -> None:
    sample_template["canvas"]["width"] = 0
    sample_template["background"] = {"type": "image", "path": "../secret.png"}
    path = tmp_path / "broken.json"
    path.write_text(json.dumps(sample_template), encoding="utf-8")

    result = runner.invoke(app, ["validate", str(path)])

    assert result.exit_code == 1
    assert "2 errors" in result.output
    assert "canvas.width" in result.output
    assert "path traversal" in result.output


def test_templates_lists_bundled_templates() -> None:
    result = runner.invoke(app, ["templates"])

    assert result.exit_code == 0
    ids = [item["id"] for item in json.loads(result.output)]
    assert ids == ["classic", "modern"]


def test_fonts_reports_failures_as_json(tmp_path: Path) -> None:
    result = runner.invoke(app, ["fonts", "--fonts-dir", str(tmp_path)])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["loaded"] == []
    assert [item["name"] for item in payload["failed"]] == ["Oswald-Bold", "Roboto-Regular", "BebasNeue-Regular"]


def test_render_writes_the_poster(tmp_path: Path, red_photo: bytes) -> None:
    photo = tmp_path / "photo.png"
    photo.write_bytes(red_photo)
    out = tmp_path / "out" / "poster.png"
    args = ["render", "classic", str(photo), "--out", str(out), "--width", "270"]
    for pair in CLASSIC_DATA:
        args += ["-d", pair]

    result = runner.invoke(app, args)

    assert result.exit_code == 0, result.output
    with Image.open(out) as poster:
        assert poster.format == "PNG"
        assert poster.width == 270


def test_render_reports_missing_fields(tmp_path: Path, red_photo: bytes) -> None:
    photo = tmp_path / "photo.png"
    photo.write_bytes(red_photo)

    result = runner.invoke(
        app, ["render", "classic", str(photo), "--out", str(tmp_path / "x.png"), "-d", "athleteName=Jane"]
    )

    assert result.exit_code == 1
    assert "Missing required data fields: tournament, beltRank, date, location" in result.output
    assert not (tmp_path / "x.png").exists()


def test_render_rejects_malformed_data(tmp_path: Path, red_photo: bytes) -> None:
    photo = tmp_path / "photo.png"
    photo.write_bytes(red_photo)

    result = runner.invoke(app, ["render", "classic", str(photo), "--out", str(tmp_path / "x.png"), "-d", "oops"])

    assert result.exit_code == 1
    assert "key=value" in result.output


def test_init_config(isolated_config: Path) -> None:
    result = runner.invoke(app, ["init-config"])

    assert result.exit_code == 0
    assert isolated_config.is_file()
    assert yaml.safe_load(isolated_config.read_text(encoding="utf-8"))["output_format"] == "png"


def test_custom_font_dir_failures_are_logged(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    (tmp_path / "Broken.ttf").write_bytes(b"not a font")

    with caplog.at_level(logging.DEBUG, logger="postersmith"):
        registry = cli._build_font_registry(tmp_path)

    assert not registry.is_font_registered("Broken")
    assert "font unavailable: Broken" in caplog.text
