from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict
from pathlib import Path
from typing import Any

import typer

from postersmith.config import load_config, write_default_config
from postersmith.constants import OUTPUT_FORMATS, RESIZE_FITS
from postersmith.errors import PosterError
from postersmith.models import OutputOptions, ResizeOptions
from postersmith.render.fonts import FontRegistry, list_available_font_paths
from postersmith.template_registry import TemplateRegistry, load_template_file
from postersmith.template_schema import validate_template

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Championship poster composer.")
LOGGER = logging.getLogger("postersmith")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _fail(message: str) -> typer.Exit:
    typer.secho(message, err=True, fg=typer.colors.RED)
    return typer.Exit(1)


def _optional_path(value: Path | None, cfg: dict[str, Any], key: str) -> Path | None:
    if value is not None:
        return value
    configured = cfg.get(key)
    return Path(configured) if configured else None


def _build_template_registry(templates_dir: Path | None) -> TemplateRegistry:
    registry = TemplateRegistry()
    registry.register_bundled_templates()
    if templates_dir is not None:
        registry.register_directory(templates_dir)
    return registry


def _build_font_registry(fonts_dir: Path | None) -> FontRegistry:
    registry = FontRegistry()
    result = registry.init_bundled_fonts()
    if fonts_dir is not None:
        extra = registry.init_bundled_fonts(fonts_dir)
        result.loaded.extend(extra.loaded)
        result.failed.extend(extra.failed)
        # a custom directory need not ship the bundled names
        result.failed = [item for item in result.failed if item.name not in result.loaded]
    for failure in result.failed:
        LOGGER.debug("font unavailable: %s (%s)", failure.name, failure.reason)
    return registry


def _parse_data(pairs: list[str], data_file: Path | None) -> dict[str, str]:
    data: dict[str, str] = {}
    if data_file is not None:
        loaded = load_template_file(data_file)
        data.update({str(key): str(value) for key, value in loaded.items()})
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"data must be given as key=value, got: {pair!r}")
        data[key.strip()] = value
    return data


@app.command()
def render(
    template_id: str = typer.Argument(..., help="Id of a bundled or configured template."),
    photo: Path = typer.Argument(..., exists=True, resolve_path=True, dir_okay=False),
    out: Path = typer.Option(..., "--out", help="Output file."),
    data: list[str] = typer.Option([], "--data", "-d", help="Text slot value as key=value; repeatable."),
    data_file: Path | None = typer.Option(None, "--data-file", exists=True, dir_okay=False, help="YAML/JSON mapping of text slot values."),
    output_format: str | None = typer.Option(None, "--format", help="Output format: png|jpeg"),
    quality: int | None = typer.Option(None, "--quality", min=1, max=100),
    width: int | None = typer.Option(None, "--width", min=1, help="Resize output to this width."),
    height: int | None = typer.Option(None, "--height", min=1, help="Resize output to this height."),
    fit: str = typer.Option("contain", "--fit", help="Resize fit: contain|cover|fill"),
    templates_dir: Path | None = typer.Option(None, "--templates-dir", exists=True, file_okay=False),
    fonts_dir: Path | None = typer.Option(None, "--fonts-dir", exists=True, file_okay=False),
    assets_dir: Path | None = typer.Option(None, "--assets-dir", exists=True, file_okay=False),
    strict_font: bool | None = typer.Option(None, "--strict-font/--no-strict-font"),
    log_level: str | None = typer.Option(None, "--log-level"),
) -> None:
    """Compose a poster from a template, a photo and text values."""
    from postersmith.compose import compose_poster

    cfg = load_config()
    _setup_logging(log_level or str(cfg.get("log_level", "info")))

    fmt = (output_format or str(cfg.get("output_format", "png"))).lower()
    if fmt == "jpg":
        fmt = "jpeg"
    if fmt not in OUTPUT_FORMATS:
        raise _fail(f"output format must be png or jpeg, got: {fmt!r}")
    if fit not in RESIZE_FITS:
        raise _fail(f"fit must be one of {', '.join(RESIZE_FITS)}, got: {fit!r}")

    try:
        values = _parse_data(data, data_file)
    except (ValueError, PosterError) as exc:
        raise _fail(str(exc))

    resize = ResizeOptions(width=width, height=height, fit=fit) if width or height else None
    options = OutputOptions(
        format=fmt,
        quality=int(quality if quality is not None else cfg.get("quality", 85)),
        resize=resize,
    )

    started = time.perf_counter()
    try:
        templates = _build_template_registry(_optional_path(templates_dir, cfg, "templates_dir"))
        fonts = _build_font_registry(_optional_path(fonts_dir, cfg, "fonts_dir"))
        result = compose_poster(
            template_id,
            photo,
            values,
            output=options,
            on_progress=lambda stage, percent: LOGGER.debug("%3d%% %s", percent, stage),
            templates=templates,
            fonts=fonts,
            assets_dir=_optional_path(assets_dir, cfg, "assets_dir"),
            strict_font=bool(strict_font if strict_font is not None else cfg.get("strict_font", False)),
        )
    except PosterError as exc:
        raise _fail(exc.message)

    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(result.data)
    LOGGER.info(
        "OK   %s -> %s  %dx%d %s (%.2fs)",
        template_id,
        out.name,
        result.width,
        result.height,
        result.format,
        time.perf_counter() - started,
    )


@app.command()
def validate(
    file: Path = typer.Argument(..., exists=True, resolve_path=True, dir_okay=False),
) -> None:
    """Check a YAML/JSON template file and list every problem found."""
    try:
        payload = load_template_file(file)
    except PosterError as exc:
        raise _fail(exc.message)
    result = validate_template(payload)
    if result.valid:
        typer.echo(f"Template is valid: {payload.get('id')}")
        return
    typer.secho(f"Template is invalid ({len(result.errors)} errors):", err=True, fg=typer.colors.RED)
    for error in result.errors:
        typer.secho(f"  {error}", err=True, fg=typer.colors.RED)
    raise typer.Exit(1)


@app.command("templates")
def list_templates_command(
    templates_dir: Path | None = typer.Option(None, "--templates-dir", exists=True, file_okay=False),
) -> None:
    """List available templates as JSON."""
    cfg = load_config()
    try:
        registry = _build_template_registry(_optional_path(templates_dir, cfg, "templates_dir"))
    except PosterError as exc:
        raise _fail(exc.message)
    payload = [asdict(summary) for summary in registry.list_templates()]
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@app.command("fonts")
def list_fonts_command(
    fonts_dir: Path | None = typer.Option(None, "--fonts-dir", exists=True, file_okay=False),
    system: bool = typer.Option(False, "--system", help="List font files installed on this machine instead."),
) -> None:
    """Show which fonts load, and why the others do not."""
    if system:
        for path in list_available_font_paths():
            typer.echo(str(path))
        return

    cfg = load_config()
    directory = _optional_path(fonts_dir, cfg, "fonts_dir")
    result = FontRegistry().init_bundled_fonts(directory)
    payload = {
        "loaded": result.loaded,
        "failed": [asdict(failure) for failure in result.failed],
    }
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@app.command("init-config")
def init_config(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config file."),
) -> None:
    path = write_default_config(force=force)
    typer.echo(f"Config initialized: {path}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
