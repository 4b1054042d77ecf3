from __future__ import annotations

import io
import logging
import os
import platform
import threading
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from PIL import ImageFont

from postersmith.constants import DEFAULT_FONT, FONT_FILE_SUFFIXES
from postersmith.errors import FontLoadError, InvalidInputError
from postersmith.models import FontFailure, FontLoadResult

LOGGER = logging.getLogger(__name__)

BUNDLED_FONTS_DIR = Path(__file__).resolve().parent.parent / "assets" / "fonts"

BUNDLED_FONTS: dict[str, str] = {
    "Oswald-Bold": "Oswald-Bold.ttf",
    "Roboto-Regular": "Roboto-Regular.ttf",
    "BebasNeue-Regular": "BebasNeue-Regular.ttf",
}

# FreeType needs a size to parse the face; any small value works for validation
_CHECK_SIZE = 12


@dataclass(slots=True)
class RegisteredFont:
    name: str
    path: Path | None
    data: bytes


def _system_font_candidates() -> list[Path]:
    system = platform.system().lower()
    if "windows" in system:
        return [
            Path(r"C:\Windows\Fonts\arial.ttf"),
            Path(r"C:\Windows\Fonts\segoeui.ttf"),
            Path(r"C:\Windows\Fonts\msyh.ttc"),
        ]
    if "darwin" in system:
        return [
            Path("/System/Library/Fonts/Helvetica.ttc"),
            Path("/Library/Fonts/Arial Unicode.ttf"),
            Path("/System/Library/Fonts/PingFang.ttc"),
        ]
    return [
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
        Path("/usr/share/fonts/dejavu/DejaVuSans.ttf"),
        Path("/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf"),
        Path("/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc"),
    ]


def _system_font_directories() -> list[Path]:
    system = platform.system().lower()
    if "windows" in system:
        roots = [Path(os.environ.get("WINDIR", r"C:\Windows")) / "Fonts"]
        local_app_data = os.environ.get("LOCALAPPDATA")
        if local_app_data:
            roots.append(Path(local_app_data) / "Microsoft" / "Windows" / "Fonts")
        return roots
    if "darwin" in system:
        return [
            Path("/System/Library/Fonts"),
            Path("/Library/Fonts"),
            Path.home() / "Library" / "Fonts",
        ]
    return [
        Path("/usr/share/fonts"),
        Path("/usr/local/share/fonts"),
        Path.home() / ".fonts",
        Path.home() / ".local" / "share" / "fonts",
    ]


@lru_cache(maxsize=1)
def list_available_font_paths() -> list[Path]:
    """Font files installed on the host, sorted by stem."""
    available: list[Path] = []
    seen: set[str] = set()
    for root in _system_font_directories():
        if not root.is_dir():
            continue
        for dir_path, _dir_names, file_names in os.walk(root, onerror=lambda _err: None):
            for file_name in file_names:
                if Path(file_name).suffix.lower() not in FONT_FILE_SUFFIXES:
                    continue
                candidate = Path(dir_path) / file_name
                key = str(candidate)
                if key in seen:
                    continue
                seen.add(key)
                available.append(candidate)
    available.sort(key=lambda path: (path.stem.lower(), str(path).lower()))
    return available


def fallback_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    for candidate in _system_font_candidates():
        if not candidate.exists():
            continue
        try:
            return ImageFont.truetype(str(candidate), size=size)
        except OSError:
            LOGGER.debug("system font %s could not be opened", candidate)
    return ImageFont.load_default(size=size)


def _check_font_data(name: str, data: bytes) -> None:
    try:
        ImageFont.truetype(io.BytesIO(data), size=_CHECK_SIZE)
    except OSError as exc:
        raise FontLoadError(name, f"Unsupported or corrupt font data ({exc})") from exc


class FontRegistry:
    """Thread-safe family name -> font binary mapping."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._fonts: dict[str, RegisteredFont] = {}

    def register_font(self, family: str, source: str | os.PathLike[str] | bytes) -> None:
        if not isinstance(family, str) or not family.strip():
            raise InvalidInputError("Font name must be a non-empty string")

        path: Path | None = None
        if isinstance(source, (bytes, bytearray)):
            data = bytes(source)
            if not data:
                raise InvalidInputError("Font data must not be empty")
        else:
            if not source:
                raise InvalidInputError("Font path must be a non-empty string")
            path = Path(source)
            if path.suffix.lower() not in FONT_FILE_SUFFIXES:
                raise InvalidInputError(
                    f"Font file must be one of {', '.join(sorted(FONT_FILE_SUFFIXES))}: {path}"
                )
            if not path.is_file():
                raise FontLoadError(family, f"File not found: {path}")
            try:
                data = path.read_bytes()
            except OSError as exc:
                raise FontLoadError(family, str(exc)) from exc

        _check_font_data(family, data)
        with self._lock:
            self._fonts[family] = RegisteredFont(name=family, path=path, data=data)
        LOGGER.debug("font registered: %s (%s)", family, path or "bytes")

    def get_font(self, family: str) -> bytes | None:
        with self._lock:
            font = self._fonts.get(family)
        return font.data if font else None

    def get_font_path(self, family: str) -> Path | None:
        with self._lock:
            font = self._fonts.get(family)
        return font.path if font else None

    def is_font_registered(self, family: str) -> bool:
        with self._lock:
            return family in self._fonts

    def list_fonts(self) -> list[str]:
        with self._lock:
            return list(self._fonts)

    def clear_fonts(self) -> None:
        with self._lock:
            self._fonts.clear()

    def load_truetype(self, family: str, size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        """Pillow font for ``family``; unknown families get the fallback font."""
        data = self.get_font(family)
        if data is None:
            return fallback_font(size)
        return ImageFont.truetype(io.BytesIO(data), size=size)

    def init_bundled_fonts(self, directory: Path | None = None) -> FontLoadResult:
        """Register the bundled fonts plus any other font file found next to them.

        Failures are collected in the result and never raised.
        """
        font_dir = Path(directory) if directory is not None else BUNDLED_FONTS_DIR
        result = FontLoadResult()

        entries = [(name, font_dir / file_name) for name, file_name in BUNDLED_FONTS.items()]
        known_files = set(BUNDLED_FONTS.values())
        if font_dir.is_dir():
            for extra in sorted(font_dir.iterdir()):
                if extra.suffix.lower() in FONT_FILE_SUFFIXES and extra.name not in known_files:
                    entries.append((extra.stem, extra))

        for name, font_path in entries:
            if not font_path.is_file():
                reason = f"File not found: {font_path}"
                LOGGER.error("bundled font %s missing: %s", name, font_path)
                result.failed.append(FontFailure(name=name, reason=reason))
                continue
            try:
                self.register_font(name, font_path)
            except (FontLoadError, InvalidInputError) as exc:
                LOGGER.error("failed to load bundled font %s: %s", name, exc)
                result.failed.append(FontFailure(name=name, reason=str(exc)))
                continue
            result.loaded.append(name)
        return result


DEFAULT_REGISTRY = FontRegistry()


def register_font(family: str, source: str | os.PathLike[str] | bytes) -> None:
    DEFAULT_REGISTRY.register_font(family, source)


def get_font(family: str) -> bytes | None:
    return DEFAULT_REGISTRY.get_font(family)


def is_font_registered(family: str) -> bool:
    return DEFAULT_REGISTRY.is_font_registered(family)


def list_fonts() -> list[str]:
    return DEFAULT_REGISTRY.list_fonts()


def clear_fonts() -> None:
    DEFAULT_REGISTRY.clear_fonts()


def init_bundled_fonts(directory: Path | None = None) -> FontLoadResult:
    return DEFAULT_REGISTRY.init_bundled_fonts(directory)


def load_truetype(family: str, size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    return DEFAULT_REGISTRY.load_truetype(family, size)


def get_default_font() -> str:
    return DEFAULT_FONT


def list_bundled_fonts() -> list[str]:
    return list(BUNDLED_FONTS)
