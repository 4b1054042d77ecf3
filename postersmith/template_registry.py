from __future__ import annotations

import copy
import json
import logging
import threading
from collections.abc import Mapping
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from postersmith.errors import InvalidInputError, TemplateNotFoundError, TemplateValidationError
from postersmith.models import PosterTemplate, TemplateSummary
from postersmith.template_schema import validate_template

LOGGER = logging.getLogger(__name__)

TEMPLATE_SUFFIXES = (".yaml", ".yml", ".json")


def _parse(text: str, suffix: str, source: str) -> dict[str, Any]:
    try:
        data = json.loads(text) if suffix == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise InvalidInputError(f"template file could not be parsed: {source}: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidInputError(f"template file is not a mapping: {source}")
    return data


def load_template_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML or JSON template file into a payload dict (not validated)."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"template file not found: {path}")
    return _parse(path.read_text(encoding="utf-8"), path.suffix.lower(), str(path))


def list_builtin_templates() -> list[str]:
    files = resources.files("postersmith.templates")
    names = [Path(item.name).stem for item in files.iterdir() if item.name.endswith(TEMPLATE_SUFFIXES)]
    return sorted(set(names))


def load_builtin_template(name: str) -> dict[str, Any]:
    package = resources.files("postersmith.templates")
    for suffix in TEMPLATE_SUFFIXES:
        candidate = package / f"{name}{suffix}"
        if candidate.is_file():
            return _parse(candidate.read_text(encoding="utf-8"), suffix, f"{name}{suffix}")
    raise TemplateNotFoundError(name)


class TemplateRegistry:
    """Thread-safe store of validated templates keyed by id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._templates: dict[str, PosterTemplate] = {}

    def register_template(self, template: PosterTemplate | Mapping[str, Any]) -> PosterTemplate:
        payload = template.to_dict() if isinstance(template, PosterTemplate) else template
        result = validate_template(payload)
        if not result.valid:
            raise TemplateValidationError(result.errors)
        # keep a private copy so later edits to the caller's payload cannot leak in
        stored = PosterTemplate.from_dict(copy.deepcopy(dict(payload)))
        with self._lock:
            replaced = stored.id in self._templates
            self._templates[stored.id] = stored
        LOGGER.debug("template %s %s", stored.id, "replaced" if replaced else "registered")
        return stored

    def load_template(self, template_id: str) -> PosterTemplate:
        with self._lock:
            template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    def is_template_registered(self, template_id: str) -> bool:
        with self._lock:
            return template_id in self._templates

    def list_templates(self) -> list[TemplateSummary]:
        with self._lock:
            templates = list(self._templates.values())
        return [template.summary() for template in templates]

    def get_all_templates(self) -> list[PosterTemplate]:
        with self._lock:
            return list(self._templates.values())

    def clear_templates(self) -> None:
        with self._lock:
            self._templates.clear()

    def register_bundled_templates(self) -> list[str]:
        registered = []
        for name in list_builtin_templates():
            template = self.register_template(load_builtin_template(name))
            registered.append(template.id)
        return registered

    def register_directory(self, directory: str | Path) -> list[str]:
        """Register every template file in ``directory``; invalid files raise."""
        registered = []
        for path in sorted(Path(directory).iterdir()):
            if path.suffix.lower() not in TEMPLATE_SUFFIXES:
                continue
            template = self.register_template(load_template_file(path))
            registered.append(template.id)
        return registered


DEFAULT_REGISTRY = TemplateRegistry()


def register_template(template: PosterTemplate | Mapping[str, Any]) -> PosterTemplate:
    return DEFAULT_REGISTRY.register_template(template)


def load_template(template_id: str) -> PosterTemplate:
    return DEFAULT_REGISTRY.load_template(template_id)


def is_template_registered(template_id: str) -> bool:
    return DEFAULT_REGISTRY.is_template_registered(template_id)


def list_templates() -> list[TemplateSummary]:
    return DEFAULT_REGISTRY.list_templates()


def get_all_templates() -> list[PosterTemplate]:
    return DEFAULT_REGISTRY.get_all_templates()


def clear_templates() -> None:
    DEFAULT_REGISTRY.clear_templates()


def register_bundled_templates() -> list[str]:
    return DEFAULT_REGISTRY.register_bundled_templates()
