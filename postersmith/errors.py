from __future__ import annotations

from typing import Any


class PosterError(Exception):
    """Base class for every error raised by the engine."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
        }


class InvalidInputError(PosterError):
    """Caller-supplied data violates a documented contract."""

    status_code = 400
    code = "INVALID_IMAGE_INPUT"


class ImageProcessingError(PosterError):
    """The raster backend failed during an otherwise valid operation."""

    status_code = 500
    code = "IMAGE_PROCESSING_ERROR"


class FontLoadError(PosterError):
    status_code = 500
    code = "FONT_LOAD_ERROR"

    def __init__(self, font_name: str, reason: str) -> None:
        super().__init__(f"Failed to load font '{font_name}': {reason}")
        self.font_name = font_name
        self.reason = reason


class TemplateNotFoundError(PosterError):
    status_code = 404
    code = "TEMPLATE_NOT_FOUND"

    def __init__(self, template_id: str) -> None:
        super().__init__(f"Template not found: {template_id}")
        self.template_id = template_id


class TemplateValidationError(PosterError):
    status_code = 400
    code = "TEMPLATE_VALIDATION_ERROR"

    def __init__(self, errors: list[str]) -> None:
        summary = "; ".join(errors) if errors else "unknown error"
        super().__init__(f"Template validation failed: {summary}")
        self.errors = list(errors)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["errors"] = list(self.errors)
        return payload


# never wrapped into ImageProcessingError: these point at a bug, not at bad input
PROGRAMMING_ERRORS = (TypeError, AttributeError, NameError, AssertionError)
