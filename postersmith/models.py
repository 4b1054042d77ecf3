from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from PIL import Image

from postersmith.constants import DEFAULT_JPEG_QUALITY, NAMED_POSITIONS
from postersmith.errors import InvalidInputError


def _get(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return default


def _require(data: Mapping[str, Any], key: str, context: str, *aliases: str) -> Any:
    value = _get(data, key, *aliases, default=None)
    if value is None:
        raise InvalidInputError(f"{context}: missing required field '{key}'")
    return value


def _as_mapping(value: Any, context: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise InvalidInputError(f"{context} must be an object, got {type(value).__name__}")
    return value


@dataclass(slots=True)
class RgbaColor:
    r: int
    g: int
    b: int
    alpha: float = 1.0

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.r, self.g, self.b, int(round(self.alpha * 255)))


@dataclass(slots=True)
class GradientStop:
    color: str
    position: float

    @classmethod
    def from_dict(cls, data: Any) -> GradientStop:
        data = _as_mapping(data, "gradient stop")
        return cls(
            color=_require(data, "color", "gradient stop"),
            position=_require(data, "position", "gradient stop"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"color": self.color, "position": self.position}


@dataclass(slots=True)
class SolidFill:
    type: ClassVar[str] = "solid"

    color: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "color": self.color}


@dataclass(slots=True)
class GradientFill:
    type: ClassVar[str] = "gradient"

    direction: str
    stops: list[GradientStop] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "direction": self.direction,
            "stops": [stop.to_dict() for stop in self.stops],
        }


@dataclass(slots=True)
class ImageBackground:
    type: ClassVar[str] = "image"

    path: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "path": self.path}


Fill = Union[SolidFill, GradientFill]
Background = Union[SolidFill, GradientFill, ImageBackground]


def background_from_dict(data: Any) -> Background:
    data = _as_mapping(data, "background")
    kind = data.get("type")
    if kind == "solid":
        return SolidFill(color=_require(data, "color", "solid fill"))
    if kind == "gradient":
        stops = _require(data, "stops", "gradient fill")
        if not isinstance(stops, (list, tuple)):
            raise InvalidInputError("gradient fill: stops must be a list")
        return GradientFill(
            direction=_require(data, "direction", "gradient fill"),
            stops=[stop if isinstance(stop, GradientStop) else GradientStop.from_dict(stop) for stop in stops],
        )
    if kind == "image":
        return ImageBackground(path=_require(data, "path", "image background"))
    raise InvalidInputError(f"Unknown fill type: {kind!r}")


def coerce_fill(value: Any) -> Fill:
    if isinstance(value, (SolidFill, GradientFill)):
        return value
    fill = background_from_dict(value)
    if isinstance(fill, ImageBackground):
        raise InvalidInputError("Canvas fill must be solid or gradient; image backgrounds are template-only")
    return fill


@dataclass(slots=True)
class Point:
    x: int
    y: int

    def to_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y}


Position = Union[str, Point]


def coerce_position(value: Any) -> Position:
    if isinstance(value, Point):
        return value
    if isinstance(value, str):
        if value not in NAMED_POSITIONS:
            raise InvalidInputError(f"Unknown position: {value}")
        return value
    if isinstance(value, Mapping):
        x, y = value.get("x"), value.get("y")
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        x, y = value
    else:
        raise InvalidInputError(f"Unknown position: {value!r}")
    for coord in (x, y):
        if isinstance(coord, bool) or not isinstance(coord, (int, float)):
            raise InvalidInputError(f"Position coordinates must be numbers, got: {value!r}")
    return Point(x=int(round(x)), y=int(round(y)))


def position_to_payload(position: Position) -> Any:
    return position.to_dict() if isinstance(position, Point) else position


@dataclass(slots=True)
class LayerSize:
    width: int | None = None
    height: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> LayerSize:
        data = _as_mapping(data, "size")
        return cls(width=data.get("width"), height=data.get("height"))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.width is not None:
            payload["width"] = self.width
        if self.height is not None:
            payload["height"] = self.height
        return payload


@dataclass(slots=True)
class NoMask:
    type: ClassVar[str] = "none"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type}


@dataclass(slots=True)
class CircleMask:
    type: ClassVar[str] = "circle"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type}


@dataclass(slots=True)
class RoundedRectMask:
    type: ClassVar[str] = "rounded-rect"

    radius: float = 0

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "radius": self.radius}


Mask = Union[NoMask, CircleMask, RoundedRectMask]


def coerce_mask(value: Any) -> Mask | None:
    if value is None or isinstance(value, (NoMask, CircleMask, RoundedRectMask)):
        return value
    data = _as_mapping(value, "mask")
    kind = data.get("type")
    if kind == "none":
        return NoMask()
    if kind == "circle":
        return CircleMask()
    if kind == "rounded-rect":
        return RoundedRectMask(radius=_require(data, "radius", "rounded-rect mask"))
    raise InvalidInputError(f"Unknown mask type: {kind!r}")


@dataclass(slots=True)
class Border:
    width: float
    color: str

    @classmethod
    def from_dict(cls, data: Any) -> Border:
        data = _as_mapping(data, "border")
        return cls(width=_require(data, "width", "border"), color=_require(data, "color", "border"))

    def to_dict(self) -> dict[str, Any]:
        return {"width": self.width, "color": self.color}


@dataclass(slots=True)
class Shadow:
    blur: float
    color: str
    offset_x: float = 0
    offset_y: float = 0

    @classmethod
    def from_dict(cls, data: Any) -> Shadow:
        data = _as_mapping(data, "shadow")
        return cls(
            blur=_require(data, "blur", "shadow"),
            color=_require(data, "color", "shadow"),
            offset_x=_get(data, "offsetX", "offset_x", default=0),
            offset_y=_get(data, "offsetY", "offset_y", default=0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "blur": self.blur,
            "offsetX": self.offset_x,
            "offsetY": self.offset_y,
            "color": self.color,
        }


TextShadow = Shadow


@dataclass(slots=True)
class TextStroke:
    width: float
    color: str

    @classmethod
    def from_dict(cls, data: Any) -> TextStroke:
        data = _as_mapping(data, "stroke")
        return cls(width=_require(data, "width", "stroke"), color=_require(data, "color", "stroke"))

    def to_dict(self) -> dict[str, Any]:
        return {"width": self.width, "color": self.color}


@dataclass(slots=True)
class CompositeLayer:
    image: Image.Image | bytes
    position: Position = "center"
    size: LayerSize | None = None
    mask: Mask | None = None
    border: Border | None = None
    shadow: Shadow | None = None
    opacity: float | None = None

    @classmethod
    def from_dict(cls, data: Any) -> CompositeLayer:
        data = _as_mapping(data, "layer")
        size = data.get("size")
        border = data.get("border")
        shadow = data.get("shadow")
        return cls(
            image=_require(data, "image", "layer"),
            position=coerce_position(data.get("position", "center")),
            size=size if size is None or isinstance(size, LayerSize) else LayerSize.from_dict(size),
            mask=coerce_mask(data.get("mask")),
            border=border if border is None or isinstance(border, Border) else Border.from_dict(border),
            shadow=shadow if shadow is None or isinstance(shadow, Shadow) else Shadow.from_dict(shadow),
            opacity=data.get("opacity"),
        )


@dataclass(slots=True)
class TextStyle:
    font_family: str
    font_size: float
    color: str
    align: str | None = None
    letter_spacing: float | None = None
    stroke: TextStroke | None = None
    shadow: TextShadow | None = None
    max_width: float | None = None
    text_transform: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> TextStyle:
        data = _as_mapping(data, "text style")
        stroke = data.get("stroke")
        shadow = data.get("shadow")
        return cls(
            font_family=_get(data, "fontFamily", "font_family", default=""),
            font_size=_get(data, "fontSize", "font_size"),
            color=data.get("color"),
            align=data.get("align"),
            letter_spacing=_get(data, "letterSpacing", "letter_spacing"),
            stroke=stroke if stroke is None or isinstance(stroke, TextStroke) else TextStroke.from_dict(stroke),
            shadow=shadow if shadow is None or isinstance(shadow, Shadow) else Shadow.from_dict(shadow),
            max_width=_get(data, "maxWidth", "max_width"),
            text_transform=_get(data, "textTransform", "text_transform"),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "fontFamily": self.font_family,
            "fontSize": self.font_size,
            "color": self.color,
        }
        optional = {
            "align": self.align,
            "letterSpacing": self.letter_spacing,
            "stroke": self.stroke.to_dict() if self.stroke else None,
            "shadow": self.shadow.to_dict() if self.shadow else None,
            "maxWidth": self.max_width,
            "textTransform": self.text_transform,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload


@dataclass(slots=True)
class TextLayer:
    content: str
    style: TextStyle
    position: Position = "center"

    @classmethod
    def from_dict(cls, data: Any) -> TextLayer:
        data = _as_mapping(data, "text layer")
        style = _require(data, "style", "text layer")
        return cls(
            content=str(data.get("content") or ""),
            style=style if isinstance(style, TextStyle) else TextStyle.from_dict(style),
            position=coerce_position(data.get("position", "center")),
        )


@dataclass(slots=True)
class CanvasSize:
    width: int
    height: int

    def to_dict(self) -> dict[str, Any]:
        return {"width": self.width, "height": self.height}


@dataclass(slots=True)
class PhotoSlot:
    id: str
    position: Position
    size: LayerSize
    mask: Mask | None = None
    border: Border | None = None
    shadow: Shadow | None = None
    opacity: float | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PhotoSlot:
        border = data.get("border")
        shadow = data.get("shadow")
        return cls(
            id=data["id"],
            position=coerce_position(data["position"]),
            size=LayerSize.from_dict(data["size"]),
            mask=coerce_mask(data.get("mask")),
            border=Border.from_dict(border) if border is not None else None,
            shadow=Shadow.from_dict(shadow) if shadow is not None else None,
            opacity=data.get("opacity"),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "position": position_to_payload(self.position),
            "size": self.size.to_dict(),
        }
        if self.mask is not None:
            payload["mask"] = self.mask.to_dict()
        if self.border is not None:
            payload["border"] = self.border.to_dict()
        if self.shadow is not None:
            payload["shadow"] = self.shadow.to_dict()
        if self.opacity is not None:
            payload["opacity"] = self.opacity
        return payload

    def to_layer(self, image: Image.Image | bytes) -> CompositeLayer:
        return CompositeLayer(
            image=image,
            position=self.position,
            size=self.size,
            mask=self.mask,
            border=self.border,
            shadow=self.shadow,
            opacity=self.opacity,
        )


@dataclass(slots=True)
class TextSlot:
    id: str
    position: Position
    style: TextStyle
    placeholder: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TextSlot:
        return cls(
            id=data["id"],
            position=coerce_position(data["position"]),
            style=TextStyle.from_dict(data["style"]),
            placeholder=data.get("placeholder"),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "position": position_to_payload(self.position),
            "style": self.style.to_dict(),
        }
        if self.placeholder is not None:
            payload["placeholder"] = self.placeholder
        return payload

    def to_layer(self, content: str) -> TextLayer:
        return TextLayer(content=content, style=self.style, position=self.position)


@dataclass(slots=True)
class TemplateSummary:
    id: str
    name: str
    description: str


@dataclass(slots=True)
class PosterTemplate:
    id: str
    name: str
    description: str
    version: str
    canvas: CanvasSize
    background: Background
    photos: list[PhotoSlot] = field(default_factory=list)
    text: list[TextSlot] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PosterTemplate:
        """Build a template from a payload that already passed validation."""
        canvas = data["canvas"]
        return cls(
            id=data["id"],
            name=data["name"],
            description=data["description"],
            version=data["version"],
            canvas=CanvasSize(width=int(canvas["width"]), height=int(canvas["height"])),
            background=background_from_dict(data["background"]),
            photos=[PhotoSlot.from_dict(item) for item in data["photos"]],
            text=[TextSlot.from_dict(item) for item in data["text"]],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "canvas": self.canvas.to_dict(),
            "background": self.background.to_dict(),
            "photos": [slot.to_dict() for slot in self.photos],
            "text": [slot.to_dict() for slot in self.text],
        }

    def summary(self) -> TemplateSummary:
        return TemplateSummary(id=self.id, name=self.name, description=self.description)


@dataclass(slots=True)
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass(slots=True)
class FontFailure:
    name: str
    reason: str


@dataclass(slots=True)
class FontLoadResult:
    loaded: list[str] = field(default_factory=list)
    failed: list[FontFailure] = field(default_factory=list)


@dataclass(slots=True)
class ImageMetadata:
    width: int
    height: int
    format: str


@dataclass(slots=True)
class ResizeOptions:
    width: int | None = None
    height: int | None = None
    fit: str = "contain"


@dataclass(slots=True)
class OutputOptions:
    format: str = "png"
    quality: int = DEFAULT_JPEG_QUALITY
    resize: ResizeOptions | None = None


@dataclass(slots=True)
class ComposeResult:
    data: bytes
    width: int
    height: int
    format: str
    size: int
