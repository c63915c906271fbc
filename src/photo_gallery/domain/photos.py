"""Domain models for gallery photos."""

import json
import math
from dataclasses import dataclass, replace
from enum import StrEnum


class Layout(StrEnum):
    """Grid span of a tile, written as columns x rows."""

    SQUARE = "1x1"
    VERTICAL = "1x2"
    HORIZONTAL = "2x1"
    LARGE = "2x2"

    @classmethod
    def parse(cls, value: object) -> "Layout":
        """Return the layout for a stored value, falling back to 1x1."""
        try:
            return cls(str(value))
        except ValueError:
            return cls.SQUARE

    @property
    def label(self) -> str:
        return _LAYOUT_LABELS[self]

    @property
    def aspect(self) -> float:
        """Width divided by height of a tile with this layout."""
        columns, rows = self.span
        return columns / rows

    @property
    def span(self) -> tuple[int, int]:
        columns, rows = self.value.split("x")
        return int(columns), int(rows)


_LAYOUT_LABELS = {
    Layout.SQUARE: "Square (1×1)",
    Layout.VERTICAL: "Vertical (1×2)",
    Layout.HORIZONTAL: "Horizontal (2×1)",
    Layout.LARGE: "Large (2×2)",
}


class CropUnit(StrEnum):
    """Unit of a crop rectangle."""

    PERCENT = "%"
    PIXEL = "px"


@dataclass(frozen=True)
class CropRect:
    """Crop region relative to an image, in percent or pixels."""

    x: float
    y: float
    width: float
    height: float
    unit: CropUnit = CropUnit.PIXEL

    @property
    def is_degenerate(self) -> bool:
        coordinates = (self.x, self.y, self.width, self.height)
        if not all(math.isfinite(value) for value in coordinates):
            return True
        return self.width <= 0 or self.height <= 0

    def to_pixels(self, width: float, height: float) -> "CropRect":
        """Express the rectangle in pixels of a width x height space."""
        if self.unit is CropUnit.PIXEL:
            return self
        return CropRect(
            x=self.x * width / 100,
            y=self.y * height / 100,
            width=self.width * width / 100,
            height=self.height * height / 100,
            unit=CropUnit.PIXEL,
        )

    def to_percent(self, width: float, height: float) -> "CropRect":
        """Express the rectangle as percentages of a width x height space."""
        if self.unit is CropUnit.PERCENT:
            return self
        return CropRect(
            x=self.x * 100 / width,
            y=self.y * 100 / height,
            width=self.width * 100 / width,
            height=self.height * 100 / height,
            unit=CropUnit.PERCENT,
        )

    def scaled(self, scale_x: float, scale_y: float) -> "CropRect":
        """Rescale a pixel rectangle per axis."""
        return replace(
            self,
            x=self.x * scale_x,
            y=self.y * scale_y,
            width=self.width * scale_x,
            height=self.height * scale_y,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "unit": self.unit.value,
        }

    def to_json(self) -> str:
        """Encode the rectangle the way the metadata store keeps it."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, payload: dict[str, object]) -> "CropRect":
        return cls(
            x=float(payload["x"]),
            y=float(payload["y"]),
            width=float(payload["width"]),
            height=float(payload["height"]),
            unit=CropUnit(str(payload.get("unit", CropUnit.PIXEL.value))),
        )

    @classmethod
    def from_json(cls, raw: str) -> "CropRect":
        """Decode a stored crop rectangle; raises ValueError on bad input."""
        try:
            payload = json.loads(raw)
            return cls.from_dict(payload)
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Malformed crop data: {raw!r}") from exc


@dataclass(frozen=True)
class Photo:
    """A user-uploaded image and its display metadata."""

    id: str
    image_url: str
    layout: Layout = Layout.SQUARE
    crop_rect: CropRect | None = None
    cropped_image_url: str | None = None


@dataclass(frozen=True)
class PhotoFields:
    """Partial set of photo fields for create and update calls.

    Fields left as None are not sent to the store.
    """

    image_url: str | None = None
    layout: Layout | None = None
    crop_rect: CropRect | None = None
    cropped_image_url: str | None = None
