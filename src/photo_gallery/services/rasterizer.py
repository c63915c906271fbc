"""Crop rasterization for derived gallery images.

The selected region of the orientation-corrected source is drawn onto a
surface sized exactly to the rectangle and exported as a new image.
Anything outside the source bounds stays transparent (or black for formats
without alpha).
"""

from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from photo_gallery.domain.errors import InvalidCropError, TaintedCanvasError
from photo_gallery.domain.photos import CropRect, CropUnit

_MIME_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}


@dataclass(frozen=True)
class RasterImage:
    """Encoded image produced by the rasterizer."""

    content: bytes
    mime_type: str
    width: int
    height: int


@dataclass
class CropRasterizer:
    """Produces cropped images from source bytes."""

    output_format: str = "PNG"
    jpeg_quality: int = 90

    def __post_init__(self) -> None:
        self.output_format = self.output_format.upper()
        if self.output_format not in _MIME_TYPES:
            raise ValueError(f"Unsupported crop output format: {self.output_format}")

    def rasterize(self, source: bytes, rect: CropRect) -> RasterImage:
        """Crop `source` to `rect`, given in the source's native pixels."""
        if rect.unit is not CropUnit.PIXEL:
            raise InvalidCropError("Crop rectangle must be in source pixels")
        if (
            rect.is_degenerate
            or round(rect.width) <= 0
            or round(rect.height) <= 0
        ):
            raise InvalidCropError(
                f"Crop rectangle has no area: {rect.width}x{rect.height}"
            )
        width, height = round(rect.width), round(rect.height)

        image = _open_image(source)
        left, top = round(rect.x), round(rect.y)
        surface_mode = "RGB" if self.output_format == "JPEG" else "RGBA"
        cropped = image.convert(surface_mode).crop(
            (left, top, left + width, top + height)
        )

        buffer = BytesIO()
        if self.output_format == "JPEG":
            cropped.save(buffer, format="JPEG", quality=self.jpeg_quality)
        else:
            cropped.save(buffer, format=self.output_format)
        return RasterImage(
            content=buffer.getvalue(),
            mime_type=_MIME_TYPES[self.output_format],
            width=cropped.width,
            height=cropped.height,
        )


def image_size(source: bytes) -> tuple[int, int]:
    """Return the orientation-corrected pixel size of an encoded image."""
    return _open_image(source).size


def to_native_space(
    rect: CropRect,
    displayed_size: tuple[float, float],
    native_size: tuple[float, float],
) -> CropRect:
    """Map a rectangle picked on a displayed image onto the native pixels."""
    displayed_width, displayed_height = displayed_size
    native_width, native_height = native_size
    if displayed_width <= 0 or displayed_height <= 0:
        raise InvalidCropError("Displayed image size must be positive")
    on_screen = rect.to_pixels(displayed_width, displayed_height)
    return on_screen.scaled(
        native_width / displayed_width, native_height / displayed_height
    )


def _open_image(source: bytes) -> Image.Image:
    """Decode image bytes and apply EXIF orientation."""
    try:
        image = Image.open(BytesIO(source))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise TaintedCanvasError("Source image pixels are not readable") from exc
    return ImageOps.exif_transpose(image)
