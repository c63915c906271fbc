"""Pydantic models for gallery API payloads."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from photo_gallery.domain.photos import CropRect, CropUnit, Layout, Photo
from photo_gallery.services.tiles import TileState, TileView


class ApiModel(BaseModel):
    """Base model using camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False
    )


class CropRectPayload(ApiModel):
    """Crop rectangle payload."""

    x: float
    y: float
    width: float
    height: float
    unit: CropUnit = CropUnit.PIXEL

    @classmethod
    def from_domain(cls, rect: CropRect | None) -> "CropRectPayload | None":
        if rect is None:
            return None
        return cls(
            x=rect.x, y=rect.y, width=rect.width, height=rect.height, unit=rect.unit
        )

    def to_domain(self) -> CropRect:
        return CropRect(
            x=self.x, y=self.y, width=self.width, height=self.height, unit=self.unit
        )


class PhotoPayload(ApiModel):
    """Photo record payload."""

    id: str
    image_url: str
    layout: Layout
    crop_data: CropRectPayload | None = None
    cropped_image_url: str | None = None

    @classmethod
    def from_domain(cls, photo: Photo) -> "PhotoPayload":
        return cls(
            id=photo.id,
            image_url=photo.image_url,
            layout=photo.layout,
            crop_data=CropRectPayload.from_domain(photo.crop_rect),
            cropped_image_url=photo.cropped_image_url,
        )


class TileResponse(ApiModel):
    """Render-ready tile."""

    state: TileState
    photo: PhotoPayload | None = None
    column_span: int
    row_span: int
    busy: bool
    pending_crop: CropRectPayload | None = None
    can_save_crop: bool
    error: str | None = None

    @classmethod
    def from_view(cls, view: TileView) -> "TileResponse":
        return cls(
            state=view.state,
            photo=PhotoPayload.from_domain(view.photo) if view.photo else None,
            column_span=view.column_span,
            row_span=view.row_span,
            busy=view.busy,
            pending_crop=CropRectPayload.from_domain(view.pending_crop),
            can_save_crop=view.can_save_crop,
            error=view.error,
        )


class GalleryResponse(ApiModel):
    """Gallery grid listing."""

    tiles: list[TileResponse]


class LayoutOption(ApiModel):
    """Selectable layout with its crop aspect ratio."""

    id: Layout
    label: str
    aspect: float


class LayoutRequest(ApiModel):
    """Layout selection payload."""

    layout: Layout


class CropEditorRequest(ApiModel):
    """Size the image is displayed at while cropping."""

    displayed_width: float = Field(gt=0)
    displayed_height: float = Field(gt=0)


class DeleteImageRequest(ApiModel):
    """Delete request for a stored image."""

    image_url: str | None = None


class UploadResponse(ApiModel):
    """Upload result."""

    url: str
