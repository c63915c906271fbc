"""Per-photo tile state machine for uploads, layout and crop editing."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from photo_gallery.domain.errors import (
    GalleryError,
    InvalidCropError,
    PhotoNotFoundError,
    StorageDeleteError,
    TileBusyError,
    TileStateError,
)
from photo_gallery.domain.photos import CropRect, CropUnit, Layout, Photo, PhotoFields
from photo_gallery.services.rasterizer import (
    CropRasterizer,
    image_size,
    to_native_space,
)

logger = logging.getLogger(__name__)

MIN_CROP_SIZE = 1.0


class MediaStore(Protocol):
    """Interface for binary image storage."""

    async def store(self, content: bytes, mime_type: str) -> str:
        """Persist content and return its permanent URL."""

    async def delete(self, url: str) -> None:
        """Remove the object behind a URL returned by store."""


class MetadataStore(Protocol):
    """Interface for photo record persistence."""

    async def create_photo(self, fields: PhotoFields) -> Photo:
        """Insert a record and return the created photo."""

    async def list_photos(self) -> list[Photo]:
        """Return every stored photo."""

    async def update_photo(self, photo_id: str, fields: PhotoFields) -> Photo:
        """Merge the given fields into a record and return the result."""


class ImageFetcher(Protocol):
    """Interface for reading source image bytes."""

    async def fetch(self, url: str) -> bytes:
        """Download an image and return its bytes."""


class TileState(StrEnum):
    """Lifecycle states of a gallery tile."""

    EMPTY = "empty"
    UPLOADING = "uploading"
    IDLE = "idle"
    EDITING_LAYOUT = "editing_layout"
    EDITING_CROP = "editing_crop"


@dataclass(frozen=True)
class TileView:
    """Render-ready snapshot of a tile."""

    state: TileState
    photo: Photo | None
    column_span: int
    row_span: int
    busy: bool
    pending_crop: CropRect | None
    can_save_crop: bool
    error: str | None


@dataclass
class TileController:
    """Coordinates the upload, layout and crop lifecycle of one tile."""

    media_store: MediaStore
    metadata_store: MetadataStore
    image_fetcher: ImageFetcher
    rasterizer: CropRasterizer
    photo: Photo | None = None
    state: TileState = TileState.EMPTY
    pending_crop: CropRect | None = None
    displayed_size: tuple[float, float] | None = None
    saving_crop: bool = False
    error: str | None = None

    def __post_init__(self) -> None:
        if self.photo is not None and self.state is TileState.EMPTY:
            self.state = TileState.IDLE

    @property
    def can_save_crop(self) -> bool:
        return (
            self.state is TileState.EDITING_CROP
            and _is_saveable(self.pending_crop)
            and not self.saving_crop
        )

    async def upload(self, content: bytes, mime_type: str) -> Photo:
        """Store an original image and create its record."""
        if self.state is TileState.UPLOADING:
            raise TileBusyError("An upload is already in progress for this tile")
        if self.state is not TileState.EMPTY:
            raise TileStateError("Tile already holds a photo")
        self.state = TileState.UPLOADING
        self.error = None
        try:
            image_url = await self.media_store.store(content, mime_type)
            try:
                photo = await self.metadata_store.create_photo(
                    PhotoFields(image_url=image_url, layout=Layout.SQUARE)
                )
            except Exception:
                await self._discard(image_url)
                raise
        except Exception as exc:
            self.state = TileState.EMPTY
            self._surface(exc, "Failed to upload image")
            raise
        self.photo = photo
        self.state = TileState.IDLE
        return photo

    def open_layout_editor(self) -> None:
        self._require_photo()
        self._require_state(TileState.IDLE, TileState.EDITING_LAYOUT)
        self.state = TileState.EDITING_LAYOUT

    async def select_layout(self, layout: Layout) -> Photo:
        """Persist a new layout; the shown layout only changes on success."""
        photo = self._require_photo()
        self._require_state(
            TileState.IDLE, TileState.EDITING_LAYOUT, TileState.EDITING_CROP
        )
        self.error = None
        try:
            updated = await self.metadata_store.update_photo(
                photo.id, PhotoFields(layout=layout)
            )
        except Exception as exc:
            self._surface(exc, "Failed to update layout")
            raise
        self.photo = updated
        if self.state is TileState.EDITING_CROP:
            if self.pending_crop is not None and self.displayed_size is not None:
                self.pending_crop = constrain_to_aspect(
                    self.pending_crop, updated.layout.aspect, self.displayed_size
                )
        else:
            self.state = TileState.IDLE
        return updated

    def open_crop_editor(self, displayed_width: float, displayed_height: float) -> None:
        """Start crop editing on an image shown at the given size."""
        photo = self._require_photo()
        self._require_state(
            TileState.IDLE, TileState.EDITING_LAYOUT, TileState.EDITING_CROP
        )
        if displayed_width <= 0 or displayed_height <= 0:
            raise InvalidCropError("Displayed image size must be positive")
        bounds = (displayed_width, displayed_height)
        aspect = photo.layout.aspect
        if photo.crop_rect is not None:
            seed = photo.crop_rect.to_pixels(*bounds)
            pending = constrain_to_aspect(seed, aspect, bounds)
        else:
            pending = centered_crop(aspect, bounds)
        self.displayed_size = bounds
        self.pending_crop = pending
        self.state = TileState.EDITING_CROP

    def drag_crop(self, rect: CropRect) -> CropRect:
        """Record the rectangle the user is dragging, within the aspect lock."""
        photo = self._require_photo()
        self._require_state(TileState.EDITING_CROP)
        if self.saving_crop:
            raise TileBusyError("Wait for the crop to finish saving")
        bounds = self.displayed_size or (0.0, 0.0)
        self.pending_crop = constrain_to_aspect(
            rect.to_pixels(*bounds), photo.layout.aspect, bounds
        )
        return self.pending_crop

    async def confirm_crop(self) -> Photo:
        """Rasterize the pending crop, store it and persist the result."""
        photo = self._require_photo()
        self._require_state(TileState.EDITING_CROP)
        if self.saving_crop:
            raise TileBusyError("A crop is already being saved for this tile")
        pending = self.pending_crop
        displayed_size = self.displayed_size
        if pending is None or not _is_saveable(pending) or displayed_size is None:
            raise InvalidCropError("Select a crop area before saving")

        self.saving_crop = True
        self.error = None
        try:
            updated = await self._save_crop(photo, pending, displayed_size)
        except Exception as exc:
            self._surface(exc, "Failed to save crop")
            raise
        finally:
            self.saving_crop = False

        previous_url = photo.cropped_image_url
        self.photo = updated
        self.pending_crop = None
        self.state = TileState.IDLE
        if previous_url and previous_url != updated.cropped_image_url:
            await self._discard(previous_url)
        return updated

    def close_editor(self) -> None:
        self._require_photo()
        if self.saving_crop:
            raise TileBusyError("Wait for the crop to finish saving")
        self.pending_crop = None
        self.state = TileState.IDLE

    def view(self) -> TileView:
        layout = self.photo.layout if self.photo else Layout.SQUARE
        column_span, row_span = layout.span
        return TileView(
            state=self.state,
            photo=self.photo,
            column_span=column_span,
            row_span=row_span,
            busy=self.state is TileState.UPLOADING or self.saving_crop,
            pending_crop=self.pending_crop,
            can_save_crop=self.can_save_crop,
            error=self.error,
        )

    async def _save_crop(
        self, photo: Photo, pending: CropRect, displayed_size: tuple[float, float]
    ) -> Photo:
        source = await self.image_fetcher.fetch(photo.image_url)
        native_rect = to_native_space(pending, displayed_size, image_size(source))
        raster = self.rasterizer.rasterize(source, native_rect)
        cropped_url = await self.media_store.store(raster.content, raster.mime_type)
        try:
            return await self.metadata_store.update_photo(
                photo.id,
                PhotoFields(
                    crop_rect=pending.to_percent(*displayed_size),
                    cropped_image_url=cropped_url,
                ),
            )
        except Exception:
            await self._discard(cropped_url)
            raise

    async def _discard(self, url: str) -> None:
        """Best-effort removal of a stored object that is no longer referenced."""
        try:
            await self.media_store.delete(url)
        except StorageDeleteError:
            logger.warning("Failed to delete stored image", extra={"url": url})

    def _surface(self, exc: Exception, fallback: str) -> None:
        self.error = str(exc) if isinstance(exc, GalleryError) and str(exc) else fallback
        logger.exception(
            fallback,
            extra={"photo_id": self.photo.id if self.photo else None},
        )

    def _require_photo(self) -> Photo:
        if self.photo is None:
            raise TileStateError("Tile has no photo yet")
        return self.photo

    def _require_state(self, *allowed: TileState) -> None:
        if self.state not in allowed:
            raise TileStateError(f"Not allowed while tile is {self.state.value}")


@dataclass
class TileRegistry:
    """Keeps one controller per photo plus the empty upload slot."""

    factory: Callable[[Photo | None], TileController]
    tiles: dict[str, TileController] = field(default_factory=dict)
    upload_slot: TileController | None = None

    def slot(self) -> TileController:
        if self.upload_slot is None:
            self.upload_slot = self.factory(None)
        return self.upload_slot

    def get(self, photo_id: str) -> TileController:
        controller = self.tiles.get(photo_id)
        if controller is None:
            raise PhotoNotFoundError(f"Unknown photo: {photo_id}")
        return controller

    def sync(self, photos: list[Photo]) -> list[TileController]:
        """Reconcile controllers with a fresh listing, in listing order."""
        synced: dict[str, TileController] = {}
        for photo in photos:
            controller = self.tiles.get(photo.id)
            if controller is None:
                controller = self.factory(photo)
            elif controller.state is TileState.IDLE:
                controller.photo = photo
            synced[photo.id] = controller
        self.tiles = synced
        return list(synced.values())

    async def upload(self, content: bytes, mime_type: str) -> TileController:
        """Upload through the empty slot and register the resulting tile."""
        slot = self.slot()
        photo = await slot.upload(content, mime_type)
        self.tiles[photo.id] = slot
        self.upload_slot = None
        return slot


def _is_saveable(rect: CropRect | None) -> bool:
    """At least one displayed pixel in each direction."""
    return (
        rect is not None
        and not rect.is_degenerate
        and rect.width >= MIN_CROP_SIZE
        and rect.height >= MIN_CROP_SIZE
    )


def centered_crop(aspect: float, bounds: tuple[float, float]) -> CropRect:
    """Largest rectangle with the given aspect centered in bounds."""
    width, height = bounds
    if width / height > aspect:
        crop_width, crop_height = height * aspect, height
    else:
        crop_width, crop_height = width, width / aspect
    return CropRect(
        x=(width - crop_width) / 2,
        y=(height - crop_height) / 2,
        width=crop_width,
        height=crop_height,
        unit=CropUnit.PIXEL,
    )


def constrain_to_aspect(
    rect: CropRect, aspect: float, bounds: tuple[float, float]
) -> CropRect:
    """Clip a pixel rectangle to bounds and lock it to width/height == aspect.

    The top-left corner stays put; the rectangle shrinks to fit.
    """
    max_width, max_height = bounds
    x = min(max(rect.x, 0.0), max_width)
    y = min(max(rect.y, 0.0), max_height)
    width = min(max(rect.width, 0.0), max_width - x)
    height = width / aspect
    if height > max_height - y:
        height = max_height - y
        width = height * aspect
    return CropRect(x=x, y=y, width=width, height=height, unit=CropUnit.PIXEL)
