"""Gallery listing and tile lookup."""

from dataclasses import dataclass

from photo_gallery.domain.errors import PhotoNotFoundError
from photo_gallery.services.tiles import (
    MetadataStore,
    TileController,
    TileRegistry,
    TileView,
)


@dataclass
class GalleryService:
    """Lists photos and arranges them as tiles."""

    metadata_store: MetadataStore
    registry: TileRegistry

    async def list_tiles(self) -> list[TileView]:
        """Return one tile per photo followed by the empty upload slot."""
        photos = await self.metadata_store.list_photos()
        controllers = self.registry.sync(photos)
        return [controller.view() for controller in controllers] + [
            self.registry.slot().view()
        ]

    async def tile(self, photo_id: str) -> TileController:
        """Return the controller for a photo, refreshing the listing once."""
        try:
            return self.registry.get(photo_id)
        except PhotoNotFoundError:
            self.registry.sync(await self.metadata_store.list_photos())
        return self.registry.get(photo_id)

    async def upload(self, content: bytes, mime_type: str) -> TileView:
        controller = await self.registry.upload(content, mime_type)
        return controller.view()
