"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from photo_gallery.adapters.airtable_metadata_store import AirtableMetadataStore
from photo_gallery.adapters.cloudinary_media_store import CloudinaryMediaStore
from photo_gallery.adapters.image_fetcher import HttpxImageFetcher
from photo_gallery.config import Settings, parse_origins
from photo_gallery.domain.photos import Photo
from photo_gallery.services.gallery import GalleryService
from photo_gallery.services.rasterizer import CropRasterizer
from photo_gallery.services.tiles import (
    ImageFetcher,
    MediaStore,
    MetadataStore,
    TileController,
    TileRegistry,
)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    media_store: MediaStore
    metadata_store: MetadataStore
    gallery_service: GalleryService
    close_resources: Callable[[], Awaitable[None]]


def build_gallery_service(
    media_store: MediaStore,
    metadata_store: MetadataStore,
    image_fetcher: ImageFetcher,
    rasterizer: CropRasterizer,
) -> GalleryService:
    """Create a gallery service whose tiles share the given collaborators."""

    def new_tile(photo: Photo | None) -> TileController:
        return TileController(
            media_store=media_store,
            metadata_store=metadata_store,
            image_fetcher=image_fetcher,
            rasterizer=rasterizer,
            photo=photo,
        )

    return GalleryService(
        metadata_store=metadata_store,
        registry=TileRegistry(factory=new_tile),
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    timeout = resolved_settings.http_timeout_seconds
    media_store = CloudinaryMediaStore.create(
        cloud_name=resolved_settings.cloudinary_cloud_name,
        api_key=resolved_settings.cloudinary_api_key,
        api_secret=resolved_settings.cloudinary_api_secret,
        base_url=resolved_settings.cloudinary_base_url,
        timeout=timeout,
    )
    metadata_store = AirtableMetadataStore.create(
        api_key=resolved_settings.airtable_api_key,
        base_id=resolved_settings.airtable_base_id,
        table_name=resolved_settings.airtable_table_name,
        base_url=resolved_settings.airtable_base_url,
        timeout=timeout,
    )
    image_fetcher = HttpxImageFetcher.create(
        allowed_hosts=parse_origins(resolved_settings.image_origins),
        timeout=timeout,
    )
    gallery_service = build_gallery_service(
        media_store=media_store,
        metadata_store=metadata_store,
        image_fetcher=image_fetcher,
        rasterizer=CropRasterizer(output_format=resolved_settings.crop_output_format),
    )

    async def close_resources() -> None:
        await media_store.close()
        await metadata_store.close()
        await image_fetcher.close()

    return AppContainer(
        settings=resolved_settings,
        media_store=media_store,
        metadata_store=metadata_store,
        gallery_service=gallery_service,
        close_resources=close_resources,
    )
