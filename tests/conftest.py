"""Shared test fixtures."""

import asyncio
import dataclasses
from dataclasses import dataclass, field
from io import BytesIO

import pytest
from PIL import Image

from photo_gallery.config import Settings
from photo_gallery.containers import AppContainer, build_gallery_service
from photo_gallery.domain.errors import (
    MetadataReadError,
    MetadataWriteError,
    StorageDeleteError,
    StorageWriteError,
)
from photo_gallery.domain.photos import Layout, Photo, PhotoFields
from photo_gallery.services.rasterizer import CropRasterizer
from photo_gallery.services.tiles import (
    ImageFetcher,
    MediaStore,
    MetadataStore,
    TileController,
)

SOURCE_URL = "https://res.cloudinary.com/demo/image/upload/v1/source.png"


def make_png(width: int, height: int, color: str = "red") -> bytes:
    """Encode a solid-color PNG."""
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def decode_size(content: bytes) -> tuple[int, int]:
    return Image.open(BytesIO(content)).size


@dataclass
class InMemoryMediaStore(MediaStore):
    """In-memory media store for tests."""

    objects: dict[str, tuple[bytes, str]] = field(default_factory=dict)
    deleted: list[str] = field(default_factory=list)
    fail_store: bool = False
    fail_delete: bool = False
    release: asyncio.Event | None = None
    stored: int = 0

    async def store(self, content: bytes, mime_type: str) -> str:
        if self.release is not None:
            await self.release.wait()
        if self.fail_store:
            raise StorageWriteError("Upload quota exceeded")
        self.stored += 1
        url = f"https://res.cloudinary.com/demo/image/upload/v1/img{self.stored}.png"
        self.objects[url] = (content, mime_type)
        return url

    async def delete(self, url: str) -> None:
        self.deleted.append(url)
        if self.fail_delete:
            raise StorageDeleteError("Media host refused delete")
        self.objects.pop(url, None)


@dataclass
class InMemoryMetadataStore(MetadataStore):
    """In-memory metadata store for tests."""

    records: dict[str, Photo] = field(default_factory=dict)
    created: list[PhotoFields] = field(default_factory=list)
    updates: list[tuple[str, PhotoFields]] = field(default_factory=list)
    fail_create: bool = False
    fail_update: bool = False
    fail_list: bool = False

    def add(self, photo: Photo) -> Photo:
        self.records[photo.id] = photo
        return photo

    async def create_photo(self, fields: PhotoFields) -> Photo:
        self.created.append(fields)
        if self.fail_create:
            raise MetadataWriteError("Failed to write photo record: 422")
        return self.add(
            Photo(
                id=f"rec{len(self.records) + 1}",
                image_url=fields.image_url or "",
                layout=fields.layout or Layout.SQUARE,
                crop_rect=fields.crop_rect,
                cropped_image_url=fields.cropped_image_url,
            )
        )

    async def list_photos(self) -> list[Photo]:
        if self.fail_list:
            raise MetadataReadError("Failed to fetch photos")
        return list(self.records.values())

    async def update_photo(self, photo_id: str, fields: PhotoFields) -> Photo:
        self.updates.append((photo_id, fields))
        if self.fail_update:
            raise MetadataWriteError("Failed to write photo record: 503")
        changes = {
            item.name: getattr(fields, item.name)
            for item in dataclasses.fields(fields)
            if getattr(fields, item.name) is not None
        }
        return self.add(dataclasses.replace(self.records[photo_id], **changes))


@dataclass
class FakeImageFetcher(ImageFetcher):
    """Fake image fetcher serving bytes by URL."""

    images: dict[str, bytes] = field(default_factory=dict)
    error: Exception | None = None
    release: asyncio.Event | None = None
    fetched: list[str] = field(default_factory=list)

    async def fetch(self, url: str) -> bytes:
        self.fetched.append(url)
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.images[url]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        cloudinary_cloud_name="demo",
        cloudinary_api_key="cloud-key",
        cloudinary_api_secret="cloud-secret",
        airtable_api_key="airtable-key",
        airtable_base_id="app123",
        environment="test",
    )


@pytest.fixture
def media_store() -> InMemoryMediaStore:
    return InMemoryMediaStore()


@pytest.fixture
def metadata_store() -> InMemoryMetadataStore:
    return InMemoryMetadataStore()


@pytest.fixture
def image_fetcher() -> FakeImageFetcher:
    return FakeImageFetcher(images={SOURCE_URL: make_png(400, 400)})


@pytest.fixture
def make_tile(
    media_store: InMemoryMediaStore,
    metadata_store: InMemoryMetadataStore,
    image_fetcher: FakeImageFetcher,
):
    """Build a tile controller wired to the in-memory fakes."""

    def factory(photo: Photo | None = None) -> TileController:
        if photo is not None:
            metadata_store.add(photo)
        return TileController(
            media_store=media_store,
            metadata_store=metadata_store,
            image_fetcher=image_fetcher,
            rasterizer=CropRasterizer(),
            photo=photo,
        )

    return factory


@pytest.fixture
def container(
    settings: Settings,
    media_store: InMemoryMediaStore,
    metadata_store: InMemoryMetadataStore,
    image_fetcher: FakeImageFetcher,
) -> AppContainer:
    gallery_service = build_gallery_service(
        media_store=media_store,
        metadata_store=metadata_store,
        image_fetcher=image_fetcher,
        rasterizer=CropRasterizer(),
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        media_store=media_store,
        metadata_store=metadata_store,
        gallery_service=gallery_service,
        close_resources=close_resources,
    )
