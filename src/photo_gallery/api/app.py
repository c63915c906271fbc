"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, HTTPException, Request, UploadFile, status
from fastapi.responses import HTMLResponse, JSONResponse

from photo_gallery.api.gallery_ui import GALLERY_UI_HTML
from photo_gallery.api.models import (
    CropEditorRequest,
    CropRectPayload,
    DeleteImageRequest,
    GalleryResponse,
    LayoutOption,
    LayoutRequest,
    TileResponse,
    UploadResponse,
)
from photo_gallery.app_logging import configure_logging
from photo_gallery.containers import AppContainer
from photo_gallery.domain.errors import (
    GalleryError,
    InvalidCropError,
    PhotoNotFoundError,
    StorageDeleteError,
    TaintedCanvasError,
    TileBusyError,
    TileStateError,
)
from photo_gallery.domain.photos import Layout

_UNPROCESSABLE = 422

_ERROR_STATUS: list[tuple[type[GalleryError], int]] = [
    (PhotoNotFoundError, status.HTTP_404_NOT_FOUND),
    (TileBusyError, status.HTTP_409_CONFLICT),
    (TileStateError, status.HTTP_409_CONFLICT),
    (InvalidCropError, _UNPROCESSABLE),
    (TaintedCanvasError, _UNPROCESSABLE),
    (StorageDeleteError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(GalleryError)
    async def gallery_error_handler(
        request: Request, exc: GalleryError
    ) -> JSONResponse:
        state_container: AppContainer = request.app.state.container
        return JSONResponse(
            status_code=_status_for(exc),
            content={"detail": _format_error(state_container, exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/", response_class=HTMLResponse)
    async def gallery_page() -> HTMLResponse:
        """Minimal gallery page that consumes the API."""
        return HTMLResponse(GALLERY_UI_HTML)

    @app.post("/api/upload", response_model=UploadResponse)
    async def upload_image(
        request: Request, file: UploadFile | None = File(default=None)
    ) -> UploadResponse:
        """Store an image in the media host and return its URL."""
        state_container: AppContainer = request.app.state.container
        content, mime_type = await _read_image(file)
        url = await state_container.media_store.store(content, mime_type)
        return UploadResponse(url=url)

    @app.delete("/api/delete-image")
    async def delete_image(
        payload: DeleteImageRequest, request: Request
    ) -> dict[str, str]:
        """Remove an image from the media host by URL."""
        state_container: AppContainer = request.app.state.container
        if not payload.image_url:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No image URL provided",
            )
        try:
            await state_container.media_store.delete(payload.image_url)
        except StorageDeleteError:
            logger.exception(
                "Failed to delete image", extra={"url": payload.image_url}
            )
            raise
        return {"message": "Image deleted successfully"}

    @app.get("/api/layouts", response_model=list[LayoutOption])
    async def layouts() -> list[LayoutOption]:
        """Return the selectable tile layouts."""
        return [
            LayoutOption(id=layout, label=layout.label, aspect=layout.aspect)
            for layout in Layout
        ]

    @app.get("/api/photos", response_model=GalleryResponse)
    async def list_photos(request: Request) -> GalleryResponse:
        """Return the gallery grid, including the empty upload slot."""
        state_container: AppContainer = request.app.state.container
        try:
            views = await state_container.gallery_service.list_tiles()
        except GalleryError:
            logger.exception("Error fetching photos")
            raise
        return GalleryResponse(tiles=[TileResponse.from_view(view) for view in views])

    @app.post(
        "/api/tiles",
        response_model=TileResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_tile(
        request: Request, file: UploadFile | None = File(default=None)
    ) -> TileResponse:
        """Upload an image through the empty slot and create its record."""
        state_container: AppContainer = request.app.state.container
        content, mime_type = await _read_image(file)
        view = await state_container.gallery_service.upload(content, mime_type)
        return TileResponse.from_view(view)

    @app.get("/api/tiles/{photo_id}", response_model=TileResponse)
    async def get_tile(photo_id: str, request: Request) -> TileResponse:
        """Return the current state of a tile."""
        state_container: AppContainer = request.app.state.container
        tile = await state_container.gallery_service.tile(photo_id)
        return TileResponse.from_view(tile.view())

    @app.post("/api/tiles/{photo_id}/layout/open", response_model=TileResponse)
    async def open_layout_editor(photo_id: str, request: Request) -> TileResponse:
        state_container: AppContainer = request.app.state.container
        tile = await state_container.gallery_service.tile(photo_id)
        tile.open_layout_editor()
        return TileResponse.from_view(tile.view())

    @app.put("/api/tiles/{photo_id}/layout", response_model=TileResponse)
    async def select_layout(
        photo_id: str, payload: LayoutRequest, request: Request
    ) -> TileResponse:
        """Persist the selected layout for a tile."""
        state_container: AppContainer = request.app.state.container
        tile = await state_container.gallery_service.tile(photo_id)
        await tile.select_layout(payload.layout)
        return TileResponse.from_view(tile.view())

    @app.post("/api/tiles/{photo_id}/crop/open", response_model=TileResponse)
    async def open_crop_editor(
        photo_id: str, payload: CropEditorRequest, request: Request
    ) -> TileResponse:
        """Start crop editing for an image shown at the given size."""
        state_container: AppContainer = request.app.state.container
        tile = await state_container.gallery_service.tile(photo_id)
        tile.open_crop_editor(payload.displayed_width, payload.displayed_height)
        return TileResponse.from_view(tile.view())

    @app.put("/api/tiles/{photo_id}/crop", response_model=TileResponse)
    async def drag_crop(
        photo_id: str, payload: CropRectPayload, request: Request
    ) -> TileResponse:
        """Update the pending crop rectangle."""
        state_container: AppContainer = request.app.state.container
        tile = await state_container.gallery_service.tile(photo_id)
        tile.drag_crop(payload.to_domain())
        return TileResponse.from_view(tile.view())

    @app.post("/api/tiles/{photo_id}/crop/confirm", response_model=TileResponse)
    async def confirm_crop(photo_id: str, request: Request) -> TileResponse:
        """Save the pending crop as a derived image."""
        state_container: AppContainer = request.app.state.container
        tile = await state_container.gallery_service.tile(photo_id)
        await tile.confirm_crop()
        return TileResponse.from_view(tile.view())

    @app.post("/api/tiles/{photo_id}/editor/close", response_model=TileResponse)
    async def close_editor(photo_id: str, request: Request) -> TileResponse:
        state_container: AppContainer = request.app.state.container
        tile = await state_container.gallery_service.tile(photo_id)
        tile.close_editor()
        return TileResponse.from_view(tile.view())

    return app


async def _read_image(file: UploadFile | None) -> tuple[bytes, str]:
    """Read an uploaded image, rejecting missing or non-image files."""
    if file is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided"
        )
    mime_type = file.content_type or "application/octet-stream"
    if not mime_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only image uploads are supported",
        )
    content = await file.read()
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty"
        )
    return content, mime_type


def _status_for(exc: GalleryError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_502_BAD_GATEWAY


def _format_error(state_container: AppContainer, exc: GalleryError) -> str:
    """Return a user-facing error message with local debug info."""
    message = str(exc) or type(exc).__name__
    cause = exc.__cause__
    if state_container.settings.environment == "local" and cause is not None:
        return f"{message} (debug: {type(cause).__name__}: {cause})"
    return message
