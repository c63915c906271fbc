"""Airtable-backed photo metadata store."""

import logging
from dataclasses import dataclass

import httpx

from photo_gallery.domain.errors import MetadataReadError, MetadataWriteError
from photo_gallery.domain.photos import CropRect, Layout, Photo, PhotoFields
from photo_gallery.services.tiles import MetadataStore

logger = logging.getLogger(__name__)

FIELD_IMAGE = "image"
FIELD_LAYOUT = "layout"
FIELD_CROP_DATA = "cropData"
FIELD_CROPPED_IMAGE = "cropped_img"


@dataclass
class AirtableMetadataStore(MetadataStore):
    """Metadata store using the Airtable REST API, one record per photo."""

    api_key: str
    base_id: str
    table_name: str
    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 20.0

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        api_key: str,
        base_id: str,
        table_name: str = "gallery",
        base_url: str = "https://api.airtable.com/v0",
        timeout: float = 20.0,
    ) -> "AirtableMetadataStore":
        """Create a metadata store with a managed httpx session."""
        return cls(
            api_key=api_key,
            base_id=base_id,
            table_name=table_name,
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def create_photo(self, fields: PhotoFields) -> Photo:
        """Insert a photo record; layout defaults to 1x1."""
        if not fields.image_url:
            raise MetadataWriteError("A photo record needs an image URL")
        record_fields = _to_record_fields(fields)
        record_fields.setdefault(FIELD_LAYOUT, Layout.SQUARE.value)
        record = await self._write("POST", self._table_url(), record_fields)
        return _require_photo(record)

    async def list_photos(self) -> list[Photo]:
        """Return all photo records, following pagination."""
        photos: list[Photo] = []
        params: dict[str, str] = {}
        while True:
            try:
                response = await self.http_client.get(
                    self._table_url(),
                    params=params,
                    headers=self._headers(),
                    timeout=self.timeout,
                )
                response.raise_for_status()
                payload = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                raise MetadataReadError("Failed to fetch photos") from exc
            for record in payload.get("records", []):
                photo = _to_photo(record)
                if photo is not None:
                    photos.append(photo)
            offset = payload.get("offset")
            if not offset:
                return photos
            params = {"offset": str(offset)}

    async def update_photo(self, photo_id: str, fields: PhotoFields) -> Photo:
        """Merge the provided fields into an existing record."""
        record_fields = _to_record_fields(fields)
        if not record_fields:
            raise MetadataWriteError("Nothing to update")
        record = await self._write(
            "PATCH", f"{self._table_url()}/{photo_id}", record_fields
        )
        return _require_photo(record)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _write(
        self, method: str, url: str, record_fields: dict[str, object]
    ) -> dict[str, object]:
        try:
            response = await self.http_client.request(
                method,
                url,
                json={"fields": record_fields},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise MetadataWriteError("Failed to reach metadata store") from exc
        if response.is_error:
            logger.error(
                "Airtable error details",
                extra={"status": response.status_code, "body": response.text},
            )
            raise MetadataWriteError(
                f"Failed to write photo record: {response.status_code}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise MetadataWriteError("Metadata store returned invalid JSON") from exc

    def _table_url(self) -> str:
        return f"{self.base_url}/{self.base_id}/{self.table_name}"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}


def _to_record_fields(fields: PhotoFields) -> dict[str, object]:
    """Map photo fields onto Airtable column names, skipping unset ones."""
    record: dict[str, object] = {}
    if fields.image_url is not None:
        record[FIELD_IMAGE] = fields.image_url
    if fields.layout is not None:
        record[FIELD_LAYOUT] = fields.layout.value
    if fields.crop_rect is not None:
        record[FIELD_CROP_DATA] = fields.crop_rect.to_json()
    if fields.cropped_image_url is not None:
        record[FIELD_CROPPED_IMAGE] = fields.cropped_image_url
    return record


def _to_photo(record: dict[str, object]) -> Photo | None:
    """Build a photo from an Airtable record; None when it has no image."""
    record_id = record.get("id")
    fields = record.get("fields") or {}
    if not record_id or not isinstance(fields, dict):
        return None
    image_url = _image_url(fields.get(FIELD_IMAGE))
    if not image_url:
        return None
    crop_rect = None
    raw_crop = fields.get(FIELD_CROP_DATA)
    if isinstance(raw_crop, str) and raw_crop:
        try:
            crop_rect = CropRect.from_json(raw_crop)
        except ValueError:
            logger.warning(
                "Ignoring malformed crop data", extra={"record_id": record_id}
            )
    cropped = fields.get(FIELD_CROPPED_IMAGE)
    return Photo(
        id=str(record_id),
        image_url=image_url,
        layout=Layout.parse(fields.get(FIELD_LAYOUT)),
        crop_rect=crop_rect,
        cropped_image_url=_image_url(cropped),
    )


def _image_url(value: object) -> str | None:
    """Read a URL from a text field or the first entry of an attachment field."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, list) and value and isinstance(value[0], dict):
        url = value[0].get("url")
        return str(url) if url else None
    return None


def _require_photo(record: dict[str, object]) -> Photo:
    photo = _to_photo(record)
    if photo is None:
        raise MetadataWriteError("Metadata store returned a record without an image")
    return photo
