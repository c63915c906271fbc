"""Cloudinary upload API client for image storage."""

import hashlib
import logging
import time
from dataclasses import dataclass

import httpx

from photo_gallery.domain.errors import StorageDeleteError, StorageWriteError
from photo_gallery.services.tiles import MediaStore

logger = logging.getLogger(__name__)


@dataclass
class CloudinaryMediaStore(MediaStore):
    """Media store backed by Cloudinary's signed upload API."""

    cloud_name: str
    api_key: str
    api_secret: str
    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 20.0

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        base_url: str = "https://api.cloudinary.com",
        timeout: float = 20.0,
    ) -> "CloudinaryMediaStore":
        """Create a media store with a managed httpx session."""
        return cls(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def store(self, content: bytes, mime_type: str) -> str:
        """Upload content and return its secure URL."""
        url = f"{self.base_url}/v1_1/{self.cloud_name}/image/upload"
        try:
            response = await self.http_client.post(
                url,
                data=self._signed({}),
                files={"file": ("upload", content, mime_type)},
                timeout=self.timeout,
            )
            response.raise_for_status()
            secure_url = response.json().get("secure_url")
        except (httpx.HTTPError, ValueError) as exc:
            raise StorageWriteError("Failed to upload image") from exc
        if not secure_url:
            raise StorageWriteError("Media host returned no image URL")
        return str(secure_url)

    async def delete(self, url: str) -> None:
        """Destroy the object addressed by a previously returned URL."""
        public_id = parse_public_id(url)
        destroy_url = f"{self.base_url}/v1_1/{self.cloud_name}/image/destroy"
        try:
            response = await self.http_client.post(
                destroy_url,
                data=self._signed({"public_id": public_id}),
                timeout=self.timeout,
            )
            response.raise_for_status()
            result = response.json().get("result")
        except (httpx.HTTPError, ValueError) as exc:
            raise StorageDeleteError(f"Failed to delete image {public_id}") from exc
        if result != "ok":
            logger.error(
                "Media host refused delete",
                extra={"public_id": public_id, "result": result},
            )
            raise StorageDeleteError(f"Failed to delete image {public_id}: {result}")

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _signed(self, params: dict[str, str]) -> dict[str, str]:
        signed = {**params, "timestamp": str(int(time.time()))}
        signed["signature"] = sign_params(signed, self.api_secret)
        signed["api_key"] = self.api_key
        return signed


def sign_params(params: dict[str, str], api_secret: str) -> str:
    """Compute a Cloudinary request signature."""
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode()).hexdigest()  # noqa: S324


def parse_public_id(url: str) -> str:
    """Extract the public id (file name without extension) from a media URL."""
    try:
        path = httpx.URL(url).path
    except httpx.InvalidURL as exc:
        raise StorageDeleteError(f"Invalid image URL: {url!r}") from exc
    file_name = path.rstrip("/").rsplit("/", 1)[-1]
    public_id = file_name.split(".", 1)[0]
    if not public_id:
        raise StorageDeleteError(f"No image id in URL: {url!r}")
    return public_id
