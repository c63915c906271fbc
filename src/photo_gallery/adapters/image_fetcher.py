"""Source image download client."""

from dataclasses import dataclass

import httpx

from photo_gallery.domain.errors import SourceImageError, TaintedCanvasError
from photo_gallery.services.tiles import ImageFetcher

MAX_REDIRECTS = 5


@dataclass
class HttpxImageFetcher(ImageFetcher):
    """Downloads source images from trusted origins.

    Redirects are followed by hand so every hop is checked against the
    allowed hosts before it is requested.
    """

    allowed_hosts: frozenset[str]
    http_client: httpx.AsyncClient
    timeout: float = 20.0

    @classmethod
    def create(
        cls, allowed_hosts: frozenset[str], timeout: float = 20.0
    ) -> "HttpxImageFetcher":
        """Create an image fetcher with a managed httpx session."""
        return cls(
            allowed_hosts=allowed_hosts,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def fetch(self, url: str) -> bytes:
        """Download image bytes; other origins cannot be read back."""
        request_url = self._checked_url(url)
        for _ in range(MAX_REDIRECTS + 1):
            try:
                response = await self.http_client.get(
                    request_url, follow_redirects=False, timeout=self.timeout
                )
            except httpx.HTTPError as exc:
                raise SourceImageError("Failed to download source image") from exc
            if not response.is_redirect:
                break
            request_url = self._checked_url(
                response.url.join(response.headers["Location"])
            )
        else:
            raise SourceImageError("Too many redirects for source image")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SourceImageError("Failed to download source image") from exc
        return response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _checked_url(self, url: str | httpx.URL) -> httpx.URL:
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as exc:
            raise SourceImageError(f"Invalid image URL: {url!r}") from exc
        host = parsed.host.lower()
        if host not in self.allowed_hosts:
            raise TaintedCanvasError(f"Images from {host or url!r} cannot be read")
        return parsed
