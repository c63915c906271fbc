"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    cloudinary_cloud_name: str
    cloudinary_api_key: str
    cloudinary_api_secret: str
    cloudinary_base_url: str = "https://api.cloudinary.com"
    airtable_api_key: str
    airtable_base_id: str
    airtable_table_name: str = "gallery"
    airtable_base_url: str = "https://api.airtable.com/v0"
    image_origins: str = "res.cloudinary.com"
    crop_output_format: str = "PNG"
    http_timeout_seconds: float = 20.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_origins(raw: str | None) -> frozenset[str]:
    """Parse the comma-separated list of hosts images may be read from."""
    if raw is None:
        return frozenset()
    hosts = {chunk.strip().lower() for chunk in raw.split(",")}
    hosts.discard("")
    return frozenset(hosts)
