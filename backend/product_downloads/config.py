"""Configuration from environment (no hardcoded secrets)."""

from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Backend settings from env."""

    model_config = SettingsConfigDict(env_prefix="DOWNLOADS_", env_file=".env", extra="ignore")

    # Store the private admin client talks to (product lookups, metafields)
    shop: str = ""
    shopify_admin_token: str = ""
    shopify_api_version: str = "2024-01"

    # Public app credentials (OAuth, session tokens, webhook HMAC)
    shopify_api_key: str = ""
    shopify_api_secret: str = ""
    # Comma-separated, e.g. "read_products,write_products"
    scopes: str = "read_products,write_products"
    host: str = "https://localhost:8081"

    @property
    def scopes_list(self) -> List[str]:
        """Granted scopes as a list (split on comma)."""
        return [s.strip() for s in self.scopes.split(",") if s.strip()]

    @property
    def host_name(self) -> str:
        """Host without scheme or trailing slash."""
        name = self.host.strip()
        for scheme in ("https://", "http://"):
            if name.startswith(scheme):
                name = name[len(scheme):]
        return name.rstrip("/")

    # Object storage
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_bucket_name: str = ""
    aws_region: str = "eu-central-1"
    aws_endpoint_url: Optional[str] = None

    # Shop sessions: "memory" (lost on restart) or "sqlite"
    session_backend: str = "memory"
    db_path: Path = Path("product_downloads.db")

    # Server
    port: int = 8081
    environment: str = "development"
    http_timeout: float = 30.0

    @property
    def is_dev(self) -> bool:
        return self.environment != "production"

    # Logging (empty log_file = stderr only; level DEBUG|INFO|WARNING|ERROR)
    log_level: str = "INFO"
    log_file: str = ""


def get_settings() -> Settings:
    """Return application settings."""
    return Settings()
