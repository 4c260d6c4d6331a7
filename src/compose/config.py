"""Server configuration loaded from environment variables."""
from pathlib import Path

from pydantic import AliasChoices, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

PULL_META_FILENAME = ".pull-meta.json"


class Settings(BaseSettings):
    """Compose server configuration loaded from environment variables.

    Attributes:
        host: Bind address for the server.
        port: Port number for the server.
        debug: Enable debug logging and API documentation.
        cors_origins_raw: Raw comma-separated CORS origins string.
        content_root: Directory holding the mirrored JSON content.
        cdn_base: Base URL of the CDN serving published content.
        pull_batch_size: Number of item fetches run concurrently per batch.
        http_timeout: Seconds before an outbound HTTP request times out.
        auto_pull: Pull from the CDN on startup when no content exists.
        deploy_config_file: Local JSON file holding deploy credentials.
        netlify_api_base: Base URL of the hosting provider's API.
        netlify_token: Hosting provider access token.
        netlify_site_id: Hosting provider site identifier.
        main_site_build_hook: Build hook URL of the consuming site.
        site_origin: Origin allowed to fetch published content.
        archive_compression_level: Deflate level for deploy archives.
    """

    model_config = SettingsConfigDict(
        env_prefix="COMPOSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    host: str = "127.0.0.1"
    port: int = 3001
    debug: bool = False
    cors_origins_raw: str = "http://localhost:4200"

    content_root: Path = Path("content")
    cdn_base: str = "https://json.allthethings.dev"
    pull_batch_size: int = Field(default=10, ge=1)
    http_timeout: float = 30.0
    auto_pull: bool = True

    deploy_config_file: Path = Path("compose-config.json")
    netlify_api_base: str = "https://api.netlify.com/api/v1"
    netlify_token: str = Field(
        default="",
        validation_alias=AliasChoices("COMPOSE_NETLIFY_TOKEN", "NETLIFY_TOKEN"),
    )
    netlify_site_id: str = Field(
        default="",
        validation_alias=AliasChoices("COMPOSE_NETLIFY_SITE_ID", "NETLIFY_SITE_ID"),
    )
    main_site_build_hook: str = Field(
        default="",
        validation_alias=AliasChoices(
            "COMPOSE_MAIN_SITE_BUILD_HOOK", "MAIN_SITE_BUILD_HOOK"
        ),
    )
    site_origin: str = "https://www.allthethings.dev"
    archive_compression_level: int = Field(default=6, ge=0, le=9)

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string.

        Returns:
            List of allowed origin URLs.
        """
        return [
            origin.strip()
            for origin in self.cors_origins_raw.split(",")
            if origin.strip()
        ]

    @computed_field
    @property
    def pull_meta_file(self) -> Path:
        """Sidecar file recording the last successful pull."""
        return self.content_root / PULL_META_FILENAME
