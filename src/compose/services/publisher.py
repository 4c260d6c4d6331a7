"""Deploys the content root to Netlify and triggers the site rebuild."""

import asyncio
import io
import os
import zipfile
from dataclasses import dataclass
from pathlib import Path

import httpx
import structlog

from compose.config import PULL_META_FILENAME
from compose.errors import ConfigurationError, NotFoundError, RemoteError
from compose.state import DeployConfigStore

logger = structlog.get_logger()

HEADERS_FILENAME = "_headers"

EXCLUDED_DIRS: frozenset[str] = frozenset({".git", "node_modules"})
EXCLUDED_FILES: frozenset[str] = frozenset({".DS_Store"})
# Only excluded at the archive root.
EXCLUDED_ROOT_FILES: frozenset[str] = frozenset({PULL_META_FILENAME, HEADERS_FILENAME})


def headers_file(site_origin: str) -> str:
    """Netlify _headers directive allowing the site to fetch content."""
    return (
        "/*\n"
        f"  Access-Control-Allow-Origin: {site_origin}\n"
        "  Access-Control-Allow-Methods: GET\n"
        "  Vary: Origin\n"
    )


@dataclass
class DeployResult:
    """Outcome of a successful deploy upload."""

    status: int
    deploy_id: str | None
    state: str | None
    archive_size: int


@dataclass
class RebuildResult:
    """Outcome of a build hook trigger."""

    status: int


class Publisher:
    """Packages the content root and hands it to the hosting provider."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        root: Path,
        deploy_config: DeployConfigStore,
        api_base: str,
        site_origin: str,
        compression_level: int = 6,
    ) -> None:
        """Initialize publisher.

        Args:
            client: Shared HTTP client.
            root: The content root directory.
            deploy_config: Owner of the credentials and build hook.
            api_base: Base URL of the Netlify API.
            site_origin: Origin granted CORS access to published files.
            compression_level: Deflate level for the archive.
        """
        self._client = client
        self._root = root
        self._deploy_config = deploy_config
        self._api_base = api_base.rstrip("/")
        self._site_origin = site_origin
        self._compression_level = compression_level

    def _archive_members(self) -> list[tuple[Path, str]]:
        members: list[tuple[Path, str]] = []
        for dirpath, dirnames, filenames in os.walk(self._root):
            dirnames[:] = sorted(d for d in dirnames if d not in EXCLUDED_DIRS)
            current = Path(dirpath)
            at_root = current == self._root
            for name in sorted(filenames):
                if name in EXCLUDED_FILES:
                    continue
                if at_root and name in EXCLUDED_ROOT_FILES:
                    continue
                path = current / name
                members.append((path, path.relative_to(self._root).as_posix()))
        return members

    def build_archive(self) -> bytes:
        """Build an in-memory ZIP of the content root.

        The injected _headers file always wins over a local one.

        Returns:
            ZIP archive bytes.
        """
        buffer = io.BytesIO()
        with zipfile.ZipFile(
            buffer,
            "w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=self._compression_level,
        ) as archive:
            archive.writestr(HEADERS_FILENAME, headers_file(self._site_origin))
            members = self._archive_members()
            for path, arcname in members:
                archive.write(path, arcname)

        data = buffer.getvalue()
        logger.info("deploy_archive_built", files=len(members) + 1, size=len(data))
        return data

    async def publish(self) -> DeployResult:
        """Upload the content root as a new Netlify deploy.

        Returns:
            Status and deploy metadata from the provider.

        Raises:
            ConfigurationError: If the token or site id is unset.
            NotFoundError: If the content root does not exist.
            RemoteError: If the upload fails or is rejected.
        """
        config = self._deploy_config.config
        if not self._deploy_config.is_deploy_configured:
            raise ConfigurationError(
                "Netlify credentials not configured. "
                "Open Config and add the token and site id."
            )
        if not self._root.is_dir():
            raise NotFoundError("No local content found. Pull from CDN first.")

        archive = await asyncio.to_thread(self.build_archive)
        url = f"{self._api_base}/sites/{config.site_id}/deploys"
        logger.info("deploy_uploading", site_id=config.site_id, size=len(archive))

        try:
            response = await self._client.post(
                url,
                content=archive,
                headers={
                    "Authorization": f"Bearer {config.token}",
                    "Content-Type": "application/zip",
                    "Content-Length": str(len(archive)),
                },
            )
        except httpx.HTTPError as e:
            raise RemoteError(f"Netlify upload failed: {e}") from e

        data = _json_or_none(response)
        if not response.is_success:
            detail = (data or {}).get("message") or response.text or response.status_code
            logger.error(
                "deploy_rejected",
                status=response.status_code,
                detail=str(detail)[:300],
            )
            raise RemoteError(
                f"Netlify API error: {detail}",
                status_code=response.status_code,
            )

        result = DeployResult(
            status=response.status_code,
            deploy_id=(data or {}).get("id"),
            state=(data or {}).get("state"),
            archive_size=len(archive),
        )
        logger.info(
            "deploy_uploaded",
            status=result.status,
            deploy_id=result.deploy_id,
            state=result.state,
        )
        return result

    async def trigger_rebuild(self) -> RebuildResult:
        """POST to the consuming site's build hook.

        Raises:
            ConfigurationError: If no build hook is configured.
            RemoteError: If the hook request fails or is rejected.
        """
        if not self._deploy_config.is_rebuild_configured:
            raise ConfigurationError(
                "No main site build hook configured. "
                "Open Config and add the build hook URL."
            )

        try:
            response = await self._client.post(
                self._deploy_config.config.build_hook_url,
                content=b"",
                headers={"Content-Length": "0"},
            )
        except httpx.HTTPError as e:
            raise RemoteError(f"Build hook request failed: {e}") from e

        logger.info(
            "rebuild_triggered",
            status=response.status_code,
            body=response.text[:200],
        )
        if not response.is_success:
            raise RemoteError(
                f"Build hook returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return RebuildResult(status=response.status_code)


def _json_or_none(response: httpx.Response) -> dict | None:
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None
