"""Process-wide pull state and deploy configuration."""
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from compose.config import Settings
from compose.errors import ConflictError

logger = structlog.get_logger()


class PullStatus(BaseModel):
    """Pull state reported to the editor."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    running: bool
    last_pulled_at: str | None = None
    counts: dict[str, int] = Field(default_factory=dict)
    content_exists: bool
    error: str | None = None


class PullState:
    """Tracks the CDN pull and persists its last successful result.

    Only ``last_pulled_at`` and ``counts`` survive restarts; they are
    stored in a small sidecar JSON file.

    Attributes:
        running: Whether a pull is in progress.
        last_pulled_at: ISO timestamp of the last successful pull.
        counts: Files pulled per category in the last successful pull.
        error: Message of the last failed pull, cleared on the next start.
    """

    def __init__(self, meta_file: Path) -> None:
        """Initialize pull state.

        Args:
            meta_file: Sidecar file holding persisted pull metadata.
        """
        self._meta_file = meta_file
        self.running = False
        self.last_pulled_at: str | None = None
        self.counts: dict[str, int] = {}
        self.error: str | None = None

    def load(self) -> None:
        """Restore persisted metadata, ignoring a missing or corrupt file."""
        try:
            meta = json.loads(self._meta_file.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, ValueError) as e:
            logger.warning("pull_meta_unreadable", path=str(self._meta_file), error=str(e))
            return

        if not isinstance(meta, dict):
            logger.warning("pull_meta_unreadable", path=str(self._meta_file))
            return
        self.last_pulled_at = meta.get("lastPulledAt")
        self.counts = meta.get("counts") or {}

    def save(self) -> None:
        """Persist the last successful pull; failures are only logged."""
        try:
            self._meta_file.parent.mkdir(parents=True, exist_ok=True)
            self._meta_file.write_text(
                json.dumps(
                    {"lastPulledAt": self.last_pulled_at, "counts": self.counts},
                    indent=2,
                ),
                encoding="utf-8",
            )
        except OSError as e:
            logger.error("pull_meta_save_failed", path=str(self._meta_file), error=str(e))

    def begin(self) -> None:
        """Mark a pull as started.

        No await separates the check from the set, so on a single event
        loop this is the only guard needed.

        Raises:
            ConflictError: If a pull is already running.
        """
        if self.running:
            raise ConflictError("Pull already in progress")
        self.running = True
        self.error = None

    def succeed(self, counts: dict[str, int]) -> None:
        """Record a successful pull and persist it."""
        self.last_pulled_at = datetime.now(timezone.utc).isoformat()
        self.counts = counts
        self.save()

    def fail(self, error: Exception) -> None:
        """Record the message of a failed pull."""
        self.error = str(error)

    def finish(self) -> None:
        """Clear the running flag."""
        self.running = False

    def snapshot(self, content_exists: bool) -> PullStatus:
        """Build the pull-status payload."""
        return PullStatus(
            running=self.running,
            last_pulled_at=self.last_pulled_at,
            counts=dict(self.counts),
            content_exists=content_exists,
            error=self.error,
        )


class DeployConfig(BaseModel):
    """Hosting provider credentials and the rebuild hook."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    token: str = ""
    site_id: str = ""
    build_hook_url: str = ""


class DeployConfigUpdate(BaseModel):
    """Request body for updating the deploy configuration."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    token: str | None = None
    site_id: str | None = None
    build_hook_url: str | None = None


def mask_token(token: str) -> str:
    """Hide all but the last four characters of a token."""
    return f"***{token[-4:]}" if token else ""


class DeployConfigStore:
    """Owns the deploy configuration and its local JSON file.

    Environment values take precedence over the file when loading;
    updates are applied in memory and merged back into the file.
    """

    def __init__(self, path: Path, config: DeployConfig | None = None) -> None:
        """Initialize store.

        Args:
            path: Local (never committed) config file.
            config: Initial configuration.
        """
        self._path = path
        self.config = config or DeployConfig()

    @classmethod
    def load(cls, settings: Settings) -> "DeployConfigStore":
        """Build the configuration from environment, then the config file.

        Args:
            settings: Server settings carrying environment values.

        Returns:
            Store with the merged configuration.
        """
        path = settings.deploy_config_file
        saved = cls._read_file(path)
        config = DeployConfig(
            token=settings.netlify_token or saved.get("token") or "",
            site_id=settings.netlify_site_id or saved.get("siteId") or "",
            build_hook_url=(
                settings.main_site_build_hook or saved.get("buildHookUrl") or ""
            ),
        )
        return cls(path, config)

    @staticmethod
    def _read_file(path: Path) -> dict[str, Any]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("deploy_config_unreadable", path=str(path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    @property
    def is_deploy_configured(self) -> bool:
        """Check that both the token and the site id are set."""
        return bool(self.config.token and self.config.site_id)

    @property
    def is_rebuild_configured(self) -> bool:
        """Check that a build hook URL is set."""
        return bool(self.config.build_hook_url)

    def masked(self) -> DeployConfig:
        """Configuration safe to return to the editor."""
        return self.config.model_copy(update={"token": mask_token(self.config.token)})

    def update(self, changes: DeployConfigUpdate) -> None:
        """Apply changes and persist them to the config file.

        An empty token is ignored so that saving the form with the
        masked token left blank keeps the current one. An empty site id
        or hook clears it.

        Args:
            changes: Fields to update; None leaves a field unchanged.

        Raises:
            OSError: If the config file cannot be written.
        """
        updates: dict[str, str] = {}
        if changes.token:
            updates["token"] = changes.token
        if changes.site_id is not None:
            updates["site_id"] = changes.site_id
        if changes.build_hook_url is not None:
            updates["build_hook_url"] = changes.build_hook_url

        self.config = self.config.model_copy(update=updates)

        saved = self._read_file(self._path)
        saved.update(
            DeployConfig(**updates).model_dump(by_alias=True, include=set(updates))
        )
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(saved, indent=2) + "\n", encoding="utf-8")
        logger.info("deploy_config_saved", fields=sorted(updates))
