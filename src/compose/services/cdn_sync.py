"""Mirror of the CDN's JSON content into the local content root.

Each category's index document is fetched first and stored verbatim;
the records it lists are then fetched in fixed-size concurrent batches.
A failed record is logged and skipped, leaving its local file absent
or stale. A failed index fetch aborts the whole pull.
"""

import asyncio
import json
from typing import Any

import httpx
import structlog

from compose.content.paths import CATEGORIES, ID_FIELDS, CategorySpec
from compose.content.previews import PreviewTransformer
from compose.content.store import ContentStore
from compose.errors import ComposeError, RemoteError
from compose.state import PullState

logger = structlog.get_logger()

DEFAULT_BATCH_SIZE = 10


def item_id(item: Any) -> str | None:
    """Extract a record id from an index entry.

    Args:
        item: Entry of the index's item list, an object or a bare id.

    Returns:
        The id, or None when the entry carries none.
    """
    if isinstance(item, str):
        return item or None
    if isinstance(item, dict):
        for key in ID_FIELDS:
            value = item.get(key)
            if value:
                return str(value)
    return None


def summarize(counts: dict[str, int]) -> str:
    """Human-readable summary of a finished pull."""
    total = sum(counts.values())
    detail = ", ".join(f"{key}: {count}" for key, count in counts.items())
    return f"Pulled {total} files ({detail})"


class CdnSync:
    """Pulls every category from the CDN into the content store.

    Attributes:
        cdn_base: Base URL the content layout is served under.
        batch_size: Number of record fetches run concurrently.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        store: ContentStore,
        previews: PreviewTransformer,
        state: PullState,
        cdn_base: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        """Initialize sync service.

        Args:
            client: Shared HTTP client; must follow redirects.
            store: Store receiving the mirrored files.
            previews: Transformer regenerated after the pull.
            state: Pull state guarding against overlapping pulls.
            cdn_base: Base URL of the CDN.
            batch_size: Record fetches per concurrent batch.
        """
        self._client = client
        self._store = store
        self._previews = previews
        self._state = state
        self.cdn_base = cdn_base.rstrip("/")
        self.batch_size = batch_size

    async def pull(self) -> dict[str, int]:
        """Mirror all categories and regenerate previews.

        Returns:
            Number of records pulled per category.

        Raises:
            ConflictError: If a pull is already running.
            RemoteError: If an index document cannot be fetched.
        """
        self._state.begin()
        logger.info("cdn_pull_started", cdn_base=self.cdn_base)

        try:
            counts: dict[str, int] = {}
            for spec in CATEGORIES.values():
                counts[spec.key.value] = await self._pull_category(spec)

            report = await asyncio.to_thread(self._previews.regenerate_all)
            self._state.succeed(counts)
            logger.info(
                "cdn_pull_completed",
                counts=counts,
                previews=report.written,
                preview_errors=report.errors,
            )
            return counts
        except Exception as e:
            self._state.fail(e)
            logger.error("cdn_pull_failed", error=str(e))
            raise
        finally:
            self._state.finish()

    async def _pull_category(self, spec: CategorySpec) -> int:
        body = await self._fetch(spec.index_file)
        await asyncio.to_thread(self._store.mirror, spec.index_file, body)

        try:
            index = json.loads(body)
        except json.JSONDecodeError as e:
            raise RemoteError(f"Invalid index document for {spec.key.value}: {e}") from e

        items = index.get(spec.items_key) if isinstance(index, dict) else None
        ids = [i for i in (item_id(item) for item in items or []) if i]

        pulled = 0
        for start in range(0, len(ids), self.batch_size):
            batch = ids[start:start + self.batch_size]
            results = await asyncio.gather(
                *(self._pull_item(spec, record_id) for record_id in batch)
            )
            pulled += sum(results)

        logger.info(
            "cdn_category_pulled",
            category=spec.key.value,
            pulled=pulled,
            listed=len(ids),
        )
        return pulled

    async def _pull_item(self, spec: CategorySpec, record_id: str) -> bool:
        relative_path = spec.item_path(record_id)
        try:
            body = await self._fetch(relative_path)
            await asyncio.to_thread(self._store.mirror, relative_path, body)
        except (ComposeError, OSError) as e:
            logger.warning(
                "cdn_item_fetch_failed",
                category=spec.key.value,
                id=record_id,
                error=str(e),
            )
            return False
        return True

    async def _fetch(self, relative_path: str) -> str:
        url = f"{self.cdn_base}/{relative_path}"
        try:
            response = await self._client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RemoteError(f"Request failed for {url}: {e}") from e

        if response.status_code != 200:
            raise RemoteError(
                f"HTTP {response.status_code} for {url}",
                status_code=response.status_code,
            )
        return response.text
