"""CDN pull tests."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
import pytest

from compose.content.previews import PreviewTransformer
from compose.content.store import ContentStore
from compose.errors import ConflictError, RemoteError
from compose.services.cdn_sync import CdnSync, item_id, summarize
from compose.state import PullState

if TYPE_CHECKING:
    from conftest import FakeRemote

CDN = "https://cdn.test"


def serve_catalog(remote: FakeRemote) -> None:
    """One blog article, two resources (one failing), one artist."""
    remote.json(f"{CDN}/blog/blog.json", {"articles": [{"id": "hello"}]})
    remote.json(
        f"{CDN}/blog/articles/hello.json",
        {"id": "hello", "title": "Hello", "content": [], "readTime": 2},
    )
    remote.json(
        f"{CDN}/resources/resources.json",
        {"resources": [{"slug": "guide"}, {"id": "gone"}, {"title": "no id"}]},
    )
    remote.json(
        f"{CDN}/resources/resources/guide.json",
        {"id": "guide", "description": "<p>Read this.</p> Then that."},
    )
    remote.json(f"{CDN}/resources/resources/gone.json", {"message": "nope"}, status=500)
    remote.json(f"{CDN}/3d-artist-spotlight/artists.json", {"artists": ["ada"]})
    remote.json(
        f"{CDN}/3d-artist-spotlight/artists/ada.json",
        {"id": "ada", "name": "Ada", "links": ["x"]},
    )


@pytest.fixture
def pull_state(content_root: Path) -> PullState:
    return PullState(content_root / ".pull-meta.json")


@pytest.fixture
def sync(
    http_client: httpx.AsyncClient,
    store: ContentStore,
    previews: PreviewTransformer,
    pull_state: PullState,
) -> CdnSync:
    return CdnSync(http_client, store, previews, pull_state, cdn_base=CDN, batch_size=2)


@pytest.mark.asyncio
async def test_pull_mirrors_all_categories(
    sync: CdnSync, remote: FakeRemote, content_root: Path, pull_state: PullState
) -> None:
    serve_catalog(remote)

    counts = await sync.pull()

    assert counts == {"blog": 1, "resources": 1, "artists": 1}
    index = content_root / "resources/resources.json"
    assert json.loads(index.read_text())["resources"][0] == {"slug": "guide"}
    assert (content_root / "blog/articles/hello.json").is_file()
    assert not (content_root / "resources/resources/gone.json").exists()

    assert json.loads((content_root / "blog/previews/hello.json").read_text()) == {
        "id": "hello",
        "title": "Hello",
    }
    assert json.loads((content_root / "resources/previews/guide.json").read_text()) == {
        "id": "guide",
        "description": "Read this.",
    }
    assert json.loads(
        (content_root / "3d-artist-spotlight/previews/ada.json").read_text()
    ) == {"id": "ada", "name": "Ada"}

    assert pull_state.running is False
    assert pull_state.counts == counts
    assert pull_state.last_pulled_at is not None
    meta = json.loads((content_root / ".pull-meta.json").read_text())
    assert meta == {"lastPulledAt": pull_state.last_pulled_at, "counts": counts}


@pytest.mark.asyncio
async def test_pull_follows_redirects(
    sync: CdnSync, remote: FakeRemote, content_root: Path
) -> None:
    serve_catalog(remote)
    remote.add(
        "GET",
        f"{CDN}/blog/blog.json",
        lambda _req: httpx.Response(301, headers={"Location": f"{CDN}/moved/blog.json"}),
    )
    remote.json(f"{CDN}/moved/blog.json", {"articles": []})

    counts = await sync.pull()

    assert counts["blog"] == 0
    assert json.loads((content_root / "blog/blog.json").read_text()) == {"articles": []}


@pytest.mark.asyncio
async def test_index_failure_aborts_and_clears_running(
    sync: CdnSync, remote: FakeRemote, pull_state: PullState, content_root: Path
) -> None:
    remote.json(f"{CDN}/blog/blog.json", {"articles": []})

    with pytest.raises(RemoteError, match="HTTP 404"):
        await sync.pull()

    assert pull_state.running is False
    assert pull_state.error is not None
    assert pull_state.last_pulled_at is None
    assert not (content_root / ".pull-meta.json").exists()


@pytest.mark.asyncio
async def test_invalid_index_is_remote_error(
    sync: CdnSync, remote: FakeRemote, pull_state: PullState
) -> None:
    remote.add("GET", f"{CDN}/blog/blog.json", lambda _req: httpx.Response(200, text="<html>"))

    with pytest.raises(RemoteError, match="Invalid index"):
        await sync.pull()
    assert pull_state.running is False


@pytest.mark.asyncio
async def test_transport_error_on_item_is_skipped(
    sync: CdnSync, remote: FakeRemote
) -> None:
    serve_catalog(remote)

    def explode(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection reset", request=request)

    remote.add("GET", f"{CDN}/blog/articles/hello.json", explode)

    counts = await sync.pull()
    assert counts["blog"] == 0
    assert counts["artists"] == 1


@pytest.mark.asyncio
async def test_unrequestable_id_is_skipped(
    sync: CdnSync, remote: FakeRemote, content_root: Path
) -> None:
    serve_catalog(remote)
    remote.json(
        f"{CDN}/blog/blog.json", {"articles": [{"id": "hello"}, {"id": "bad\nid"}]}
    )

    counts = await sync.pull()

    assert counts["blog"] == 1
    assert (content_root / "blog/previews/hello.json").is_file()


@pytest.mark.asyncio
async def test_traversal_ids_are_skipped(
    sync: CdnSync, remote: FakeRemote, content_root: Path
) -> None:
    serve_catalog(remote)
    remote.json(f"{CDN}/blog/blog.json", {"articles": [{"id": "../../../evil"}]})
    remote.json(f"{CDN}/evil.json", {"id": "evil"})

    counts = await sync.pull()

    assert counts["blog"] == 0
    assert not (content_root.parent / "evil.json").exists()


@pytest.mark.asyncio
async def test_item_fetches_are_batched(
    http_client: httpx.AsyncClient,
    store: ContentStore,
    previews: PreviewTransformer,
    pull_state: PullState,
    remote: FakeRemote,
) -> None:
    """No more than batch_size record fetches run at once."""
    ids = [f"a{i}" for i in range(7)]
    in_flight = 0
    peak = 0

    async def slow_item(request: httpx.Request) -> httpx.Response:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return httpx.Response(200, json={"id": request.url.path})

    async def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url == f"{CDN}/blog/blog.json":
            return httpx.Response(200, json={"articles": [{"id": i} for i in ids]})
        if url.startswith(f"{CDN}/blog/articles/"):
            return await slow_item(request)
        return httpx.Response(200, json={})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    sync = CdnSync(client, store, previews, pull_state, cdn_base=CDN, batch_size=3)

    counts = await sync.pull()

    assert counts == {"blog": 7, "resources": 0, "artists": 0}
    assert peak == 3
    await client.aclose()


@pytest.mark.asyncio
async def test_second_pull_while_running_conflicts(
    store: ContentStore,
    previews: PreviewTransformer,
    pull_state: PullState,
) -> None:
    release = asyncio.Event()
    started = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        started.set()
        await release.wait()
        return httpx.Response(200, json={})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    sync = CdnSync(client, store, previews, pull_state, cdn_base=CDN)

    first = asyncio.create_task(sync.pull())
    await started.wait()

    with pytest.raises(ConflictError):
        await sync.pull()
    assert pull_state.running is True
    assert pull_state.error is None

    release.set()
    assert await first == {"blog": 0, "resources": 0, "artists": 0}
    assert pull_state.running is False
    await client.aclose()


def test_item_id() -> None:
    assert item_id({"id": "a", "slug": "b"}) == "a"
    assert item_id({"slug": "b"}) == "b"
    assert item_id({"id": 7}) == "7"
    assert item_id("plain") == "plain"
    assert item_id({"title": "none"}) is None
    assert item_id(None) is None


def test_summarize() -> None:
    assert summarize({"blog": 2, "resources": 0, "artists": 1}) == (
        "Pulled 3 files (blog: 2, resources: 0, artists: 1)"
    )
