"""Pytest configuration and fixtures."""

import sys
from collections.abc import Callable
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from compose.app import create_app
from compose.config import Settings
from compose.content.previews import PreviewTransformer
from compose.content.store import ContentStore

Handler = Callable[[httpx.Request], httpx.Response]


class FakeRemote:
    """Routes outbound requests to per-test handlers.

    Unrouted requests get a 404, and every request is recorded.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, handler: Handler) -> None:
        self.routes[(method, url)] = handler

    def json(self, url: str, payload: object, status: int = 200) -> None:
        self.add("GET", url, lambda _req: httpx.Response(status, json=payload))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, str(request.url)))
        if handler is None:
            return httpx.Response(404, text="not found")
        return handler(request)


@pytest.fixture
def content_root(tmp_path: Path) -> Path:
    """Empty content root for one test."""
    root = tmp_path / "content"
    root.mkdir()
    return root


@pytest.fixture
def settings(tmp_path: Path, content_root: Path) -> Settings:
    """Create test settings."""
    return Settings(
        host="127.0.0.1",
        port=3001,
        debug=True,
        content_root=content_root,
        cdn_base="https://cdn.test",
        netlify_api_base="https://netlify.test/api/v1",
        deploy_config_file=tmp_path / "compose-config.json",
        netlify_token="",
        netlify_site_id="",
        main_site_build_hook="",
        site_origin="https://www.example.test",
        auto_pull=False,
    )


@pytest.fixture
def remote() -> FakeRemote:
    """Fake CDN and Netlify endpoints."""
    return FakeRemote()


@pytest.fixture
def http_client(remote: FakeRemote) -> httpx.AsyncClient:
    """HTTP client wired to the fake remote."""
    return httpx.AsyncClient(
        transport=httpx.MockTransport(remote),
        follow_redirects=True,
    )


@pytest.fixture
def previews(content_root: Path) -> PreviewTransformer:
    return PreviewTransformer(content_root)


@pytest.fixture
def store(content_root: Path, previews: PreviewTransformer) -> ContentStore:
    return ContentStore(content_root, previews)


@pytest.fixture
def app(settings: Settings, http_client: httpx.AsyncClient) -> FastAPI:
    """Create configured app."""
    return create_app(settings, http_client=http_client)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create test client with configured app."""
    return TestClient(app)
