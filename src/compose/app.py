"""FastAPI application factory and lifespan management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI

from compose.config import Settings
from compose.content.previews import PreviewTransformer
from compose.content.store import ContentStore
from compose.middleware.cors import configure_cors
from compose.middleware.logging import RequestLoggingMiddleware
from compose.routes import config, deploy, files, health, pull
from compose.services.cdn_sync import CdnSync, summarize
from compose.services.publisher import Publisher
from compose.state import DeployConfigStore, PullState

logger = structlog.get_logger()


async def auto_pull(app: FastAPI) -> None:
    """Pull from the CDN when no content has been mirrored yet.

    A failed pull is logged; the editor can retry it manually.

    Args:
        app: FastAPI application instance.
    """
    store: ContentStore = app.state.content_store
    if store.content_exists:
        logger.info(
            "content_present",
            root=str(store.root),
            last_pulled_at=app.state.pull_state.last_pulled_at,
        )
        return

    logger.info("content_missing_auto_pull", root=str(store.root))
    try:
        counts = await app.state.cdn_sync.pull()
    except Exception as e:
        logger.error("auto_pull_failed", error=str(e))
        return
    logger.info("auto_pull_completed", summary=summarize(counts))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle events.

    Runs the first-start pull before the server accepts requests and
    closes the shared HTTP client on shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings: Settings = app.state.settings
    deploy_config: DeployConfigStore = app.state.deploy_config
    logger.info(
        "compose_startup",
        host=settings.host,
        port=settings.port,
        content_root=str(settings.content_root),
        deploy_configured=deploy_config.is_deploy_configured,
        rebuild_configured=deploy_config.is_rebuild_configured,
    )

    if settings.auto_pull:
        await auto_pull(app)

    try:
        yield
    finally:
        await app.state.http_client.aclose()
        logger.info("compose_shutdown")


def create_app(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Factory function to create configured FastAPI application.

    Args:
        settings: Configuration instance. Creates default if None.
        http_client: Client for CDN and Netlify calls. Creates a
            redirect-following client if None.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = Settings()
    if http_client is None:
        http_client = httpx.AsyncClient(
            follow_redirects=True,
            timeout=settings.http_timeout,
        )

    app = FastAPI(
        title="Compose Content Server",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if settings.debug else None,
    )

    pull_state = PullState(settings.pull_meta_file)
    pull_state.load()
    deploy_config = DeployConfigStore.load(settings)
    previews = PreviewTransformer(settings.content_root)
    content_store = ContentStore(settings.content_root, previews)

    app.state.settings = settings
    app.state.http_client = http_client
    app.state.pull_state = pull_state
    app.state.deploy_config = deploy_config
    app.state.previews = previews
    app.state.content_store = content_store
    app.state.cdn_sync = CdnSync(
        http_client,
        content_store,
        previews,
        pull_state,
        cdn_base=settings.cdn_base,
        batch_size=settings.pull_batch_size,
    )
    app.state.publisher = Publisher(
        http_client,
        settings.content_root,
        deploy_config,
        api_base=settings.netlify_api_base,
        site_origin=settings.site_origin,
        compression_level=settings.archive_compression_level,
    )

    configure_cors(app, settings.cors_origins)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health.router, prefix="/api")
    app.include_router(config.router, prefix="/api")
    app.include_router(pull.router, prefix="/api")
    app.include_router(files.router, prefix="/api")
    app.include_router(deploy.router, prefix="/api")

    return app
