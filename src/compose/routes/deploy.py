"""Publish endpoints: Netlify deploy and main site rebuild."""

from typing import TYPE_CHECKING

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from compose.content.schemas import ErrorResponse
from compose.errors import ConfigurationError, NotFoundError, RemoteError

if TYPE_CHECKING:
    from compose.services.publisher import Publisher

logger = structlog.get_logger()

router = APIRouter(tags=["deploy"])


class DeployResponse(BaseModel):
    """Response after a successful deploy upload."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    message: str
    deploy_id: str | None = None
    state: str | None = None


class RebuildResponse(BaseModel):
    """Response after triggering the build hook."""

    success: bool
    message: str
    status: int


@router.post(
    "/deploy",
    response_model=DeployResponse,
    responses={500: {"model": ErrorResponse}},
)
async def deploy(request: Request) -> DeployResponse:
    """Zip the content root and deploy it to Netlify.

    Raises:
        HTTPException: 500 if unconfigured, content is missing, or the
            upload fails.
    """
    publisher: Publisher = request.app.state.publisher

    try:
        result = await publisher.publish()
    except (ConfigurationError, NotFoundError, RemoteError) as e:
        logger.warning("deploy_failed", error=str(e))
        raise HTTPException(status_code=500, detail=str(e)) from e
    except OSError as e:
        logger.error("deploy_archive_failed", error=str(e))
        raise HTTPException(status_code=500, detail=str(e)) from e

    return DeployResponse(
        success=True,
        message="JSON content deployed successfully.",
        deploy_id=result.deploy_id,
        state=result.state,
    )


@router.post(
    "/rebuild",
    response_model=RebuildResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def rebuild(request: Request) -> RebuildResponse:
    """Trigger the main site's build hook.

    Raises:
        HTTPException: 400 if no hook is configured, 500 if the hook fails.
    """
    publisher: Publisher = request.app.state.publisher

    try:
        result = await publisher.trigger_rebuild()
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except RemoteError as e:
        logger.warning("rebuild_failed", error=str(e))
        raise HTTPException(status_code=500, detail=str(e)) from e

    return RebuildResponse(
        success=True,
        message="Main site rebuild triggered. Prerendered pages will update in a few minutes.",
        status=result.status,
    )
