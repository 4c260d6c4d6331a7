"""CDN pull endpoints."""

from typing import TYPE_CHECKING

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from compose.content.schemas import ErrorResponse
from compose.errors import ConflictError
from compose.services.cdn_sync import summarize
from compose.state import PullStatus

if TYPE_CHECKING:
    from compose.services.cdn_sync import CdnSync
    from compose.state import PullState

logger = structlog.get_logger()

router = APIRouter(tags=["pull"])


class PullResponse(BaseModel):
    """Response after a completed pull."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    message: str
    counts: dict[str, int]
    last_pulled_at: str | None = None


@router.get("/pull-status", response_model=PullStatus)
async def pull_status(request: Request) -> PullStatus:
    """Report whether a pull is running and the last pull's result."""
    pull_state: PullState = request.app.state.pull_state
    return pull_state.snapshot(request.app.state.content_store.content_exists)


@router.post(
    "/pull",
    response_model=PullResponse,
    responses={409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def pull(request: Request) -> PullResponse:
    """Pull all content from the CDN and wait for it to finish.

    Raises:
        HTTPException: 409 if a pull is already running, 500 on failure.
    """
    cdn_sync: CdnSync = request.app.state.cdn_sync

    try:
        counts = await cdn_sync.pull()
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        logger.error("pull_request_failed", error=str(e))
        raise HTTPException(status_code=500, detail=str(e)) from e

    return PullResponse(
        success=True,
        message=summarize(counts),
        counts=counts,
        last_pulled_at=request.app.state.pull_state.last_pulled_at,
    )
