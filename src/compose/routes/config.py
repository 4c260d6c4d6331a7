"""Deploy configuration endpoints."""

from typing import TYPE_CHECKING

import structlog
from fastapi import APIRouter, HTTPException, Request

from compose.content.schemas import ErrorResponse, SuccessResponse
from compose.state import DeployConfig, DeployConfigUpdate

if TYPE_CHECKING:
    from compose.state import DeployConfigStore

logger = structlog.get_logger()

router = APIRouter(prefix="/config", tags=["config"])


@router.get("", response_model=DeployConfig)
async def get_config(request: Request) -> DeployConfig:
    """Return the deploy configuration with the token masked."""
    deploy_config: DeployConfigStore = request.app.state.deploy_config
    return deploy_config.masked()


@router.post(
    "",
    response_model=SuccessResponse,
    responses={500: {"model": ErrorResponse}},
)
async def save_config(request: Request, changes: DeployConfigUpdate) -> SuccessResponse:
    """Update the deploy configuration and persist it.

    Raises:
        HTTPException: 500 if the config file cannot be written.
    """
    deploy_config: DeployConfigStore = request.app.state.deploy_config
    try:
        deploy_config.update(changes)
    except OSError as e:
        logger.error("deploy_config_save_failed", error=str(e))
        raise HTTPException(status_code=500, detail=str(e)) from e
    return SuccessResponse(success=True)
