"""Health check endpoints for liveness and readiness probes."""
from pathlib import Path
from typing import Literal

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

router = APIRouter(prefix="/health", tags=["health"])


class LivenessResponse(BaseModel):
    """Response model for liveness probe.

    Attributes:
        status: Always 'alive' when process is running.
    """

    status: Literal["alive"]


class ReadinessCheck(BaseModel):
    """Individual dependency check result.

    Attributes:
        name: Identifier for the dependency being checked.
        status: Result of the check ('ok' or 'failed').
        message: Error details when status is 'failed'.
    """

    name: str
    status: Literal["ok", "failed"]
    message: str | None = None


class ReadinessResponse(BaseModel):
    """Response model for readiness probe.

    Attributes:
        status: Overall readiness ('ready' or 'not_ready').
        checks: List of individual dependency check results.
    """

    status: Literal["ready", "not_ready"]
    checks: list[ReadinessCheck]


def _check_directory(path: Path) -> ReadinessCheck:
    """Verify directory exists and is listable.

    Args:
        path: Directory to check.

    Returns:
        Check result with status and optional error message.
    """
    name = f"dir:{path}"
    try:
        if path.is_dir():
            next(path.iterdir(), None)
            return ReadinessCheck(name=name, status="ok")
        return ReadinessCheck(name=name, status="failed", message="Directory not found")
    except PermissionError as e:
        return ReadinessCheck(name=name, status="failed", message=f"Permission denied: {e}")
    except OSError as e:
        return ReadinessCheck(name=name, status="failed", message=str(e))


@router.get("/live", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness probe endpoint.

    Returns:
        Liveness status response.
    """
    return LivenessResponse(status="alive")


@router.get("/ready", response_model=ReadinessResponse)
async def readiness(request: Request) -> JSONResponse:
    """Readiness probe endpoint.

    The server is ready once the content root exists and no pull is
    in progress. Returns 200 when ready, 503 otherwise.

    Returns:
        Readiness status with individual check results.
    """
    settings = request.app.state.settings
    pull_state = request.app.state.pull_state

    checks = [_check_directory(settings.content_root)]
    checks.append(
        ReadinessCheck(
            name="pull",
            status="failed" if pull_state.running else "ok",
            message="Pull in progress" if pull_state.running else None,
        )
    )
    all_ok = all(c.status == "ok" for c in checks)
    response = ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        checks=checks,
    )
    code = status.HTTP_200_OK if all_ok else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=response.model_dump(), status_code=code)
