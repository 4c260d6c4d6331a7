"""Content file REST endpoints used by the editor."""

from typing import TYPE_CHECKING

import structlog
from fastapi import APIRouter, HTTPException, Query, Request

from compose.content.schemas import (
    ErrorResponse,
    FileContent,
    FileEntry,
    FileWriteRequest,
    FileWriteResponse,
    SectionInfo,
    SuccessResponse,
)
from compose.errors import NotFoundError, PathTraversalError, ValidationError

if TYPE_CHECKING:
    from compose.content.store import ContentStore

logger = structlog.get_logger()

router = APIRouter(tags=["files"])


def _store(request: Request) -> "ContentStore":
    return request.app.state.content_store


@router.get(
    "/sections",
    response_model=list[SectionInfo],
    summary="List content sections",
)
async def list_sections(request: Request) -> list[SectionInfo]:
    """List the editable content categories.

    Returns:
        Category keys and labels in sync order.
    """
    return _store(request).sections()


@router.get(
    "/files/{category}",
    response_model=list[FileEntry],
    responses={404: {"model": ErrorResponse}},
    summary="List files in a section",
)
async def list_files(request: Request, category: str) -> list[FileEntry]:
    """List a category's JSON files with its index pinned first.

    Args:
        request: FastAPI request (provides access to app state).
        category: Category key.

    Returns:
        File entries.

    Raises:
        HTTPException: 404 if the category is unknown.
    """
    try:
        return _store(request).list_files(category)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail="Unknown section") from e
    except OSError as e:
        logger.error("list_files_failed", category=category, error=str(e))
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.get(
    "/file",
    response_model=FileContent,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Read a file",
)
async def read_file(
    request: Request,
    path: str | None = Query(default=None, description="Path relative to the content root"),
) -> FileContent:
    """Read the raw text of a file.

    Raises:
        HTTPException: 400 if path is missing, 403 on traversal, 404 if absent.
    """
    if not path:
        raise HTTPException(status_code=400, detail="Missing path query param")

    try:
        return FileContent(content=_store(request).read(path))
    except PathTraversalError as e:
        logger.warning("file_security_error", path=path, error=str(e))
        raise HTTPException(status_code=403, detail=str(e)) from e
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except (OSError, UnicodeDecodeError) as e:
        logger.error("file_read_failed", path=path, error=str(e))
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post(
    "/file",
    response_model=FileWriteResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Write a file",
)
async def write_file(request: Request, body: FileWriteRequest) -> FileWriteResponse:
    """Write a JSON file and regenerate its preview.

    Raises:
        HTTPException: 400 on missing fields or invalid JSON, 403 on
            traversal, 500 on write failure.
    """
    if not body.path or body.content is None:
        raise HTTPException(status_code=400, detail="Missing path or content")

    try:
        preview_path = _store(request).write(body.path, body.content)
    except PathTraversalError as e:
        logger.warning("file_security_error", path=body.path, error=str(e))
        raise HTTPException(status_code=403, detail=str(e)) from e
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except OSError as e:
        logger.error("file_write_failed", path=body.path, error=str(e))
        raise HTTPException(status_code=500, detail=str(e)) from e

    return FileWriteResponse(success=True, preview_path=preview_path)


@router.delete(
    "/file",
    response_model=SuccessResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Delete a file",
)
async def delete_file(
    request: Request,
    path: str | None = Query(default=None, description="Path relative to the content root"),
) -> SuccessResponse:
    """Delete a file and its preview sibling.

    Raises:
        HTTPException: 400 if path is missing, 403 on traversal, 404 if absent.
    """
    if not path:
        raise HTTPException(status_code=400, detail="Missing path query param")

    try:
        _store(request).delete(path)
    except PathTraversalError as e:
        logger.warning("file_security_error", path=path, error=str(e))
        raise HTTPException(status_code=403, detail=str(e)) from e
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except OSError as e:
        logger.error("file_delete_failed", path=path, error=str(e))
        raise HTTPException(status_code=500, detail=str(e)) from e

    return SuccessResponse(success=True)
