"""Pydantic schemas for content API requests and responses."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys for the editor UI."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SectionInfo(BaseModel):
    """Category key and display label."""

    key: str
    label: str


class FileEntry(CamelModel):
    """File listed in a category."""

    filename: str
    slug: str = Field(description="Filename without the .json extension")
    relative_path: str = Field(description="Path relative to the content root")
    mtime: str = Field(description="ISO 8601 modification time (UTC)")
    size: int
    is_index: bool = False


class FileContent(BaseModel):
    """Raw text of a content file."""

    content: str


class FileWriteRequest(BaseModel):
    """Request body for writing a content file.

    Fields are optional so that missing values produce a 400 instead
    of FastAPI's default 422.
    """

    path: str | None = None
    content: str | None = None


class FileWriteResponse(CamelModel):
    """Response after writing a content file."""

    success: bool
    preview_path: str | None = None


class SuccessResponse(BaseModel):
    """Generic success response."""

    success: bool
    message: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
