"""Content module for file-based JSON content access."""

from compose.content.paths import (
    CATEGORIES,
    Category,
    CategorySpec,
    get_category,
    resolve_path,
)
from compose.content.previews import (
    PreviewRule,
    PreviewTransformer,
    RegenerationReport,
    preview_path_for,
    transform,
)
from compose.content.schemas import FileEntry, SectionInfo
from compose.content.store import ContentStore

__all__ = [
    "CATEGORIES",
    "Category",
    "CategorySpec",
    "ContentStore",
    "FileEntry",
    "PreviewRule",
    "PreviewTransformer",
    "RegenerationReport",
    "SectionInfo",
    "get_category",
    "preview_path_for",
    "resolve_path",
    "transform",
]
