"""Security-first path resolution and the content category table."""
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from compose.errors import PathTraversalError


class Category(str, Enum):
    """Content categories mirrored from the CDN."""

    BLOG = "blog"
    RESOURCES = "resources"
    ARTISTS = "artists"


@dataclass(frozen=True)
class CategorySpec:
    """Storage layout of one content category.

    All paths are POSIX paths relative to the content root. The CDN
    serves the same layout, so remote URLs are derived from them.

    Attributes:
        key: Category identifier.
        label: Human-readable name shown in the editor.
        content_dir: Directory holding one JSON file per record.
        preview_dir: Directory holding the derived preview files.
        index_file: Shared index listing the category's records.
        items_key: Field of the index document holding the record list.
    """

    key: Category
    label: str
    content_dir: str
    preview_dir: str
    index_file: str
    items_key: str

    def item_path(self, item_id: str) -> str:
        """Relative path of the content file for a record id."""
        return f"{self.content_dir}/{item_id}.json"


# Table order is the sync order.
CATEGORIES: dict[Category, CategorySpec] = {
    Category.BLOG: CategorySpec(
        key=Category.BLOG,
        label="Blog Articles",
        content_dir="blog/articles",
        preview_dir="blog/previews",
        index_file="blog/blog.json",
        items_key="articles",
    ),
    Category.RESOURCES: CategorySpec(
        key=Category.RESOURCES,
        label="Resources",
        content_dir="resources/resources",
        preview_dir="resources/previews",
        index_file="resources/resources.json",
        items_key="resources",
    ),
    Category.ARTISTS: CategorySpec(
        key=Category.ARTISTS,
        label="3D Artist Spotlight",
        content_dir="3d-artist-spotlight/artists",
        preview_dir="3d-artist-spotlight/previews",
        index_file="3d-artist-spotlight/artists.json",
        items_key="artists",
    ),
}

ID_FIELDS: tuple[str, ...] = ("id", "slug")


def get_category(key: str) -> CategorySpec | None:
    """Look up a category by its key.

    Args:
        key: Category identifier from the request.

    Returns:
        The category spec, or None if the key is unknown.
    """
    try:
        return CATEGORIES[Category(key)]
    except ValueError:
        return None


def resolve_path(root: Path, relative: str) -> Path:
    """Resolve a caller-supplied relative path inside the content root.

    Args:
        root: The content root directory.
        relative: Relative path supplied by the caller.

    Returns:
        Absolute Path object for the resolved location.

    Raises:
        PathTraversalError: If the path contains null bytes or resolves
            outside the content root.
    """
    if "\0" in relative:
        raise PathTraversalError("Path contains null byte", relative)

    root_path = root.resolve()
    resolved = (root_path / relative).resolve()

    # A bare prefix check would accept siblings such as "content-other".
    if resolved != root_path and not str(resolved).startswith(
        str(root_path) + os.sep
    ):
        raise PathTraversalError("Path traversal blocked", relative)

    return resolved


def relative_to_root(root: Path, path: Path) -> str:
    """Express a resolved path relative to the content root.

    Args:
        root: The content root directory.
        path: Absolute path inside the root.

    Returns:
        POSIX-style relative path.
    """
    return path.relative_to(root.resolve()).as_posix()
