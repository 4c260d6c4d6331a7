"""Path guard and category table tests."""

from pathlib import Path

import pytest

from compose.content.paths import (
    CATEGORIES,
    Category,
    get_category,
    relative_to_root,
    resolve_path,
)
from compose.errors import PathTraversalError


@pytest.mark.parametrize(
    "relative",
    [
        "blog/articles/post.json",
        "blog/blog.json",
        "./resources/resources/a.json",
        "blog/../blog/articles/x.json",
        "new-dir/file.json",
    ],
)
def test_resolve_path_accepts_paths_inside_root(content_root: Path, relative: str) -> None:
    """Paths that stay inside the root resolve under it."""
    resolved = resolve_path(content_root, relative)
    assert str(resolved).startswith(str(content_root.resolve()))


def test_resolve_path_accepts_root_itself(content_root: Path) -> None:
    assert resolve_path(content_root, ".") == content_root.resolve()


@pytest.mark.parametrize(
    "relative",
    [
        "../outside.json",
        "blog/../../outside.json",
        "../../etc/passwd",
        "/etc/passwd",
    ],
)
def test_resolve_path_rejects_traversal(content_root: Path, relative: str) -> None:
    """Paths resolving outside the root are rejected."""
    with pytest.raises(PathTraversalError):
        resolve_path(content_root, relative)


def test_resolve_path_rejects_sibling_with_shared_prefix(content_root: Path) -> None:
    """A sibling directory named like the root is still outside it."""
    sibling = content_root.parent / f"{content_root.name}-other"
    sibling.mkdir()
    with pytest.raises(PathTraversalError):
        resolve_path(content_root, f"../{sibling.name}/file.json")


def test_resolve_path_rejects_null_byte(content_root: Path) -> None:
    with pytest.raises(PathTraversalError, match="null byte"):
        resolve_path(content_root, "blog/a\0.json")


def test_resolve_path_error_carries_path(content_root: Path) -> None:
    with pytest.raises(PathTraversalError) as exc_info:
        resolve_path(content_root, "../x.json")
    assert exc_info.value.path == "../x.json"


def test_relative_to_root_is_posix(content_root: Path) -> None:
    resolved = resolve_path(content_root, "./blog/articles/../articles/a.json")
    assert relative_to_root(content_root, resolved) == "blog/articles/a.json"


def test_categories_are_in_sync_order() -> None:
    assert list(CATEGORIES) == [Category.BLOG, Category.RESOURCES, Category.ARTISTS]


def test_get_category_known_and_unknown() -> None:
    spec = get_category("artists")
    assert spec is not None
    assert spec.content_dir == "3d-artist-spotlight/artists"
    assert spec.item_path("jane") == "3d-artist-spotlight/artists/jane.json"
    assert get_category("podcasts") is None
