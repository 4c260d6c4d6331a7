"""File-backed store for JSON content records."""
import json
from datetime import datetime, timezone
from pathlib import Path

import structlog

from compose.content.paths import (
    CATEGORIES,
    CategorySpec,
    get_category,
    relative_to_root,
    resolve_path,
)
from compose.content.previews import PreviewTransformer
from compose.content.schemas import FileEntry, SectionInfo
from compose.errors import NotFoundError, PathTraversalError, ValidationError

logger = structlog.get_logger()


def _file_entry(root: Path, path: Path, is_index: bool = False) -> FileEntry:
    """Build a listing entry from a file's stat.

    Args:
        root: The content root directory.
        path: File inside the root.
        is_index: Whether the file is the category's index document.

    Returns:
        FileEntry with a UTC ISO modification time.
    """
    stat = path.stat()
    return FileEntry(
        filename=path.name,
        slug=path.stem,
        relative_path=relative_to_root(root, path.resolve()),
        mtime=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
        size=stat.st_size,
        is_index=is_index,
    )


class ContentStore:
    """CRUD access to content files under the content root.

    Every mutation keeps the preview sibling of a content file in step:
    writes regenerate it, deletes remove it.

    Attributes:
        root: The content root directory.
    """

    def __init__(self, root: Path, previews: PreviewTransformer) -> None:
        """Initialize store.

        Args:
            root: The content root directory.
            previews: Transformer maintaining preview files.
        """
        self.root = root
        self._previews = previews

    @property
    def content_exists(self) -> bool:
        """Whether the primary category has been mirrored locally."""
        primary = next(iter(CATEGORIES.values()))
        return (self.root / primary.content_dir).is_dir()

    def sections(self) -> list[SectionInfo]:
        """List categories in sync order."""
        return [
            SectionInfo(key=spec.key.value, label=spec.label)
            for spec in CATEGORIES.values()
        ]

    def category(self, key: str) -> CategorySpec:
        """Look up a category, raising NotFoundError for unknown keys."""
        spec = get_category(key)
        if spec is None:
            raise NotFoundError(f"Unknown section: {key}")
        return spec

    def list_files(self, key: str) -> list[FileEntry]:
        """List a category's files, pinned index first.

        Args:
            key: Category identifier.

        Returns:
            Index entry (if present) followed by content files sorted
            by filename.

        Raises:
            NotFoundError: If the category is unknown.
        """
        spec = self.category(key)
        entries: list[FileEntry] = []

        index_path = self.root / spec.index_file
        if index_path.is_file():
            entries.append(_file_entry(self.root, index_path, is_index=True))

        content_dir = self.root / spec.content_dir
        if not content_dir.is_dir():
            logger.info("content_dir_missing", category=key, path=str(content_dir))
            return entries

        files = sorted(
            (f for f in content_dir.iterdir() if f.suffix == ".json" and f.is_file()),
            key=lambda f: f.name,
        )
        entries.extend(_file_entry(self.root, f) for f in files)
        return entries

    def read(self, relative_path: str) -> str:
        """Read a file's text.

        Raises:
            PathTraversalError: If the path escapes the content root.
            NotFoundError: If the file does not exist.
        """
        filepath = resolve_path(self.root, relative_path)
        if not filepath.is_file():
            raise NotFoundError("File not found", relative_path)
        return filepath.read_bytes().decode("utf-8")

    def write(self, relative_path: str, content: str) -> str | None:
        """Write a JSON file and regenerate its preview.

        Args:
            relative_path: Path relative to the content root.
            content: JSON text, written verbatim.

        Returns:
            Relative path of the regenerated preview, if the file has one.

        Raises:
            PathTraversalError: If the path escapes the content root.
            ValidationError: If the content is not valid JSON.
            OSError: If the file cannot be written.
        """
        filepath = resolve_path(self.root, relative_path)
        if filepath == self.root.resolve():
            raise ValidationError("Path must name a file", relative_path)

        try:
            json.loads(content)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON: {e}", relative_path) from e

        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_bytes(content.encode("utf-8"))
        normalized = relative_to_root(self.root, filepath)
        logger.info("file_written", path=normalized, size=len(content))

        try:
            return self._previews.write_preview(normalized, content)
        except (OSError, ValueError, PathTraversalError) as e:
            logger.warning("preview_write_failed", path=normalized, error=str(e))
            return None

    def delete(self, relative_path: str) -> None:
        """Delete a file and its preview sibling.

        Raises:
            PathTraversalError: If the path escapes the content root.
            NotFoundError: If the file does not exist.
        """
        filepath = resolve_path(self.root, relative_path)
        if not filepath.is_file():
            raise NotFoundError("File not found", relative_path)

        normalized = relative_to_root(self.root, filepath)
        filepath.unlink()
        logger.info("file_deleted", path=normalized)
        self._previews.delete_preview(normalized)

    def mirror(self, relative_path: str, text: str) -> None:
        """Store a file pulled from the CDN without touching previews.

        Previews are regenerated in bulk once the pull finishes.

        Raises:
            PathTraversalError: If the path escapes the content root.
            OSError: If the file cannot be written.
        """
        filepath = resolve_path(self.root, relative_path)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_text(text, encoding="utf-8")
