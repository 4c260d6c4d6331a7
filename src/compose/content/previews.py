"""Preview generation for content records.

Each content file under a category's content directory has a preview
sibling under the category's preview directory. Previews are pure
projections of the record: heavy and SEO-only fields are dropped and a
few fields are shortened for listing pages.
"""
import json
import re
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from compose.content.paths import CATEGORIES, Category, CategorySpec, resolve_path
from compose.errors import PathTraversalError

logger = structlog.get_logger()

Record = dict[str, Any]

_HTML_TAG = re.compile(r"<[^>]*>")
_FIRST_SENTENCE = re.compile(r"^.*?[.!?](?=\s|\Z)", re.DOTALL)


def strip_html(value: Any) -> Any:
    """Remove HTML tags from a string; other values pass through."""
    if not isinstance(value, str):
        return value
    return _HTML_TAG.sub("", value)


def first_sentence(value: Any) -> Any:
    """Return text up to and including the first sentence-ending mark.

    A mark only ends a sentence when followed by whitespace or the end
    of the text, so "3.5" or "e.g" inside a word do not cut it short.

    Args:
        value: Text to shorten. Non-strings pass through unchanged.

    Returns:
        The first sentence, trimmed, or the whole trimmed text when no
        sentence end is found.
    """
    if not isinstance(value, str):
        return value
    match = _FIRST_SENTENCE.match(value)
    return match.group(0).strip() if match else value.strip()


def project(record: Record, excluded: frozenset[str]) -> Record:
    """Copy a record without the excluded keys."""
    return {key: value for key, value in record.items() if key not in excluded}


def _summarize_description(record: Record) -> Record:
    if record.get("description"):
        record["description"] = first_sentence(strip_html(record["description"]))
    return record


@dataclass(frozen=True)
class PreviewRule:
    """Projection applied to one category's records.

    Attributes:
        excluded_fields: Keys dropped from the preview.
        post_process: Optional transform applied to the projected copy.
    """

    excluded_fields: frozenset[str]
    post_process: Callable[[Record], Record] | None = None

    def apply(self, record: Record) -> Record:
        """Project a record and run the post-processing step, if any."""
        preview = project(record, self.excluded_fields)
        if self.post_process is not None:
            preview = self.post_process(preview)
        return preview


PREVIEW_RULES: dict[Category, PreviewRule] = {
    Category.BLOG: PreviewRule(
        excluded_fields=frozenset({
            "readTime",
            "metaDescription",
            "metaKeywords",
            "relatedArticles",
            "content",
        }),
    ),
    Category.RESOURCES: PreviewRule(
        excluded_fields=frozenset({
            "externalUrl",
            "metaDescription",
            "metaKeywords",
            "relatedResources",
        }),
        post_process=_summarize_description,
    ),
    Category.ARTISTS: PreviewRule(
        excluded_fields=frozenset({
            "longDescription",
            "metaDescription",
            "metaKeywords",
            "links",
        }),
    ),
}


def transform(category: Category, record: Record) -> Record:
    """Derive the preview record for a content record.

    Args:
        category: Category the record belongs to.
        record: Parsed content record. Not modified.

    Returns:
        New dict holding the preview fields.
    """
    return PREVIEW_RULES[category].apply(record)


def category_for(relative_path: str) -> CategorySpec | None:
    """Find the category whose content directory holds a file.

    Args:
        relative_path: POSIX path relative to the content root.

    Returns:
        The first matching category, or None for non-content paths.
    """
    if not relative_path.endswith(".json"):
        return None
    for spec in CATEGORIES.values():
        if relative_path.startswith(spec.content_dir + "/"):
            return spec
    return None


def preview_path_for(relative_path: str) -> str | None:
    """Map a content file path to its preview file path.

    Args:
        relative_path: POSIX path relative to the content root.

    Returns:
        Preview path relative to the content root, or None when the
        path is not a category content file.
    """
    spec = category_for(relative_path)
    if spec is None:
        return None
    return spec.preview_dir + relative_path[len(spec.content_dir):]


@dataclass
class RegenerationReport:
    """Outcome of a bulk preview regeneration.

    Attributes:
        written: Number of preview files written.
        errors: Number of content files that could not be processed.
        failed: Relative paths of the failed content files.
    """

    written: int = 0
    errors: int = 0
    failed: list[str] = field(default_factory=list)


class PreviewTransformer:
    """Keeps preview files in step with content files on disk."""

    def __init__(self, root: Path) -> None:
        """Initialize transformer.

        Args:
            root: The content root directory.
        """
        self._root = root

    def write_preview(self, relative_path: str, text: str) -> str | None:
        """Regenerate the preview sibling of one content file.

        Args:
            relative_path: POSIX path of the content file.
            text: Raw JSON text of the content file.

        Returns:
            Relative path of the written preview, or None when the file
            has no preview.

        Raises:
            ValueError: If the text is not a JSON object. Any earlier
                preview is removed first so it cannot outlive its source.
            OSError: If the preview cannot be written.
        """
        spec = category_for(relative_path)
        if spec is None:
            return None

        try:
            record = json.loads(text)
        except ValueError:
            self.delete_preview(relative_path)
            raise
        if not isinstance(record, dict):
            self.delete_preview(relative_path)
            raise ValueError(f"Content record is not a JSON object: {relative_path}")

        preview_rel = spec.preview_dir + relative_path[len(spec.content_dir):]
        target = resolve_path(self._root, preview_rel)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            json.dumps(transform(spec.key, record), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.debug("preview_written", path=preview_rel)
        return preview_rel

    def delete_preview(self, relative_path: str) -> bool:
        """Remove the preview sibling of a content file if present.

        Args:
            relative_path: POSIX path of the content file.

        Returns:
            True if a preview file was removed.
        """
        preview_rel = preview_path_for(relative_path)
        if preview_rel is None:
            return False

        target = resolve_path(self._root, preview_rel)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        logger.info("preview_deleted", path=preview_rel)
        return True

    def regenerate_all(self) -> RegenerationReport:
        """Rebuild every preview from the content files on disk.

        Failures are logged and counted; they never stop the scan.

        Returns:
            Counts of written previews and failed content files.
        """
        report = RegenerationReport()

        for spec in CATEGORIES.values():
            content_dir = self._root / spec.content_dir
            if not content_dir.is_dir():
                logger.info("preview_dir_skipped", category=spec.key.value)
                continue

            for file in sorted(content_dir.glob("*.json")):
                relative_path = f"{spec.content_dir}/{file.name}"
                try:
                    self.write_preview(
                        relative_path, file.read_text(encoding="utf-8")
                    )
                    report.written += 1
                except (OSError, ValueError, PathTraversalError) as e:
                    logger.warning(
                        "preview_regeneration_failed",
                        path=relative_path,
                        error=str(e),
                    )
                    report.errors += 1
                    report.failed.append(relative_path)

        logger.info(
            "previews_regenerated",
            written=report.written,
            errors=report.errors,
        )
        return report


def main() -> None:
    """Entry point for compose-previews: regenerate every preview once."""
    from compose.config import Settings
    from compose.logging import configure_logging

    settings = Settings()
    configure_logging(debug=settings.debug, json_output=False)

    root = settings.content_root
    if not root.is_dir():
        print(f"Content root not found: {root}", file=sys.stderr)
        sys.exit(1)

    report = PreviewTransformer(root).regenerate_all()
    print(f"Done. {report.written} previews written, {report.errors} errors.")
    sys.exit(1 if report.errors else 0)


if __name__ == "__main__":
    main()
