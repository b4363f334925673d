"""
Document Scanner
================
Walks a documentation tree and extracts the links of every Markdown file.

For each eligible document the scanner renders it to HTML, collects every
anchor href, drops hrefs matching the link-ignore rules, removes duplicates
and emits one LinkRecord per unique href. Files are processed in sorted
order so two scans of an unchanged tree produce the same records.
"""

import os
import logging
from pathlib import Path
from typing import List, Optional

from .config_logging import PathError, ScanError
from .markup import attribute_values
from .models import LinkRecord, IgnoreRules
from .renderer import MarkdownRenderer

logger = logging.getLogger(__name__)

DOCUMENT_EXTENSIONS = ('.md',)


def is_document(path) -> bool:
    """Check whether a path names a Markdown document."""
    return os.path.splitext(str(path))[1] in DOCUMENT_EXTENSIONS


class DocumentScanner:
    """
    Produces the ignore-filtered, per-file deduplicated link records of a tree.

    Usage:
        scanner = DocumentScanner(renderer, ignore_links=IgnoreRules([r'^#$']))
        records = scanner.scan('docs')
    """

    def __init__(
        self,
        renderer: Optional[MarkdownRenderer] = None,
        ignore_files: Optional[IgnoreRules] = None,
        ignore_links: Optional[IgnoreRules] = None
    ):
        self.renderer = renderer or MarkdownRenderer()
        self.ignore_files = ignore_files or IgnoreRules(field_name='ignore.file')
        self.ignore_links = ignore_links or IgnoreRules(field_name='ignore.link')

    def scan(self, root) -> List[LinkRecord]:
        """
        Scan a directory tree.

        Args:
            root: Directory holding the documents

        Returns:
            LinkRecords grouped by file, files in sorted path order

        Raises:
            PathError: root is missing or not a directory
            ScanError: a document could not be read or rendered
        """
        root = os.path.abspath(str(root))
        if not os.path.exists(root):
            raise PathError(f"path does not exist: '{root}'", path=root)
        if not os.path.isdir(root):
            raise PathError(f"'{root}' expected to be a directory", path=root)

        files = self.list_documents(root)
        logger.info(f"Found {len(files)} documents under {root}")

        records: List[LinkRecord] = []
        for path in files:
            records.extend(self.scan_file(path))
        return records

    def list_documents(self, root: str) -> List[str]:
        """Every eligible document under root, sorted lexicographically."""
        def fail(error: OSError):
            raise ScanError(f"fail to fetch the markdown file: {error}", path=error.filename) from error

        paths = []
        for dirpath, _, filenames in os.walk(root, onerror=fail):
            for filename in filenames:
                path = os.path.join(dirpath, filename)
                if not is_document(path):
                    continue
                if self.ignore_files.matches(path):
                    logger.debug(f"Ignoring file {path}")
                    continue
                paths.append(path)
        paths.sort()
        return paths

    def scan_file(self, path: str) -> List[LinkRecord]:
        """Extract the unique, non-ignored links of one document."""
        try:
            payload = Path(path).read_bytes()
        except OSError as e:
            raise ScanError(f"fail to process the file '{path}': fail to read the file: {e}",
                            path=path) from e

        try:
            html = self.renderer.render(payload)
        except ValueError as e:
            raise ScanError(f"fail to process the file '{path}': fail to render the file: {e}",
                            path=path) from e

        links = self.extract_links(html)
        logger.debug(f"{path}: {len(links)} links")
        return [LinkRecord(source_path=path, target=link) for link in links]

    def extract_links(self, html: bytes) -> List[str]:
        """Anchor hrefs not matching the ignore rules, duplicates removed."""
        hrefs = [
            href for href in attribute_values(html, 'a', 'href')
            if not self.ignore_links.matches(href)
        ]
        return list(dict.fromkeys(hrefs))
