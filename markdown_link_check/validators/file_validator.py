"""
Local File Validator
====================
Resolves links against the local filesystem.

This is the catch-all validator: it claims every target, so it must be
the last one probed. For links inside Markdown documents the target is
parsed as a URI; the path is resolved relative to the linking document
(an empty path means the document itself) and a fragment must name one of
the headings of the referenced document, either by generated id or by
visible text (case-insensitive).
"""

import os
import logging
from urllib.parse import urlsplit, unquote
from typing import Optional

from ..config_logging import CheckError
from ..markup import headings
from ..models import FailureDetail
from ..renderer import MarkdownRenderer
from ..scanner import is_document
from .base import CheckContext, CheckResult

logger = logging.getLogger(__name__)


class FileValidator:
    """Validates relative file links and in-document anchors."""

    name = "file"

    def __init__(self, renderer: Optional[MarkdownRenderer] = None):
        self.renderer = renderer or MarkdownRenderer()

    def has_authority(self, target: str) -> bool:
        return True

    def check(self, context: CheckContext, source_path: str, target: str) -> CheckResult:
        context.raise_if_cancelled(target)

        if not is_document(source_path):
            path = self._join(source_path, target)
            if os.path.exists(path):
                return True, None
            return False, FailureDetail(reason=f"file not found: {path}")

        try:
            parsed = urlsplit(target)
        except ValueError as e:
            raise CheckError(f"fail to parse the uri '{target}': {e}", target=target) from e

        # '#section' points at the linking document itself
        if parsed.path:
            referenced = self._join(source_path, unquote(parsed.path))
        else:
            referenced = source_path

        if not os.path.exists(referenced):
            return False, FailureDetail(reason=f"file not found: {referenced}")

        if os.path.isdir(referenced):
            return True, None

        fragment = unquote(parsed.fragment)
        if not fragment or not is_document(referenced):
            return True, None

        if self.has_heading(referenced, fragment):
            return True, None
        return False, FailureDetail(reason=f"anchor '#{fragment}' not found in {referenced}")

    def has_heading(self, path: str, fragment: str) -> bool:
        """
        Check whether a document has a heading addressed by ``fragment``.

        Args:
            path: Markdown document to search
            fragment: Fragment without the leading '#'

        Returns:
            True if a heading id or heading text equals the fragment
            (case-insensitive)
        """
        try:
            with open(path, 'rb') as f:
                payload = f.read()
        except OSError as e:
            raise CheckError(f"fail to read the file '{path}': {e}", target=path) from e

        try:
            html = self.renderer.render(payload)
        except ValueError as e:
            raise CheckError(f"fail to render the file '{path}': {e}", target=path) from e

        wanted = fragment.lower()
        for heading_id, text in headings(html):
            if heading_id.lower() == wanted or text.lower() == wanted:
                return True

        logger.debug(f"No heading matches '#{fragment}' in {path}")
        return False

    @staticmethod
    def _join(source_path: str, target: str) -> str:
        # Targets are always relative to the linking document's directory
        return os.path.normpath(os.path.join(os.path.dirname(source_path), target.lstrip('/')))
