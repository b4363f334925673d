"""
Link Checker
============
Wires the scanner, the validators and the dispatcher into a single run.

Validators are probed in a fixed order: mail, GitHub (one per configured
owner, in configuration order), web, then the local-file catch-all.
"""

import logging
from typing import List, Optional

from .config_logging import CheckError, LinkCheckConfig, log_operation
from .dispatcher import Dispatcher, ProgressCallback
from .models import LinkRecord, IgnoreRules
from .renderer import MarkdownRenderer
from .scanner import DocumentScanner
from .validators import (
    CheckContext,
    FileValidator,
    GitHubValidator,
    HeadlessBrowser,
    LinkValidator,
    MailValidator,
    WebValidator,
)

logger = logging.getLogger(__name__)


class LinkChecker:
    """
    Checks every link of a documentation tree.

    Usage:
        checker = LinkChecker('docs', load_config('config.yaml'))
        records = checker.run(CheckContext(timeout=config.timeout))
    """

    def __init__(
        self,
        root: str,
        config: Optional[LinkCheckConfig] = None,
        renderer: Optional[MarkdownRenderer] = None,
        browser: Optional[HeadlessBrowser] = None
    ):
        self.root = root
        self.config = config or LinkCheckConfig()
        self.renderer = renderer or MarkdownRenderer()
        self.browser = browser or HeadlessBrowser()

    def build_scanner(self) -> DocumentScanner:
        return DocumentScanner(
            renderer=self.renderer,
            ignore_files=IgnoreRules(self.config.ignore_files, 'ignore.file'),
            ignore_links=IgnoreRules(self.config.ignore_links, 'ignore.link'),
        )

    def build_validators(self) -> List[LinkValidator]:
        validators: List[LinkValidator] = [MailValidator()]
        validators.extend(GitHubValidator(credentials) for credentials in self.config.github)
        validators.append(WebValidator(self.config.web, self.browser))
        validators.append(FileValidator(self.renderer))
        return validators

    def run(self, context: CheckContext,
            progress_callback: Optional[ProgressCallback] = None) -> List[LinkRecord]:
        """
        Scan the tree and validate every extracted link.

        Args:
            context: Cancellable context shared by every check
            progress_callback: Called as (processed, total, target)

        Returns:
            Validated records

        Raises:
            PathError, ScanError: the tree could not be scanned
            BatchError: at least one check could not reach a decision
        """
        with log_operation(logger, "scan", root=self.root):
            records = self.build_scanner().scan(self.root)
        logger.info(f"Extracted {len(records)} links")

        validators = self.build_validators()
        try:
            with log_operation(logger, "validation", links=len(records)):
                return Dispatcher(validators, progress_callback).process(context, records)
        finally:
            self._teardown(validators)

    def _teardown(self, validators: List[LinkValidator]):
        """Close every client and the browser; failures are logged, never raised."""
        closers = [getattr(v, 'close', None) for v in validators] + [self.browser.close]
        for close in closers:
            if close is None:
                continue
            try:
                close()
            except CheckError as e:
                logger.warning(f"Teardown failed: {e}")
