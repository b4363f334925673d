"""
GitHub Validator
================
Validates links pointing at the resources of one configured GitHub owner.

A validator instance is bound to a single owner and token; the checker
builds one per configured owner. The validator claims links whose prefix is
the owner's page on github.com or on raw.githubusercontent.com (owner match
is case-insensitive) and classifies them by the first matching URL shape:

    1. owner       https://github.com/<owner>
    2. commit      .../<owner>/<repo>/commit/<sha>
    3. issue       .../<owner>/<repo>/issues/<id>[#issuecomment-<id>]
    4. pull        .../<owner>/<repo>/pull/<id>[/commits/<sha>]
    5. repository  .../<owner>/<repo>
    6. raw file    https://raw.githubusercontent.com/<owner>/<repo>/<ref>/<path>

The owner is trusted from configuration; every other shape is confirmed
through the REST API, where HTTP 200 means the object exists.
"""

import re
import logging
from urllib.parse import unquote
from typing import Callable, List, Optional, Tuple

from ..config_logging import CancelledError, CheckError, GitHubCredentials
from ..models import FailureDetail
from .base import CheckContext, CheckResult
from .github_api import GitHubAPI

logger = logging.getLogger(__name__)

SCHEMA = r'^https?://'


class GitHubValidator:
    """Validates github.com and raw.githubusercontent.com links of one owner."""

    def __init__(self, credentials: GitHubCredentials, api: Optional[GitHubAPI] = None):
        self.owner = credentials.owner
        self.name = f"github:{credentials.label or credentials.owner}"
        self.api = api or GitHubAPI(credentials.token)

        owner = f'(?i:{re.escape(self.owner)})'
        base = SCHEMA + r'github\.com/' + owner
        raw = SCHEMA + r'raw\.githubusercontent\.com/' + owner

        self.authority_patterns = [re.compile(raw), re.compile(base)]

        # Shapes are tried in order; the first pattern that matches decides
        self.shapes: List[Tuple[str, re.Pattern, Callable[[CheckContext, re.Match], CheckResult]]] = [
            ('owner', re.compile(base + r'/?$'), self._check_owner),
            ('commit', re.compile(base + r'/(?P<repository>.*)/commit/(?P<commit>.*)$'),
             self._check_commit),
            ('issue', re.compile(base + r'/(?P<repository>.*)/issues/(?P<issue>[0-9]*)'
                                        r'(#issuecomment-(?P<comment>[0-9]*))?$'),
             self._check_issue),
            ('pull', re.compile(base + r'/(?P<repository>.*)/pull/(?P<pull>[0-9]*)'
                                       r'(/commits/(?P<ref>.*))?$'),
             self._check_pull_request),
            ('repository', re.compile(base + r'/(?P<repository>.*)$'), self._check_repository),
            ('raw', re.compile(raw + r'/(?P<repository>[^/]+)/(?P<ref>[^/]+)/(?P<path>[^#?]+)$'),
             self._check_raw),
        ]

    def has_authority(self, target: str) -> bool:
        return any(pattern.match(target) for pattern in self.authority_patterns)

    def close(self):
        self.api.close()

    def check(self, context: CheckContext, source_path: str, target: str) -> CheckResult:
        context.raise_if_cancelled(target)

        for shape, pattern, handler in self.shapes:
            match = pattern.match(target)
            if match is None:
                continue
            logger.debug(f"'{target}' classified as a {shape} link")
            try:
                return handler(context, match)
            except CancelledError:
                raise
            except CheckError as e:
                raise CheckError(f"fail to check the {shape} link '{target}': {e}",
                                 target=target) from e

        logger.debug(f"'{target}' matches no known GitHub URL shape")
        return False, FailureDetail(reason="unsupported URL shape", url=target)

    # =========================================================================
    # SHAPE HANDLERS
    # =========================================================================

    def _check_owner(self, context: CheckContext, match: re.Match) -> CheckResult:
        # Not verifiable through the API; the configuration vouches for it
        return True, None

    def _check_commit(self, context: CheckContext, match: re.Match) -> CheckResult:
        status = self.api.commit(context, self.owner, match.group('repository'), match.group('commit'))
        return self._decide('commit', status)

    def _check_issue(self, context: CheckContext, match: re.Match) -> CheckResult:
        repository = match.group('repository')
        number = _parse_id(match.group('issue'), 'issue')

        valid, detail = self._decide('issue', self.api.issue(context, self.owner, repository, number))
        if not valid or match.group('comment') is None:
            return valid, detail

        comment_id = _parse_id(match.group('comment'), 'comment')
        status = self.api.issue_comment(context, self.owner, repository, comment_id)
        return self._decide('issue comment', status)

    def _check_pull_request(self, context: CheckContext, match: re.Match) -> CheckResult:
        repository = match.group('repository')
        number = _parse_id(match.group('pull'), 'pull request')

        status = self.api.pull_request(context, self.owner, repository, number)
        valid, detail = self._decide('pull request', status)
        ref = match.group('ref')
        if not valid or ref is None:
            return valid, detail

        status, related = self.api.related_pull_requests(context, self.owner, repository, ref)
        if number in related:
            return True, None
        return False, FailureDetail(
            reason=f"commit '{ref}' is not associated with the pull request #{number}",
            status_code=status,
        )

    def _check_repository(self, context: CheckContext, match: re.Match) -> CheckResult:
        status = self.api.repository(context, self.owner, match.group('repository'))
        return self._decide('repository', status)

    def _check_raw(self, context: CheckContext, match: re.Match) -> CheckResult:
        status = self.api.contents(
            context, self.owner, match.group('repository'),
            unquote(match.group('path')), match.group('ref')
        )
        return self._decide('file', status)

    @staticmethod
    def _decide(kind: str, status: int) -> CheckResult:
        if status == 200:
            return True, None
        return False, FailureDetail(reason=f"{kind} lookup returned HTTP {status}", status_code=status)


def _parse_id(value: str, kind: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise CheckError(f"fail to parse the {kind} id '{value}': {e}") from e
