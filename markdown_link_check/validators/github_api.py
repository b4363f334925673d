"""
GitHub REST API Client
======================
Thin requests wrapper for the lookups the code-host validator needs.

Each lookup returns the HTTP status code; callers apply the shared rule
(200 means the object exists, anything else means it does not). Transport
failures raise CheckError.
"""

import logging
from urllib.parse import quote
from typing import List, Optional, Tuple

import requests

from ..config_logging import CheckError
from .base import CheckContext

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com"
DEFAULT_ACCEPT = "application/vnd.github.v3+json"
# commits/{ref}/pulls was only exposed through this preview media type
GROOT_PREVIEW_ACCEPT = "application/vnd.github.groot-preview+json"


class GitHubAPI:
    """
    Authenticated client for one token.

    Usage:
        api = GitHubAPI(token)
        status = api.repository(context, 'owner', 'repo')
    """

    def __init__(self, token: str, base_url: str = API_URL,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': f'token {token}',
            'Accept': DEFAULT_ACCEPT,
        })

    def close(self):
        self.session.close()

    def repository(self, context: CheckContext, owner: str, repo: str) -> int:
        return self._status(context, f'/repos/{owner}/{repo}')

    def commit(self, context: CheckContext, owner: str, repo: str, sha: str) -> int:
        return self._status(context, f'/repos/{owner}/{repo}/commits/{sha}')

    def issue(self, context: CheckContext, owner: str, repo: str, number: int) -> int:
        return self._status(context, f'/repos/{owner}/{repo}/issues/{number}')

    def issue_comment(self, context: CheckContext, owner: str, repo: str, comment_id: int) -> int:
        return self._status(context, f'/repos/{owner}/{repo}/issues/comments/{comment_id}')

    def pull_request(self, context: CheckContext, owner: str, repo: str, number: int) -> int:
        return self._status(context, f'/repos/{owner}/{repo}/pulls/{number}')

    def contents(self, context: CheckContext, owner: str, repo: str, path: str, ref: str) -> int:
        return self._status(context, f'/repos/{owner}/{repo}/contents/{quote(path)}',
                            params={'ref': ref})

    def related_pull_requests(self, context: CheckContext, owner: str, repo: str,
                              sha: str) -> Tuple[int, List[int]]:
        """
        Pull requests associated with a commit.

        Returns:
            (status, numbers); numbers is empty unless the status is 200
        """
        response = self._get(context, f'/repos/{owner}/{repo}/commits/{sha}/pulls',
                             headers={'Accept': GROOT_PREVIEW_ACCEPT})
        if response.status_code != 200:
            return response.status_code, []

        try:
            payload = response.json()
        except ValueError as e:
            raise CheckError(f"fail to decode the related pull requests of '{sha}': {e}",
                             target=sha) from e

        numbers = [item['number'] for item in payload
                   if isinstance(item, dict) and isinstance(item.get('number'), int)]
        return response.status_code, numbers

    def _status(self, context: CheckContext, path: str, **kwargs) -> int:
        return self._get(context, path, **kwargs).status_code

    def _get(self, context: CheckContext, path: str, **kwargs) -> requests.Response:
        url = self.base_url + path
        context.raise_if_cancelled(url)
        try:
            response = self.session.get(url, timeout=context.timeout, **kwargs)
        except requests.RequestException as e:
            raise CheckError(f"fail to query '{url}': {e}", target=url) from e
        logger.debug(f"GET {url} -> {response.status_code}")
        return response
