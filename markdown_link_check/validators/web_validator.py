"""
Remote Web Validator
====================
Checks http(s) links with requests, falling back to a headless browser for
fragments that only exist after client-side rendering.

Redirect policy:
- 301 and 308 are followed (up to MAX_REDIRECTS hops)
- any other 3xx is reported as a failed round trip; a temporary redirect
  means the canonical link is not stable yet

Outcomes:
- non-2xx final status            -> invalid
- 2xx, no fragment                -> valid
- 2xx, fragment                   -> valid iff an <a href="#fragment"> exists
                                     in the static body or, failing that,
                                     in the browser-rendered DOM
- connection failure, timeout or  -> invalid (target unreachable)
  broken transfer
- malformed URL or request        -> CheckError
"""

import re
import logging
from urllib.parse import urljoin, urldefrag, unquote
from typing import Optional

import requests

from ..config_logging import CheckError, MAX_REDIRECTS, WebConfig
from ..markup import attribute_values
from ..models import FailureDetail
from .base import CheckContext, CheckResult
from .headless_validator import HeadlessBrowser

logger = logging.getLogger(__name__)

AUTHORITY = re.compile(r'^https?://')

FOLLOWED_REDIRECTS = (301, 308)

# Raised before any byte hits the wire: the request itself is wrong
REQUEST_ERRORS = (
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidHeader,
    requests.exceptions.URLRequired,
)

# Target unreachable or the transfer broke off
ROUND_TRIP_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    requests.exceptions.ChunkedEncodingError,
    requests.exceptions.ContentDecodingError,
)


class WebValidator:
    """
    Validates remote web links.

    Attributes:
        web_config: Base headers plus per-endpoint overrides
        browser: Headless browser used for the rendered-DOM fallback
        session: Shared requests session
    """

    name = "web"

    def __init__(
        self,
        web_config: Optional[WebConfig] = None,
        browser: Optional[HeadlessBrowser] = None,
        session: Optional[requests.Session] = None
    ):
        self.web_config = web_config or WebConfig()
        self.browser = browser or HeadlessBrowser()
        self.session = session or requests.Session()

    def has_authority(self, target: str) -> bool:
        return bool(AUTHORITY.match(target))

    def close(self):
        self.session.close()

    def check(self, context: CheckContext, source_path: str, target: str) -> CheckResult:
        headers = self.web_config.headers_for(target)
        url, raw_fragment = urldefrag(target)
        fragment = unquote(raw_fragment)

        response, detail = self._fetch(context, url)
        if response is None:
            return False, detail

        if not 200 <= response.status_code < 300:
            return False, self._response_detail(f"HTTP {response.status_code}", response)

        if not fragment:
            return True, None

        anchor = f'#{fragment}'
        if anchor in attribute_values(response.content, 'a', 'href'):
            return True, None

        logger.debug(f"'{anchor}' not in the static body of {url}, rendering with the browser")
        rendered = self.browser.render(context, target, headers)
        if anchor in attribute_values(rendered, 'a', 'href'):
            return True, None

        return False, FailureDetail(
            reason=f"anchor '{anchor}' not found",
            status_code=response.status_code,
            url=response.url,
        )

    def _fetch(self, context: CheckContext, url: str):
        """
        GET ``url`` following only permanent redirects.

        Headers are chosen again for every hop so endpoint overrides never
        travel to a host they were not configured for.

        Returns:
            (response, None) for a completed round trip, or (None, detail)
            when the target is unreachable
        """
        current = url
        for _ in range(MAX_REDIRECTS + 1):
            context.raise_if_cancelled(url)
            headers = self.web_config.headers_for(current)
            try:
                response = self.session.get(
                    current,
                    headers=headers,
                    timeout=context.timeout,
                    allow_redirects=False
                )
            except REQUEST_ERRORS as e:
                raise CheckError(f"fail to create the request to '{current}': {e}", target=url) from e
            except ROUND_TRIP_ERRORS as e:
                logger.debug(f"Request to {current} failed: {e}")
                return None, FailureDetail(
                    reason=f"fail to reach the target: {e}",
                    url=current,
                    request_headers=headers,
                )
            except requests.RequestException as e:
                raise CheckError(f"fail to execute the request to '{current}': {e}", target=url) from e

            if not 300 <= response.status_code < 400:
                return response, None

            if response.status_code not in FOLLOWED_REDIRECTS:
                return None, self._response_detail(
                    f"redirect with status {response.status_code} is not followed", response
                )

            location = response.headers.get('Location', '')
            if not location:
                return None, self._response_detail("redirect without a Location header", response)
            current = urljoin(current, location)
            logger.debug(f"Following permanent redirect to {current}")

        return None, FailureDetail(
            reason=f"stopped after {MAX_REDIRECTS} redirects",
            url=current,
            request_headers=headers,
        )

    @staticmethod
    def _response_detail(reason: str, response: requests.Response) -> FailureDetail:
        return FailureDetail(
            reason=reason,
            status_code=response.status_code,
            url=response.url,
            request_headers=dict(response.request.headers) if response.request else {},
            response_headers=dict(response.headers),
            body=response.text,
        )
