"""
Markdown Link Check Data Models
===============================
Dataclasses for link records, failure details and ignore rule sets.

This module is designed to be independent and can be tested separately
from the rest of the validation system.
"""

import json
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Dict, Optional, Any, Iterable

from .config_logging import MAX_DETAIL_BODY_CHARS, compile_pattern


class LinkStatus(Enum):
    """Tri-state outcome of validating a link."""
    UNKNOWN = "unknown"           # Just extracted, not yet validated
    VALID = "valid"               # Target resolves
    INVALID = "invalid"           # Target does not resolve


@dataclass
class FailureDetail:
    """
    Structured explanation attached to an invalid link.

    Attributes:
        reason: Short human-readable reason
        status_code: HTTP status code if applicable
        url: Final URL after redirects (if applicable)
        request_headers: Headers sent with the request
        response_headers: Headers received with the response
        body: Excerpt of the response body
    """
    reason: str
    status_code: Optional[int] = None
    url: Optional[str] = None
    request_headers: Dict[str, str] = field(default_factory=dict)
    response_headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    def __post_init__(self):
        if self.body and len(self.body) > MAX_DETAIL_BODY_CHARS:
            self.body = self.body[:MAX_DETAIL_BODY_CHARS] + '...'

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, omitting empty fields."""
        return {k: v for k, v in asdict(self).items() if v not in (None, '', {})}

    def pretty(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True)


@dataclass
class LinkRecord:
    """
    One extracted link plus its source document and validation outcome.

    ``source_path`` and ``target`` are fixed at creation; ``status`` and
    ``failure_detail`` are set exactly once through resolve().
    """
    source_path: str
    target: str
    status: LinkStatus = LinkStatus.UNKNOWN
    failure_detail: Optional[FailureDetail] = None

    @property
    def valid(self) -> Optional[bool]:
        if self.status is LinkStatus.UNKNOWN:
            return None
        return self.status is LinkStatus.VALID

    def resolve(self, valid: bool, detail: Optional[FailureDetail] = None) -> 'LinkRecord':
        """Record the validation outcome. A record can only be resolved once."""
        if self.status is not LinkStatus.UNKNOWN:
            raise ValueError(f"link '{self.target}' at '{self.source_path}' already resolved")
        self.status = LinkStatus.VALID if valid else LinkStatus.INVALID
        self.failure_detail = detail
        return self

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'source_path': self.source_path,
            'target': self.target,
            'status': self.status.value,
        }
        if self.failure_detail:
            data['failure_detail'] = self.failure_detail.to_dict()
        return data


class IgnoreRules:
    """
    Ordered set of regular expressions used to drop files or links.

    A text is ignored when any pattern matches anywhere in it.
    """

    def __init__(self, patterns: Optional[Iterable[str]] = None, field_name: str = 'ignore'):
        self.patterns: List[str] = list(patterns or [])
        self._compiled = [compile_pattern(p, field_name) for p in self.patterns]

    def matches(self, text: str) -> bool:
        return any(regex.search(text) for regex in self._compiled)

    def __len__(self) -> int:
        return len(self._compiled)

    def __repr__(self) -> str:
        return f"IgnoreRules({self.patterns!r})"

