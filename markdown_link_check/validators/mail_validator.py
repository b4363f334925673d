"""
Mail Validator
==============
Validates mailto: links by checking the domain publishes MX records.
"""

import re
import logging
from typing import Optional

import dns.exception
import dns.resolver

from ..config_logging import CheckError
from ..models import FailureDetail
from .base import CheckContext, CheckResult

logger = logging.getLogger(__name__)

AUTHORITY = re.compile(r'^mailto:')

ADDRESS = re.compile(
    r"^mailto:[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@(?P<domain>[a-zA-Z0-9-]+(?:\.[a-zA-Z0-9-]+)*)"
)


class MailValidator:
    """A mailto: link is valid when its domain has at least one MX record."""

    name = "mail"

    def __init__(self, resolver: Optional[dns.resolver.Resolver] = None):
        self._resolver = resolver

    @property
    def resolver(self) -> dns.resolver.Resolver:
        # Reads the system resolver configuration, only needed once a mail link shows up
        if self._resolver is None:
            self._resolver = dns.resolver.Resolver()
        return self._resolver

    def has_authority(self, target: str) -> bool:
        return bool(AUTHORITY.match(target))

    def check(self, context: CheckContext, source_path: str, target: str) -> CheckResult:
        match = ADDRESS.match(target)
        if match is None:
            return False, FailureDetail(reason="malformed email address")

        domain = match.group('domain')
        context.raise_if_cancelled(target)
        try:
            answer = self.resolver.resolve(domain, 'MX', lifetime=context.timeout)
        except dns.exception.DNSException as e:
            raise CheckError(f"fail to check the MX DNS entries of '{domain}': {e}",
                             target=target) from e

        if len(answer) > 0:
            return True, None
        return False, FailureDetail(reason=f"no MX records found for '{domain}'")
