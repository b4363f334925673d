"""
Validator Contract
==================
Defines the interface every link validator implements and the cancellable
context passed to each check.

A validator answers two questions:
- has_authority(target): is this validator responsible for the link?
- check(context, source_path, target): does the link resolve?

check() returns a (valid, detail) tuple. An invalid link is a normal
outcome, not an error; CheckError is raised only when the validator could
not reach a decision.
"""

import threading
from typing import Optional, Protocol, Tuple, runtime_checkable

from ..config_logging import DEFAULT_TIMEOUT, CancelledError
from ..models import FailureDetail

CheckResult = Tuple[bool, Optional[FailureDetail]]


class CheckContext:
    """
    Cancellable context shared by every check of a run.

    Validators call raise_if_cancelled() before each blocking call and pass
    ``timeout`` to the underlying HTTP, DNS and browser clients.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout
        self._cancelled = threading.Event()

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def raise_if_cancelled(self, target: Optional[str] = None):
        if self._cancelled.is_set():
            raise CancelledError("context cancelled", target=target)


@runtime_checkable
class LinkValidator(Protocol):
    """Protocol implemented by the link validators."""

    name: str

    def has_authority(self, target: str) -> bool:
        """Return True when this validator is responsible for the target."""

    def check(self, context: CheckContext, source_path: str, target: str) -> CheckResult:
        """Decide whether the target resolves."""
