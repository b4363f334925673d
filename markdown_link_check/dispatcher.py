"""
Link Dispatcher
===============
Routes every link record to the first validator claiming authority over it.

Validators are probed in their configured order; the first one whose
has_authority() returns True is the only one consulted. Records claimed by
no validator are dropped from the output. Check errors are collected while
the remaining records are processed; if any occurred the whole batch fails
with a BatchError and no records are returned.
"""

import logging
from typing import List, Optional, Callable, Sequence, Tuple

from .config_logging import BatchError, CheckError
from .models import LinkRecord
from .validators.base import CheckContext, LinkValidator

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


class Dispatcher:
    """
    Validates link records through an ordered list of validators.

    Usage:
        dispatcher = Dispatcher([mail, github, web, local])
        records = dispatcher.process(CheckContext(), records)
    """

    def __init__(
        self,
        validators: Sequence[LinkValidator],
        progress_callback: Optional[ProgressCallback] = None
    ):
        if not validators:
            raise ValueError("missing 'validators'")
        self.validators = list(validators)
        self.progress_callback = progress_callback

    def authority_for(self, target: str) -> Optional[LinkValidator]:
        """First validator claiming the target, or None."""
        for validator in self.validators:
            if validator.has_authority(target):
                return validator
        return None

    def process(self, context: CheckContext, records: Sequence[LinkRecord]) -> List[LinkRecord]:
        """
        Validate every record.

        Args:
            context: Cancellable context passed to each check
            records: Records produced by the scanner

        Returns:
            The resolved records claimed by a validator, in input order

        Raises:
            BatchError: one or more checks raised a CheckError
        """
        failures: List[Tuple[LinkRecord, CheckError]] = []
        result: List[LinkRecord] = []
        total = len(records)
        processed = 0

        for record in records:
            validator = self.authority_for(record.target)
            if validator is None:
                logger.debug(f"No validator claims '{record.target}', skipping")
                continue

            try:
                valid, detail = validator.check(context, record.source_path, record.target)
            except CheckError as e:
                logger.debug(f"{validator.name} failed on '{record.target}': {e}")
                failures.append((record, e))
            else:
                record.resolve(valid, detail)
                result.append(record)
                logger.debug(f"{validator.name}: '{record.target}' -> {record.status.value}")

            processed += 1
            if self.progress_callback:
                self.progress_callback(processed, total, record.target)

        if failures:
            raise BatchError(failures)
        return result
