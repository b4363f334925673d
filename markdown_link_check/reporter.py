"""
Result Reporting
================
Renders validated link records for people (text) and for tools (JSON).

The text report lists only the documents holding at least one invalid
link, grouped by document (sorted) with the invalid targets sorted inside
each group, followed by a details section for every invalid link carrying
a failure detail.
"""

import os
import sys
import json
from datetime import datetime, timezone
from itertools import groupby
from typing import Dict, List, Optional, Sequence, TextIO

from .models import LinkRecord


def group_by_document(records: Sequence[LinkRecord]) -> Dict[str, List[LinkRecord]]:
    """Records grouped by source path; paths and targets sorted."""
    ordered = sorted(records, key=lambda r: (r.source_path, r.target))
    return {
        path: list(group)
        for path, group in groupby(ordered, key=lambda r: r.source_path)
    }


def has_invalid(records: Sequence[LinkRecord]) -> bool:
    return any(record.valid is False for record in records)


class Reporter:
    """
    Prints the invalid links of a run.

    Usage:
        reporter = Reporter('docs')
        failed = reporter.report(records)
    """

    def __init__(self, root: str = '.', stream: Optional[TextIO] = None):
        self.root = os.path.abspath(root)
        self.stream = stream or sys.stdout

    def relative_path(self, path: str) -> str:
        try:
            return os.path.relpath(path, self.root)
        except ValueError:
            # Different drive on Windows
            return path

    def report(self, records: Sequence[LinkRecord]) -> bool:
        """
        Print the report.

        Returns:
            True if at least one link is invalid
        """
        groups = {
            path: group for path, group in group_by_document(records).items()
            if has_invalid(group)
        }
        if not groups:
            return False

        write = self.stream.write
        for path, group in groups.items():
            write(self.relative_path(path))
            for record in group:
                if record.valid is False:
                    write(f"\n- {record.target}")
            write("\n\n")

        for path, group in groups.items():
            for record in group:
                if record.valid is not False or record.failure_detail is None:
                    continue
                write(f"The link '{record.target}' at the file '{self.relative_path(path)}' "
                      f"failed because of:\n")
                write(record.failure_detail.pretty())
                write("\n")
            write("\n")

        return True


def export_json(records: Sequence[LinkRecord], root: str = '.') -> str:
    """
    Export every validated record to JSON.

    Args:
        records: Records returned by the checker
        root: Scan root, recorded in the output

    Returns:
        JSON content as string
    """
    ordered = sorted(records, key=lambda r: (r.source_path, r.target))
    data = {
        'exported_at': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        'root': os.path.abspath(root),
        'summary': {
            'total': len(ordered),
            'valid': sum(1 for r in ordered if r.valid),
            'invalid': sum(1 for r in ordered if r.valid is False),
        },
        'results': [r.to_dict() for r in ordered],
    }
    return json.dumps(data, indent=2)
