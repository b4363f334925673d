"""
Command Line Interface
======================
markdown-link-check check PATH --config FILE [options]

Exit codes:
    0  every link is valid
    1  at least one link is invalid, or the run failed
"""

import sys
import signal
import logging
import argparse
from contextlib import contextmanager

from . import __version__
from .checker import LinkChecker
from .config_logging import (
    APP_NAME,
    CancelledError,
    ConfigError,
    LinkCheckError,
    configure_logging,
    load_config,
)
from .reporter import Reporter, export_json, has_invalid
from .validators import CheckContext

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description='Validate the links of a tree of Markdown documents'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    subparsers = parser.add_subparsers(dest='command', required=True)

    check = subparsers.add_parser('check', help='Check every link under PATH')
    check.add_argument('path', help='Directory holding the Markdown documents')
    check.add_argument('-c', '--config', required=True, help='Path to the configuration file')
    check.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    check.add_argument('--log-format', choices=['text', 'json'],
                       help='Log output format (overrides the configuration)')
    check.add_argument('--timeout', type=float,
                       help='Seconds allowed per network call (overrides the configuration)')
    check.add_argument('--output', choices=['text', 'json'], default='text',
                       help='Report format written to stdout')
    return parser


@contextmanager
def interrupt_cancels(context: CheckContext):
    """Turn SIGINT into a cancellation of ``context`` for the duration of the block."""
    def handler(signum, frame):
        context.cancel()
        raise CancelledError("interrupted")

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield context
    finally:
        signal.signal(signal.SIGINT, previous)


def run_check(args) -> int:
    config = load_config(args.config)
    if args.log_format:
        config.log_format = args.log_format
    if args.timeout is not None:
        config.timeout = args.timeout
    if args.verbose:
        config.log_level = 'DEBUG'

    errors = config.validate()
    if errors:
        raise ConfigError("; ".join(errors))
    configure_logging(config.log_level, config.log_format)

    def progress(processed: int, total: int, target: str):
        logger.info(f"{processed} of {total} entries processed")

    context = CheckContext(timeout=config.timeout)
    with interrupt_cancels(context):
        records = LinkChecker(args.path, config).run(context, progress_callback=progress)

    if args.output == 'json':
        print(export_json(records, args.path))
        return 1 if has_invalid(records) else 0

    return 1 if Reporter(args.path).report(records) else 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        return run_check(args)
    except LinkCheckError as e:
        print(f"{APP_NAME}: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
