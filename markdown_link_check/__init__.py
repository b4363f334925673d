"""
Markdown Link Check
===================
Validates every link found in a tree of Markdown documents.

Links are extracted from the rendered HTML of each document and routed to
the first validator claiming them:
- mail: mailto: addresses, checked through MX records
- github: github.com and raw.githubusercontent.com links of configured owners,
  checked through the GitHub REST API
- web: http(s) links, checked with requests (fragments verified against the
  static body, then a headless browser render)
- file: relative links, checked on disk (fragments against heading ids)
"""

__version__ = "1.0.0"

from .config_logging import (
    LinkCheckConfig,
    LinkCheckError,
    ConfigError,
    PathError,
    ScanError,
    CheckError,
    CancelledError,
    BatchError,
    load_config,
    configure_logging,
)
from .models import LinkRecord, LinkStatus, FailureDetail, IgnoreRules
from .scanner import DocumentScanner
from .dispatcher import Dispatcher
from .checker import LinkChecker
from .reporter import Reporter, export_json
from .validators import CheckContext

__all__ = [
    # Configuration
    'LinkCheckConfig',
    'load_config',
    'configure_logging',
    # Errors
    'LinkCheckError',
    'ConfigError',
    'PathError',
    'ScanError',
    'CheckError',
    'CancelledError',
    'BatchError',
    # Models
    'LinkRecord',
    'LinkStatus',
    'FailureDetail',
    'IgnoreRules',
    # Pipeline
    'DocumentScanner',
    'Dispatcher',
    'LinkChecker',
    'CheckContext',
    'Reporter',
    'export_json',
    # Version
    '__version__'
]
