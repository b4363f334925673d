"""
Link Validators
===============
One validator per link family, probed by the dispatcher in a fixed order:

- mail: mailto: links, MX lookup
- github: github.com / raw.githubusercontent.com links of a configured owner
- web: http(s) links, with a headless browser fallback for fragments
- file: everything else, resolved against the local filesystem
"""

from .base import CheckContext, CheckResult, LinkValidator
from .file_validator import FileValidator
from .github_api import GitHubAPI
from .github_validator import GitHubValidator
from .headless_validator import HeadlessBrowser
from .mail_validator import MailValidator
from .web_validator import WebValidator

__all__ = [
    'CheckContext',
    'CheckResult',
    'LinkValidator',
    'FileValidator',
    'GitHubAPI',
    'GitHubValidator',
    'HeadlessBrowser',
    'MailValidator',
    'WebValidator',
]
