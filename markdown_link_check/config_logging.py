#!/usr/bin/env python3
"""
Markdown Link Check Configuration & Logging Module
==================================================
Centralized configuration loading, structured logging, and the error
taxonomy shared by every component.

Configuration is read from a YAML file and mapped into dataclasses before
any scanning begins. A handful of environment variables (MLC_*) override
file values, mirroring how deployment settings are usually injected.
"""

import os
import re
import sys
import json
import time
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, List, Tuple

import yaml

# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================
DEFAULT_TIMEOUT = 30                # Seconds per blocking call (HTTP, DNS, browser)
MAX_REDIRECTS = 10                  # Permanent redirect hops before giving up
MAX_DETAIL_BODY_CHARS = 2000        # Body excerpt kept in failure details
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "text"         # Options: text, json

APP_NAME = "markdown-link-check"
LOGGER_NAME = "markdown_link_check"


# =============================================================================
# ERROR HANDLING
# =============================================================================

class LinkCheckError(Exception):
    """Base exception for markdown-link-check."""

    def __init__(self, message: str, code: str = "UNKNOWN_ERROR",
                 details: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'message': self.message,
            'details': self.details
        }


class ConfigError(LinkCheckError):
    """Missing, unreadable or malformed configuration."""
    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, code="CONFIG_ERROR",
                         details={'field': field, **kwargs})
        self.field = field


class PathError(LinkCheckError):
    """The scan root is missing or is not a directory."""
    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        super().__init__(message, code="PATH_ERROR",
                         details={'path': path, **kwargs})
        self.path = path


class ScanError(LinkCheckError):
    """A document could not be read or rendered."""
    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        super().__init__(message, code="SCAN_ERROR",
                         details={'path': path, **kwargs})
        self.path = path


class CheckError(LinkCheckError):
    """A validator could not reach a decision for a target."""
    def __init__(self, message: str, target: Optional[str] = None,
                 code: str = "CHECK_ERROR", **kwargs):
        super().__init__(message, code=code, details={'target': target, **kwargs})
        self.target = target


class CancelledError(CheckError):
    """The cancellable context was cancelled while work was pending."""
    def __init__(self, message: str = "operation cancelled", target: Optional[str] = None):
        super().__init__(message, target=target, code="CANCELLED")


class BatchError(LinkCheckError):
    """
    Composite error raised by the dispatcher.

    Holds every (record, error) pair collected while processing a batch.
    """

    def __init__(self, failures: List[Tuple[Any, Exception]]):
        self.failures = list(failures)
        messages = [str(error) for _, error in self.failures]
        if len(messages) == 1:
            message = messages[0]
        else:
            message = "multiple errors detected ('{}')".format("', '".join(messages))
        super().__init__(message, code="BATCH_ERROR",
                         details={'count': len(self.failures)})


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class HeaderOverride:
    """Headers merged over the base set for targets matching ``endpoint``."""
    endpoint: str
    headers: Dict[str, str] = field(default_factory=dict)
    pattern: Optional['re.Pattern'] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self.pattern is None:
            self.pattern = compile_pattern(self.endpoint, 'provider.web.overwrite.endpoint')

    def matches(self, target: str) -> bool:
        return bool(self.pattern.search(target))


@dataclass
class WebConfig:
    """Remote-web validator settings."""
    headers: Dict[str, str] = field(default_factory=dict)
    overrides: List[HeaderOverride] = field(default_factory=list)

    def headers_for(self, target: str) -> Dict[str, str]:
        """Base headers with the first matching override merged on top."""
        merged = dict(self.headers)
        for override in self.overrides:
            if override.matches(target):
                merged.update(override.headers)
                break
        return merged


@dataclass
class GitHubCredentials:
    """Code-host credentials for one owner."""
    owner: str
    token: str
    label: str = ""


@dataclass
class LinkCheckConfig:
    """Structured configuration consumed by the link checker."""
    ignore_files: List[str] = field(default_factory=list)
    ignore_links: List[str] = field(default_factory=list)
    web: WebConfig = field(default_factory=WebConfig)
    github: List[GitHubCredentials] = field(default_factory=list)
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL
    log_format: str = DEFAULT_LOG_FORMAT

    def apply_env(self) -> 'LinkCheckConfig':
        """Apply MLC_* environment overrides in place."""
        self.log_level = os.environ.get('MLC_LOG_LEVEL', self.log_level).upper()
        self.log_format = os.environ.get('MLC_LOG_FORMAT', self.log_format).lower()
        raw_timeout = os.environ.get('MLC_TIMEOUT')
        if raw_timeout:
            self.timeout = _as_timeout(raw_timeout, 'MLC_TIMEOUT')
        return self

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty if valid)."""
        errors = []
        if self.timeout <= 0:
            errors.append("timeout must be greater than zero")
        if self.log_format not in ('text', 'json'):
            errors.append(f"Invalid log format: {self.log_format}")
        if self.log_level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            errors.append(f"Invalid log level: {self.log_level}")
        return errors


def compile_pattern(pattern: str, field_name: str) -> 're.Pattern':
    """Compile a configured regular expression, reporting the owning field."""
    if not isinstance(pattern, str):
        raise ConfigError(f"'{field_name}' entries must be strings", field=field_name)
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigError(f"fail to compile regex '{pattern}': {e}", field=field_name)


def load_config(path) -> LinkCheckConfig:
    """
    Load the YAML configuration file.

    Args:
        path: Path to the configuration file

    Returns:
        LinkCheckConfig with environment overrides applied

    Raises:
        ConfigError: if the file is missing, unreadable or malformed
    """
    config_path = Path(path).expanduser()
    if not config_path.is_file():
        raise ConfigError(f"configuration file not found: {config_path}", field='config')

    try:
        text = config_path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"fail to read the configuration file: {e}", field='config') from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"fail to parse the configuration file: {e}", field='config') from e

    config = parse_config(data or {})
    config.apply_env()

    errors = config.validate()
    if errors:
        raise ConfigError("; ".join(errors), field='config')
    return config


def parse_config(data: Any) -> LinkCheckConfig:
    """Map an already-parsed YAML document into LinkCheckConfig."""
    if not isinstance(data, dict):
        raise ConfigError("configuration must contain a mapping at the root", field='config')

    ignore = _as_mapping(data.get('ignore'), 'ignore')
    ignore_files = _as_str_list(ignore.get('file'), 'ignore.file')
    ignore_links = _as_str_list(ignore.get('link'), 'ignore.link')
    for pattern in ignore_files:
        compile_pattern(pattern, 'ignore.file')
    for pattern in ignore_links:
        compile_pattern(pattern, 'ignore.link')

    provider = _as_mapping(data.get('provider'), 'provider')

    web_data = _as_mapping(provider.get('web'), 'provider.web')
    overrides = []
    raw_overrides = web_data.get('overwrite') or []
    if not isinstance(raw_overrides, list):
        raise ConfigError("'provider.web.overwrite' must be a list", field='provider.web.overwrite')
    for index, entry in enumerate(raw_overrides):
        entry_field = f'provider.web.overwrite[{index}]'
        entry = _as_mapping(entry, entry_field)
        endpoint = entry.get('endpoint')
        if not endpoint:
            raise ConfigError(f"missing '{entry_field}.endpoint'", field=f'{entry_field}.endpoint')
        overrides.append(HeaderOverride(
            endpoint=str(endpoint),
            headers=_as_headers(entry.get('header'), f'{entry_field}.header'),
        ))
    web = WebConfig(
        headers=_as_headers(web_data.get('header'), 'provider.web.header'),
        overrides=overrides,
    )

    github = []
    github_data = _as_mapping(provider.get('github'), 'provider.github')
    for label, entry in github_data.items():
        entry_field = f'provider.github.{label}'
        entry = _as_mapping(entry, entry_field)
        owner = entry.get('owner')
        if not owner:
            raise ConfigError(f"missing '{entry_field}.owner'", field=f'{entry_field}.owner')
        token = os.path.expandvars(str(entry.get('token') or ''))
        if not token or token.startswith('$'):
            raise ConfigError(f"missing '{entry_field}.token'", field=f'{entry_field}.token')
        github.append(GitHubCredentials(owner=str(owner), token=token, label=str(label)))

    timeout = DEFAULT_TIMEOUT
    if data.get('timeout') is not None:
        timeout = _as_timeout(data.get('timeout'), 'timeout')

    return LinkCheckConfig(
        ignore_files=ignore_files,
        ignore_links=ignore_links,
        web=web,
        github=github,
        timeout=timeout,
    )


def _as_mapping(value: Any, field_name: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{field_name}' must be a mapping", field=field_name)
    return value


def _as_str_list(value: Any, field_name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigError(f"'{field_name}' must be a list of strings", field=field_name)
    return [str(item) for item in value]


def _as_headers(value: Any, field_name: str) -> Dict[str, str]:
    headers = {}
    for name, raw in _as_mapping(value, field_name).items():
        if isinstance(raw, list):
            headers[str(name)] = ", ".join(str(item) for item in raw)
        elif raw is None:
            raise ConfigError(f"'{field_name}.{name}' has no value", field=f'{field_name}.{name}')
        else:
            headers[str(name)] = str(raw)
    return headers


def _as_timeout(value: Any, field_name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{field_name}' must be a number of seconds", field=field_name)


# =============================================================================
# STRUCTURED LOGGING
# =============================================================================

class JsonFormatter(logging.Formatter):
    """JSON log formatter."""

    _RESERVED = frozenset((
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'levelno', 'lineno', 'module', 'msecs',
        'pathname', 'process', 'processName', 'relativeCreated',
        'stack_info', 'thread', 'threadName', 'exc_info', 'exc_text',
        'message', 'taskName'
    ))

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        if record.exc_info:
            log_data['traceback'] = self.formatException(record.exc_info)

        # Add extra fields
        for key, value in record.__dict__.items():
            if key not in self._RESERVED:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def configure_logging(level: str = DEFAULT_LOG_LEVEL,
                      log_format: str = DEFAULT_LOG_FORMAT,
                      stream=None) -> logging.Logger:
    """
    Configure the package logger with a single console handler.

    Calling it again replaces the handler rather than stacking a new one.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False
    logger.handlers.clear()

    if log_format == 'json':
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(name)s - %(message)s')

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger under the package hierarchy."""
    if not name or name == LOGGER_NAME or name.startswith(LOGGER_NAME + '.'):
        return logging.getLogger(name or LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


@contextmanager
def log_operation(logger: logging.Logger, operation: str, **context):
    """Context manager for logging operation start/end with timing."""
    start_time = time.time()
    logger.info(f"{operation} started", extra={'operation': operation, 'status': 'started', **context})
    try:
        yield
    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(f"{operation} failed: {e}",
                     extra={'operation': operation, 'status': 'failed',
                            'duration_ms': round(duration_ms, 2), **context})
        raise
    duration_ms = (time.time() - start_time) * 1000
    logger.info(f"{operation} completed",
                extra={'operation': operation, 'status': 'completed',
                       'duration_ms': round(duration_ms, 2), **context})
