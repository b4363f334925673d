"""
Shared fixtures for the link checker tests.
"""

import logging

import pytest

from markdown_link_check.config_logging import LOGGER_NAME
from markdown_link_check.validators import CheckContext


README = """# Intro

See the [setup guide](guide/setup.md#install) and the [site](https://example.com).

Visit the [site](https://example.com) again.
"""

SETUP = """# Setup

## Install

Back to the [readme](../README.md#intro).
Questions go to [docs](mailto:docs@example.com).
"""


@pytest.fixture
def docs_tree(tmp_path):
    """Documentation tree mixing local, web and mail links."""
    root = tmp_path / 'docs'
    (root / 'guide').mkdir(parents=True)
    (root / 'README.md').write_text(README, encoding='utf-8')
    (root / 'guide' / 'setup.md').write_text(SETUP, encoding='utf-8')
    (root / 'guide' / 'notes.txt').write_text("[not scanned](missing.md)\n", encoding='utf-8')
    return root


@pytest.fixture
def local_tree(tmp_path):
    """Documentation tree holding only local links, one of them broken."""
    root = tmp_path / 'local'
    (root / 'guide').mkdir(parents=True)
    (root / 'README.md').write_text(
        "# Overview\n\n"
        "Read the [guide](guide/usage.md#getting-started) first.\n\n"
        "## Getting Help\n\n"
        "Jump to [help](#getting-help).\n",
        encoding='utf-8'
    )
    (root / 'guide' / 'usage.md').write_text(
        "# Getting Started\n\n"
        "Go [home](../README.md) or read the [changelog](../CHANGELOG.md).\n",
        encoding='utf-8'
    )
    return root


@pytest.fixture
def context():
    """Fresh cancellable context."""
    return CheckContext(timeout=30)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by configure_logging() during a test."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
