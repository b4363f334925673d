"""
Markup Query Helpers
====================
Small BeautifulSoup wrappers shared by the scanner and the validators.
"""

from typing import List, Optional, Tuple, Union, Sequence

from bs4 import BeautifulSoup
from bs4.element import Tag

HEADING_TAGS = ('h1', 'h2', 'h3', 'h4', 'h5', 'h6')

Markup = Union[bytes, str]


def parse(html: Markup) -> BeautifulSoup:
    """Parse HTML bytes or text with the stdlib-backed parser."""
    return BeautifulSoup(html, 'html.parser')


def find_elements(html: Markup, tag: Union[str, Sequence[str]],
                  attribute: Optional[str] = None) -> List[Tag]:
    """
    Find elements of a tag (or list of tags), optionally requiring an attribute.

    Args:
        html: HTML bytes or text
        tag: Tag name or list of tag names
        attribute: Attribute that must be present on matched elements

    Returns:
        Matching elements in document order
    """
    tags = tag if isinstance(tag, str) else list(tag)
    attrs = {attribute: True} if attribute else {}
    return parse(html).find_all(tags, attrs=attrs)


def attribute_values(html: Markup, tag: str, attribute: str) -> List[str]:
    """Values of ``attribute`` for every ``tag`` element carrying it."""
    return [element.get(attribute) for element in find_elements(html, tag, attribute)]


def headings(html: Markup) -> List[Tuple[str, str]]:
    """(id, visible text) of every h1-h6 heading in document order."""
    return [
        (element.get('id', ''), element.get_text().strip())
        for element in find_elements(html, HEADING_TAGS)
    ]
