"""
Document Renderer
=================
Converts Markdown documents into sanitized HTML with stable heading ids.

Rendering uses Python-Markdown with the ``toc`` extension so every heading
(h1-h6) receives an auto-generated identifier. The identifier algorithm is
exposed as slugify() so fragments can be compared against heading ids
exactly the way the renderer produced them.

The generated HTML is then sanitized with BeautifulSoup: active content is
removed, unknown tags are unwrapped and only a user-generated-content
allow-list of attributes survives.
"""

import re
import logging
from typing import Dict, FrozenSet

import markdown
from markdown.extensions.toc import TocExtension
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


def slugify(value: str, separator: str = "-") -> str:
    """
    Generate the heading identifier for a piece of heading text.

    Letters and digits are kept (lowercased); every run of other characters
    between two kept characters collapses into a single separator.
    """
    chars = []
    pending_separator = False
    for char in value:
        if char.isalpha() or char.isnumeric():
            if pending_separator and chars:
                chars.append(separator)
            pending_separator = False
            chars.append(char.lower())
        else:
            pending_separator = True
    return "".join(chars)


class MarkdownRenderer:
    """
    Renders raw Markdown bytes to sanitized HTML bytes.

    Usage:
        renderer = MarkdownRenderer()
        html = renderer.render(Path('README.md').read_bytes())
    """

    # Removed together with their content
    STRIPPED_TAGS = ('script', 'style', 'iframe', 'object', 'embed', 'form',
                     'noscript', 'textarea', 'select', 'button', 'input')

    ALLOWED_TAGS: FrozenSet[str] = frozenset((
        'a', 'abbr', 'acronym', 'b', 'bdi', 'bdo', 'blockquote', 'br', 'caption',
        'cite', 'code', 'col', 'colgroup', 'dd', 'del', 'details', 'dfn', 'div',
        'dl', 'dt', 'em', 'figcaption', 'figure', 'h1', 'h2', 'h3', 'h4', 'h5',
        'h6', 'hr', 'i', 'img', 'ins', 'kbd', 'li', 'mark', 'ol', 'p', 'pre', 'q',
        'rp', 'rt', 'ruby', 's', 'samp', 'small', 'span', 'strike', 'strong',
        'sub', 'summary', 'sup', 'table', 'tbody', 'td', 'tfoot', 'th', 'thead',
        'time', 'tr', 'tt', 'u', 'ul', 'var', 'wbr',
    ))

    GLOBAL_ATTRIBUTES: FrozenSet[str] = frozenset(('id', 'title', 'lang', 'dir'))

    TAG_ATTRIBUTES: Dict[str, FrozenSet[str]] = {
        'a': frozenset(('href', 'name', 'rel')),
        'img': frozenset(('src', 'alt', 'width', 'height')),
        'td': frozenset(('colspan', 'rowspan', 'align')),
        'th': frozenset(('colspan', 'rowspan', 'align', 'scope')),
        'ol': frozenset(('start', 'type')),
        'code': frozenset(('class',)),
        'time': frozenset(('datetime',)),
    }

    UNSAFE_URL = re.compile(r'^\s*(javascript|vbscript|data):', re.IGNORECASE)

    EXTENSIONS = ('fenced_code', 'tables')

    def render(self, raw: bytes) -> bytes:
        """
        Render a Markdown document.

        Args:
            raw: Document bytes (UTF-8, optional BOM)

        Returns:
            Sanitized HTML bytes

        Raises:
            UnicodeDecodeError: if the document is not valid UTF-8
        """
        text = raw.decode('utf-8-sig')
        html = markdown.markdown(
            text,
            extensions=[TocExtension(slugify=slugify), *self.EXTENSIONS],
            output_format='html',
        )
        return self.sanitize(html).encode('utf-8')

    def slugify(self, text: str) -> str:
        return slugify(text)

    def sanitize(self, html: str) -> str:
        """Strip active content and attributes outside the allow-list."""
        soup = BeautifulSoup(html, 'html.parser')

        for tag in soup.find_all(self.STRIPPED_TAGS):
            tag.decompose()

        for tag in soup.find_all(True):
            if tag.name not in self.ALLOWED_TAGS:
                tag.unwrap()
                continue

            allowed = self.GLOBAL_ATTRIBUTES | self.TAG_ATTRIBUTES.get(tag.name, frozenset())
            for attribute in list(tag.attrs):
                if attribute not in allowed:
                    del tag.attrs[attribute]

            for attribute in ('href', 'src'):
                value = tag.attrs.get(attribute)
                if value is not None and self.UNSAFE_URL.match(value):
                    logger.debug(f"Dropped unsafe {attribute}: {value[:50]}")
                    del tag.attrs[attribute]

        return str(soup)
