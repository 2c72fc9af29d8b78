"""Text and URL helpers shared by the resolver, mapper and validator."""

import re
from typing import Any
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

_WHITESPACE_RE = re.compile(r'\s+')
_OCTET_RE = re.compile(r'%[a-fA-F0-9]{2}')
_URL_UNSAFE_RE = re.compile(r"[^A-Za-z0-9\-~+_.?#=!&;,/:%@$|*'()\[\]]")


def strip_tags(value: Any) -> str:
    """Remove HTML markup, keeping the text content."""
    text = '' if value is None else str(value)
    if '<' not in text:
        return text
    soup = BeautifulSoup(text, 'lxml')
    for tag in soup(['script', 'style']):
        tag.decompose()
    return soup.get_text(' ')


def sanitize_text_field(value: Any) -> str:
    """Reduce a value to a single line of plain text."""
    text = strip_tags(value)
    text = _OCTET_RE.sub('', text)
    return _WHITESPACE_RE.sub(' ', text).strip()


def clean_html(value: Any) -> str:
    """Keep content markup but drop scripts, styles and inline event handlers."""
    text = '' if value is None else str(value)
    if '<' not in text:
        return text
    soup = BeautifulSoup(text, 'html.parser')
    for tag in soup(['script', 'style', 'iframe', 'object', 'embed']):
        tag.decompose()
    for tag in soup.find_all(True):
        for attr in [a for a in tag.attrs if a.lower().startswith('on')]:
            del tag[attr]
    return str(soup)


def autop(value: Any) -> str:
    """Wrap blank-line separated blocks in <p> tags unless already wrapped."""
    text = ('' if value is None else str(value)).strip()
    if not text:
        return ''
    if re.search(r'<(p|ul|ol|div|table|h[1-6])[\s>]', text, re.IGNORECASE):
        return text
    blocks = [b.strip() for b in re.split(r'\n\s*\n', text) if b.strip()]
    return ''.join(f"<p>{b.replace(chr(10), '<br />')}</p>" for b in blocks)


def is_valid_url(value: Any) -> bool:
    """True for an absolute URL with a scheme and host."""
    if not isinstance(value, str) or not value or value != value.strip():
        return False
    if any(ch.isspace() for ch in value):
        return False
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.scheme.isascii() and parsed.scheme.isalpha() and parsed.netloc)


def is_url_like(value: Any) -> bool:
    """Looser check used for image and logo values, which may be site-relative."""
    if not isinstance(value, str) or not value.strip():
        return False
    return (
        is_valid_url(value)
        or value.startswith('/')
        or value.startswith('http')
        or 'wp-content' in value
    )


def absolutize_url(value: str, site_url: str) -> str:
    """Resolve a site-relative path against the site URL."""
    if is_valid_url(value) or value.startswith('http'):
        return value
    base = site_url.rstrip('/') + '/'
    return urljoin(base, value.lstrip('/'))


def esc_url_raw(value: Any) -> str:
    """Normalize a URL for storage in JSON-LD.

    Spaces are encoded; quotes, angle brackets, control and non-ASCII
    characters are removed.
    """
    url = str(value).strip().replace(' ', '%20')
    return _URL_UNSAFE_RE.sub('', url)


def is_blank(value: Any) -> bool:
    """Empty-value test used throughout schema assembly.

    None, False, empty containers and whitespace-only strings are blank.
    Numbers are never blank, so a latitude of 0 survives.
    """
    if value is None or value is False:
        return True
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    if isinstance(value, (int, float)):
        return False
    return str(value).strip() == ''
