"""HTML cleaning for post bodies: safe markup, image-less markup and plain text."""

from __future__ import annotations

import re
from typing import NamedTuple

from bs4 import BeautifulSoup, NavigableString

BLOCKED_TAGS = ("script", "style", "iframe", "object", "embed", "form")
RESPONSIVE_IMG_STYLE = "max-width:100%;height:auto;"

_TAG_PATTERN = re.compile(r"<[^>]*>")
_IMG_TAG_PATTERN = re.compile(r"<img\b[^>]*?>", re.IGNORECASE)
_SHORTCODE_PATTERN = re.compile(r"\[/?(?:caption|gallery)\b[^\]]*\]")
_UNSAFE_SCHEME_PATTERN = re.compile(r"(?:javascript|data|vbscript):", re.IGNORECASE)
_URI_NOISE_PATTERN = re.compile(r"[\x00-\x20]+")

# &amp; goes last so "&amp;lt;" decodes to "&lt;" and not "<".
_ENTITIES = (
    ("&quot;", '"'),
    ("&#039;", "'"),
    ("&#39;", "'"),
    ("&apos;", "'"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&nbsp;", " "),
    ("\xa0", " "),
    ("&amp;", "&"),
)


class ContentVariants(NamedTuple):
    html: str
    html_no_image: str
    text: str


def strip_to_plain_text(html: str) -> str:
    """Drop every tag, decode the common entities and trim."""
    if not html:
        return ""
    text = _TAG_PATTERN.sub("", html)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return text.strip()


def remove_leading_image(html: str) -> str:
    """Remove the first ``<img>`` tag and leave the rest of the markup as is."""
    if not html:
        return ""
    return _IMG_TAG_PATTERN.sub("", html, count=1)


def _remove_blocks(soup: BeautifulSoup) -> None:
    for tag in soup(list(BLOCKED_TAGS)):
        tag.decompose()


def _is_unsafe_value(value) -> bool:
    if isinstance(value, list):
        value = " ".join(value)
    # Browsers ignore whitespace and control characters inside a scheme, and
    # CSS url() values can carry one anywhere in the attribute.
    return bool(_UNSAFE_SCHEME_PATTERN.search(_URI_NOISE_PATTERN.sub("", str(value))))


def _strip_unsafe_attributes(soup: BeautifulSoup) -> None:
    for tag in soup.find_all(True):
        for name in list(tag.attrs):
            if name.lower().startswith("on") or _is_unsafe_value(tag.attrs[name]):
                del tag.attrs[name]


def _strip_shortcodes(soup: BeautifulSoup) -> None:
    for node in soup.find_all(string=True):
        if type(node) is not NavigableString:
            continue
        text = str(node)
        cleaned = text
        while True:
            stripped = _SHORTCODE_PATTERN.sub("", cleaned)
            if stripped == cleaned:
                break
            cleaned = stripped
        if cleaned == text:
            continue
        if cleaned:
            node.replace_with(cleaned)
        else:
            node.extract()


def _make_images_responsive(soup: BeautifulSoup) -> None:
    for img in soup.find_all("img"):
        img.attrs.pop("width", None)
        img.attrs.pop("height", None)
        img["style"] = RESPONSIVE_IMG_STYLE


def sanitize(html: str) -> str:
    """Return markup that is safe to render inside a gallery page.

    Dangerous elements are removed together with their content before any
    attribute is looked at. Event handlers and ``javascript:``, ``data:`` and
    ``vbscript:`` attribute values are dropped, WordPress caption and gallery
    shortcodes are removed from the text, and every image loses its fixed
    dimensions in favour of a responsive inline style.
    """
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    _remove_blocks(soup)
    # Text on either side of a removed block becomes one string again.
    soup.smooth()
    _strip_unsafe_attributes(soup)
    _strip_shortcodes(soup)
    _make_images_responsive(soup)
    return soup.decode().strip()


def build_variants(html: str) -> ContentVariants:
    """Produce the three body variants stored on a gallery item."""
    safe_html = sanitize(html)
    return ContentVariants(
        html=safe_html,
        html_no_image=remove_leading_image(safe_html),
        text=strip_to_plain_text(safe_html),
    )
