"""Content sanitization for user-controlled and rule-supplied text.

Every string that is persisted, exported, or rendered passes through one
of these functions first:

  - ``sanitize_text``      plain text only, all markup removed
  - ``sanitize_rich_text`` markup limited to a fixed tag/attribute allow-list
  - ``sanitize_url``       absolute http(s) URLs only, '' otherwise

All three are pure, never raise, and are idempotent: sanitizing output
that is already safe returns it unchanged.
"""

import html
import logging
import re
from html.parser import HTMLParser
from typing import Any, FrozenSet, Iterable, List, Optional, Tuple
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_TAGS: FrozenSet[str] = frozenset({
    "div", "h1", "h2", "h3", "h4", "p", "span", "strong", "em",
    "ul", "ol", "li", "a", "br",
})
DEFAULT_ALLOWED_ATTRS: FrozenSet[str] = frozenset({"style", "href", "class", "aria-label"})

# Elements whose content is never shown, even as text
_DROP_CONTENT_TAGS = frozenset({
    "script", "style", "iframe", "object", "embed", "noscript",
    "template", "textarea", "xmp", "noembed", "noframes",
})
_VOID_TAGS = frozenset({"br"})

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_TAG_REMNANT_RE = re.compile(r"<[A-Za-z/!?][^<>]*>?")
_URL_FORBIDDEN_RE = re.compile(r"[\s\x00-\x1f\x7f\"'<>`\\]")
_UNSAFE_STYLE_RE = re.compile(r"url\s*\(|expression\s*\(|javascript\s*:|@import", re.IGNORECASE)

_ALLOWED_URL_SCHEMES = ("http", "https")


def _coerce(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    try:
        return str(value)
    except Exception:
        return ""


class _TextExtractor(HTMLParser):
    """Collects text content, skipping script-like elements."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self._parts: List[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in _DROP_CONTENT_TAGS:
            self._skip_depth += 1

    def handle_endtag(self, tag):
        if tag in _DROP_CONTENT_TAGS and self._skip_depth:
            self._skip_depth -= 1

    def handle_data(self, data):
        if not self._skip_depth:
            self._parts.append(data)

    def text(self) -> str:
        return "".join(self._parts)


class _RichTextRebuilder(HTMLParser):
    """Re-emits markup keeping only allow-listed tags and attributes."""

    def __init__(self, allowed_tags: FrozenSet[str], allowed_attrs: FrozenSet[str]):
        super().__init__(convert_charrefs=True)
        self._allowed_tags = allowed_tags
        self._allowed_attrs = allowed_attrs
        self._out: List[str] = []
        self._open: List[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in _DROP_CONTENT_TAGS:
            self._skip_depth += 1
            return
        if self._skip_depth or tag not in self._allowed_tags:
            return
        self._out.append(f"<{tag}{self._render_attrs(attrs)}>")
        if tag not in _VOID_TAGS:
            self._open.append(tag)

    def handle_endtag(self, tag):
        if tag in _DROP_CONTENT_TAGS:
            if self._skip_depth:
                self._skip_depth -= 1
            return
        if self._skip_depth or tag not in self._allowed_tags or tag in _VOID_TAGS:
            return
        if tag not in self._open:
            return
        while self._open:
            open_tag = self._open.pop()
            self._out.append(f"</{open_tag}>")
            if open_tag == tag:
                break

    def handle_data(self, data):
        if not self._skip_depth:
            self._out.append(html.escape(_CONTROL_CHARS_RE.sub("", data), quote=False))

    def _render_attrs(self, attrs: Iterable[Tuple[str, Optional[str]]]) -> str:
        rendered = []
        seen = set()
        for name, value in attrs:
            if name in seen or name not in self._allowed_attrs or name.startswith("on"):
                continue
            value = _CONTROL_CHARS_RE.sub("", value or "")
            if name == "href":
                value = sanitize_url(value)
                if not value:
                    continue
            elif name == "style" and _UNSAFE_STYLE_RE.search(value):
                continue
            seen.add(name)
            rendered.append(f' {name}="{html.escape(value, quote=True)}"')
        return "".join(rendered)

    def markup(self) -> str:
        closing = [f"</{tag}>" for tag in reversed(self._open)]
        return "".join(self._out + closing)


def _strip_markup_once(text: str) -> str:
    try:
        parser = _TextExtractor()
        parser.feed(text)
        parser.close()
        stripped = parser.text()
    except Exception:
        logger.debug("HTML parser rejected input; falling back to regex strip")
        stripped = text
    stripped = _TAG_REMNANT_RE.sub("", stripped)
    return _CONTROL_CHARS_RE.sub("", stripped)


def sanitize_text(value: Any) -> str:
    """Strip all markup, returning plain text content.

    Character references are decoded, so the result is repeatedly cleaned
    until it stops changing (``&lt;script&gt;`` must not survive as a tag).
    A pass that changes the text always shortens it, so the loop ends.
    """
    text = _coerce(value)
    while True:
        cleaned = _strip_markup_once(text)
        if cleaned == text:
            return text
        text = cleaned


def sanitize_rich_text(
    value: Any,
    allowed_tags: Iterable[str] = DEFAULT_ALLOWED_TAGS,
    allowed_attrs: Iterable[str] = DEFAULT_ALLOWED_ATTRS,
) -> str:
    """Reduce markup to the given tag and attribute allow-lists."""
    tags = frozenset(t.lower() for t in allowed_tags)
    attrs = frozenset(a.lower() for a in allowed_attrs)
    markup = _coerce(value)
    try:
        parser = _RichTextRebuilder(tags, attrs)
        parser.feed(markup)
        parser.close()
        return parser.markup()
    except Exception:
        logger.debug("HTML parser rejected rich text; degrading to plain text")
        return html.escape(sanitize_text(markup), quote=False)


def sanitize_url(value: Any) -> str:
    """Return the URL if it is an absolute http(s) URL, else ''."""
    url = _coerce(value).strip()
    if not url or _URL_FORBIDDEN_RE.search(url):
        return ""
    if not url.lower().startswith(tuple(f"{s}://" for s in _ALLOWED_URL_SCHEMES)):
        return ""
    try:
        parts = urlsplit(url)
    except ValueError:
        return ""
    if parts.scheme.lower() not in _ALLOWED_URL_SCHEMES or not parts.hostname:
        return ""
    return url
